"""
Custom exceptions for background jobs
"""

from typing import Any, Optional


class JobError(Exception):
    """Base exception for all job errors"""

    def __init__(
        self,
        message: str,
        job_name: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.job_name = job_name
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "job": self.job_name,
            "details": self.details,
        }


class JobTimeoutError(JobError):
    """Raised when a job exceeds its timeout"""

    def __init__(
        self,
        message: str = "Job timeout exceeded",
        job_name: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
    ):
        super().__init__(message, job_name, {"timeout_seconds": timeout_seconds})
        self.timeout_seconds = timeout_seconds

