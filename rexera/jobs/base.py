"""
Base class for background jobs run by the scheduler, the cron route or the runner API.
"""

import asyncio
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Optional

import structlog

from .context import JobContext
from .exceptions import JobError, JobTimeoutError

logger = structlog.get_logger(__name__)


class JobStatus(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMEOUT = "timeout"


class JobBase(ABC):
    """
    A named unit of background work.

    Subclasses set `name`, `description` and `timeout_seconds`, and implement
    `execute`. Per-item failures belong in `ctx.add_error`; anything raised
    out of `execute` fails the whole run.
    """

    # Also used as the APScheduler job id
    name: str = "base"
    description: str = ""
    timeout_seconds: float = 60

    def __init__(self) -> None:
        self.status = JobStatus.IDLE
        self.last_result: Optional[dict[str, Any]] = None

    @abstractmethod
    async def execute(self, ctx: JobContext) -> dict[str, Any]:
        """Do the work and return a JSON-serialisable summary."""

    async def run(
        self,
        trigger_data: Optional[dict[str, Any]] = None,
        trigger_type: str = "manual",
        caller: Optional[str] = None,
    ) -> dict[str, Any]:
        """
        Run the job once. Never raises.

        Returns:
            {"success": True, "run_id", "result", "errors", "elapsed_ms"} or
            {"success": False, "run_id", "error", "elapsed_ms"}
        """
        ctx = JobContext(
            job_name=self.name,
            trigger_data=trigger_data or {},
            trigger_type=trigger_type,
            caller=caller,
        )
        log = logger.bind(job=self.name, run_id=ctx.run_id)
        log.info("job_started", trigger_type=trigger_type, caller=caller)

        self.status = JobStatus.RUNNING
        error: Optional[dict[str, Any]] = None
        result: dict[str, Any] = {}
        try:
            result = await asyncio.wait_for(self.execute(ctx), timeout=self.timeout_seconds)
            self.status = JobStatus.COMPLETED
        except asyncio.TimeoutError:
            self.status = JobStatus.TIMEOUT
            timeout = JobTimeoutError(
                f"Job {self.name} exceeded timeout of {self.timeout_seconds}s",
                job_name=self.name,
                timeout_seconds=self.timeout_seconds,
            )
            error = timeout.to_dict()
            log.error("job_timeout", timeout_seconds=self.timeout_seconds)
        except JobError as e:
            self.status = JobStatus.FAILED
            error = e.to_dict()
            log.error("job_failed", error=str(e), details=e.details)
        except Exception as e:
            self.status = JobStatus.FAILED
            error = {"error": "UnexpectedError", "message": str(e), "job": self.name}
            log.exception("job_unexpected_error", error=str(e))
        finally:
            ctx.complete()

        if error is None:
            log.info("job_completed", elapsed_ms=ctx.elapsed_ms, errors_count=len(ctx.errors), result=result)
            outcome = {
                "success": True,
                "run_id": ctx.run_id,
                "result": result,
                "errors": ctx.errors,
                "elapsed_ms": ctx.elapsed_ms,
            }
        else:
            outcome = {
                "success": False,
                "run_id": ctx.run_id,
                "error": error,
                "elapsed_ms": ctx.elapsed_ms,
            }

        self.last_result = outcome
        return outcome

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} name={self.name} status={self.status.value}>"
