"""
Background jobs: job framework, APScheduler wrapper and the SLA monitor
"""

from .base import JobBase, JobStatus
from .context import JobContext
from .exceptions import JobError, JobTimeoutError
from .scheduler import JobScheduler
from .sla_monitor import SlaMonitorJob, classify_sla

__all__ = [
    "JobBase",
    "JobStatus",
    "JobContext",
    "JobError",
    "JobTimeoutError",
    "JobScheduler",
    "SlaMonitorJob",
    "classify_sla",
]
