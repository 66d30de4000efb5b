"""
Job Scheduler - APScheduler wrapper for cron and interval triggers
"""

from typing import Any, Optional

import structlog
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from .base import JobBase

logger = structlog.get_logger(__name__)


class JobScheduler:
    """
    Scheduler for background jobs.

    Handles:
    - Registering jobs with cron or interval triggers
    - Starting/stopping the scheduler
    - Manual triggering, pause and resume
    """

    def __init__(self, scheduler: Optional[AsyncIOScheduler] = None):
        self._scheduler = scheduler or AsyncIOScheduler(timezone="UTC")
        self._jobs: dict[str, JobBase] = {}

    def register_interval(
        self,
        job: JobBase,
        seconds: int = 0,
        minutes: int = 0,
        hours: int = 0,
        **kwargs: Any,
    ) -> JobBase:
        """
        Register a job with an interval trigger.

        Args:
            job: Job instance
            seconds / minutes / hours: Interval
            **kwargs: Additional IntervalTrigger arguments
        """
        trigger = IntervalTrigger(seconds=seconds, minutes=minutes, hours=hours, **kwargs)
        self._add(job, trigger)

        logger.info(
            "job_registered",
            job=job.name,
            trigger_type="interval",
            seconds=seconds,
            minutes=minutes,
            hours=hours,
        )
        return job

    def register_cron(
        self,
        job: JobBase,
        hour: Optional[str] = None,
        minute: Optional[str] = None,
        second: int = 0,
        day_of_week: Optional[str] = None,
        **kwargs: Any,
    ) -> JobBase:
        """
        Register a job with a cron trigger.

        Args:
            job: Job instance
            hour: Hour expression (0-23, "*/2", ...)
            minute: Minute expression (0-59, "*/15", ...)
            second: Second (0-59)
            day_of_week: Day of week (mon-sun)
        """
        trigger = CronTrigger(
            hour=hour, minute=minute, second=second, day_of_week=day_of_week, **kwargs
        )
        self._add(job, trigger)

        logger.info("job_registered", job=job.name, trigger_type="cron", hour=hour, minute=minute)
        return job

    def _add(self, job: JobBase, trigger: Any) -> None:
        self._scheduler.add_job(
            self._run_job,
            trigger=trigger,
            id=job.name,
            name=f"Job: {job.name}",
            args=[job],
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        self._jobs[job.name] = job

    async def _run_job(self, job: JobBase) -> dict[str, Any]:
        return await job.run(trigger_type="cron")

    async def trigger(
        self,
        job_name: str,
        trigger_data: Optional[dict[str, Any]] = None,
        trigger_type: str = "manual",
        caller: Optional[str] = None,
    ) -> dict[str, Any]:
        """Run a registered job now, outside its schedule."""
        job = self._jobs.get(job_name)
        if job is None:
            logger.error("job_not_found", job=job_name)
            return {"success": False, "error": f"Job not found: {job_name}"}
        return await job.run(trigger_data=trigger_data, trigger_type=trigger_type, caller=caller)

    def get_job(self, name: str) -> Optional[JobBase]:
        return self._jobs.get(name)

    def list_jobs(self) -> list[dict[str, Any]]:
        """Registered jobs with their next run time"""
        scheduled = {job.id: job for job in self._scheduler.get_jobs()}
        result = []
        for name, job in self._jobs.items():
            entry = scheduled.get(name)
            next_run = getattr(entry, "next_run_time", None) if entry else None
            result.append({
                "name": name,
                "description": job.description,
                "status": job.status.value,
                "next_run": next_run.isoformat() if next_run else None,
                "trigger": str(entry.trigger) if entry else None,
            })
        return result

    def start(self) -> None:
        if not self._scheduler.running:
            self._scheduler.start()
            logger.info("scheduler_started", jobs=list(self._jobs))

    def shutdown(self, wait: bool = True) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("scheduler_stopped")

    def pause_job(self, job_name: str) -> bool:
        try:
            self._scheduler.pause_job(job_name)
        except JobLookupError:
            logger.error("job_pause_failed", job=job_name, error="not scheduled")
            return False
        logger.info("job_paused", job=job_name)
        return True

    def resume_job(self, job_name: str) -> bool:
        try:
            self._scheduler.resume_job(job_name)
        except JobLookupError:
            logger.error("job_resume_failed", job=job_name, error="not scheduled")
            return False
        logger.info("job_resumed", job=job_name)
        return True

    @property
    def is_running(self) -> bool:
        return self._scheduler.running
