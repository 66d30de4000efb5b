"""
Rexera Job Runner

Standalone process hosting the scheduled jobs (SLA monitor) with a small
admin API.

Usage:
    python -m rexera.jobs.runner

Or with uvicorn:
    uvicorn rexera.jobs.runner:app --host 0.0.0.0 --port 8788
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Optional

import structlog
import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Request

from ..api.auth import verify_cron_secret
from ..api.errors import register_exception_handlers
from ..clients import database, n8n_client, redis_client
from ..config import settings
from ..utils.logging import setup_logging
from .scheduler import JobScheduler
from .sla_monitor import SlaMonitorJob

logger = structlog.get_logger(__name__)

scheduler: Optional[JobScheduler] = None


def build_scheduler() -> JobScheduler:
    """Scheduler with every job registered."""
    job_scheduler = JobScheduler()
    job_scheduler.register_interval(
        SlaMonitorJob(),
        minutes=settings.sla_monitor_interval_minutes,
    )
    return job_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    global scheduler

    logger.info(
        "job_runner_starting",
        environment=settings.environment,
        scheduler_enabled=settings.scheduler_enabled,
    )

    scheduler = build_scheduler()
    if settings.scheduler_enabled:
        scheduler.start()

    yield

    logger.info("job_runner_stopping")
    scheduler.shutdown(wait=True)
    await database.close()
    await redis_client.close()
    await n8n_client.close()
    logger.info("job_runner_stopped")


app = FastAPI(
    title="Rexera Job Runner",
    description="Scheduled jobs of the Rexera workflow API",
    version="1.0.0",
    lifespan=lifespan,
)
register_exception_handlers(app)


def _scheduler() -> JobScheduler:
    if scheduler is None:
        raise HTTPException(status_code=503, detail="Scheduler not initialized")
    return scheduler


@app.get("/health")
async def health_check() -> dict[str, Any]:
    return {
        "status": "healthy",
        "scheduler": {
            "running": scheduler.is_running if scheduler else False,
            "jobs": len(scheduler.list_jobs()) if scheduler else 0,
        },
    }


@app.get("/jobs", dependencies=[Depends(verify_cron_secret)])
async def list_jobs() -> dict[str, Any]:
    return {"jobs": _scheduler().list_jobs()}


@app.post("/jobs/{job_name}/trigger", dependencies=[Depends(verify_cron_secret)])
async def trigger_job(job_name: str, request: Request) -> dict[str, Any]:
    job_scheduler = _scheduler()
    if job_scheduler.get_job(job_name) is None:
        raise HTTPException(status_code=404, detail="Job not found")
    return await job_scheduler.trigger(
        job_name,
        trigger_type="manual",
        caller=request.client.host if request.client else None,
    )


@app.post("/scheduler/pause/{job_name}", dependencies=[Depends(verify_cron_secret)])
async def pause_job(job_name: str) -> dict[str, str]:
    if not _scheduler().pause_job(job_name):
        raise HTTPException(status_code=404, detail="Job not found")
    return {"status": "paused", "job": job_name}


@app.post("/scheduler/resume/{job_name}", dependencies=[Depends(verify_cron_secret)])
async def resume_job(job_name: str) -> dict[str, str]:
    if not _scheduler().resume_job(job_name):
        raise HTTPException(status_code=404, detail="Job not found")
    return {"status": "resumed", "job": job_name}


def main() -> None:
    setup_logging(settings.log_level, json_format=settings.log_format == "json")
    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.runner_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
