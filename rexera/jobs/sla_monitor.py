"""
SLA monitor job

Runs every few minutes:
1. Tasks past their SLA due date are marked BREACHED and every HIL user is
   notified (SLA_WARNING, HIGH).
2. Running tasks that consumed most of their SLA window are marked AT_RISK.

A failure on one task is recorded in the job context and the run goes on.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from ..config import settings
from ..models.enums import AuditAction, NotificationType, PriorityLevel, SlaStatus
from ..repositories.tasks import TaskRepository, task_repository
from ..services.audit import AuditLogger, audit_logger
from ..services.notifications import NotificationService, notification_service
from ..services.tasks import utc
from .base import JobBase
from .context import JobContext

logger = structlog.get_logger(__name__)


def classify_sla(
    started_at: Optional[datetime],
    due_at: Optional[datetime],
    now: datetime,
    threshold: float = 0.8,
) -> SlaStatus:
    """
    SLA status of a task at `now`.

    BREACHED once the due date is passed, AT_RISK once the elapsed share of
    the [started_at, due_at] window reaches `threshold`, ON_TIME otherwise.
    """
    if due_at is None:
        return SlaStatus.ON_TIME

    due_at = utc(due_at)
    now = utc(now)
    if now > due_at:
        return SlaStatus.BREACHED

    if started_at is None:
        return SlaStatus.ON_TIME

    window = (due_at - utc(started_at)).total_seconds()
    if window <= 0:
        return SlaStatus.ON_TIME

    elapsed = (now - utc(started_at)).total_seconds()
    if elapsed / window >= threshold:
        return SlaStatus.AT_RISK
    return SlaStatus.ON_TIME


def hours_overdue(due_at: datetime, now: datetime) -> int:
    return round((utc(now) - utc(due_at)).total_seconds() / 3600)


class SlaMonitorJob(JobBase):
    """Flags SLA breaches and at-risk tasks."""

    name = "sla_monitor"
    description = "Mark SLA breaches and at-risk tasks, notify HIL users"
    timeout_seconds = 300

    def __init__(
        self,
        tasks: Optional[TaskRepository] = None,
        notifications: Optional[NotificationService] = None,
        audit: Optional[AuditLogger] = None,
        at_risk_threshold: Optional[float] = None,
    ) -> None:
        super().__init__()
        self.tasks = tasks or task_repository
        self.notifications = notifications or notification_service
        self.audit = audit or audit_logger
        self.at_risk_threshold = (
            at_risk_threshold if at_risk_threshold is not None else settings.sla_at_risk_threshold
        )

    async def execute(self, ctx: JobContext) -> dict[str, Any]:
        now = datetime.now(timezone.utc)

        breaches = await self.tasks.find_sla_breaches(now)
        ctx.set_state("breaches_found", len(breaches))
        for task in breaches:
            try:
                await self._process_breach(task, now)
                ctx.increment("breaches_processed")
            except Exception as e:
                logger.error("sla_breach_processing_failed", task_id=str(task["id"]), error=str(e))
                ctx.add_error(str(e), {"task_id": str(task["id"]), "pass": "breach"})

        candidates = await self.tasks.find_sla_candidates_on_time(now)
        for task in candidates:
            status = classify_sla(task.get("started_at"), task.get("sla_due_at"), now, self.at_risk_threshold)
            if status != SlaStatus.AT_RISK:
                continue
            try:
                await self.tasks.set_sla_status(str(task["id"]), SlaStatus.AT_RISK.value)
                ctx.increment("at_risk_marked")
            except Exception as e:
                logger.error("sla_at_risk_update_failed", task_id=str(task["id"]), error=str(e))
                ctx.add_error(str(e), {"task_id": str(task["id"]), "pass": "at_risk"})

        return {
            "breaches_found": ctx.get_state("breaches_found", 0),
            "breaches_processed": ctx.get_state("breaches_processed", 0),
            "at_risk_marked": ctx.get_state("at_risk_marked", 0),
        }

    async def _process_breach(self, task: dict[str, Any], now: datetime) -> None:
        task_id = str(task["id"])
        overdue = hours_overdue(task["sla_due_at"], now)

        await self.tasks.set_sla_status(task_id, SlaStatus.BREACHED.value)

        await self.notifications.notify_hil_users(
            NotificationType.SLA_WARNING,
            PriorityLevel.HIGH,
            "SLA Breached",
            f'Task "{task["title"]}" is {overdue} hours overdue ({task["sla_hours"]}h SLA)',
            action_url=f"/workflow/{task['workflow_id']}",
            metadata={
                "task_id": task_id,
                "workflow_id": str(task["workflow_id"]),
                "task_type": task.get("task_type"),
                "hours_overdue": overdue,
                "sla_hours": task["sla_hours"],
                "breach_detected_at": now.isoformat(),
            },
        )

        await self.audit.system_event(
            actor_id=self.name,
            event_type="sla_breached",
            action=AuditAction.UPDATE,
            resource_type="task_execution",
            resource_id=task["id"],
            workflow_id=task["workflow_id"],
            event_data={"hours_overdue": overdue, "sla_hours": task["sla_hours"]},
        )

        logger.warning(
            "sla_breach_detected",
            task_id=task_id,
            workflow_id=str(task["workflow_id"]),
            hours_overdue=overdue,
        )
