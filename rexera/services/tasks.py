"""
Cycle de vie des exécutions de tâches.

- Horodatage started_at / completed_at selon les transitions de statut
- Calcul de l'échéance SLA (sla_due_at = started_at + sla_hours)
- Résolution des interruptions HIL
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import structlog

from ..config import settings
from ..models.enums import AuditAction, TaskStatus, WorkflowStatus
from ..models.tasks import ResolveInterrupt
from ..models.users import AuthUser
from ..repositories.tasks import TaskRepository, task_repository
from ..repositories.workflows import WorkflowRepository, workflow_repository
from .audit import AuditLogger, audit_logger

logger = structlog.get_logger(__name__)


class TaskTransitionError(ValueError):
    """Transition de statut invalide."""

    pass


class InterruptNotPendingError(Exception):
    """La tâche n'est pas (ou plus) en attente d'intervention HIL."""

    pass


def utc(value: Optional[datetime]) -> Optional[datetime]:
    """Rend un datetime timezone-aware (UTC si naïf)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def sla_due_at(started_at: datetime, sla_hours: int) -> datetime:
    return utc(started_at) + timedelta(hours=sla_hours)


def compute_task_update(
    current: dict[str, Any],
    changes: dict[str, Any],
    now: datetime,
    default_sla_hours: int = 24,
) -> dict[str, Any]:
    """
    Calcule les colonnes à écrire pour une mise à jour de tâche.

    Args:
        current: Ligne actuelle de task_executions
        changes: Champs envoyés par l'appelant (déjà validés)
        now: Horodatage de référence (UTC)
        default_sla_hours: SLA si la tâche n'en a pas

    Returns:
        Colonnes à écrire

    Raises:
        TaskTransitionError: Passage en INTERRUPT sans interrupt_type
    """
    fields = dict(changes)
    for key in ("started_at", "completed_at"):
        if fields.get(key) is not None:
            fields[key] = utc(fields[key])

    status = TaskStatus(fields["status"]) if fields.get("status") is not None else None

    started_at = fields["started_at"] if "started_at" in fields else utc(current.get("started_at"))
    if status == TaskStatus.IN_PROGRESS and started_at is None:
        started_at = now
        fields["started_at"] = now

    sla_hours = fields.get("sla_hours") or current.get("sla_hours") or default_sla_hours
    if started_at is not None and ("started_at" in fields or "sla_hours" in fields):
        fields["sla_due_at"] = sla_due_at(started_at, sla_hours)

    if status in (TaskStatus.COMPLETED, TaskStatus.FAILED):
        completed_at = fields.get("completed_at")
        if completed_at is None:
            completed_at = now
            fields["completed_at"] = now
        if fields.get("execution_time_ms") is None and started_at is not None:
            elapsed = (completed_at - started_at).total_seconds() * 1000
            fields["execution_time_ms"] = max(0, int(elapsed))

    if status == TaskStatus.INTERRUPT:
        if not (fields.get("interrupt_type") or current.get("interrupt_type")):
            raise TaskTransitionError("interrupt_type is required when status is INTERRUPT")
    elif status is not None and current.get("status") == TaskStatus.INTERRUPT.value:
        fields.setdefault("interrupt_type", None)

    return fields


class TaskService:
    """Mises à jour de tâches et résolution des interruptions."""

    def __init__(
        self,
        tasks: Optional[TaskRepository] = None,
        workflows: Optional[WorkflowRepository] = None,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        self.tasks = tasks or task_repository
        self.workflows = workflows or workflow_repository
        self.audit = audit or audit_logger

    async def update(
        self,
        task: dict[str, Any],
        changes: dict[str, Any],
        user: Optional[AuthUser] = None,
    ) -> Optional[dict[str, Any]]:
        """Applique une mise à jour avec horodatage du cycle de vie."""
        fields = compute_task_update(
            task, changes, datetime.now(timezone.utc), settings.default_sla_hours
        )
        updated = await self.tasks.update(str(task["id"]), fields)
        if updated is None:
            return None

        logger.info(
            "task_execution_updated",
            task_id=str(task["id"]),
            fields=sorted(fields),
            status=updated.get("status"),
        )
        if user is not None:
            await self.audit.task_event(
                user, AuditAction.UPDATE, updated, {"changes": sorted(fields)}
            )
        return updated

    async def resolve_interrupt(
        self,
        task: dict[str, Any],
        body: ResolveInterrupt,
        user: AuthUser,
    ) -> dict[str, Any]:
        """
        Résout une interruption HIL.

        La tâche repart en IN_PROGRESS (resume) ou est clôturée COMPLETED.
        Le workflow parent BLOCKED repasse IN_PROGRESS quand plus aucune
        interruption ne reste.

        Raises:
            InterruptNotPendingError: La tâche n'est pas en INTERRUPT
        """
        if task.get("status") != TaskStatus.INTERRUPT.value:
            raise InterruptNotPendingError(f"Task {task['id']} is not interrupted")

        now = datetime.now(timezone.utc)
        target = TaskStatus.IN_PROGRESS if body.resume else TaskStatus.COMPLETED
        fields = compute_task_update(
            task, {"status": target, "interrupt_type": None}, now, settings.default_sla_hours
        )
        resolution = {
            "hil_resolution": {
                "resolution": body.resolution,
                "resolved_by": user.id,
                "resolved_by_email": user.email,
                "resolved_at": now.isoformat(),
                "interrupt_type": task.get("interrupt_type"),
                "resumed": body.resume,
                **body.output_data,
            }
        }
        updated = await self.tasks.update(str(task["id"]), fields, output_patch=resolution)

        workflow_id = str(task["workflow_id"])
        workflow_unblocked = False
        workflow = await self.workflows.get_plain(workflow_id)
        if workflow and workflow.get("status") == WorkflowStatus.BLOCKED.value:
            if await self.tasks.count_interrupts(workflow_id) == 0:
                await self.workflows.update(workflow_id, {"status": WorkflowStatus.IN_PROGRESS})
                workflow_unblocked = True

        logger.info(
            "interrupt_resolved",
            task_id=str(task["id"]),
            workflow_id=workflow_id,
            resumed=body.resume,
            workflow_unblocked=workflow_unblocked,
            resolved_by=user.id,
        )
        await self.audit.task_event(
            user,
            AuditAction.APPROVE,
            updated or task,
            {"resolution": body.resolution, "resumed": body.resume},
            event_type="interrupt_resolved",
        )
        return updated or task


# Instance singleton
task_service = TaskService()
