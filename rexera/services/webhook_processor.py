"""
Traitement des événements webhook envoyés par n8n.

Chaque type d'événement est associé à une mutation de la base. Les
événements "stricts" (cycle de vie du workflow) font échouer la requête si
le workflow est introuvable; les autres sont appliqués au mieux: l'échec est
logué et n8n reçoit quand même une réponse 200.
"""

from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

import asyncpg
import structlog

from ..config import settings
from ..models.enums import (
    AuditAction,
    InterruptType,
    N8nStatus,
    NotificationType,
    PriorityLevel,
    TaskStatus,
    WorkflowStatus,
)
from ..models.webhooks import N8nEventType, N8nWebhookEvent
from ..repositories.agents import AgentRepository, agent_repository
from ..repositories.base import is_uuid
from ..repositories.tasks import TaskRepository, task_repository
from ..repositories.workflows import WorkflowRepository, workflow_repository
from ..utils.retry import with_retry
from .audit import AuditLogger, audit_logger
from .notifications import NotificationService, notification_service
from .tasks import compute_task_update

logger = structlog.get_logger(__name__)

SUCCESS_STATUSES = {None, "", "success", "succeeded", "completed"}


class WebhookProcessingError(Exception):
    """Evénement impossible à appliquer (workflow ou tâche introuvable)."""

    pass


Handler = Callable[[N8nWebhookEvent], Awaitable[dict[str, Any]]]


class WebhookProcessor:
    """
    Dispatch des événements n8n vers leurs handlers.

    Chaque handler retourne la ressource touchée
    ({"resource_type", "resource_id", "workflow_id"}) pour l'audit.
    """

    def __init__(
        self,
        workflows: Optional[WorkflowRepository] = None,
        tasks: Optional[TaskRepository] = None,
        agents: Optional[AgentRepository] = None,
        notifications: Optional[NotificationService] = None,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        self.workflows = workflows or workflow_repository
        self.tasks = tasks or task_repository
        self.agents = agents or agent_repository
        self.notifications = notifications or notification_service
        self.audit = audit or audit_logger

        # (handler, strict)
        self._handlers: dict[N8nEventType, tuple[Handler, bool]] = {
            N8nEventType.WORKFLOW_STARTED: (self._workflow_started, True),
            N8nEventType.TASK_ASSIGNED_TO_AGENT: (self._task_assigned, False),
            N8nEventType.AGENT_TASK_COMPLETED: (self._agent_task_completed, False),
            N8nEventType.AGENT_TASK_FAILED: (self._agent_task_failed, False),
            N8nEventType.TASK_COMPLETED: (self._task_completed, False),
            N8nEventType.TASK_FAILED: (self._task_failed, False),
            N8nEventType.TASK_INTERRUPTED: (self._task_interrupted, False),
            N8nEventType.WORKFLOW_COMPLETED: (self._workflow_completed, True),
            N8nEventType.WORKFLOW_FAILED: (self._workflow_failed, True),
            N8nEventType.ERROR_OCCURRED: (self._error_occurred, False),
        }

    @property
    def event_types(self) -> list[str]:
        return [e.value for e in self._handlers]

    async def process(self, event: N8nWebhookEvent) -> dict[str, Any]:
        """
        Applique un événement.

        Returns:
            {"applied": bool, "error": str | None}

        Raises:
            WebhookProcessingError: Evénement strict inapplicable
        """
        handler, strict = self._handlers[event.event_type]
        log = logger.bind(
            event_type=event.event_type.value,
            execution_id=event.execution_id,
            workflow_ref=event.rexera_workflow_id,
            task_id=event.task_id,
        )

        try:
            target = await handler(event)
        except (WebhookProcessingError, asyncpg.PostgresError) as e:
            if strict:
                log.error("n8n_webhook_failed", error=str(e))
                raise
            log.warning("n8n_webhook_best_effort_failed", error=str(e))
            return {"applied": False, "error": str(e)}

        log.info("n8n_webhook_processed", resource_type=target["resource_type"])
        await self.audit.system_event(
            actor_id="n8n",
            event_type=f"n8n_{event.event_type.value}",
            action=AuditAction.UPDATE,
            resource_type=target["resource_type"],
            resource_id=target["resource_id"],
            workflow_id=target.get("workflow_id"),
            event_data={
                "execution_id": event.execution_id,
                "timestamp": event.timestamp,
                "data": event.data,
            },
        )
        return {"applied": True, "error": None}

    # =========================================================================
    # Résolution des cibles
    # =========================================================================

    async def _resolve_workflow_id(self, event: N8nWebhookEvent) -> str:
        reference = event.rexera_workflow_id
        if not reference:
            raise WebhookProcessingError("Missing Rexera workflow id")
        workflow_id = await self.workflows.resolve_id(reference)
        if workflow_id is None:
            raise WebhookProcessingError(f"Workflow not found: {reference}")
        return workflow_id

    async def _resolve_task(self, event: N8nWebhookEvent) -> dict[str, Any]:
        task_id = event.task_id
        task: Optional[dict[str, Any]] = None

        if task_id and is_uuid(task_id):
            task = await self.tasks.get(task_id)
        elif event.data.get("taskType") and event.rexera_workflow_id:
            workflow_id = await self._resolve_workflow_id(event)
            task = await self.tasks.get_by_workflow_and_type(
                workflow_id, str(event.data["taskType"])
            )

        if task is None:
            raise WebhookProcessingError(f"Task not found: {task_id or event.data.get('taskType')}")
        return task

    # =========================================================================
    # Ecritures (retry sur erreurs transitoires)
    # =========================================================================

    @with_retry(max_attempts=3)
    async def _write_workflow(
        self,
        workflow_id: str,
        fields: dict[str, Any],
        metadata_patch: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        updated = await self.workflows.update(workflow_id, fields, metadata_patch=metadata_patch)
        if updated is None:
            raise WebhookProcessingError(f"Workflow not found: {workflow_id}")
        return {"resource_type": "workflow", "resource_id": updated["id"], "workflow_id": updated["id"]}

    @with_retry(max_attempts=3)
    async def _write_task(
        self,
        task: dict[str, Any],
        changes: dict[str, Any],
        output_patch: Optional[dict[str, Any]] = None,
        input_patch: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        fields = compute_task_update(
            task, changes, datetime.now(timezone.utc), settings.default_sla_hours
        )
        updated = await self.tasks.update(
            str(task["id"]), fields, output_patch=output_patch, input_patch=input_patch
        )
        if updated is None:
            raise WebhookProcessingError(f"Task not found: {task['id']}")
        return {
            "resource_type": "task_execution",
            "resource_id": updated["id"],
            "workflow_id": updated.get("workflow_id"),
        }

    def _execution_meta(self, event: N8nWebhookEvent) -> dict[str, Any]:
        return {"n8n_execution_id": event.execution_id} if event.execution_id else {}

    # =========================================================================
    # Handlers workflow
    # =========================================================================

    async def _workflow_started(self, event: N8nWebhookEvent) -> dict[str, Any]:
        workflow_id = await self._resolve_workflow_id(event)
        fields: dict[str, Any] = {
            "status": WorkflowStatus.IN_PROGRESS,
            "n8n_started_at": datetime.now(timezone.utc),
            "n8n_status": N8nStatus.RUNNING,
        }
        if event.execution_id:
            fields["n8n_execution_id"] = event.execution_id
        return await self._write_workflow(workflow_id, fields)

    async def _workflow_completed(self, event: N8nWebhookEvent) -> dict[str, Any]:
        workflow_id = await self._resolve_workflow_id(event)
        succeeded = event.data.get("status") in SUCCESS_STATUSES
        metadata = {**self._execution_meta(event), "n8n_result": event.data.get("result")}

        if succeeded:
            fields = {
                "status": WorkflowStatus.COMPLETED,
                "completed_at": datetime.now(timezone.utc),
                "n8n_status": N8nStatus.SUCCESS,
            }
        else:
            fields = {"status": WorkflowStatus.BLOCKED, "n8n_status": N8nStatus.ERROR}
            metadata["n8n_error"] = event.data.get("error") or f"n8n status: {event.data.get('status')}"

        return await self._write_workflow(workflow_id, fields, metadata)

    async def _workflow_failed(self, event: N8nWebhookEvent) -> dict[str, Any]:
        workflow_id = await self._resolve_workflow_id(event)
        error = event.data.get("error") or "n8n workflow failed"
        metadata = {
            **self._execution_meta(event),
            "n8n_error": error,
            "n8n_failed_at": datetime.now(timezone.utc).isoformat(),
            "escalation_reason": event.data.get("escalationReason")
            or f"Automation failed: {error}",
        }
        return await self._write_workflow(
            workflow_id,
            {"status": WorkflowStatus.BLOCKED, "n8n_status": N8nStatus.ERROR},
            metadata,
        )

    async def _error_occurred(self, event: N8nWebhookEvent) -> dict[str, Any]:
        workflow_id = await self._resolve_workflow_id(event)
        metadata = {
            **self._execution_meta(event),
            "n8n_error": event.data.get("error"),
            "n8n_error_stack": event.data.get("stack"),
            "n8n_error_node": event.data.get("nodeId"),
            "n8n_error_node_name": event.data.get("nodeName"),
        }
        return await self._write_workflow(
            workflow_id,
            {"status": WorkflowStatus.BLOCKED, "n8n_status": N8nStatus.ERROR},
            metadata,
        )

    # =========================================================================
    # Handlers tâches
    # =========================================================================

    async def _task_assigned(self, event: N8nWebhookEvent) -> dict[str, Any]:
        task = await self._resolve_task(event)
        changes: dict[str, Any] = {"status": TaskStatus.IN_PROGRESS}

        agent_name = event.data.get("agentName")
        if agent_name:
            agent = await self.agents.get_by_name(str(agent_name))
            if agent:
                changes["agent_id"] = agent["id"]
            else:
                logger.warning("n8n_agent_unknown", agent_name=agent_name)

        task_data = event.data.get("taskData")
        input_patch = {
            **(task_data if isinstance(task_data, dict) else {}),
            **self._execution_meta(event),
            "assigned_agent": agent_name,
        }
        return await self._write_task(task, changes, input_patch=input_patch)

    async def _agent_task_completed(self, event: N8nWebhookEvent) -> dict[str, Any]:
        succeeded = event.data.get("status") in SUCCESS_STATUSES
        return await self._finish_agent_task(event, succeeded)

    async def _agent_task_failed(self, event: N8nWebhookEvent) -> dict[str, Any]:
        return await self._finish_agent_task(event, False)

    async def _finish_agent_task(self, event: N8nWebhookEvent, succeeded: bool) -> dict[str, Any]:
        task = await self._resolve_task(event)
        changes: dict[str, Any] = {
            "status": TaskStatus.COMPLETED if succeeded else TaskStatus.FAILED,
        }
        if not succeeded:
            changes["error_message"] = str(event.data.get("error") or "Agent task failed")
        if isinstance(event.data.get("executionTimeMs"), int):
            changes["execution_time_ms"] = event.data["executionTimeMs"]

        output_patch = {
            **self._execution_meta(event),
            "agent_result": event.data.get("result"),
            "completed_by_agent": event.data.get("agentName"),
        }
        return await self._write_task(task, changes, output_patch=output_patch)

    async def _task_completed(self, event: N8nWebhookEvent) -> dict[str, Any]:
        task = await self._resolve_task(event)
        output_patch = {**self._execution_meta(event), "n8n_result": event.data.get("result")}
        return await self._write_task(task, {"status": TaskStatus.COMPLETED}, output_patch=output_patch)

    async def _task_failed(self, event: N8nWebhookEvent) -> dict[str, Any]:
        task = await self._resolve_task(event)
        error = str(event.data.get("error") or "Task failed in n8n")
        output_patch = {**self._execution_meta(event), "n8n_error": error}
        return await self._write_task(
            task, {"status": TaskStatus.FAILED, "error_message": error}, output_patch=output_patch
        )

    async def _task_interrupted(self, event: N8nWebhookEvent) -> dict[str, Any]:
        task = await self._resolve_task(event)
        try:
            interrupt_type = InterruptType(event.data.get("interruptType"))
        except ValueError:
            interrupt_type = InterruptType.MANUAL_VERIFICATION

        reason = event.data.get("reason") or interrupt_type.value.replace("_", " ").lower()
        target = await self._write_task(
            task,
            {"status": TaskStatus.INTERRUPT, "interrupt_type": interrupt_type},
            output_patch={**self._execution_meta(event), "interrupt_reason": reason},
        )

        try:
            await self.notifications.notify_hil_users(
                NotificationType.TASK_INTERRUPT,
                PriorityLevel(task.get("priority") or PriorityLevel.NORMAL.value),
                "Task requires attention",
                f'Task "{task.get("title")}" was interrupted: {reason}',
                action_url=f"/workflow/{task['workflow_id']}",
                metadata={
                    "task_id": str(task["id"]),
                    "workflow_id": str(task["workflow_id"]),
                    "interrupt_type": interrupt_type.value,
                },
            )
        except asyncpg.PostgresError as e:
            logger.error("interrupt_notification_failed", task_id=str(task["id"]), error=str(e))

        return target


# Instance singleton
webhook_processor = WebhookProcessor()
