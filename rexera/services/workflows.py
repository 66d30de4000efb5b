"""
Opérations métier sur les workflows: création (avec déclenchement n8n
optionnel), mise à jour, suivi et annulation des exécutions n8n.
"""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog

from ..clients.n8n import N8nClient, N8nError, n8n_client
from ..models.enums import AuditAction, N8nStatus, WorkflowStatus
from ..models.users import AuthUser
from ..models.workflows import CreateWorkflow
from ..repositories.workflows import WorkflowRepository, workflow_repository
from .audit import AuditLogger, audit_logger

logger = structlog.get_logger(__name__)

# Statuts d'exécution n8n -> colonne workflows.n8n_status
N8N_EXECUTION_STATUS_MAP: dict[str, N8nStatus] = {
    "new": N8nStatus.RUNNING,
    "running": N8nStatus.RUNNING,
    "success": N8nStatus.SUCCESS,
    "error": N8nStatus.ERROR,
    "failed": N8nStatus.ERROR,
    "canceled": N8nStatus.CANCELED,
    "crashed": N8nStatus.CRASHED,
    "waiting": N8nStatus.WAITING,
}


class N8nUnavailableError(Exception):
    """Opération n8n impossible (intégration désactivée ou pas d'exécution)."""

    pass


def workflow_update_fields(current: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    """
    Complète une mise à jour de workflow.

    Passer en COMPLETED horodate completed_at (si absent); quitter COMPLETED
    l'efface.
    """
    fields = dict(changes)
    status = fields.get("status")
    if status is None:
        return fields

    status = WorkflowStatus(status)
    if status == WorkflowStatus.COMPLETED:
        if fields.get("completed_at") is None:
            fields["completed_at"] = current.get("completed_at") or datetime.now(timezone.utc)
    elif current.get("status") == WorkflowStatus.COMPLETED.value and "completed_at" not in fields:
        fields["completed_at"] = None
    return fields


class WorkflowService:
    """Service workflows."""

    def __init__(
        self,
        workflows: Optional[WorkflowRepository] = None,
        n8n: Optional[N8nClient] = None,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        self.workflows = workflows or workflow_repository
        self.n8n = n8n or n8n_client
        self.audit = audit or audit_logger

    async def create(self, body: CreateWorkflow, user: AuthUser) -> dict[str, Any]:
        """
        Crée un workflow puis, si demandé, déclenche l'automatisation n8n.

        Un échec n8n est logué: le workflow reste créé (NOT_STARTED).
        """
        values = body.model_dump(exclude={"trigger_automation"})
        values["created_by"] = user.id
        workflow = await self.workflows.create(values)

        logger.info(
            "workflow_created",
            workflow_id=str(workflow["id"]),
            workflow_type=workflow["workflow_type"],
            client_id=str(workflow["client_id"]),
            created_by=user.id,
        )
        await self.audit.workflow_event(
            user,
            AuditAction.CREATE,
            workflow,
            {"workflow_type": workflow["workflow_type"], "title": workflow["title"]},
        )

        if body.trigger_automation:
            workflow = await self.trigger_automation(workflow)

        return workflow

    async def trigger_automation(self, workflow: dict[str, Any]) -> dict[str, Any]:
        if not self.n8n.enabled:
            logger.info("n8n_trigger_skipped", workflow_id=str(workflow["id"]), reason="disabled")
            return workflow

        try:
            execution = await self.n8n.trigger_workflow(
                workflow_id=str(workflow["id"]),
                workflow_type=workflow["workflow_type"],
                client_id=str(workflow["client_id"]),
                metadata=workflow.get("metadata") or {},
            )
        except N8nError as e:
            logger.error(
                "n8n_trigger_failed",
                workflow_id=str(workflow["id"]),
                code=e.code,
                error=str(e),
            )
            return workflow

        updated = await self.workflows.update(
            str(workflow["id"]),
            {
                "n8n_execution_id": str(execution.get("id")) if execution.get("id") else None,
                "n8n_started_at": datetime.now(timezone.utc),
                "n8n_status": N8nStatus.RUNNING,
                "status": WorkflowStatus.IN_PROGRESS,
            },
        )
        if updated is None:
            return workflow
        updated["interrupt_count"] = workflow.get("interrupt_count", 0)
        return updated

    async def update(
        self, workflow: dict[str, Any], changes: dict[str, Any], user: AuthUser
    ) -> Optional[dict[str, Any]]:
        fields = workflow_update_fields(workflow, changes)
        updated = await self.workflows.update(str(workflow["id"]), fields)
        if updated is None:
            return None

        logger.info(
            "workflow_updated",
            workflow_id=str(workflow["id"]),
            fields=sorted(fields),
            status=updated.get("status"),
        )
        await self.audit.workflow_event(
            user, AuditAction.UPDATE, updated, {"changes": sorted(fields)}
        )
        return updated

    async def n8n_status(self, workflow: dict[str, Any]) -> dict[str, Any]:
        """
        Etat n8n d'un workflow: colonnes stockées + exécution live si possible.

        Le statut live est recopié dans workflows.n8n_status.
        """
        result: dict[str, Any] = {
            "workflowId": str(workflow["id"]),
            "n8nEnabled": self.n8n.enabled,
            "n8nExecutionId": workflow.get("n8n_execution_id"),
            "n8nStatus": workflow.get("n8n_status"),
            "n8nStartedAt": workflow.get("n8n_started_at"),
            "execution": None,
        }

        execution_id = workflow.get("n8n_execution_id")
        if not execution_id or not self.n8n.enabled:
            return result

        try:
            execution = await self.n8n.get_execution(execution_id)
        except N8nError as e:
            logger.warning(
                "n8n_status_fetch_failed",
                workflow_id=str(workflow["id"]),
                execution_id=execution_id,
                error=str(e),
            )
            result["executionError"] = str(e)
            return result

        result["execution"] = execution
        mapped = N8N_EXECUTION_STATUS_MAP.get(str(execution.get("status") or "").lower())
        if mapped is not None and mapped.value != workflow.get("n8n_status"):
            await self.workflows.update(str(workflow["id"]), {"n8n_status": mapped})
            result["n8nStatus"] = mapped.value
        return result

    async def cancel_n8n(
        self, workflow: dict[str, Any], user: AuthUser, reason: Optional[str] = None
    ) -> dict[str, Any]:
        """
        Arrête l'exécution n8n d'un workflow et le passe BLOCKED.

        Raises:
            N8nUnavailableError: n8n désactivé ou aucune exécution connue
            N8nError: Echec de l'appel n8n
        """
        if not self.n8n.enabled:
            raise N8nUnavailableError("n8n integration is not enabled")

        execution_id = workflow.get("n8n_execution_id")
        if not execution_id:
            raise N8nUnavailableError("Workflow has no n8n execution")

        await self.n8n.cancel_execution(execution_id)

        now = datetime.now(timezone.utc)
        updated = await self.workflows.update(
            str(workflow["id"]),
            {"n8n_status": N8nStatus.CANCELED, "status": WorkflowStatus.BLOCKED},
            metadata_patch={
                "n8n_canceled_at": now.isoformat(),
                "n8n_canceled_by": user.id,
                "n8n_cancel_reason": reason or "Canceled by user",
            },
        )

        logger.info(
            "n8n_execution_canceled_for_workflow",
            workflow_id=str(workflow["id"]),
            execution_id=execution_id,
            canceled_by=user.id,
        )
        await self.audit.workflow_event(
            user,
            AuditAction.UPDATE,
            updated or workflow,
            {"n8n_execution_id": execution_id, "canceled": True, "reason": reason},
        )
        return updated or workflow


# Instance singleton
workflow_service = WorkflowService()
