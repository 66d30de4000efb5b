"""
Journalisation d'audit.

Un échec d'écriture dans audit_events ne doit jamais faire échouer la
requête métier: l'erreur est loguée puis ignorée.
"""

from typing import Any, Optional

import structlog

from ..models.audit import AuditEvent
from ..models.enums import ActorType, AuditAction
from ..models.users import AuthUser
from ..repositories.audit import AuditRepository, audit_repository

logger = structlog.get_logger(__name__)


def human_actor(user: AuthUser) -> dict[str, Any]:
    return {"actor_type": ActorType.HUMAN, "actor_id": user.id, "actor_name": user.email}


class AuditLogger:
    """Ecrit les événements d'audit sans propager les erreurs."""

    def __init__(self, repository: Optional[AuditRepository] = None) -> None:
        self.repository = repository or audit_repository

    async def log(self, event: AuditEvent) -> bool:
        """
        Enregistre un événement.

        Returns:
            True si l'événement a été écrit
        """
        try:
            await self.repository.insert(event.model_dump(mode="json"))
            return True
        except Exception as e:
            logger.error(
                "audit_event_failed",
                event_type=event.event_type,
                resource_type=event.resource_type,
                resource_id=str(event.resource_id),
                error=str(e),
            )
            return False

    # =========================================================================
    # Constructeurs
    # =========================================================================

    async def workflow_event(
        self,
        user: AuthUser,
        action: AuditAction,
        workflow: dict[str, Any],
        event_data: Optional[dict[str, Any]] = None,
    ) -> bool:
        return await self.log(
            AuditEvent(
                **human_actor(user),
                event_type=f"workflow_{action.value}",
                action=action,
                resource_type="workflow",
                resource_id=workflow["id"],
                workflow_id=workflow["id"],
                client_id=workflow.get("client_id"),
                event_data=event_data or {},
            )
        )

    async def task_event(
        self,
        user: AuthUser,
        action: AuditAction,
        task: dict[str, Any],
        event_data: Optional[dict[str, Any]] = None,
        event_type: Optional[str] = None,
    ) -> bool:
        return await self.log(
            AuditEvent(
                **human_actor(user),
                event_type=event_type or f"task_execution_{action.value}",
                action=action,
                resource_type="task_execution",
                resource_id=task["id"],
                workflow_id=task.get("workflow_id"),
                event_data=event_data or {},
            )
        )

    async def counterparty_event(
        self,
        user: AuthUser,
        action: AuditAction,
        counterparty_id: Any,
        event_data: Optional[dict[str, Any]] = None,
        workflow_id: Any = None,
    ) -> bool:
        return await self.log(
            AuditEvent(
                **human_actor(user),
                event_type=f"counterparty_{action.value}",
                action=action,
                resource_type="counterparty",
                resource_id=counterparty_id,
                workflow_id=workflow_id,
                event_data=event_data or {},
            )
        )

    async def note_event(
        self,
        user: AuthUser,
        action: AuditAction,
        note: dict[str, Any],
        event_data: Optional[dict[str, Any]] = None,
    ) -> bool:
        return await self.log(
            AuditEvent(
                **human_actor(user),
                event_type=f"hil_note_{action.value}",
                action=action,
                resource_type="hil_note",
                resource_id=note["id"],
                workflow_id=note.get("workflow_id"),
                event_data=event_data or {},
            )
        )

    async def communication_event(
        self,
        user: AuthUser,
        action: AuditAction,
        communication: dict[str, Any],
        event_data: Optional[dict[str, Any]] = None,
    ) -> bool:
        return await self.log(
            AuditEvent(
                **human_actor(user),
                event_type="communication",
                action=action,
                resource_type="communication",
                resource_id=communication["id"],
                workflow_id=communication.get("workflow_id"),
                event_data=event_data or {},
            )
        )

    async def document_event(
        self,
        user: AuthUser,
        action: AuditAction,
        document: dict[str, Any],
        event_data: Optional[dict[str, Any]] = None,
    ) -> bool:
        return await self.log(
            AuditEvent(
                **human_actor(user),
                event_type=f"document_{action.value}",
                action=action,
                resource_type="document",
                resource_id=document["id"],
                workflow_id=document.get("workflow_id"),
                event_data=event_data or {},
            )
        )

    async def system_event(
        self,
        actor_id: str,
        event_type: str,
        action: AuditAction,
        resource_type: str,
        resource_id: Any,
        workflow_id: Any = None,
        event_data: Optional[dict[str, Any]] = None,
    ) -> bool:
        return await self.log(
            AuditEvent(
                actor_type=ActorType.SYSTEM,
                actor_id=actor_id,
                actor_name=actor_id,
                event_type=event_type,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                workflow_id=workflow_id,
                event_data=event_data or {},
            )
        )


# Instance singleton
audit_logger = AuditLogger()
