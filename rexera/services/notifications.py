"""
Envoi des notifications HIL (hil_notifications).
"""

from typing import Any, Iterable, Optional

import structlog

from ..models.enums import NotificationType, PriorityLevel
from ..repositories.notifications import NotificationRepository, notification_repository
from ..repositories.users import UserRepository, user_repository

logger = structlog.get_logger(__name__)


class NotificationService:
    """Crée des notifications pour un ou plusieurs utilisateurs."""

    def __init__(
        self,
        notifications: Optional[NotificationRepository] = None,
        users: Optional[UserRepository] = None,
    ) -> None:
        self.notifications = notifications or notification_repository
        self.users = users or user_repository

    async def notify_users(
        self,
        user_ids: Iterable[Any],
        type: NotificationType,
        priority: PriorityLevel,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        """
        Crée une notification par utilisateur (doublons ignorés).

        Returns:
            Nombre de notifications créées
        """
        unique_ids = list(dict.fromkeys(str(uid) for uid in user_ids))
        rows = [
            {
                "user_id": user_id,
                "type": type,
                "priority": priority,
                "title": title,
                "message": message,
                "action_url": action_url,
                "metadata": metadata or {},
            }
            for user_id in unique_ids
        ]
        created = await self.notifications.create_many(rows)
        logger.info(
            "notifications_created",
            type=type.value,
            priority=priority.value,
            recipients=created,
        )
        return created

    async def notify_hil_users(
        self,
        type: NotificationType,
        priority: PriorityLevel,
        title: str,
        message: str,
        action_url: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> int:
        """Notifie tous les utilisateurs HIL."""
        user_ids = await self.users.hil_user_ids()
        if not user_ids:
            logger.warning("no_hil_users_to_notify", type=type.value)
            return 0
        return await self.notify_users(
            user_ids, type, priority, title, message, action_url, metadata
        )

    async def notify_mentions(
        self,
        note: dict[str, Any],
        author_id: str,
        author_name: str,
        mentions: Iterable[Any],
        workflow_label: str,
    ) -> int:
        """
        Notifie les utilisateurs mentionnés dans une note (HIL_MENTION).

        L'auteur n'est jamais notifié de sa propre mention. Les erreurs sont
        loguées: une note est créée même si la notification échoue.
        """
        recipients = [str(m) for m in mentions if str(m) != str(author_id)]
        if not recipients:
            return 0

        content = note.get("content") or ""
        excerpt = content if len(content) <= 140 else content[:137] + "..."

        try:
            known = await self.users.existing_ids(recipients)
            unknown = [r for r in recipients if r not in known]
            if unknown:
                logger.warning("mention_unknown_users", note_id=str(note.get("id")), user_ids=unknown)
            recipients = [r for r in recipients if r in known]
            if not recipients:
                return 0
            return await self.notify_users(
                recipients,
                NotificationType.HIL_MENTION,
                PriorityLevel(note.get("priority") or PriorityLevel.NORMAL.value),
                f"You were mentioned on workflow {workflow_label}",
                f"{author_name}: {excerpt}",
                action_url=f"/workflow/{note['workflow_id']}",
                metadata={
                    "note_id": str(note["id"]),
                    "workflow_id": str(note["workflow_id"]),
                    "author_id": str(author_id),
                },
            )
        except Exception as e:
            logger.error("mention_notification_failed", note_id=str(note.get("id")), error=str(e))
            return 0


# Instance singleton
notification_service = NotificationService()
