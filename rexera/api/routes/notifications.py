"""
Routes /api/notifications

Toujours restreintes aux notifications de l'utilisateur appelant.
"""

from typing import Optional

import asyncpg
import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...models.enums import NotificationType, PriorityLevel
from ...models.notifications import CreateNotification
from ...models.users import AuthUser
from ...repositories.notifications import NotificationRepository
from ..auth import get_current_user
from ..dependencies import get_notification_repository
from ..errors import bad_request, not_found
from ..responses import paginated, success
from .common import LargePagination

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("")
async def list_notifications(
    pagination: LargePagination = Depends(),
    type: Optional[NotificationType] = None,
    priority: Optional[PriorityLevel] = None,
    read: Optional[bool] = None,
    user: AuthUser = Depends(get_current_user),
    notifications: NotificationRepository = Depends(get_notification_repository),
) -> JSONResponse:
    rows, total = await notifications.list_page(
        user.id,
        page=pagination.page,
        limit=pagination.limit,
        type=type,
        priority=priority,
        read=read,
    )
    return paginated(rows, pagination.page, pagination.limit, total)


@router.get("/stats")
async def notification_stats(
    user: AuthUser = Depends(get_current_user),
    notifications: NotificationRepository = Depends(get_notification_repository),
) -> JSONResponse:
    return success(await notifications.stats(user.id))


@router.patch("/mark-all-read")
async def mark_all_read(
    user: AuthUser = Depends(get_current_user),
    notifications: NotificationRepository = Depends(get_notification_repository),
) -> JSONResponse:
    count = await notifications.mark_all_read(user.id)
    logger.info("notifications_marked_read", user_id=user.id, count=count)
    return success({"updated_count": count})


@router.post("", status_code=201)
async def create_notification(
    body: CreateNotification,
    user: AuthUser = Depends(get_current_user),
    notifications: NotificationRepository = Depends(get_notification_repository),
) -> JSONResponse:
    try:
        notification = await notifications.create(body.model_dump())
    except asyncpg.ForeignKeyViolationError:
        raise bad_request("Unknown user_id")

    logger.info(
        "notification_created",
        notification_id=str(notification["id"]),
        recipient=str(body.user_id),
        type=body.type.value,
        created_by=user.id,
    )
    return success(notification, status_code=201)


@router.get("/{notification_id}")
async def get_notification(
    notification_id: str,
    user: AuthUser = Depends(get_current_user),
    notifications: NotificationRepository = Depends(get_notification_repository),
) -> JSONResponse:
    notification = await notifications.get(notification_id, user.id)
    if notification is None:
        raise not_found("Notification", notification_id)
    return success(notification)


@router.patch("/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    user: AuthUser = Depends(get_current_user),
    notifications: NotificationRepository = Depends(get_notification_repository),
) -> JSONResponse:
    notification = await notifications.mark_read(notification_id, user.id)
    if notification is None:
        raise not_found("Notification", notification_id)
    return success(notification)


@router.delete("/{notification_id}")
async def delete_notification(
    notification_id: str,
    user: AuthUser = Depends(get_current_user),
    notifications: NotificationRepository = Depends(get_notification_repository),
) -> JSONResponse:
    if not await notifications.delete(notification_id, user.id):
        raise not_found("Notification", notification_id)
    return success({"id": notification_id, "deleted": True})
