"""
Routes /api/audit-events
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ...models.audit import AuditEvent, BatchAuditEvents, CreateAuditEvent
from ...models.enums import ActorType, AuditAction
from ...models.users import AuthUser
from ...repositories.audit import AuditRepository
from ...repositories.workflows import WorkflowRepository
from ..auth import get_current_user, require_hil_user
from ..dependencies import get_audit_repository, get_workflow_repository
from ..errors import bad_request
from ..responses import paginated, success
from .common import LargePagination

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/audit-events", tags=["audit"])


def _event_row(body: CreateAuditEvent, user: AuthUser) -> dict[str, Any]:
    """L'acteur par défaut est l'appelant."""
    event = AuditEvent(
        actor_type=body.actor_type,
        actor_id=body.actor_id or user.id,
        actor_name=body.actor_name or (user.email if not body.actor_id else None),
        event_type=body.event_type,
        action=body.action,
        resource_type=body.resource_type,
        resource_id=body.resource_id,
        workflow_id=body.workflow_id,
        client_id=body.client_id,
        event_data=body.event_data,
    )
    return event.model_dump(mode="json")


@router.get("")
async def list_audit_events(
    pagination: LargePagination = Depends(),
    workflow_id: Optional[str] = None,
    resource_type: Optional[str] = None,
    actor_type: Optional[ActorType] = None,
    actor_id: Optional[str] = None,
    action: Optional[AuditAction] = None,
    event_type: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    user: AuthUser = Depends(require_hil_user),
    audit_events: AuditRepository = Depends(get_audit_repository),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
) -> JSONResponse:
    if date_from and date_to and date_from > date_to:
        raise bad_request("date_from must be before date_to")

    if workflow_id is not None:
        resolved = await workflows.resolve_id(workflow_id)
        if resolved is None:
            return paginated([], pagination.page, pagination.limit, 0)
        workflow_id = resolved

    rows, total = await audit_events.list_page(
        page=pagination.page,
        limit=pagination.limit,
        workflow_id=workflow_id,
        resource_type=resource_type,
        actor_type=actor_type,
        actor_id=actor_id,
        action=action,
        event_type=event_type,
        date_from=date_from,
        date_to=date_to,
    )
    return paginated(rows, pagination.page, pagination.limit, total)


@router.post("", status_code=201)
async def create_audit_event(
    body: CreateAuditEvent,
    user: AuthUser = Depends(get_current_user),
    audit_events: AuditRepository = Depends(get_audit_repository),
) -> JSONResponse:
    return success(await audit_events.insert(_event_row(body, user)), status_code=201)


@router.post("/batch", status_code=201)
async def create_audit_events_batch(
    body: BatchAuditEvents,
    user: AuthUser = Depends(get_current_user),
    audit_events: AuditRepository = Depends(get_audit_repository),
) -> JSONResponse:
    created = await audit_events.insert_many([_event_row(e, user) for e in body.events])
    logger.info("audit_events_batch_created", count=len(created), user_id=user.id)
    return success({"created_count": len(created), "events": created}, status_code=201)


@router.get("/stats")
async def audit_stats(
    days: int = Query(7, ge=1, le=365),
    user: AuthUser = Depends(require_hil_user),
    audit_events: AuditRepository = Depends(get_audit_repository),
) -> JSONResponse:
    since = datetime.now(timezone.utc) - timedelta(days=days)
    stats = await audit_events.stats(since)
    stats["days"] = days
    return success(stats)
