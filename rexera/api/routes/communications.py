"""
Routes /api/communications

Emails, appels, SMS et messages du chat client rattachés aux workflows,
avec fils de discussion, réponse et transfert.
"""

from typing import Any, Literal, Optional
from uuid import uuid4

import asyncpg
import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ...models.communications import (
    CreateCommunication,
    EmailMetadata,
    ForwardCommunication,
    ReplyCommunication,
    UpdateCommunication,
)
from ...models.enums import (
    AuditAction,
    CommunicationDirection,
    CommunicationStatus,
    CommunicationType,
)
from ...models.users import AuthUser
from ...repositories.communications import CommunicationRepository, group_email_threads
from ...repositories.workflows import WorkflowRepository
from ...services.audit import AuditLogger
from ..auth import get_current_user
from ..dependencies import (
    get_audit_logger,
    get_communication_repository,
    get_workflow_repository,
)
from ..errors import bad_request, not_found
from ..responses import paginated, success
from .common import Pagination, load_workflow, parse_include

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/communications", tags=["communications"])

COMMUNICATION_INCLUDES = frozenset({"email_metadata", "phone_metadata", "sender", "workflow"})
MESSAGE_ID_DOMAIN = "rexera.com"


def _includes(include: Optional[str]) -> set[str]:
    return parse_include(include) & COMMUNICATION_INCLUDES


async def _load_communication(
    communication_id: str, user: AuthUser, communications: CommunicationRepository
) -> dict[str, Any]:
    """
    Charge une communication visible par l'utilisateur.

    Raises:
        APIError 404: Inexistante ou liée au workflow d'un autre client
    """
    communication = await communications.get(communication_id)
    if communication is None or not user.can_access_client(
        communication.pop("workflow_client_id", None)
    ):
        raise not_found("Communication")
    return communication


async def _store_channel_metadata(
    communications: CommunicationRepository,
    communication: dict[str, Any],
    email_metadata: Optional[dict[str, Any]] = None,
    phone_metadata: Optional[dict[str, Any]] = None,
) -> None:
    """
    Enregistre les métadonnées du canal de la communication.

    Un échec est logué: la communication elle-même est déjà créée.
    """
    kind = communication["communication_type"]
    try:
        if kind == CommunicationType.EMAIL.value and email_metadata is not None:
            communication["email_metadata"] = await communications.add_email_metadata(
                communication["id"], email_metadata
            )
        elif kind == CommunicationType.PHONE.value and phone_metadata is not None:
            communication["phone_metadata"] = await communications.add_phone_metadata(
                communication["id"], phone_metadata
            )
    except asyncpg.PostgresError as e:
        logger.error(
            "communication_metadata_failed",
            communication_id=str(communication["id"]),
            communication_type=kind,
            error=str(e),
        )


def _reply_subject(subject: Optional[str]) -> str:
    subject = subject or ""
    return subject if subject.startswith("Re:") else f"Re: {subject}"


# =============================================================================
# Lecture
# =============================================================================


@router.get("")
async def list_communications(
    pagination: Pagination = Depends(),
    workflow_id: Optional[str] = None,
    thread_id: Optional[str] = None,
    communication_type: Optional[CommunicationType] = None,
    direction: Optional[CommunicationDirection] = None,
    status: Optional[CommunicationStatus] = None,
    sender_id: Optional[str] = None,
    include: Optional[str] = Query(None, description="email_metadata,phone_metadata,sender,workflow"),
    sort_by: Literal["created_at", "updated_at", "subject", "status"] = Query(
        "created_at", alias="sortBy"
    ),
    sort_direction: Literal["asc", "desc"] = Query("desc", alias="sortDirection"),
    user: AuthUser = Depends(get_current_user),
    communications: CommunicationRepository = Depends(get_communication_repository),
) -> JSONResponse:
    rows, total = await communications.list_page(
        page=pagination.page,
        limit=pagination.limit,
        workflow_id=workflow_id,
        thread_id=thread_id,
        communication_type=communication_type,
        direction=direction,
        status=status,
        sender_id=sender_id,
        client_id=user.company_filter,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    await communications.attach_relations(rows, _includes(include))
    return paginated(rows, pagination.page, pagination.limit, total)


@router.get("/threads")
async def list_email_threads(
    workflow_id: str = Query(..., min_length=1),
    user: AuthUser = Depends(get_current_user),
    communications: CommunicationRepository = Depends(get_communication_repository),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
) -> JSONResponse:
    workflow = await load_workflow(workflow_id, user, workflows)
    rows = await communications.email_thread_rows(workflow["id"])
    return success(group_email_threads(rows))


@router.get("/{communication_id}")
async def get_communication(
    communication_id: str,
    include: Optional[str] = Query(None, description="email_metadata,phone_metadata,sender,workflow"),
    user: AuthUser = Depends(get_current_user),
    communications: CommunicationRepository = Depends(get_communication_repository),
) -> JSONResponse:
    communication = await _load_communication(communication_id, user, communications)
    await communications.attach_relations([communication], _includes(include))
    return success(communication)


# =============================================================================
# Ecriture
# =============================================================================


@router.post("", status_code=201)
async def create_communication(
    body: CreateCommunication,
    user: AuthUser = Depends(get_current_user),
    communications: CommunicationRepository = Depends(get_communication_repository),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    if body.workflow_id is not None:
        await load_workflow(str(body.workflow_id), user, workflows)

    outbound = body.direction == CommunicationDirection.OUTBOUND
    communication = await communications.create({
        "workflow_id": body.workflow_id,
        "thread_id": body.thread_id or uuid4(),
        "sender_id": user.id,
        "recipient_email": body.recipient_email,
        "subject": body.subject,
        "body": body.body,
        "communication_type": body.communication_type,
        "direction": body.direction,
        "status": CommunicationStatus.SENT if outbound else CommunicationStatus.DELIVERED,
        "metadata": body.metadata,
    })
    await _store_channel_metadata(
        communications,
        communication,
        email_metadata=body.email_metadata.model_dump() if body.email_metadata else None,
        phone_metadata=body.phone_metadata.model_dump() if body.phone_metadata else None,
    )

    logger.info(
        "communication_created",
        communication_id=str(communication["id"]),
        communication_type=communication["communication_type"],
        direction=communication["direction"],
    )
    await audit.communication_event(
        user,
        AuditAction.CREATE,
        communication,
        {
            "communication_type": communication["communication_type"],
            "direction": communication["direction"],
        },
    )
    return success(communication, status_code=201)


@router.patch("/{communication_id}")
async def update_communication(
    communication_id: str,
    body: UpdateCommunication,
    user: AuthUser = Depends(get_current_user),
    communications: CommunicationRepository = Depends(get_communication_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise bad_request("No fields to update")

    current = await _load_communication(communication_id, user, communications)
    metadata = changes.pop("metadata", None)
    updated = await communications.update(communication_id, changes, metadata=metadata)
    if updated is None:
        raise not_found("Communication")

    await audit.communication_event(
        user,
        AuditAction.UPDATE,
        updated,
        {"old_status": current.get("status"), "new_status": updated.get("status")},
    )
    return success(updated)


@router.delete("/{communication_id}")
async def delete_communication(
    communication_id: str,
    user: AuthUser = Depends(get_current_user),
    communications: CommunicationRepository = Depends(get_communication_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    current = await _load_communication(communication_id, user, communications)
    if not await communications.delete(communication_id):
        raise not_found("Communication")

    logger.info("communication_deleted", communication_id=communication_id)
    await audit.communication_event(
        user, AuditAction.DELETE, current, {"subject": current.get("subject")}
    )
    return success(
        {"id": communication_id, "deleted": True},
        message="Communication deleted successfully",
    )


@router.post("/{communication_id}/reply", status_code=201)
async def reply_to_communication(
    communication_id: str,
    body: ReplyCommunication,
    user: AuthUser = Depends(get_current_user),
    communications: CommunicationRepository = Depends(get_communication_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    original = await _load_communication(communication_id, user, communications)

    reply = await communications.create({
        "workflow_id": original.get("workflow_id"),
        "thread_id": original.get("thread_id") or original["id"],
        "sender_id": user.id,
        "recipient_email": body.recipient_email,
        "subject": _reply_subject(original.get("subject")),
        "body": body.body,
        "communication_type": original["communication_type"],
        "direction": CommunicationDirection.OUTBOUND,
        "status": CommunicationStatus.SENT,
        "metadata": body.metadata,
    })

    if reply["communication_type"] == CommunicationType.EMAIL.value:
        original_meta = await communications.get_email_metadata(original["id"]) or {}
        parent_ref = original_meta.get("message_id") or str(original["id"])
        await _store_channel_metadata(
            communications,
            reply,
            email_metadata=EmailMetadata(
                message_id=f"{reply['id']}@{MESSAGE_ID_DOMAIN}",
                in_reply_to=parent_ref,
                email_references=[*(original_meta.get("email_references") or []), parent_ref],
            ).model_dump(),
        )

    await audit.communication_event(
        user, AuditAction.CREATE, reply, {"reply_to": str(original["id"])}
    )
    return success(reply, status_code=201)


@router.post("/{communication_id}/forward", status_code=201)
async def forward_communication(
    communication_id: str,
    body: ForwardCommunication,
    user: AuthUser = Depends(get_current_user),
    communications: CommunicationRepository = Depends(get_communication_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    original = await _load_communication(communication_id, user, communications)

    forward = await communications.create({
        "workflow_id": original.get("workflow_id"),
        "thread_id": uuid4(),
        "sender_id": user.id,
        "recipient_email": body.recipient_email,
        "subject": body.subject,
        "body": body.body,
        "communication_type": original["communication_type"],
        "direction": CommunicationDirection.OUTBOUND,
        "status": CommunicationStatus.SENT,
        "metadata": body.metadata,
    })

    if forward["communication_type"] == CommunicationType.EMAIL.value:
        await _store_channel_metadata(
            communications,
            forward,
            email_metadata=EmailMetadata(
                message_id=f"{forward['id']}@{MESSAGE_ID_DOMAIN}",
            ).model_dump(),
        )

    await audit.communication_event(
        user, AuditAction.CREATE, forward, {"forwarded_from": str(original["id"])}
    )
    return success(forward, status_code=201)
