"""
Routes /api/hil-notes (réservées aux opérateurs HIL)

Notes de travail sur un workflow, avec réponses et mentions.
"""

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ...models.enums import AuditAction, NotificationType, PriorityLevel
from ...models.notes import CreateHilNote, ReplyHilNote, UpdateHilNote
from ...models.users import AuthUser
from ...repositories.notes import HilNoteRepository
from ...repositories.workflows import WorkflowRepository
from ...services.audit import AuditLogger
from ...services.notifications import NotificationService
from ..auth import require_hil_user
from ..dependencies import (
    get_audit_logger,
    get_note_repository,
    get_notification_service,
    get_workflow_repository,
)
from ..errors import bad_request, forbidden, not_found
from ..responses import paginated, success
from .common import LargePagination, load_workflow, parse_include

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/hil-notes", tags=["hil-notes"])


def _workflow_label(workflow: dict[str, Any]) -> str:
    return str(workflow.get("human_readable_id") or workflow.get("title") or workflow["id"])


async def _load_note(note_id: str, notes: HilNoteRepository) -> dict[str, Any]:
    note = await notes.get(note_id)
    if note is None:
        raise not_found("HIL note", note_id)
    return note


def _is_author(note: dict[str, Any], user: AuthUser) -> bool:
    return str(note.get("author_id")) == user.id


@router.get("")
async def list_notes(
    workflow_id: str = Query(..., min_length=1),
    pagination: LargePagination = Depends(),
    is_resolved: Optional[bool] = None,
    priority: Optional[PriorityLevel] = None,
    author_id: Optional[str] = None,
    parent_note_id: Optional[str] = None,
    include: Optional[str] = Query(None, description="author,replies"),
    user: AuthUser = Depends(require_hil_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    notes: HilNoteRepository = Depends(get_note_repository),
) -> JSONResponse:
    workflow = await load_workflow(workflow_id, user, workflows)
    includes = parse_include(include)

    rows, total = await notes.list_page(
        workflow_id=str(workflow["id"]),
        page=pagination.page,
        limit=pagination.limit,
        is_resolved=is_resolved,
        priority=priority,
        author_id=author_id,
        parent_note_id=parent_note_id,
        include_author="author" in includes,
    )

    if "replies" in includes and rows:
        replies = await notes.replies([r["id"] for r in rows])
        for row in rows:
            row["replies"] = replies.get(row["id"], [])

    return paginated(rows, pagination.page, pagination.limit, total)


@router.get("/{note_id}")
async def get_note(
    note_id: str,
    user: AuthUser = Depends(require_hil_user),
    notes: HilNoteRepository = Depends(get_note_repository),
) -> JSONResponse:
    note = await _load_note(note_id, notes)
    replies = await notes.replies([note["id"]])
    note["replies"] = replies.get(note["id"], [])
    return success(note)


@router.post("", status_code=201)
async def create_note(
    body: CreateHilNote,
    user: AuthUser = Depends(require_hil_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    notes: HilNoteRepository = Depends(get_note_repository),
    notifier: NotificationService = Depends(get_notification_service),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    workflow = await load_workflow(body.workflow_id, user, workflows)

    if body.parent_note_id is not None:
        parent = await notes.get(str(body.parent_note_id))
        if parent is None or str(parent["workflow_id"]) != str(workflow["id"]):
            raise bad_request("parent_note_id does not belong to this workflow")

    note = await notes.create(
        {
            "workflow_id": workflow["id"],
            "author_id": user.id,
            "content": body.content,
            "priority": body.priority,
            "mentions": body.mentions,
            "parent_note_id": body.parent_note_id,
            "is_resolved": False,
        }
    )
    logger.info(
        "hil_note_created",
        note_id=str(note["id"]),
        workflow_id=str(workflow["id"]),
        mentions=len(body.mentions),
    )

    await notifier.notify_mentions(
        note, user.id, user.email, body.mentions, _workflow_label(workflow)
    )
    await audit.note_event(
        user, AuditAction.CREATE, note, {"mentions": [str(m) for m in body.mentions]}
    )
    return success(note, status_code=201)


@router.patch("/{note_id}")
async def update_note(
    note_id: str,
    body: UpdateHilNote,
    user: AuthUser = Depends(require_hil_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    notes: HilNoteRepository = Depends(get_note_repository),
    notifier: NotificationService = Depends(get_notification_service),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise bad_request("No fields to update")

    note = await _load_note(note_id, notes)
    if ("content" in changes or "mentions" in changes) and not _is_author(note, user):
        raise forbidden("Only the author can edit this note")

    updated = await notes.update(note_id, changes)
    if updated is None:
        raise not_found("HIL note", note_id)

    previous = {str(m) for m in note.get("mentions") or []}
    added = [m for m in changes.get("mentions") or [] if str(m) not in previous]
    if added:
        workflow = await workflows.get_plain(str(updated["workflow_id"]))
        await notifier.notify_mentions(
            updated, user.id, user.email, added, _workflow_label(workflow or updated)
        )

    await audit.note_event(user, AuditAction.UPDATE, updated, {"changes": sorted(changes)})
    return success(updated)


@router.post("/{note_id}/reply", status_code=201)
async def reply_to_note(
    note_id: str,
    body: ReplyHilNote,
    user: AuthUser = Depends(require_hil_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    notes: HilNoteRepository = Depends(get_note_repository),
    notifier: NotificationService = Depends(get_notification_service),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    parent = await _load_note(note_id, notes)

    reply = await notes.create(
        {
            "workflow_id": parent["workflow_id"],
            "author_id": user.id,
            "content": body.content,
            "priority": parent.get("priority") or PriorityLevel.NORMAL,
            "mentions": body.mentions,
            "parent_note_id": parent["id"],
            "is_resolved": False,
        }
    )
    logger.info("hil_note_reply_created", note_id=str(reply["id"]), parent_note_id=note_id)

    workflow = await workflows.get_plain(str(parent["workflow_id"]))
    label = _workflow_label(workflow or parent)
    await notifier.notify_mentions(reply, user.id, user.email, body.mentions, label)

    parent_author = str(parent.get("author_id") or "")
    if parent_author and parent_author != user.id:
        try:
            await notifier.notify_users(
                [parent_author],
                NotificationType.HIL_MENTION,
                PriorityLevel(reply["priority"]),
                f"New reply on workflow {label}",
                f"{user.email} replied to your note",
                action_url=f"/workflow/{parent['workflow_id']}",
                metadata={"note_id": str(reply["id"]), "parent_note_id": str(parent["id"])},
            )
        except Exception as e:
            logger.error("reply_notification_failed", note_id=str(reply["id"]), error=str(e))

    await audit.note_event(user, AuditAction.CREATE, reply, {"parent_note_id": str(parent["id"])})
    return success(reply, status_code=201)


@router.delete("/{note_id}")
async def delete_note(
    note_id: str,
    user: AuthUser = Depends(require_hil_user),
    notes: HilNoteRepository = Depends(get_note_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    note = await _load_note(note_id, notes)
    if not _is_author(note, user):
        raise forbidden("Only the author can delete this note")

    if not await notes.delete(note_id):
        raise not_found("HIL note", note_id)

    logger.info("hil_note_deleted", note_id=note_id)
    await audit.note_event(user, AuditAction.DELETE, note)
    return success({"id": note_id, "deleted": True})
