"""
Routes /api/documents

Documents de travail et livrables d'un workflow, versionnés. Les fichiers
sont stockés par le front; l'API n'enregistre que leur URL.
"""

from typing import Any, Literal, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ...models.documents import CreateDocument, CreateDocumentVersion, UpdateDocument
from ...models.enums import AuditAction, DocumentStatus, DocumentType
from ...models.users import AuthUser
from ...repositories.documents import DocumentRepository
from ...repositories.workflows import WorkflowRepository
from ...services.audit import AuditLogger
from ..auth import get_current_user
from ..dependencies import get_audit_logger, get_document_repository, get_workflow_repository
from ..errors import bad_request, not_found
from ..responses import paginated, success
from .common import Pagination, load_workflow, parse_include

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/documents", tags=["documents"])

DOCUMENT_INCLUDES = frozenset({"workflow", "created_by_user"})


def parse_tags(tags: Optional[str]) -> Optional[list[str]]:
    """'deed, payoff' -> ['deed', 'payoff']"""
    if not tags:
        return None
    return [tag.strip() for tag in tags.split(",") if tag.strip()] or None


async def _load_document(
    document_id: str, user: AuthUser, documents: DocumentRepository
) -> dict[str, Any]:
    document = await documents.get(document_id)
    if document is None or not user.can_access_client(document.pop("workflow_client_id", None)):
        raise not_found("Document")
    return document


@router.get("")
async def list_documents(
    pagination: Pagination = Depends(),
    workflow_id: Optional[str] = None,
    document_type: Optional[DocumentType] = None,
    status: Optional[DocumentStatus] = None,
    tags: Optional[str] = Query(None, description="deed,payoff"),
    include: Optional[str] = Query(None, description="workflow,created_by_user"),
    sort_by: Literal["created_at", "updated_at", "filename", "file_size_bytes"] = Query(
        "created_at", alias="sortBy"
    ),
    sort_direction: Literal["asc", "desc"] = Query("desc", alias="sortDirection"),
    user: AuthUser = Depends(get_current_user),
    documents: DocumentRepository = Depends(get_document_repository),
) -> JSONResponse:
    rows, total = await documents.list_page(
        page=pagination.page,
        limit=pagination.limit,
        workflow_id=workflow_id,
        document_type=document_type,
        status=status,
        tags=parse_tags(tags),
        client_id=user.company_filter,
        sort_by=sort_by,
        sort_direction=sort_direction,
    )
    await documents.attach_relations(rows, parse_include(include) & DOCUMENT_INCLUDES)
    return paginated(rows, pagination.page, pagination.limit, total)


@router.get("/by-workflow/{workflow_id}")
async def list_workflow_documents(
    workflow_id: str,
    document_type: Optional[DocumentType] = None,
    status: Optional[DocumentStatus] = None,
    tags: Optional[str] = None,
    user: AuthUser = Depends(get_current_user),
    documents: DocumentRepository = Depends(get_document_repository),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
) -> JSONResponse:
    workflow = await load_workflow(workflow_id, user, workflows)
    rows = await documents.list_for_workflow(
        workflow["id"], document_type=document_type, status=status, tags=parse_tags(tags)
    )
    return success({
        "workflow": {
            "id": workflow["id"],
            "title": workflow.get("title"),
            "client_id": workflow.get("client_id"),
        },
        "documents": rows,
    })


@router.get("/{document_id}")
async def get_document(
    document_id: str,
    include: Optional[str] = Query(None, description="workflow,created_by_user"),
    user: AuthUser = Depends(get_current_user),
    documents: DocumentRepository = Depends(get_document_repository),
) -> JSONResponse:
    document = await _load_document(document_id, user, documents)
    await documents.attach_relations([document], parse_include(include) & DOCUMENT_INCLUDES)
    return success(document)


@router.post("", status_code=201)
async def create_document(
    body: CreateDocument,
    user: AuthUser = Depends(get_current_user),
    documents: DocumentRepository = Depends(get_document_repository),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    await load_workflow(str(body.workflow_id), user, workflows)

    document = await documents.create({**body.model_dump(), "created_by": user.id})
    logger.info(
        "document_created",
        document_id=str(document["id"]),
        workflow_id=str(document["workflow_id"]),
        document_type=document["document_type"],
    )
    await audit.document_event(
        user, AuditAction.CREATE, document, {"filename": document["filename"]}
    )
    return success(document, status_code=201)


@router.patch("/{document_id}")
async def update_document(
    document_id: str,
    body: UpdateDocument,
    user: AuthUser = Depends(get_current_user),
    documents: DocumentRepository = Depends(get_document_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise bad_request("No fields to update")

    current = await _load_document(document_id, user, documents)
    if changes.get("change_summary"):
        changes["version"] = (current.get("version") or 1) + 1

    updated = await documents.update(document_id, changes)
    if updated is None:
        raise not_found("Document")

    await audit.document_event(
        user, AuditAction.UPDATE, updated, {"changes": sorted(changes)}
    )
    return success(updated)


@router.post("/{document_id}/versions", status_code=201)
async def create_document_version(
    document_id: str,
    body: CreateDocumentVersion,
    user: AuthUser = Depends(get_current_user),
    documents: DocumentRepository = Depends(get_document_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    current = await _load_document(document_id, user, documents)
    version = (current.get("version") or 1) + 1

    updated = await documents.update(
        document_id,
        {
            "url": body.url,
            "change_summary": body.change_summary,
            "filename": body.filename or current["filename"],
            "file_size_bytes": body.file_size_bytes
            if body.file_size_bytes is not None
            else current.get("file_size_bytes"),
            "mime_type": body.mime_type or current.get("mime_type"),
            "version": version,
        },
        metadata=body.metadata,
    )
    if updated is None:
        raise not_found("Document")

    logger.info("document_version_created", document_id=document_id, version=version)
    await audit.document_event(
        user,
        AuditAction.UPDATE,
        updated,
        {"version": version, "change_summary": body.change_summary},
    )
    return success(updated, status_code=201)


@router.delete("/{document_id}")
async def delete_document(
    document_id: str,
    user: AuthUser = Depends(get_current_user),
    documents: DocumentRepository = Depends(get_document_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    current = await _load_document(document_id, user, documents)
    if not await documents.delete(document_id):
        raise not_found("Document")

    logger.info("document_deleted", document_id=document_id)
    await audit.document_event(
        user, AuditAction.DELETE, current, {"filename": current["filename"]}
    )
    return success({"id": document_id, "deleted": True})
