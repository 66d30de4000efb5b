"""
Routes /api/workflows

Les paramètres {workflow_id} acceptent l'UUID ou le human_readable_id.
"""

from typing import Literal, Optional

import asyncpg
import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ...clients.n8n import N8nError
from ...models.enums import (
    AuditAction,
    PriorityLevel,
    WorkflowCounterpartyStatus,
    WorkflowStatus,
    WorkflowType,
    is_counterparty_allowed_for_workflow,
)
from ...models.users import AuthUser
from ...models.workflows import (
    CancelN8nExecution,
    CreateWorkflow,
    CreateWorkflowCounterparty,
    UpdateWorkflow,
    UpdateWorkflowCounterparty,
)
from ...repositories.audit import AuditRepository
from ...repositories.counterparties import CounterpartyRepository
from ...repositories.notes import HilNoteRepository
from ...repositories.workflows import WorkflowRepository
from ...services.audit import AuditLogger
from ...services.workflows import N8nUnavailableError, WorkflowService
from ..auth import get_current_user, require_hil_user
from ..dependencies import (
    get_audit_logger,
    get_audit_repository,
    get_counterparty_repository,
    get_note_repository,
    get_workflow_repository,
    get_workflow_service,
)
from ..errors import APIError, bad_request, conflict, forbidden, not_found
from ..responses import paginated, success
from .common import LargePagination, Pagination, load_workflow, parse_include

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/workflows", tags=["workflows"])

WorkflowSortField = Literal[
    "created_at", "updated_at", "due_date", "status",
    "workflow_type", "title", "client_id", "interrupt_count",
]


# =============================================================================
# Workflows
# =============================================================================


@router.get("")
async def list_workflows(
    pagination: Pagination = Depends(),
    workflow_type: Optional[WorkflowType] = None,
    status: Optional[WorkflowStatus] = None,
    client_id: Optional[str] = None,
    assigned_to: Optional[str] = None,
    priority: Optional[PriorityLevel] = None,
    search: Optional[str] = Query(None, max_length=200),
    include: Optional[str] = Query(None, description="client,tasks"),
    sort_by: WorkflowSortField = Query("created_at", alias="sortBy"),
    sort_direction: Literal["asc", "desc"] = Query("desc", alias="sortDirection"),
    user: AuthUser = Depends(get_current_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
) -> JSONResponse:
    company = user.company_filter
    if company is not None:
        if client_id is not None and client_id != company:
            raise forbidden("Cannot list workflows of another client")
        client_id = company

    includes = parse_include(include)
    rows, total = await workflows.list_page(
        page=pagination.page,
        limit=pagination.limit,
        workflow_type=workflow_type,
        status=status,
        client_id=client_id,
        assigned_to=assigned_to,
        priority=priority,
        search=search,
        sort_by=sort_by,
        sort_direction=sort_direction,
        include_client="client" in includes,
        include_tasks="tasks" in includes,
    )
    return paginated(rows, pagination.page, pagination.limit, total)


@router.post("", status_code=201)
async def create_workflow(
    body: CreateWorkflow,
    user: AuthUser = Depends(get_current_user),
    service: WorkflowService = Depends(get_workflow_service),
) -> JSONResponse:
    if not user.can_access_client(body.client_id):
        raise forbidden("Cannot create a workflow for another client")

    try:
        workflow = await service.create(body, user)
    except asyncpg.ForeignKeyViolationError:
        raise bad_request("Unknown client_id")

    return success(workflow, status_code=201)


@router.get("/{workflow_id}")
async def get_workflow(
    workflow_id: str,
    user: AuthUser = Depends(get_current_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
) -> JSONResponse:
    workflow = await load_workflow(
        workflow_id, user, workflows, include_client=True, include_tasks=True
    )
    return success(workflow)


@router.patch("/{workflow_id}")
async def update_workflow(
    workflow_id: str,
    body: UpdateWorkflow,
    user: AuthUser = Depends(get_current_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    service: WorkflowService = Depends(get_workflow_service),
) -> JSONResponse:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise bad_request("No fields to update")

    workflow = await load_workflow(workflow_id, user, workflows)
    updated = await service.update(workflow, changes, user)
    if updated is None:
        raise not_found("Workflow", workflow_id)
    return success(updated)


# =============================================================================
# n8n
# =============================================================================


@router.get("/{workflow_id}/n8n-status")
async def get_n8n_status(
    workflow_id: str,
    user: AuthUser = Depends(get_current_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    service: WorkflowService = Depends(get_workflow_service),
) -> JSONResponse:
    workflow = await load_workflow(workflow_id, user, workflows)
    return success(await service.n8n_status(workflow))


@router.post("/{workflow_id}/cancel-n8n")
async def cancel_n8n(
    workflow_id: str,
    body: Optional[CancelN8nExecution] = None,
    user: AuthUser = Depends(require_hil_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    service: WorkflowService = Depends(get_workflow_service),
) -> JSONResponse:
    workflow = await load_workflow(workflow_id, user, workflows)
    try:
        updated = await service.cancel_n8n(workflow, user, body.reason if body else None)
    except N8nUnavailableError as e:
        raise bad_request(str(e))
    except N8nError as e:
        logger.error("n8n_cancel_failed", workflow_id=workflow_id, code=e.code, error=str(e))
        raise APIError("N8N_ERROR", f"Failed to cancel n8n execution: {e}", 502)

    return success(updated, message="n8n execution canceled")


# =============================================================================
# Contreparties du workflow
# =============================================================================


@router.get("/{workflow_id}/counterparties")
async def list_workflow_counterparties(
    workflow_id: str,
    status: Optional[WorkflowCounterpartyStatus] = None,
    include: Optional[str] = Query(None, description="counterparty"),
    user: AuthUser = Depends(get_current_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    counterparties: CounterpartyRepository = Depends(get_counterparty_repository),
) -> JSONResponse:
    workflow = await load_workflow(workflow_id, user, workflows)
    links = await counterparties.list_links(
        str(workflow["id"]),
        status=status,
        include_counterparty="counterparty" in parse_include(include),
    )
    return success(links)


@router.post("/{workflow_id}/counterparties", status_code=201)
async def add_workflow_counterparty(
    workflow_id: str,
    body: CreateWorkflowCounterparty,
    user: AuthUser = Depends(get_current_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    counterparties: CounterpartyRepository = Depends(get_counterparty_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    workflow = await load_workflow(workflow_id, user, workflows)

    counterparty = await counterparties.get(str(body.counterparty_id))
    if counterparty is None:
        raise not_found("Counterparty", body.counterparty_id)

    if not is_counterparty_allowed_for_workflow(workflow["workflow_type"], counterparty["type"]):
        raise bad_request(
            f"Counterparty type '{counterparty['type']}' is not allowed "
            f"for workflow type '{workflow['workflow_type']}'"
        )

    if await counterparties.get_link(str(workflow["id"]), str(body.counterparty_id)):
        raise conflict("Counterparty is already linked to this workflow")

    try:
        link = await counterparties.create_link(
            str(workflow["id"]), str(body.counterparty_id), body.status.value
        )
    except asyncpg.UniqueViolationError:
        raise conflict("Counterparty is already linked to this workflow")

    logger.info(
        "workflow_counterparty_added",
        workflow_id=str(workflow["id"]),
        counterparty_id=str(body.counterparty_id),
    )
    await audit.counterparty_event(
        user,
        AuditAction.CREATE,
        counterparty["id"],
        {"link_id": str(link["id"]), "status": link["status"]},
        workflow_id=workflow["id"],
    )
    link["counterparty"] = counterparty
    return success(link, status_code=201)


@router.patch("/{workflow_id}/counterparties/{link_id}")
async def update_workflow_counterparty(
    workflow_id: str,
    link_id: str,
    body: UpdateWorkflowCounterparty,
    user: AuthUser = Depends(get_current_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    counterparties: CounterpartyRepository = Depends(get_counterparty_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    workflow = await load_workflow(workflow_id, user, workflows)
    link = await counterparties.update_link(str(workflow["id"]), link_id, body.status.value)
    if link is None:
        raise not_found("Workflow counterparty", link_id)

    await audit.counterparty_event(
        user,
        AuditAction.UPDATE,
        link["counterparty_id"],
        {"link_id": link_id, "status": link["status"]},
        workflow_id=workflow["id"],
    )
    return success(link)


@router.delete("/{workflow_id}/counterparties/{link_id}")
async def remove_workflow_counterparty(
    workflow_id: str,
    link_id: str,
    user: AuthUser = Depends(get_current_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    counterparties: CounterpartyRepository = Depends(get_counterparty_repository),
) -> JSONResponse:
    workflow = await load_workflow(workflow_id, user, workflows)
    if not await counterparties.delete_link(str(workflow["id"]), link_id):
        raise not_found("Workflow counterparty", link_id)

    logger.info("workflow_counterparty_removed", workflow_id=str(workflow["id"]), link_id=link_id)
    return success({"id": link_id, "deleted": True})


# =============================================================================
# Raccourcis HIL
# =============================================================================


@router.get("/{workflow_id}/notes")
async def list_workflow_notes(
    workflow_id: str,
    pagination: LargePagination = Depends(),
    user: AuthUser = Depends(require_hil_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    notes: HilNoteRepository = Depends(get_note_repository),
) -> JSONResponse:
    workflow = await load_workflow(workflow_id, user, workflows)
    rows, total = await notes.list_page(
        workflow_id=str(workflow["id"]),
        page=pagination.page,
        limit=pagination.limit,
        include_author=True,
    )
    return paginated(rows, pagination.page, pagination.limit, total)


@router.get("/{workflow_id}/audit-events")
async def list_workflow_audit_events(
    workflow_id: str,
    pagination: LargePagination = Depends(),
    user: AuthUser = Depends(require_hil_user),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    audit_events: AuditRepository = Depends(get_audit_repository),
) -> JSONResponse:
    workflow = await load_workflow(workflow_id, user, workflows)
    rows, total = await audit_events.list_page(
        workflow_id=str(workflow["id"]), page=pagination.page, limit=pagination.limit
    )
    return paginated(rows, pagination.page, pagination.limit, total)
