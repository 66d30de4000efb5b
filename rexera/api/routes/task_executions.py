"""
Routes /api/taskExecutions
"""

from typing import Any, Optional

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...models.enums import ExecutorType, SlaStatus, TaskStatus
from ...models.tasks import (
    BulkCreateTaskExecutions,
    UpdateTaskByWorkflowAndType,
    UpdateTaskExecution,
)
from ...models.users import AuthUser
from ...repositories.tasks import TaskRepository
from ...repositories.workflows import WorkflowRepository
from ...services.tasks import TaskService, TaskTransitionError, sla_due_at
from ..auth import get_current_user
from ..dependencies import get_task_repository, get_task_service, get_workflow_repository
from ..errors import bad_request, forbidden, not_found
from ..responses import paginated, success
from .common import Pagination

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/taskExecutions", tags=["task-executions"])


def _task_client_id(task: dict[str, Any]) -> Any:
    workflow = task.get("workflow") or {}
    return workflow.get("client_id")


async def _load_task(task_id: str, user: AuthUser, tasks: TaskRepository) -> dict[str, Any]:
    task = await tasks.get(task_id)
    if task is None or not user.can_access_client(_task_client_id(task)):
        raise not_found("Task execution", task_id)
    return task


async def _apply_update(
    task: dict[str, Any],
    changes: dict[str, Any],
    user: AuthUser,
    service: TaskService,
) -> dict[str, Any]:
    if not changes:
        raise bad_request("No fields to update")
    try:
        updated = await service.update(task, changes, user)
    except TaskTransitionError as e:
        raise bad_request(str(e))
    if updated is None:
        raise not_found("Task execution", str(task["id"]))
    return updated


@router.get("")
async def list_task_executions(
    pagination: Pagination = Depends(),
    workflow_id: Optional[str] = None,
    agent_id: Optional[str] = None,
    status: Optional[TaskStatus] = None,
    executor_type: Optional[ExecutorType] = None,
    sla_status: Optional[SlaStatus] = None,
    user: AuthUser = Depends(get_current_user),
    tasks: TaskRepository = Depends(get_task_repository),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
) -> JSONResponse:
    if workflow_id is not None:
        resolved = await workflows.resolve_id(workflow_id)
        if resolved is None:
            return paginated([], pagination.page, pagination.limit, 0)
        workflow_id = resolved

    rows, total = await tasks.list_page(
        page=pagination.page,
        limit=pagination.limit,
        workflow_id=workflow_id,
        agent_id=agent_id,
        status=status,
        executor_type=executor_type,
        sla_status=sla_status,
        company_id=user.company_filter,
    )
    return paginated(rows, pagination.page, pagination.limit, total)


@router.post("/bulk", status_code=201)
async def bulk_create_task_executions(
    body: BulkCreateTaskExecutions,
    user: AuthUser = Depends(get_current_user),
    tasks: TaskRepository = Depends(get_task_repository),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
) -> JSONResponse:
    """Crée toutes les tâches dans une transaction unique."""
    workflow_ids = {str(item.workflow_id) for item in body.task_executions}
    for workflow_id in workflow_ids:
        workflow = await workflows.get_plain(workflow_id)
        if workflow is None:
            raise bad_request(f"Workflow {workflow_id} does not exist")
        if not user.can_access_client(workflow["client_id"]):
            raise forbidden("Cannot create tasks on another client's workflow")

    rows = []
    for item in body.task_executions:
        values = item.model_dump()
        if item.started_at is not None:
            values["sla_due_at"] = sla_due_at(item.started_at, item.sla_hours)
        rows.append(values)

    created = await tasks.create_many(rows)
    logger.info(
        "task_executions_created",
        count=len(created),
        workflow_ids=sorted(workflow_ids),
    )
    return success(created, status_code=201)


@router.patch("/by-workflow-and-type")
async def update_task_by_workflow_and_type(
    body: UpdateTaskByWorkflowAndType,
    user: AuthUser = Depends(get_current_user),
    tasks: TaskRepository = Depends(get_task_repository),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
    service: TaskService = Depends(get_task_service),
) -> JSONResponse:
    workflow_id = await workflows.resolve_id(body.workflow_id)
    if workflow_id is None:
        raise not_found("Workflow", body.workflow_id)

    task = await tasks.get_by_workflow_and_type(workflow_id, body.task_type)
    if task is None or not user.can_access_client(_task_client_id(task)):
        raise not_found("Task execution", f"{body.workflow_id}/{body.task_type}")

    changes = body.model_dump(exclude_unset=True, exclude={"workflow_id", "task_type"})
    return success(await _apply_update(task, changes, user, service))


@router.get("/{task_id}")
async def get_task_execution(
    task_id: str,
    user: AuthUser = Depends(get_current_user),
    tasks: TaskRepository = Depends(get_task_repository),
) -> JSONResponse:
    return success(await _load_task(task_id, user, tasks))


@router.patch("/{task_id}")
async def update_task_execution(
    task_id: str,
    body: UpdateTaskExecution,
    user: AuthUser = Depends(get_current_user),
    tasks: TaskRepository = Depends(get_task_repository),
    service: TaskService = Depends(get_task_service),
) -> JSONResponse:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise bad_request("No fields to update")
    task = await _load_task(task_id, user, tasks)
    return success(await _apply_update(task, changes, user, service))
