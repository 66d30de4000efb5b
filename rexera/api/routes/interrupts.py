"""
Routes /api/interrupts

File d'attente HIL: une interruption est une tâche en statut INTERRUPT.
"""

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...models.enums import InterruptType, PriorityLevel
from ...models.tasks import ResolveInterrupt
from ...models.users import AuthUser
from ...repositories.tasks import TaskRepository
from ...repositories.workflows import WorkflowRepository
from ...services.tasks import InterruptNotPendingError, TaskService
from ..auth import get_current_user, require_hil_user
from ..dependencies import get_task_repository, get_task_service, get_workflow_repository
from ..errors import conflict, not_found
from ..responses import paginated, success
from .common import Pagination

router = APIRouter(prefix="/api/interrupts", tags=["interrupts"])


@router.get("")
async def list_interrupts(
    pagination: Pagination = Depends(),
    workflow_id: Optional[str] = None,
    priority: Optional[PriorityLevel] = None,
    interrupt_type: Optional[InterruptType] = None,
    user: AuthUser = Depends(get_current_user),
    tasks: TaskRepository = Depends(get_task_repository),
    workflows: WorkflowRepository = Depends(get_workflow_repository),
) -> JSONResponse:
    if workflow_id is not None:
        resolved = await workflows.resolve_id(workflow_id)
        if resolved is None:
            return paginated([], pagination.page, pagination.limit, 0)
        workflow_id = resolved

    rows, total = await tasks.list_interrupts(
        page=pagination.page,
        limit=pagination.limit,
        workflow_id=workflow_id,
        priority=priority,
        interrupt_type=interrupt_type,
        company_id=user.company_filter,
    )
    return paginated(rows, pagination.page, pagination.limit, total)


@router.get("/stats")
async def interrupt_stats(
    user: AuthUser = Depends(require_hil_user),
    tasks: TaskRepository = Depends(get_task_repository),
) -> JSONResponse:
    return success(await tasks.interrupt_stats())


@router.post("/{task_id}/resolve")
async def resolve_interrupt(
    task_id: str,
    body: ResolveInterrupt,
    user: AuthUser = Depends(require_hil_user),
    tasks: TaskRepository = Depends(get_task_repository),
    service: TaskService = Depends(get_task_service),
) -> JSONResponse:
    task = await tasks.get(task_id)
    if task is None:
        raise not_found("Task execution", task_id)

    try:
        resolved = await service.resolve_interrupt(task, body, user)
    except InterruptNotPendingError as e:
        raise conflict(str(e))

    return success(resolved, message="Interrupt resolved")
