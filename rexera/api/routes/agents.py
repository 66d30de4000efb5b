"""
Routes /api/agents
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...models.agents import UpdateAgent
from ...models.users import AuthUser
from ...repositories.agents import AgentRepository
from ...repositories.tasks import TaskRepository
from ..auth import get_current_user, require_hil_user
from ..dependencies import get_agent_repository, get_task_repository
from ..errors import bad_request, not_found
from ..responses import paginated, success
from .common import Pagination

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/agents", tags=["agents"])

RECENT_TASKS_LIMIT = 10


@router.get("")
async def list_agents(
    pagination: Pagination = Depends(),
    type: Optional[str] = None,
    is_active: Optional[bool] = None,
    user: AuthUser = Depends(get_current_user),
    agents: AgentRepository = Depends(get_agent_repository),
) -> JSONResponse:
    rows, total = await agents.list_page(
        page=pagination.page, limit=pagination.limit, type=type, is_active=is_active
    )
    return paginated(rows, pagination.page, pagination.limit, total)


@router.get("/{agent_id}")
async def get_agent(
    agent_id: str,
    user: AuthUser = Depends(get_current_user),
    agents: AgentRepository = Depends(get_agent_repository),
    tasks: TaskRepository = Depends(get_task_repository),
) -> JSONResponse:
    agent = await agents.get(agent_id)
    if agent is None:
        raise not_found("Agent", agent_id)
    agent["recent_tasks"] = await tasks.list_for_agent(str(agent["id"]), RECENT_TASKS_LIMIT)
    return success(agent)


@router.patch("/{agent_id}")
async def update_agent(
    agent_id: str,
    body: UpdateAgent,
    user: AuthUser = Depends(require_hil_user),
    agents: AgentRepository = Depends(get_agent_repository),
) -> JSONResponse:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise bad_request("No fields to update")

    if await agents.get(agent_id) is None:
        raise not_found("Agent", agent_id)

    updated = await agents.update(agent_id, changes)
    if updated is None:
        raise not_found("Agent", agent_id)

    logger.info("agent_updated", agent_id=agent_id, fields=sorted(changes), updated_by=user.id)
    return success(updated)
