"""
Helpers partagés par les routes.
"""

from typing import Any, Optional

from fastapi import Query

from ...models.users import AuthUser
from ...repositories.workflows import WorkflowRepository
from ..errors import not_found


class Pagination:
    """Dépendance ?page=&limit= (page >= 1, 1 <= limit <= 100)."""

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page (1-based)"),
        limit: int = Query(20, ge=1, le=100, description="Eléments par page"),
    ) -> None:
        self.page = page
        self.limit = limit


class LargePagination(Pagination):
    """Même contrat, limite par défaut 50 (notes, notifications)."""

    def __init__(
        self,
        page: int = Query(1, ge=1),
        limit: int = Query(50, ge=1, le=100),
    ) -> None:
        super().__init__(page, limit)


def parse_include(include: Optional[str]) -> set[str]:
    """'client,tasks' -> {'client', 'tasks'}"""
    if not include:
        return set()
    return {part.strip().lower() for part in include.split(",") if part.strip()}


async def load_workflow(
    identifier: str,
    user: AuthUser,
    workflows: WorkflowRepository,
    include_client: bool = False,
    include_tasks: bool = False,
) -> dict[str, Any]:
    """
    Charge un workflow visible par l'utilisateur.

    Raises:
        APIError 404: Inexistant ou appartenant à un autre client
    """
    workflow = await workflows.get(
        identifier, include_client=include_client, include_tasks=include_tasks
    )
    if workflow is None or not user.can_access_client(workflow["client_id"]):
        raise not_found("Workflow", identifier)
    return workflow
