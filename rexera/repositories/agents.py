"""
Repository des agents IA.
"""

from typing import Any, Optional

import asyncpg

from .base import Repository, build_update
from .query import SelectQuery

AGENT_COLUMNS = (
    "a.*, (SELECT COUNT(*) FROM task_executions t "
    "WHERE t.agent_id = a.id AND t.status = 'IN_PROGRESS')::int AS active_tasks"
)


class AgentRepository(Repository):
    """Accès à la table agents."""

    async def list_page(
        self,
        *,
        page: int,
        limit: int,
        type: Optional[str] = None,
        is_active: Optional[bool] = None,
    ) -> tuple[list[dict[str, Any]], int]:
        query = SelectQuery("agents a", columns=AGENT_COLUMNS)
        query.where_eq("a.type", type)
        query.where_eq("a.is_active", is_active)
        query.order_raw("a.name ASC").paginate(page, limit)

        sql, params = query.build()
        count_sql, count_params = query.build_count()
        rows = await self.db.fetch(sql, *params)
        total = await self.db.fetchval(count_sql, *count_params)
        return rows, int(total or 0)

    async def get(self, agent_id: str) -> Optional[dict[str, Any]]:
        try:
            return await self.db.fetchrow(
                f"SELECT {AGENT_COLUMNS} FROM agents a WHERE a.id = $1", agent_id
            )
        except asyncpg.DataError:
            return None

    async def get_by_name(self, name: str) -> Optional[dict[str, Any]]:
        return await self.db.fetchrow(
            "SELECT id, name, type FROM agents WHERE LOWER(name) = LOWER($1)", name
        )

    async def update(self, agent_id: str, fields: dict[str, Any]) -> Optional[dict[str, Any]]:
        sql, params = build_update("agents", fields, {"id": agent_id})
        return await self.db.fetchrow(sql, *params)


# Instance singleton
agent_repository = AgentRepository()
