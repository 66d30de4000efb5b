"""
Repository du journal d'audit (audit_events).
"""

from datetime import datetime
from typing import Any, Optional

from .base import Repository, build_insert
from .query import SelectQuery


class AuditRepository(Repository):
    """Accès à audit_events (insertion et consultation)."""

    async def insert(self, values: dict[str, Any]) -> dict[str, Any]:
        sql, params = build_insert("audit_events", values)
        return await self.db.fetchrow(sql, *params)

    async def insert_many(self, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        created: list[dict[str, Any]] = []
        async with self.db.transaction() as conn:
            for values in rows:
                sql, params = build_insert("audit_events", values)
                created.append(await self.db.fetchrow(sql, *params, conn=conn))
        return created

    async def list_page(
        self,
        *,
        page: int,
        limit: int,
        workflow_id: Optional[str] = None,
        resource_type: Optional[str] = None,
        actor_type: Optional[str] = None,
        actor_id: Optional[str] = None,
        action: Optional[str] = None,
        event_type: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> tuple[list[dict[str, Any]], int]:
        query = SelectQuery("audit_events e", columns="e.*")
        query.where_eq("e.workflow_id", workflow_id)
        query.where_eq("e.resource_type", resource_type)
        query.where_eq("e.actor_type", actor_type)
        query.where_eq("e.actor_id", actor_id)
        query.where_eq("e.action", action)
        query.where_eq("e.event_type", event_type)
        if date_from is not None:
            query.where("e.created_at >= {}", date_from)
        if date_to is not None:
            query.where("e.created_at <= {}", date_to)
        query.order_raw("e.created_at DESC").paginate(page, limit)

        sql, params = query.build()
        count_sql, count_params = query.build_count()
        rows = await self.db.fetch(sql, *params)
        total = await self.db.fetchval(count_sql, *count_params)
        return rows, int(total or 0)

    async def stats(self, since: datetime) -> dict[str, Any]:
        by_action = await self.db.fetch(
            "SELECT action, COUNT(*)::int AS count FROM audit_events "
            "WHERE created_at >= $1 GROUP BY action",
            since,
        )
        by_actor = await self.db.fetch(
            "SELECT actor_type, COUNT(*)::int AS count FROM audit_events "
            "WHERE created_at >= $1 GROUP BY actor_type",
            since,
        )
        return {
            "since": since,
            "total": sum(r["count"] for r in by_action),
            "by_action": {r["action"]: r["count"] for r in by_action},
            "by_actor_type": {r["actor_type"]: r["count"] for r in by_actor},
        }


# Instance singleton
audit_repository = AuditRepository()
