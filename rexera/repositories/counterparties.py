"""
Repository des contreparties et de leurs liens aux workflows.
"""

from typing import Any, Optional

import asyncpg

from .base import Repository, build_insert, build_update
from .query import SelectQuery

COUNTERPARTY_SORT_FIELDS: dict[str, str] = {
    "name": "c.name",
    "type": "c.type",
    "created_at": "c.created_at",
}


class CounterpartyRepository(Repository):
    """Accès à counterparties et workflow_counterparties."""

    async def list_page(
        self,
        *,
        page: int,
        limit: int,
        type: Optional[str] = None,
        search: Optional[str] = None,
        sort: str = "name",
        order: str = "asc",
    ) -> tuple[list[dict[str, Any]], int]:
        query = SelectQuery("counterparties c", columns="c.*", sortable=COUNTERPARTY_SORT_FIELDS)
        query.where_eq("c.type", type)
        query.search(["c.name", "c.email", "c.address"], search)
        query.order_by(sort, order).order_raw("c.id ASC")
        query.paginate(page, limit)

        sql, params = query.build()
        count_sql, count_params = query.build_count()
        rows = await self.db.fetch(sql, *params)
        total = await self.db.fetchval(count_sql, *count_params)
        return rows, int(total or 0)

    async def search(
        self, q: str, limit: int, type: Optional[str] = None
    ) -> list[dict[str, Any]]:
        query = SelectQuery("counterparties c", columns="c.id, c.name, c.type, c.email, c.phone")
        query.search(["c.name"], q)
        query.where_eq("c.type", type)
        query.order_raw("c.name ASC").paginate(1, limit)
        sql, params = query.build()
        return await self.db.fetch(sql, *params)

    async def get(self, counterparty_id: str) -> Optional[dict[str, Any]]:
        try:
            return await self.db.fetchrow(
                "SELECT * FROM counterparties WHERE id = $1", counterparty_id
            )
        except asyncpg.DataError:
            return None

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        sql, params = build_insert("counterparties", values)
        return await self.db.fetchrow(sql, *params)

    async def update(self, counterparty_id: str, fields: dict[str, Any]) -> Optional[dict[str, Any]]:
        sql, params = build_update("counterparties", fields, {"id": counterparty_id})
        return await self.db.fetchrow(sql, *params)

    async def delete(self, counterparty_id: str) -> bool:
        deleted = await self.db.fetchval(
            "DELETE FROM counterparties WHERE id = $1 RETURNING id", counterparty_id
        )
        return deleted is not None

    # =========================================================================
    # Liens workflow <-> contrepartie
    # =========================================================================

    async def linked_workflows(self, counterparty_ids: list[Any]) -> dict[Any, list[dict[str, Any]]]:
        """Workflows liés, groupés par contrepartie."""
        if not counterparty_ids:
            return {}
        rows = await self.db.fetch(
            """
            SELECT wc.counterparty_id, wc.id AS link_id, wc.status AS link_status,
                   w.id, w.human_readable_id, w.title, w.workflow_type, w.status
            FROM workflow_counterparties wc
            JOIN workflows w ON w.id = wc.workflow_id
            WHERE wc.counterparty_id = ANY($1)
            ORDER BY wc.created_at DESC
            """,
            counterparty_ids,
        )
        grouped: dict[Any, list[dict[str, Any]]] = {cid: [] for cid in counterparty_ids}
        for row in rows:
            grouped.setdefault(row.pop("counterparty_id"), []).append(row)
        return grouped

    async def count_links(self, counterparty_id: str) -> int:
        value = await self.db.fetchval(
            "SELECT COUNT(*) FROM workflow_counterparties WHERE counterparty_id = $1",
            counterparty_id,
        )
        return int(value or 0)

    async def linked_workflow_types(self, counterparty_id: str) -> list[str]:
        rows = await self.db.fetch(
            "SELECT DISTINCT w.workflow_type FROM workflow_counterparties wc "
            "JOIN workflows w ON w.id = wc.workflow_id WHERE wc.counterparty_id = $1",
            counterparty_id,
        )
        return [r["workflow_type"] for r in rows]

    async def list_links(
        self,
        workflow_id: str,
        status: Optional[str] = None,
        include_counterparty: bool = False,
    ) -> list[dict[str, Any]]:
        columns = "wc.*"
        source = "workflow_counterparties wc"
        if include_counterparty:
            columns += (
                ", json_build_object('id', c.id, 'name', c.name, 'type', c.type, "
                "'email', c.email, 'phone', c.phone, 'address', c.address) AS counterparty"
            )
            source += " JOIN counterparties c ON c.id = wc.counterparty_id"
        query = SelectQuery(source, columns=columns)
        query.where_eq("wc.workflow_id", workflow_id)
        query.where_eq("wc.status", status)
        query.order_raw("wc.created_at DESC")
        sql, params = query.build()
        return await self.db.fetch(sql, *params)

    async def get_link(self, workflow_id: str, counterparty_id: str) -> Optional[dict[str, Any]]:
        return await self.db.fetchrow(
            "SELECT * FROM workflow_counterparties WHERE workflow_id = $1 AND counterparty_id = $2",
            workflow_id,
            counterparty_id,
        )

    async def create_link(self, workflow_id: str, counterparty_id: str, status: str) -> dict[str, Any]:
        """
        Lie une contrepartie à un workflow.

        Raises:
            asyncpg.UniqueViolationError: Lien déjà existant
        """
        sql, params = build_insert(
            "workflow_counterparties",
            {"workflow_id": workflow_id, "counterparty_id": counterparty_id, "status": status},
        )
        return await self.db.fetchrow(sql, *params)

    async def update_link(self, workflow_id: str, link_id: str, status: str) -> Optional[dict[str, Any]]:
        try:
            sql, params = build_update(
                "workflow_counterparties",
                {"status": status},
                {"id": link_id, "workflow_id": workflow_id},
            )
            return await self.db.fetchrow(sql, *params)
        except asyncpg.DataError:
            return None

    async def delete_link(self, workflow_id: str, link_id: str) -> bool:
        try:
            deleted = await self.db.fetchval(
                "DELETE FROM workflow_counterparties WHERE id = $1 AND workflow_id = $2 RETURNING id",
                link_id,
                workflow_id,
            )
        except asyncpg.DataError:
            return False
        return deleted is not None


# Instance singleton
counterparty_repository = CounterpartyRepository()
