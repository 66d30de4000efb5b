"""
Repository des workflows.

Les identifiants publics acceptent indifféremment l'UUID ou le
human_readable_id (ex: "1042").
"""

from typing import Any, Optional

import asyncpg
import structlog

from .base import Repository, build_insert, build_update, is_uuid
from .query import SelectQuery

logger = structlog.get_logger(__name__)

INTERRUPT_COUNT_SQL = (
    "(SELECT COUNT(*) FROM task_executions te "
    "WHERE te.workflow_id = w.id AND te.status = 'INTERRUPT')"
)

WORKFLOW_COLUMNS = f"w.*, {INTERRUPT_COUNT_SQL}::int AS interrupt_count"

WORKFLOW_SORT_FIELDS: dict[str, str] = {
    "created_at": "w.created_at",
    "updated_at": "w.updated_at",
    "due_date": "w.due_date",
    "status": "w.status",
    "workflow_type": "w.workflow_type",
    "title": "w.title",
    "client_id": "w.client_id",
    "interrupt_count": "interrupt_count",
}


class WorkflowRepository(Repository):
    """Accès à la table workflows et à ses relations (clients, tâches)."""

    async def resolve_id(self, identifier: str) -> Optional[str]:
        """
        Résout un identifiant public en UUID.

        Args:
            identifier: UUID ou human_readable_id

        Returns:
            UUID (str) ou None si aucun workflow ne correspond
        """
        if is_uuid(identifier):
            return identifier
        value = await self.db.fetchval(
            "SELECT id FROM workflows WHERE human_readable_id = $1", str(identifier)
        )
        return str(value) if value is not None else None

    async def list_page(
        self,
        *,
        page: int,
        limit: int,
        workflow_type: Optional[str] = None,
        status: Optional[str] = None,
        client_id: Optional[str] = None,
        assigned_to: Optional[str] = None,
        priority: Optional[str] = None,
        search: Optional[str] = None,
        sort_by: str = "created_at",
        sort_direction: str = "desc",
        include_client: bool = False,
        include_tasks: bool = False,
    ) -> tuple[list[dict[str, Any]], int]:
        """Liste paginée. Retourne (lignes, total)."""
        query = SelectQuery("workflows w", columns=WORKFLOW_COLUMNS, sortable=WORKFLOW_SORT_FIELDS)
        query.where_eq("w.workflow_type", workflow_type)
        query.where_eq("w.status", status)
        query.where_eq("w.client_id", client_id)
        query.where_eq("w.assigned_to", assigned_to)
        query.where_eq("w.priority", priority)
        query.search(["w.title", "w.human_readable_id"], search)
        query.order_by(sort_by, sort_direction).order_raw("w.id ASC")
        query.paginate(page, limit)

        sql, params = query.build()
        count_sql, count_params = query.build_count()

        rows = await self.db.fetch(sql, *params)
        total = await self.db.fetchval(count_sql, *count_params)

        await self._attach_relations(rows, include_client, include_tasks)
        return rows, int(total or 0)

    async def get(
        self,
        identifier: str,
        *,
        include_client: bool = True,
        include_tasks: bool = True,
    ) -> Optional[dict[str, Any]]:
        workflow_id = await self.resolve_id(identifier)
        if workflow_id is None:
            return None

        try:
            row = await self.db.fetchrow(
                f"SELECT {WORKFLOW_COLUMNS} FROM workflows w WHERE w.id = $1", workflow_id
            )
        except asyncpg.DataError:
            return None

        if row is None:
            return None

        await self._attach_relations([row], include_client, include_tasks)
        return row

    async def get_plain(self, workflow_id: str) -> Optional[dict[str, Any]]:
        """Ligne brute par UUID (sans relations)."""
        return await self.db.fetchrow("SELECT * FROM workflows WHERE id = $1", workflow_id)

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        sql, params = build_insert("workflows", values)
        row = await self.db.fetchrow(sql, *params)
        row["interrupt_count"] = 0
        return row

    async def update(
        self,
        workflow_id: str,
        fields: dict[str, Any],
        metadata_patch: Optional[dict[str, Any]] = None,
        conn: Optional[asyncpg.Connection] = None,
    ) -> Optional[dict[str, Any]]:
        """
        Met à jour un workflow.

        Args:
            workflow_id: UUID
            fields: Colonnes à écrire
            metadata_patch: Clés fusionnées dans metadata (jamais écrasé)

        Returns:
            Ligne mise à jour ou None si introuvable
        """
        sql, params = build_update(
            "workflows",
            fields,
            {"id": workflow_id},
            json_merge={"metadata": metadata_patch} if metadata_patch else None,
        )
        return await self.db.fetchrow(sql, *params, conn=conn)

    async def _attach_relations(
        self,
        rows: list[dict[str, Any]],
        include_client: bool,
        include_tasks: bool,
    ) -> None:
        if not rows:
            return

        if include_client:
            client_ids = list({r["client_id"] for r in rows if r.get("client_id")})
            clients = await self.db.fetch(
                "SELECT id, name, domain FROM clients WHERE id = ANY($1)", client_ids
            )
            by_id = {c["id"]: c for c in clients}
            for row in rows:
                row["client"] = by_id.get(row.get("client_id"))

        if include_tasks:
            workflow_ids = [r["id"] for r in rows]
            tasks = await self.db.fetch(
                """
                SELECT t.*,
                       CASE WHEN a.id IS NULL THEN NULL
                            ELSE json_build_object('id', a.id, 'name', a.name, 'type', a.type)
                       END AS agent
                FROM task_executions t
                LEFT JOIN agents a ON a.id = t.agent_id
                WHERE t.workflow_id = ANY($1)
                ORDER BY t.sequence_order ASC, t.created_at ASC
                """,
                workflow_ids,
            )
            grouped: dict[Any, list[dict[str, Any]]] = {wid: [] for wid in workflow_ids}
            for task in tasks:
                grouped.setdefault(task["workflow_id"], []).append(task)
            for row in rows:
                row["tasks"] = grouped.get(row["id"], [])


# Instance singleton
workflow_repository = WorkflowRepository()
