"""
Repository des notes HIL (hil_notes), avec fils de discussion.
"""

from typing import Any, Optional

import asyncpg

from .base import Repository, build_insert, build_update
from .query import SelectQuery

AUTHOR_JSON = (
    "CASE WHEN u.id IS NULL THEN NULL "
    "ELSE json_build_object('id', u.id, 'email', u.email, 'full_name', u.full_name) END AS author"
)


class HilNoteRepository(Repository):
    """Accès à hil_notes."""

    async def list_page(
        self,
        *,
        workflow_id: str,
        page: int,
        limit: int,
        is_resolved: Optional[bool] = None,
        priority: Optional[str] = None,
        author_id: Optional[str] = None,
        parent_note_id: Optional[str] = None,
        include_author: bool = False,
    ) -> tuple[list[dict[str, Any]], int]:
        source = "hil_notes n"
        columns = "n.*"
        if include_author:
            source += " LEFT JOIN user_profiles u ON u.id = n.author_id"
            columns += f", {AUTHOR_JSON}"

        query = SelectQuery(source, columns=columns)
        query.where_eq("n.workflow_id", workflow_id)
        query.where_eq("n.is_resolved", is_resolved)
        query.where_eq("n.priority", priority)
        query.where_eq("n.author_id", author_id)
        if parent_note_id is None:
            query.where("n.parent_note_id IS NULL")
        else:
            query.where_eq("n.parent_note_id", parent_note_id)
        query.order_raw("n.created_at DESC").paginate(page, limit)

        sql, params = query.build()
        count_sql, count_params = query.build_count()
        rows = await self.db.fetch(sql, *params)
        total = await self.db.fetchval(count_sql, *count_params)
        return rows, int(total or 0)

    async def replies(self, note_ids: list[Any]) -> dict[Any, list[dict[str, Any]]]:
        """Réponses groupées par note parente (plus anciennes d'abord)."""
        if not note_ids:
            return {}
        rows = await self.db.fetch(
            f"SELECT n.*, {AUTHOR_JSON} FROM hil_notes n "
            "LEFT JOIN user_profiles u ON u.id = n.author_id "
            "WHERE n.parent_note_id = ANY($1) ORDER BY n.created_at ASC",
            note_ids,
        )
        grouped: dict[Any, list[dict[str, Any]]] = {nid: [] for nid in note_ids}
        for row in rows:
            grouped.setdefault(row["parent_note_id"], []).append(row)
        return grouped

    async def get(self, note_id: str) -> Optional[dict[str, Any]]:
        try:
            return await self.db.fetchrow(
                f"SELECT n.*, {AUTHOR_JSON} FROM hil_notes n "
                "LEFT JOIN user_profiles u ON u.id = n.author_id WHERE n.id = $1",
                note_id,
            )
        except asyncpg.DataError:
            return None

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        sql, params = build_insert("hil_notes", values)
        return await self.db.fetchrow(sql, *params)

    async def update(self, note_id: str, fields: dict[str, Any]) -> Optional[dict[str, Any]]:
        sql, params = build_update("hil_notes", fields, {"id": note_id})
        return await self.db.fetchrow(sql, *params)

    async def delete(self, note_id: str) -> bool:
        """Supprime la note et tout son fil (réponses de réponses comprises)."""
        removed = await self.db.fetchval(
            "WITH RECURSIVE thread AS ("
            "  SELECT id FROM hil_notes WHERE id = $1"
            "  UNION ALL"
            "  SELECT n.id FROM hil_notes n JOIN thread t ON n.parent_note_id = t.id"
            "), removed AS ("
            "  DELETE FROM hil_notes WHERE id IN (SELECT id FROM thread) RETURNING id"
            ") SELECT count(*) FROM removed",
            note_id,
        )
        return bool(removed)


# Instance singleton
hil_note_repository = HilNoteRepository()
