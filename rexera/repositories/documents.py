"""
Repository des documents rattachés aux workflows.
"""

from typing import Any, Optional

import asyncpg

from .base import Repository, build_insert, build_update
from .query import SelectQuery

DOCUMENT_SORT_FIELDS: dict[str, str] = {
    "created_at": "d.created_at",
    "updated_at": "d.updated_at",
    "filename": "d.filename",
    "file_size_bytes": "d.file_size_bytes",
}


def _filter(
    query: SelectQuery,
    document_type: Optional[str],
    status: Optional[str],
    tags: Optional[list[str]],
) -> None:
    query.where_eq("d.document_type", document_type)
    query.where_eq("d.status", status)
    if tags:
        query.where("d.tags && {}", tags)


class DocumentRepository(Repository):
    """Accès à documents."""

    async def list_page(
        self,
        *,
        page: int,
        limit: int,
        workflow_id: Optional[str] = None,
        document_type: Optional[str] = None,
        status: Optional[str] = None,
        tags: Optional[list[str]] = None,
        client_id: Optional[str] = None,
        sort_by: str = "created_at",
        sort_direction: str = "desc",
    ) -> tuple[list[dict[str, Any]], int]:
        query = SelectQuery(
            "documents d JOIN workflows w ON w.id = d.workflow_id",
            columns="d.*",
            sortable=DOCUMENT_SORT_FIELDS,
        )
        query.where_eq("d.workflow_id", workflow_id)
        query.where_eq("w.client_id", client_id)
        _filter(query, document_type, status, tags)
        query.order_by(sort_by, sort_direction).order_raw("d.id ASC")
        query.paginate(page, limit)

        sql, params = query.build()
        count_sql, count_params = query.build_count()
        rows = await self.db.fetch(sql, *params)
        total = await self.db.fetchval(count_sql, *count_params)
        return rows, int(total or 0)

    async def list_for_workflow(
        self,
        workflow_id: str,
        *,
        document_type: Optional[str] = None,
        status: Optional[str] = None,
        tags: Optional[list[str]] = None,
    ) -> list[dict[str, Any]]:
        """Tous les documents d'un workflow, du plus récent au plus ancien."""
        query = SelectQuery("documents d", columns="d.*")
        query.where_eq("d.workflow_id", workflow_id)
        _filter(query, document_type, status, tags)
        query.order_raw("d.created_at DESC")
        sql, params = query.build()
        return await self.db.fetch(sql, *params)

    async def attach_relations(self, rows: list[dict[str, Any]], include: set[str]) -> None:
        if not rows:
            return

        if "workflow" in include:
            workflow_ids = list({r["workflow_id"] for r in rows})
            workflows = await self.db.fetch(
                "SELECT id, human_readable_id, title, client_id FROM workflows WHERE id = ANY($1)",
                workflow_ids,
            )
            by_id = {w["id"]: w for w in workflows}
            for row in rows:
                row["workflow"] = by_id.get(row["workflow_id"])

        if "created_by_user" in include:
            user_ids = list({r["created_by"] for r in rows if r.get("created_by")})
            users = await self.db.fetch(
                "SELECT id, email, full_name FROM user_profiles WHERE id = ANY($1)", user_ids
            )
            by_id = {u["id"]: u for u in users}
            for row in rows:
                row["created_by_user"] = by_id.get(row.get("created_by"))

    async def get(self, document_id: str) -> Optional[dict[str, Any]]:
        """Document avec le client_id de son workflow (workflow_client_id)."""
        try:
            return await self.db.fetchrow(
                "SELECT d.*, w.client_id AS workflow_client_id FROM documents d "
                "JOIN workflows w ON w.id = d.workflow_id WHERE d.id = $1",
                document_id,
            )
        except asyncpg.DataError:
            return None

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        sql, params = build_insert("documents", values)
        return await self.db.fetchrow(sql, *params)

    async def update(
        self,
        document_id: str,
        fields: dict[str, Any],
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[dict[str, Any]]:
        sql, params = build_update(
            "documents",
            fields,
            {"id": document_id},
            json_merge={"metadata": metadata} if metadata else None,
        )
        return await self.db.fetchrow(sql, *params)

    async def delete(self, document_id: str) -> bool:
        deleted = await self.db.fetchval(
            "DELETE FROM documents WHERE id = $1 RETURNING id", document_id
        )
        return deleted is not None


# Instance singleton
document_repository = DocumentRepository()
