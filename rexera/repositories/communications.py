"""
Repository des communications (emails, appels, SMS, chat client) et de
leurs métadonnées par canal.
"""

from typing import Any, Optional

import asyncpg

from .base import Repository, build_insert, build_update
from .query import SelectQuery

COMMUNICATION_SORT_FIELDS: dict[str, str] = {
    "created_at": "c.created_at",
    "updated_at": "c.updated_at",
    "subject": "c.subject",
    "status": "c.status",
}

NO_SUBJECT = "(No Subject)"


def group_email_threads(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Regroupe des emails (triés du plus ancien au plus récent) par fil.

    Un email sans thread_id forme son propre fil. Les fils sont rendus du
    plus récemment actif au plus ancien.
    """
    threads: dict[str, dict[str, Any]] = {}
    for row in rows:
        key = str(row.get("thread_id") or row["id"])
        thread = threads.get(key)
        if thread is None:
            thread = threads[key] = {
                "thread_id": key,
                "subject": row.get("subject") or NO_SUBJECT,
                "communication_count": 0,
                "last_activity": row["created_at"],
                "participants": [],
                "has_unread": False,
                "workflow_id": row.get("workflow_id"),
            }

        thread["communication_count"] += 1
        if row["created_at"] > thread["last_activity"]:
            thread["last_activity"] = row["created_at"]

        inbound = row.get("direction") == "INBOUND"
        for email in (row.get("sender_email") if inbound else None, row.get("recipient_email")):
            if email and email not in thread["participants"]:
                thread["participants"].append(email)
        if inbound and row.get("status") != "READ":
            thread["has_unread"] = True

    return sorted(threads.values(), key=lambda t: t["last_activity"], reverse=True)


class CommunicationRepository(Repository):
    """Accès à communications, email_metadata et phone_metadata."""

    async def list_page(
        self,
        *,
        page: int,
        limit: int,
        workflow_id: Optional[str] = None,
        thread_id: Optional[str] = None,
        communication_type: Optional[str] = None,
        direction: Optional[str] = None,
        status: Optional[str] = None,
        sender_id: Optional[str] = None,
        client_id: Optional[str] = None,
        sort_by: str = "created_at",
        sort_direction: str = "desc",
    ) -> tuple[list[dict[str, Any]], int]:
        query = SelectQuery(
            "communications c LEFT JOIN workflows w ON w.id = c.workflow_id",
            columns="c.*",
            sortable=COMMUNICATION_SORT_FIELDS,
        )
        query.where_eq("c.workflow_id", workflow_id)
        query.where_eq("c.thread_id", thread_id)
        query.where_eq("c.communication_type", communication_type)
        query.where_eq("c.direction", direction)
        query.where_eq("c.status", status)
        query.where_eq("c.sender_id", sender_id)
        query.where_eq("w.client_id", client_id)
        query.order_by(sort_by, sort_direction).order_raw("c.id ASC")
        query.paginate(page, limit)

        sql, params = query.build()
        count_sql, count_params = query.build_count()
        rows = await self.db.fetch(sql, *params)
        total = await self.db.fetchval(count_sql, *count_params)
        return rows, int(total or 0)

    async def get(self, communication_id: str) -> Optional[dict[str, Any]]:
        """Communication avec le client_id de son workflow (workflow_client_id)."""
        try:
            return await self.db.fetchrow(
                "SELECT c.*, w.client_id AS workflow_client_id FROM communications c "
                "LEFT JOIN workflows w ON w.id = c.workflow_id WHERE c.id = $1",
                communication_id,
            )
        except asyncpg.DataError:
            return None

    async def attach_relations(self, rows: list[dict[str, Any]], include: set[str]) -> None:
        """Ajoute email_metadata, phone_metadata, sender et workflow demandés."""
        if not rows or not include:
            return

        ids = [r["id"] for r in rows]
        for table in ("email_metadata", "phone_metadata"):
            if table not in include:
                continue
            found = await self.db.fetch(
                f"SELECT * FROM {table} WHERE communication_id = ANY($1)", ids
            )
            by_id = {m["communication_id"]: m for m in found}
            for row in rows:
                row[table] = by_id.get(row["id"])

        if "sender" in include:
            sender_ids = list({r["sender_id"] for r in rows if r.get("sender_id")})
            senders = await self.db.fetch(
                "SELECT id, email, full_name FROM user_profiles WHERE id = ANY($1)", sender_ids
            )
            by_id = {s["id"]: s for s in senders}
            for row in rows:
                row["sender"] = by_id.get(row.get("sender_id"))

        if "workflow" in include:
            workflow_ids = list({r["workflow_id"] for r in rows if r.get("workflow_id")})
            workflows = await self.db.fetch(
                "SELECT id, human_readable_id, title, client_id FROM workflows WHERE id = ANY($1)",
                workflow_ids,
            )
            by_id = {w["id"]: w for w in workflows}
            for row in rows:
                row["workflow"] = by_id.get(row.get("workflow_id"))

    async def email_thread_rows(self, workflow_id: str) -> list[dict[str, Any]]:
        """Emails d'un workflow avec l'adresse de l'expéditeur, du plus ancien au plus récent."""
        return await self.db.fetch(
            """
            SELECT c.id, c.thread_id, c.workflow_id, c.subject, c.direction, c.status,
                   c.recipient_email, c.created_at, u.email AS sender_email
            FROM communications c
            LEFT JOIN user_profiles u ON u.id = c.sender_id
            WHERE c.workflow_id = $1 AND c.communication_type = 'email'
            ORDER BY c.created_at ASC
            """,
            workflow_id,
        )

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        sql, params = build_insert("communications", values)
        return await self.db.fetchrow(sql, *params)

    async def add_email_metadata(self, communication_id: Any, values: dict[str, Any]) -> dict[str, Any]:
        sql, params = build_insert("email_metadata", {"communication_id": communication_id, **values})
        return await self.db.fetchrow(sql, *params)

    async def add_phone_metadata(self, communication_id: Any, values: dict[str, Any]) -> dict[str, Any]:
        sql, params = build_insert("phone_metadata", {"communication_id": communication_id, **values})
        return await self.db.fetchrow(sql, *params)

    async def get_email_metadata(self, communication_id: Any) -> Optional[dict[str, Any]]:
        return await self.db.fetchrow(
            "SELECT * FROM email_metadata WHERE communication_id = $1", communication_id
        )

    async def update(
        self,
        communication_id: str,
        fields: dict[str, Any],
        metadata: Optional[dict[str, Any]] = None,
    ) -> Optional[dict[str, Any]]:
        """Met à jour les colonnes et fusionne le patch metadata."""
        sql, params = build_update(
            "communications",
            fields,
            {"id": communication_id},
            json_merge={"metadata": metadata} if metadata else None,
        )
        return await self.db.fetchrow(sql, *params)

    async def delete(self, communication_id: str) -> bool:
        """Supprime la communication (ses métadonnées suivent en cascade)."""
        deleted = await self.db.fetchval(
            "DELETE FROM communications WHERE id = $1 RETURNING id", communication_id
        )
        return deleted is not None


# Instance singleton
communication_repository = CommunicationRepository()
