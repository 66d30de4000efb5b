"""
Repository des notifications HIL (hil_notifications).
"""

from typing import Any, Optional

import asyncpg

from ..clients.database import affected_rows
from .base import Repository, build_insert
from .query import SelectQuery


class NotificationRepository(Repository):
    """Accès à hil_notifications, toujours filtré par utilisateur."""

    async def list_page(
        self,
        user_id: str,
        *,
        page: int,
        limit: int,
        type: Optional[str] = None,
        priority: Optional[str] = None,
        read: Optional[bool] = None,
    ) -> tuple[list[dict[str, Any]], int]:
        query = SelectQuery("hil_notifications n", columns="n.*")
        query.where_eq("n.user_id", user_id)
        query.where_eq("n.type", type)
        query.where_eq("n.priority", priority)
        query.where_eq("n.read", read)
        query.order_raw("n.created_at DESC").paginate(page, limit)

        sql, params = query.build()
        count_sql, count_params = query.build_count()
        rows = await self.db.fetch(sql, *params)
        total = await self.db.fetchval(count_sql, *count_params)
        return rows, int(total or 0)

    async def stats(self, user_id: str) -> dict[str, Any]:
        total = await self.db.fetchval(
            "SELECT COUNT(*) FROM hil_notifications WHERE user_id = $1", user_id
        )
        by_type = await self.db.fetch(
            "SELECT type, COUNT(*)::int AS count FROM hil_notifications "
            "WHERE user_id = $1 AND read = FALSE GROUP BY type",
            user_id,
        )
        by_priority = await self.db.fetch(
            "SELECT priority, COUNT(*)::int AS count FROM hil_notifications "
            "WHERE user_id = $1 AND read = FALSE GROUP BY priority",
            user_id,
        )
        return {
            "total": int(total or 0),
            "unread": sum(r["count"] for r in by_type),
            "by_type": {r["type"]: r["count"] for r in by_type},
            "by_priority": {r["priority"]: r["count"] for r in by_priority},
        }

    async def get(self, notification_id: str, user_id: str) -> Optional[dict[str, Any]]:
        try:
            return await self.db.fetchrow(
                "SELECT * FROM hil_notifications WHERE id = $1 AND user_id = $2",
                notification_id,
                user_id,
            )
        except asyncpg.DataError:
            return None

    async def create(self, values: dict[str, Any]) -> dict[str, Any]:
        sql, params = build_insert("hil_notifications", values)
        return await self.db.fetchrow(sql, *params)

    async def create_many(self, rows: list[dict[str, Any]]) -> int:
        """Insère plusieurs notifications dans une transaction."""
        if not rows:
            return 0
        async with self.db.transaction() as conn:
            for values in rows:
                sql, params = build_insert("hil_notifications", values)
                await self.db.execute(sql, *params, conn=conn)
        return len(rows)

    async def mark_read(self, notification_id: str, user_id: str) -> Optional[dict[str, Any]]:
        try:
            return await self.db.fetchrow(
                "UPDATE hil_notifications SET read = TRUE, read_at = COALESCE(read_at, NOW()) "
                "WHERE id = $1 AND user_id = $2 RETURNING *",
                notification_id,
                user_id,
            )
        except asyncpg.DataError:
            return None

    async def mark_all_read(self, user_id: str) -> int:
        status = await self.db.execute(
            "UPDATE hil_notifications SET read = TRUE, read_at = NOW() "
            "WHERE user_id = $1 AND read = FALSE",
            user_id,
        )
        return affected_rows(status)

    async def delete(self, notification_id: str, user_id: str) -> bool:
        try:
            deleted = await self.db.fetchval(
                "DELETE FROM hil_notifications WHERE id = $1 AND user_id = $2 RETURNING id",
                notification_id,
                user_id,
            )
        except asyncpg.DataError:
            return False
        return deleted is not None


# Instance singleton
notification_repository = NotificationRepository()
