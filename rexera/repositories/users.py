"""
Repository des profils utilisateurs.
"""

from typing import Any, Optional

import asyncpg

from .base import Repository
from .query import SelectQuery


class UserRepository(Repository):
    """Accès à user_profiles."""

    async def get_profile(self, user_id: str) -> Optional[dict[str, Any]]:
        try:
            return await self.db.fetchrow(
                "SELECT id, email, full_name, user_type, role, company_id "
                "FROM user_profiles WHERE id = $1",
                user_id,
            )
        except asyncpg.DataError:
            return None

    async def search(
        self,
        *,
        q: Optional[str] = None,
        user_type: Optional[str] = None,
        company_id: Optional[str] = None,
        limit: int = 20,
    ) -> list[dict[str, Any]]:
        """Profils pour les sélecteurs (mentions, assignation), triés par nom."""
        query = SelectQuery(
            "user_profiles u", columns="u.id, u.email, u.full_name, u.user_type, u.role"
        )
        query.search(["u.full_name", "u.email"], q)
        query.where_eq("u.user_type", user_type)
        query.where_eq("u.company_id", company_id)
        query.order_raw("u.full_name ASC NULLS LAST").paginate(1, limit)
        sql, params = query.build()
        return await self.db.fetch(sql, *params)

    async def hil_user_ids(self) -> list[Any]:
        rows = await self.db.fetch(
            "SELECT id FROM user_profiles WHERE user_type = 'hil_user'"
        )
        return [r["id"] for r in rows]

    async def existing_ids(self, user_ids: list[Any]) -> set[str]:
        if not user_ids:
            return set()
        rows = await self.db.fetch(
            "SELECT id FROM user_profiles WHERE id = ANY($1)", user_ids
        )
        return {str(r["id"]) for r in rows}


# Instance singleton
user_repository = UserRepository()
