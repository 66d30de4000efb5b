"""
Repository des clients (sociétés de titre servies par Rexera).
"""

from typing import Any, Optional

import asyncpg

from .base import Repository

CLIENT_COLUMNS = "id, name, domain, created_at, updated_at"


class ClientRepository(Repository):
    """Accès en lecture à clients."""

    async def list_all(self, client_id: Optional[str] = None) -> list[dict[str, Any]]:
        """Clients triés par nom; client_id restreint à une seule société."""
        if client_id is not None:
            return await self.db.fetch(
                f"SELECT {CLIENT_COLUMNS} FROM clients WHERE id = $1 ORDER BY name ASC",
                client_id,
            )
        return await self.db.fetch(f"SELECT {CLIENT_COLUMNS} FROM clients ORDER BY name ASC")

    async def get(self, client_id: str) -> Optional[dict[str, Any]]:
        try:
            return await self.db.fetchrow(
                f"SELECT {CLIENT_COLUMNS} FROM clients WHERE id = $1", client_id
            )
        except asyncpg.DataError:
            return None


# Instance singleton
client_repository = ClientRepository()
