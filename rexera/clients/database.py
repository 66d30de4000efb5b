"""
Accès PostgreSQL (base Supabase) via un pool asyncpg.

Le schéma est géré côté Supabase; ce module se limite aux requêtes SQL
paramétrées. Les colonnes json/jsonb sont décodées en dict/list.
"""

import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Optional

import asyncpg
import structlog

from ..config import settings

logger = structlog.get_logger(__name__)


def record_to_dict(record: Optional[asyncpg.Record]) -> Optional[dict[str, Any]]:
    """Convertit un asyncpg.Record en dict (None reste None)."""
    if record is None:
        return None
    return dict(record)


def _json_encode(value: Any) -> str:
    # UUID, datetime, Decimal -> str
    return json.dumps(value, default=str)


async def _init_connection(conn: asyncpg.Connection) -> None:
    for type_name in ("json", "jsonb"):
        await conn.set_type_codec(
            type_name,
            encoder=_json_encode,
            decoder=json.loads,
            schema="pg_catalog",
        )


class Database:
    """
    Pool de connexions PostgreSQL.

    Toutes les méthodes acceptent un paramètre `conn` optionnel pour
    s'exécuter dans une transaction ouverte via transaction().
    """

    def __init__(self, dsn: Optional[str] = None) -> None:
        self._dsn = dsn
        self._pool: Optional[asyncpg.Pool] = None

    async def _get_pool(self) -> asyncpg.Pool:
        """Retourne le pool de connexions PostgreSQL (création paresseuse)."""
        if self._pool is None:
            self._pool = await asyncpg.create_pool(
                self._dsn or settings.postgres_dsn,
                min_size=settings.postgres_pool_min_size,
                max_size=settings.postgres_pool_max_size,
                init=_init_connection,
            )
            logger.info(
                "database_pool_created",
                min_size=settings.postgres_pool_min_size,
                max_size=settings.postgres_pool_max_size,
            )
        return self._pool

    async def close(self) -> None:
        """Ferme le pool."""
        if self._pool:
            await self._pool.close()
            self._pool = None
            logger.info("database_pool_closed")

    async def fetch(
        self, query: str, *args: Any, conn: Optional[asyncpg.Connection] = None
    ) -> list[dict[str, Any]]:
        executor = conn or await self._get_pool()
        rows = await executor.fetch(query, *args)
        return [dict(r) for r in rows]

    async def fetchrow(
        self, query: str, *args: Any, conn: Optional[asyncpg.Connection] = None
    ) -> Optional[dict[str, Any]]:
        executor = conn or await self._get_pool()
        return record_to_dict(await executor.fetchrow(query, *args))

    async def fetchval(
        self, query: str, *args: Any, conn: Optional[asyncpg.Connection] = None
    ) -> Any:
        executor = conn or await self._get_pool()
        return await executor.fetchval(query, *args)

    async def execute(
        self, query: str, *args: Any, conn: Optional[asyncpg.Connection] = None
    ) -> str:
        """Exécute une requête et retourne le statut asyncpg (ex: 'UPDATE 3')."""
        executor = conn or await self._get_pool()
        return await executor.execute(query, *args)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[asyncpg.Connection]:
        """
        Ouvre une transaction.

        Usage:
            async with db.transaction() as conn:
                await db.execute("...", conn=conn)
        """
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            async with conn.transaction():
                yield conn

    async def ping(self) -> bool:
        """Vérifie la connexion (SELECT 1). Lève l'erreur asyncpg si KO."""
        return await self.fetchval("SELECT 1") == 1


def affected_rows(status: str) -> int:
    """Nombre de lignes touchées d'après le statut asyncpg ('UPDATE 3' -> 3)."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError):
        return 0


# Instance singleton
database = Database()
