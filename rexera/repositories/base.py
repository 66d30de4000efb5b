"""
Socle commun des repositories PostgreSQL.
"""

import re
from enum import Enum
from typing import Any, Optional

from ..clients.database import Database, database

UUID_PATTERN = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)


def is_uuid(value: Any) -> bool:
    """True si la valeur a la forme canonique d'un UUID."""
    return isinstance(value, str) and bool(UUID_PATTERN.match(value))


def db_values(values: dict[str, Any]) -> dict[str, Any]:
    """Remplace les Enum par leur valeur avant passage à asyncpg."""
    return {k: v.value if isinstance(v, Enum) else v for k, v in values.items()}


def build_update(
    table: str,
    fields: dict[str, Any],
    where: dict[str, Any],
    json_merge: Optional[dict[str, dict[str, Any]]] = None,
    touch_updated_at: bool = True,
) -> tuple[str, list[Any]]:
    """
    Construit un UPDATE ... RETURNING *.

    Args:
        table: Table cible
        fields: Colonnes à écrire (valeurs brutes)
        where: Conditions d'égalité (AND)
        json_merge: Colonnes jsonb fusionnées (col = COALESCE(col, '{}') || patch)
        touch_updated_at: Ajoute updated_at = NOW()

    Returns:
        (sql, params)
    """
    params: list[Any] = []
    assignments: list[str] = []

    for column, value in db_values(fields).items():
        params.append(value)
        assignments.append(f"{column} = ${len(params)}")

    for column, patch in (json_merge or {}).items():
        params.append(patch)
        assignments.append(
            f"{column} = COALESCE({column}, '{{}}'::jsonb) || ${len(params)}::jsonb"
        )

    if touch_updated_at:
        assignments.append("updated_at = NOW()")

    if not assignments:
        raise ValueError("Nothing to update")

    conditions: list[str] = []
    for column, value in where.items():
        params.append(value)
        conditions.append(f"{column} = ${len(params)}")

    sql = (
        f"UPDATE {table} SET {', '.join(assignments)} "
        f"WHERE {' AND '.join(conditions)} RETURNING *"
    )
    return sql, params


def build_insert(table: str, values: dict[str, Any]) -> tuple[str, list[Any]]:
    """Construit un INSERT ... RETURNING *."""
    values = db_values(values)
    columns = list(values)
    placeholders = ", ".join(f"${i}" for i in range(1, len(columns) + 1))
    sql = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) RETURNING *"
    return sql, list(values.values())


class Repository:
    """Repository de base: porte l'accès Database."""

    def __init__(self, db: Optional[Database] = None) -> None:
        self.db = db or database
