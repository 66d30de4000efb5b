"""
Construction de requêtes SELECT paramétrées ($1..$n) pour les listes paginées.
"""

import math
from enum import Enum
from typing import Any, Iterable, Optional


def escape_like(term: str) -> str:
    """Echappe les jokers LIKE (%, _) d'un terme de recherche."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def pagination_meta(page: int, limit: int, total: int) -> dict[str, int]:
    """Bloc pagination des réponses de liste."""
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": math.ceil(total / limit) if limit else 0,
    }


class SelectQuery:
    """
    Builder de requête SELECT avec filtres, tri whitelisté et pagination.

    Usage:
        q = SelectQuery("workflows w", columns="w.*", sortable={"created_at": "w.created_at"})
        q.where_eq("w.status", status).search(["w.title"], search)
        q.order_by("created_at", "desc").paginate(page, limit)
        sql, params = q.build()
        count_sql, count_params = q.build_count()
    """

    def __init__(
        self,
        source: str,
        columns: str = "*",
        sortable: Optional[dict[str, str]] = None,
    ) -> None:
        self.source = source
        self.columns = columns
        self.sortable = sortable or {}
        self.params: list[Any] = []
        self.conditions: list[str] = []
        self._order: list[str] = []
        self._limit: Optional[int] = None
        self._offset: Optional[int] = None

    def param(self, value: Any) -> str:
        """Ajoute un paramètre et retourne son placeholder."""
        self.params.append(value.value if isinstance(value, Enum) else value)
        return f"${len(self.params)}"

    def where(self, clause: str, *values: Any) -> "SelectQuery":
        """
        Ajoute une condition brute; chaque {} est remplacé par un placeholder.

        Ex: q.where("w.created_at >= {}", date_from)
        """
        placeholders = [self.param(v) for v in values]
        self.conditions.append(clause.format(*placeholders))
        return self

    def where_eq(self, column: str, value: Any) -> "SelectQuery":
        """Filtre d'égalité ignoré si la valeur est None."""
        if value is None:
            return self
        return self.where(f"{column} = {{}}", value)

    def where_in(self, column: str, values: Optional[Iterable[Any]]) -> "SelectQuery":
        if values is None:
            return self
        return self.where(f"{column} = ANY({{}})", list(values))

    def search(self, columns: list[str], term: Optional[str]) -> "SelectQuery":
        """Recherche ILIKE sur plusieurs colonnes (OR)."""
        if not term or not term.strip():
            return self
        placeholder = self.param(f"%{escape_like(term.strip())}%")
        ors = " OR ".join(f"{col}::text ILIKE {placeholder}" for col in columns)
        self.conditions.append(f"({ors})")
        return self

    def order_by(self, field: str, direction: str = "asc") -> "SelectQuery":
        """
        Ajoute un tri. Le champ doit être dans la whitelist `sortable`.

        Raises:
            ValueError: Champ ou direction non autorisés
        """
        if field not in self.sortable:
            raise ValueError(f"Unsupported sort field: {field}")
        direction = direction.lower()
        if direction not in ("asc", "desc"):
            raise ValueError(f"Unsupported sort direction: {direction}")
        self._order.append(f"{self.sortable[field]} {direction.upper()} NULLS LAST")
        return self

    def order_raw(self, expression: str) -> "SelectQuery":
        self._order.append(expression)
        return self

    def paginate(self, page: int, limit: int) -> "SelectQuery":
        self._limit = limit
        self._offset = (page - 1) * limit
        return self

    def _where_sql(self) -> str:
        if not self.conditions:
            return ""
        return " WHERE " + " AND ".join(self.conditions)

    def build(self) -> tuple[str, list[Any]]:
        params = list(self.params)
        sql = f"SELECT {self.columns} FROM {self.source}{self._where_sql()}"
        if self._order:
            sql += " ORDER BY " + ", ".join(self._order)
        if self._limit is not None:
            params.append(self._limit)
            sql += f" LIMIT ${len(params)}"
            params.append(self._offset or 0)
            sql += f" OFFSET ${len(params)}"
        return sql, params

    def build_count(self) -> tuple[str, list[Any]]:
        return f"SELECT COUNT(*) FROM {self.source}{self._where_sql()}", list(self.params)
