"""
Enveloppe des réponses de succès.
"""

from typing import Any, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from ..repositories.query import pagination_meta


def success(data: Any = None, status_code: int = 200, message: Optional[str] = None) -> JSONResponse:
    """{"success": true, "data": ...}"""
    body: dict[str, Any] = {"success": True, "data": jsonable_encoder(data)}
    if message:
        body["message"] = message
    return JSONResponse(content=body, status_code=status_code)


def paginated(rows: list[Any], page: int, limit: int, total: int) -> JSONResponse:
    """{"success": true, "data": [...], "pagination": {page, limit, total, totalPages}}"""
    return JSONResponse(
        content={
            "success": True,
            "data": jsonable_encoder(rows),
            "pagination": pagination_meta(page, limit, total),
        }
    )
