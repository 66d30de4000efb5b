"""
Erreurs API et gestionnaires d'exceptions.

Toutes les erreurs sont rendues sous la forme:
    {"success": false, "error": {"code", "message", "details"?, "timestamp", "requestId"}}
"""

from datetime import datetime, timezone
from typing import Any, Optional

import asyncpg
import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = structlog.get_logger(__name__)


class APIError(Exception):
    """Erreur métier convertie en réponse JSON."""

    def __init__(
        self,
        code: str,
        message: str,
        status_code: int = 500,
        details: Any = None,
        headers: Optional[dict[str, str]] = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        self.headers = headers


# =============================================================================
# Factories
# =============================================================================


def not_found(resource: str, identifier: Any = None) -> APIError:
    message = f"{resource} not found" if identifier is None else f"{resource} not found: {identifier}"
    return APIError("NOT_FOUND", message, 404)


def unauthorized(message: str = "Authentication required") -> APIError:
    return APIError("UNAUTHORIZED", message, 401, headers={"WWW-Authenticate": "Bearer"})


def forbidden(message: str = "Insufficient permissions") -> APIError:
    return APIError("FORBIDDEN", message, 403)


def bad_request(message: str, details: Any = None) -> APIError:
    return APIError("BAD_REQUEST", message, 400, details)


def conflict(message: str, details: Any = None) -> APIError:
    return APIError("CONFLICT", message, 409, details)


def service_unavailable(message: str = "Service temporarily unavailable") -> APIError:
    return APIError("SERVICE_UNAVAILABLE", message, 503)


# =============================================================================
# Rendu
# =============================================================================


def error_body(
    request: Request, code: str, message: str, details: Any = None
) -> dict[str, Any]:
    error: dict[str, Any] = {
        "code": code,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "requestId": getattr(request.state, "request_id", None),
    }
    if details is not None:
        error["details"] = details
    return {"success": False, "error": error}


def error_response(
    request: Request,
    status_code: int,
    code: str,
    message: str,
    details: Any = None,
    headers: Optional[dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=error_body(request, code, message, details),
        headers=headers,
    )


def _validation_details(exc: RequestValidationError) -> list[dict[str, Any]]:
    details = []
    for err in exc.errors():
        # loc = ("body", "title") / ("query", "limit")
        loc = [str(part) for part in err.get("loc", ()) if part not in ("body", "query", "path")]
        details.append({
            "field": ".".join(loc) or "body",
            "message": err.get("msg", "Invalid value"),
            "code": err.get("type", "invalid"),
        })
    return details


async def api_error_handler(request: Request, exc: APIError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("api_error", code=exc.code, message=exc.message, path=request.url.path)
    return error_response(request, exc.status_code, exc.code, exc.message, exc.details, exc.headers)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_response(
        request, 400, "VALIDATION_ERROR", "Invalid request data", _validation_details(exc)
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # 404 de routage de Starlette (detail par défaut "Not Found")
    if exc.status_code == 404 and exc.detail == "Not Found":
        return error_response(request, 404, "NOT_FOUND", "The requested endpoint was not found")
    message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
    return error_response(
        request, exc.status_code, f"HTTP_{exc.status_code}", message,
        headers=getattr(exc, "headers", None),
    )


async def database_error_handler(request: Request, exc: asyncpg.PostgresError) -> JSONResponse:
    logger.error(
        "database_error",
        path=request.url.path,
        sqlstate=getattr(exc, "sqlstate", None),
        error=str(exc),
    )
    return error_response(request, 500, "DATABASE_ERROR", "A database error occurred")


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", path=request.url.path, error=str(exc))
    return error_response(request, 500, "INTERNAL_SERVER_ERROR", "An unexpected error occurred")


def register_exception_handlers(app: FastAPI) -> None:
    """Installe les gestionnaires d'erreurs sur l'application."""
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(asyncpg.PostgresError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
