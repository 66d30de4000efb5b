"""
Middlewares HTTP: request id, en-têtes de sécurité, rate limiting Redis.
"""

import time
import uuid
from typing import Awaitable, Callable, Optional

import redis.asyncio as redis
import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..clients.redis_client import RedisClient
from ..config import get_settings
from .errors import error_response

logger = structlog.get_logger(__name__)

CallNext = Callable[[Request], Awaitable[Response]]

WEBHOOK_PATH_PREFIX = "/api/webhooks"
HEALTH_PATH_PREFIX = "/api/health"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Attribue un X-Request-ID à chaque requête et le lie aux logs."""

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        request.state.request_id = request_id

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        started = time.perf_counter()
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.debug(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["X-XSS-Protection"] = "0"
        if get_settings().is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Rate limiting à fenêtre fixe par IP, compteurs dans Redis.

    Redis indisponible: la requête passe et un warning est logué.
    """

    def __init__(self, app: ASGIApp, redis_client: Optional[RedisClient] = None) -> None:
        super().__init__(app)
        self.redis = redis_client

    def _limits(self, path: str) -> tuple[str, int, int]:
        settings = get_settings()
        if path.startswith(WEBHOOK_PATH_PREFIX):
            return (
                "webhook",
                settings.webhook_rate_limit_max_requests,
                settings.webhook_rate_limit_window_seconds,
            )
        return "api", settings.rate_limit_max_requests, settings.rate_limit_window_seconds

    async def dispatch(self, request: Request, call_next: CallNext) -> Response:
        path = request.url.path
        if (
            not get_settings().rate_limit_enabled
            or self.redis is None
            or request.method == "OPTIONS"
            or path.startswith(HEALTH_PATH_PREFIX)
            or not path.startswith("/api")
        ):
            return await call_next(request)

        scope, max_requests, window = self._limits(path)
        client_ip = request.client.host if request.client else "unknown"
        key = f"ratelimit:{scope}:{client_ip}"

        try:
            count, reset_in = await self.redis.hit(key, window)
        except (redis.RedisError, OSError) as e:
            logger.warning("rate_limit_unavailable", error=str(e), path=path)
            return await call_next(request)

        headers = {
            "X-RateLimit-Limit": str(max_requests),
            "X-RateLimit-Remaining": str(max(0, max_requests - count)),
            "X-RateLimit-Reset": str(int(time.time()) + reset_in),
        }

        if count > max_requests:
            logger.warning("rate_limit_exceeded", client_ip=client_ip, scope=scope, count=count)
            return error_response(
                request,
                429,
                "TOO_MANY_REQUESTS",
                "Too many requests, please try again later",
                headers={**headers, "Retry-After": str(reset_in)},
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response
