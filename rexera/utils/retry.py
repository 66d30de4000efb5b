"""
Retries avec backoff exponentiel pour les erreurs transitoires (réseau, Postgres).
"""

import asyncio
import functools
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

import asyncpg
import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Exceptions par défaut à retry
DEFAULT_RETRY_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    ConnectionError,
    TimeoutError,
    asyncio.TimeoutError,
    httpx.TransportError,
    asyncpg.exceptions.ConnectionDoesNotExistError,
    asyncpg.exceptions.CannotConnectNowError,
    asyncpg.exceptions.TooManyConnectionsError,
    asyncpg.exceptions.InterfaceError,
)


def with_retry(
    max_attempts: int = 3,
    min_wait: float = 0.5,
    max_wait: float = 10.0,
    retry_exceptions: Optional[Tuple[Type[Exception], ...]] = None,
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Décorateur ajoutant des retries avec backoff exponentiel à une coroutine.

    Args:
        max_attempts: Nombre maximum de tentatives
        min_wait: Temps d'attente minimum entre les tentatives (secondes)
        max_wait: Temps d'attente maximum entre les tentatives (secondes)
        retry_exceptions: Types d'exceptions à retry (défaut: erreurs réseau et
            pertes de connexion Postgres)

    Usage:
        @with_retry(max_attempts=3)
        async def update_task(...):
            ...
    """
    exceptions = retry_exceptions or DEFAULT_RETRY_EXCEPTIONS

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        if not asyncio.iscoroutinefunction(func):
            raise TypeError(f"with_retry ne supporte que les coroutines ({func.__name__})")

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            async for attempt_ctx in AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_exponential(multiplier=min_wait, max=max_wait),
                retry=retry_if_exception_type(exceptions),
                reraise=True,
            ):
                with attempt_ctx:
                    attempt += 1
                    if attempt > 1:
                        logger.warning(
                            "retry_attempt",
                            function=func.__name__,
                            attempt=attempt,
                            max_attempts=max_attempts,
                        )
                    return await func(*args, **kwargs)
            raise RuntimeError("Retry loop exited unexpectedly")

        return wrapper

    return decorator
