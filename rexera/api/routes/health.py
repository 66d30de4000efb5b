"""
Routes /api/health

- GET /api/health       : liveness, ne touche aucune dépendance
- GET /api/health/ready : readiness (PostgreSQL, Redis, n8n)
"""

import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ... import __version__
from ...clients.database import Database
from ...clients.n8n import N8nClient
from ...clients.redis_client import RedisClient
from ...config import get_settings
from ..dependencies import get_database, get_n8n_client, get_redis

router = APIRouter(prefix="/api/health", tags=["health"])

# PostgreSQL KO = service inutilisable; Redis et n8n dégradent seulement
CRITICAL_CHECKS = ("postgresql",)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
async def health() -> dict[str, Any]:
    return {
        "success": True,
        "message": "Rexera API is running",
        "timestamp": _now(),
        "environment": get_settings().environment,
        "version": __version__,
    }


@router.get("/ready")
async def readiness(
    db: Database = Depends(get_database),
    redis: RedisClient = Depends(get_redis),
    n8n: N8nClient = Depends(get_n8n_client),
) -> JSONResponse:
    """
    Vérifie les dépendances.

    Retourne:
    - healthy: Tout fonctionne
    - degraded: Redis ou n8n KO, le service reste utilisable (200)
    - unhealthy: PostgreSQL KO (503)
    """
    checks: dict[str, dict[str, Any]] = {}

    started = time.perf_counter()
    try:
        await db.ping()
        checks["postgresql"] = {
            "status": "ok",
            "latency_ms": round((time.perf_counter() - started) * 1000, 1),
        }
    except Exception as e:
        checks["postgresql"] = {"status": "error", "error": str(e)[:100]}

    try:
        await redis.ping()
        checks["redis"] = {"status": "ok"}
    except Exception as e:
        checks["redis"] = {"status": "error", "error": str(e)[:100]}

    if n8n.enabled:
        checks["n8n"] = {"status": "ok" if await n8n.test_connection() else "error"}
    else:
        checks["n8n"] = {"status": "not_configured"}

    critical_errors = [k for k in CRITICAL_CHECKS if checks[k]["status"] == "error"]
    all_errors = [k for k, v in checks.items() if v["status"] == "error"]

    if critical_errors:
        status, http_code = "unhealthy", 503
    elif all_errors:
        status, http_code = "degraded", 200
    else:
        status, http_code = "healthy", 200

    return JSONResponse(
        status_code=http_code,
        content={
            "success": status != "unhealthy",
            "status": status,
            "timestamp": _now(),
            "version": __version__,
            "checks": checks,
        },
    )
