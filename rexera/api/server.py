"""
Application FastAPI de l'API Rexera.

Endpoints (préfixe /api):
- /health, /health/ready           : supervision
- /workflows, /taskExecutions      : workflows et tâches
- /interrupts, /hil-notes          : file HIL et notes
- /counterparties, /agents         : référentiels
- /notifications, /audit-events    : notifications et audit
- /webhooks/n8n, /cron/sla-monitor : callbacks machines
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..clients import database, n8n_client, redis_client, supabase_auth_client
from ..config import get_settings
from .errors import register_exception_handlers
from .middleware import RateLimitMiddleware, RequestIdMiddleware, SecurityHeadersMiddleware
from .routes import ROUTERS

logger = structlog.get_logger(__name__)

DEV_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Gestion du cycle de vie de l'application."""
    settings = get_settings()

    # ==========================================================================
    # VALIDATION DE SÉCURITÉ AU DÉMARRAGE
    # ==========================================================================
    for error in settings.validate_security():
        if error.startswith("CRITICAL"):
            logger.error("security_validation_failed", error=error)
            raise RuntimeError(error)
        logger.warning("security_validation_warning", warning=error)

    # ==========================================================================
    # INITIALISATION DU POOL DE CONNEXIONS
    # ==========================================================================
    try:
        await database.ping()
        logger.info("database_pool_initialized")
    except Exception as e:
        # Le pool sera recréé à la demande; /api/health/ready signale la panne
        logger.error("database_init_failed", error=str(e))

    logger.info(
        "api_server_starting",
        environment=settings.environment,
        skip_auth=settings.skip_auth,
        n8n_enabled=settings.n8n_enabled,
        rate_limit_enabled=settings.rate_limit_enabled,
    )
    yield

    # ==========================================================================
    # CLEANUP
    # ==========================================================================
    logger.info("api_server_stopping")
    await database.close()
    await redis_client.close()
    await n8n_client.close()
    await supabase_auth_client.close()
    logger.info("api_server_stopped")


def create_app() -> FastAPI:
    """
    Crée et configure l'application FastAPI.

    Returns:
        FastAPI: Application configurée
    """
    settings = get_settings()

    app = FastAPI(
        title="Rexera Workflow API",
        description="API de gestion des workflows immobiliers Rexera (n8n, HIL, SLA)",
        version=__version__,
        lifespan=lifespan,
    )

    # Le dernier middleware ajouté est le plus externe
    app.add_middleware(RateLimitMiddleware, redis_client=redis_client)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIdMiddleware)

    allowed_origins = settings.cors_origins
    if not allowed_origins:
        allowed_origins = DEV_CORS_ORIGINS
        logger.warning("cors_fallback_origins", origins=allowed_origins)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset"],
    )
    logger.info("cors_configured", allowed_origins=allowed_origins)

    register_exception_handlers(app)
    for router in ROUTERS:
        app.include_router(router)

    return app
