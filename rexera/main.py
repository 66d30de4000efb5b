"""
Point d'entrée du serveur API Rexera.

Ce module initialise le logging et démarre l'application FastAPI via uvicorn.
"""

import structlog
import uvicorn

from .config import settings
from .utils.logging import setup_logging

# Configurer le logging
setup_logging(settings.log_level, json_format=settings.log_format == "json")
logger = structlog.get_logger(__name__)


def main() -> None:
    """Point d'entrée principal."""
    from .api.server import create_app

    logger.info(
        "starting_api_server",
        host=settings.server_host,
        port=settings.server_port,
        environment=settings.environment,
        debug=settings.server_debug,
        skip_auth=settings.skip_auth,
        n8n_enabled=settings.n8n_enabled,
    )

    app = create_app()

    uvicorn.run(
        app,
        host=settings.server_host,
        port=settings.server_port,
        log_level=settings.log_level.lower(),
        access_log=settings.server_debug,
    )


if __name__ == "__main__":
    main()
