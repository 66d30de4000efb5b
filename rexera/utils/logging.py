"""
Logging structuré (structlog) partagé par l'API et le runner de jobs.

Les logs de structlog et ceux des bibliothèques (uvicorn, asyncpg,
apscheduler) passent par le même handler et le même rendu: JSON en
production, console en développement.
"""

import logging
import sys

import structlog
from structlog.types import Processor

# Bibliothèques trop bavardes au niveau INFO
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "apscheduler.executors.default")


def setup_logging(log_level: str = "INFO", json_format: bool = True) -> None:
    """
    Configure structlog et le logging standard.

    Args:
        log_level: Niveau minimum (DEBUG, INFO, WARNING, ERROR)
        json_format: True pour un log JSON par ligne, False pour la console
    """
    level = logging.getLevelName(log_level.upper())
    if not isinstance(level, int):
        level = logging.INFO

    # request_id, user_id et job sont liés via les contextvars
    pre_chain: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer: Processor = (
        structlog.processors.JSONRenderer()
        if json_format
        else structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())
    )
    final_processors: list[Processor] = [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
    ]
    if json_format:
        final_processors.append(structlog.processors.format_exc_info)
    final_processors.append(renderer)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=final_processors,
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)

    # uvicorn installe ses propres handlers
    for name in ("uvicorn", "uvicorn.error"):
        logging.getLogger(name).handlers = []
        logging.getLogger(name).propagate = True

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
