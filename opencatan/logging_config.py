"""Configuration des logs structurés (structlog).

Chaque ligne porte `service` et `environment` (contextvars) ainsi que le nom
du module émetteur sous `logger`.
"""

from __future__ import annotations

import logging
import sys

import structlog
from structlog._config import BoundLoggerLazyProxy

SERVICE_NAME = "opencatan"


def configure_logging(
    environment: str = "development",
    *,
    level: int | None = None,
) -> structlog.stdlib.BoundLogger:
    """Configure structlog pour le moteur et le service de partie.

    Args:
        environment: `development` (console lisible, DEBUG) ou `production`
            (JSON, INFO)
        level: Niveau imposé, à la place de celui de l'environnement

    Returns:
        Logger racine du service
    """
    if level is None:
        level = logging.INFO if environment == "production" else logging.DEBUG

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer = (
        structlog.processors.JSONRenderer(sort_keys=True)
        if environment == "production"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(service=SERVICE_NAME, environment=environment)
    return get_logger()


def get_logger(name: str | None = None):
    """Logger structlog portant le nom du module (`opencatan` par défaut)."""

    return BoundLoggerLazyProxy(None, initial_values={"logger": name or SERVICE_NAME})


__all__ = ["SERVICE_NAME", "configure_logging", "get_logger"]
