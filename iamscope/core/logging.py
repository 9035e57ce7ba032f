"""
Structured logging setup.

Usage:
    from iamscope.core.logging import configure_logging

    configure_logging()  # reads log_level / log_format from settings

Engine modules log through ``structlog.get_logger()``. Host applications
bind request ids with ``structlog.contextvars.bind_contextvars`` and they
are merged into every engine event.
"""

import logging
import sys
from typing import Any

import structlog

from .config import get_settings


def add_engine_name(
    logger: Any,
    method_name: str,
    event_dict: dict[str, Any],
) -> dict[str, Any]:
    """Structlog processor tagging events with the application name."""
    event_dict.setdefault("app", get_settings().app_name)
    return event_dict


def configure_logging(level: str | None = None, fmt: str | None = None) -> None:
    """
    Configure structlog and the stdlib root logger.

    Args:
        level: Log level name (defaults to settings.log_level)
        fmt: "json" or "text" (defaults to settings.log_format)
    """
    settings = get_settings()
    level_name = (level or settings.log_level).upper()
    fmt = fmt or settings.log_format

    renderer: Any
    if fmt == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level_name, logging.INFO),
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            add_engine_name,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level_name, logging.INFO)
        ),
        cache_logger_on_first_use=True,
    )
