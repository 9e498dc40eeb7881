"""Structured logging for moneyflow.

structlog's ProcessorFormatter renders every stdlib ``logging.getLogger(__name__)``
call site, so service code never imports structlog directly.

Two output formats:
- ``text``: human-readable console output (dev default)
- ``json``: JSON lines for log aggregation
"""

from __future__ import annotations

import logging
import sys
from contextvars import ContextVar

import structlog

_NOISE_LOGGERS = (
    "uvicorn.access",
    "sqlalchemy.engine.Engine",
    "httpx",
)

# Authenticated user for the current request (asyncio-safe via ContextVar)
_user_context: ContextVar[int | None] = ContextVar("user_id", default=None)


def set_user_context(user_id: int | None) -> None:
    """Set the authenticated user for the current request context."""
    _user_context.set(user_id)


def add_user_context(
    logger: logging.Logger,
    method_name: str,
    event_dict: dict,
) -> dict:
    """Inject ``user_id`` from the ContextVar when a request is authenticated."""
    user_id = _user_context.get()
    if user_id is not None:
        event_dict.setdefault("user_id", user_id)
    return event_dict


def _build_processors(time_fmt: str) -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        add_user_context,
        structlog.processors.TimeStamper(fmt=time_fmt),
        structlog.stdlib.ExtraAdder(),
    ]


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Configure process-wide logging.

    Parameters
    ----------
    level:
        Root log level (e.g. "DEBUG", "INFO", "WARNING").
    fmt:
        ``"text"`` for console output, ``"json"`` for JSON lines.
    """
    if fmt == "json":
        processors = _build_processors(time_fmt="iso")
        renderer = structlog.processors.JSONRenderer()
    else:
        processors = _build_processors(time_fmt="%H:%M:%S")
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
        foreign_pre_chain=processors,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in _NOISE_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            *processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
