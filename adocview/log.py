"""Root logger setup for the CLI."""

from __future__ import annotations

import logging

import structlog
from rich.console import Console
from rich.logging import RichHandler

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}

# Request-level chatter from these is only useful when debugging.
_NOISY_LOGGERS = ("httpx", "httpcore", "watchdog")


def json_formatter() -> structlog.stdlib.ProcessorFormatter:
    """Formatter rendering stdlib records as one JSON object per line."""
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
        ],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ],
    )


def configure_logging(
    level: str = "info",
    fmt: str = "text",
    console: Console | None = None,
) -> None:
    """Replace the root logger's handlers with a text or JSON handler on stderr."""
    log_level = _LEVELS.get(level.lower(), logging.INFO)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(log_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    if fmt == "json":
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(json_formatter())
    else:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
