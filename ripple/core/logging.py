"""Structured debug logging.

Console output meant for the user goes through `ripple.output.console`.
This module only carries diagnostics (`--debug`): what the executor
dispatched, when a continuation fired, which files were touched.
"""

from __future__ import annotations

import logging
import sys

import structlog

__all__ = ["get_logger", "setup_logging"]


def setup_logging(level: str = "warning") -> None:
    """Configure structlog on top of stdlib logging, writing to stderr.

    Args:
        level: Log level name (debug, info, warning, error).
    """
    log_level = getattr(logging, level.upper(), logging.WARNING)

    logging.basicConfig(
        format="%(message)s",
        level=log_level,
        stream=sys.stderr,
        force=True,
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
    )
    for handler in logging.getLogger().handlers:
        handler.setFormatter(formatter)


def get_logger(module: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger bound to a module name (e.g. "exec")."""
    return structlog.get_logger(module=module)
