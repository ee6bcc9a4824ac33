"""
Weaver logging - structured logging with structlog.

Manifesto:
    The weaver engine and its ``LogInterceptor`` emit structured events
    (``weave.type_created``, ``intercept.begin`` ...) rather than formatted
    strings, so the same entries can be rendered for a developer console or
    shipped as JSON.

Architecture:
    ::

        configure_logging(level="INFO", json_format=False)
            ↓
        structlog processor chain:
          1. filter_by_level
          2. add_log_level / add_logger_name
          3. TimeStamper (ISO, UTC)
          4. add_call_processor (current intercepted call)
          5. format_exc_info / StackInfoRenderer
          6. JSONRenderer | ConsoleRenderer

Examples:
    >>> from weaver.core.logging import configure_logging, get_logger
    >>> configure_logging(level="DEBUG")
    >>> logger = get_logger(__name__)
    >>> logger.info("weave.type_created", base="Account", passes=1)

Tags:
    logging, structlog, observability, weaver-core

Doc-Types:
    - API Reference
    - Observability Guide
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog
from structlog.types import Processor

from weaver.core.context import add_call_processor
from weaver.core.settings import get_settings

# Track if logging has been configured
_configured = False


def configure_logging(
    level: str | None = None,
    json_format: bool | None = None,
    force: bool = False,
) -> None:
    """Configure structured logging for the application.

    Subsequent calls are no-ops unless ``force=True``.

    Args:
        level: Log level (overrides ``WEAVER_LOG_LEVEL``)
        json_format: True for JSON, False for console (overrides ``WEAVER_LOG_FORMAT``)
        force: Reconfigure even if already configured
    """
    global _configured

    if _configured and not force:
        return

    settings = get_settings()
    log_level = (level or settings.log_level).upper()
    if json_format is None:
        json_format = settings.log_format == "json"

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_call_processor,
        structlog.processors.format_exc_info,
        structlog.processors.StackInfoRenderer(),
    ]

    if json_format:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stderr.isatty(),
                exception_formatter=structlog.dev.plain_traceback,
            )
        )

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, log_level),
        force=True,
    )
    logging.getLogger("weaver").setLevel(getattr(logging, log_level))

    _configured = True


def get_logger(name: str | None = None) -> Any:
    """Get a structured logger.

    Args:
        name: Logger name (usually __name__)
    """
    return structlog.get_logger(name)


def is_configured() -> bool:
    """Check if logging has been configured."""
    return _configured


def reset_logging() -> None:
    """Restore structlog defaults (primarily for testing)."""
    global _configured
    structlog.reset_defaults()
    _configured = False
