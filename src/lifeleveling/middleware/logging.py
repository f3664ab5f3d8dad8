"""Structured logging configuration with structlog.

Besides the usual timestamp and level, every event carries the service name,
version and environment. Credential and contact fields are masked before
rendering.
"""

import logging
from collections.abc import Callable, MutableMapping
from typing import Any

import structlog

from lifeleveling.config import Settings

SERVICE_NAME = "lifeleveling-api"

REDACTED = "[redacted]"
SENSITIVE_KEYS = frozenset({"password", "token", "authorization", "email", "child_email", "jwt_secret"})

EventDict = MutableMapping[str, Any]


def add_service_context(settings: Settings) -> Callable[[Any, str, EventDict], EventDict]:
    """Build a processor stamping service, version and environment onto each event."""
    context = {
        "service": SERVICE_NAME,
        "version": settings.app_version,
        "environment": settings.environment,
    }

    def processor(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:  # noqa: ANN401
        for key, value in context.items():
            event_dict.setdefault(key, value)
        return event_dict

    return processor


def redact_sensitive_fields(_logger: Any, _method: str, event_dict: EventDict) -> EventDict:  # noqa: ANN401
    for key in event_dict.keys() & SENSITIVE_KEYS:
        if event_dict[key] is not None:
            event_dict[key] = REDACTED
    return event_dict


def setup_logging(settings: Settings) -> None:
    """Configure structlog for JSON or console output."""
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.log_format == "json" else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            add_service_context(settings),
            redact_sensitive_fields,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # The arq worker logs through stdlib logging at the same level.
    logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
