"""Structured logging setup (structlog on top of stdlib logging)."""

import logging
import sys
from typing import Any, cast

import structlog

from portal.core.config import Settings

_SENSITIVE_KEYS = ("secret", "token", "password", "authorization", "client_principal")


def redact_secrets(
    _logger: Any, _method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Mask values whose key looks like a credential."""
    for key in list(event_dict.keys()):
        key_norm = str(key).lower().replace("-", "_")
        if any(fragment in key_norm for fragment in _SENSITIVE_KEYS):
            event_dict[key] = "[REDACTED]"
    return event_dict


def configure_logging(settings: Settings) -> None:
    """
    Configure structlog and the stdlib root logger.

    JSON lines are emitted unless LOG_JSON is false (local development),
    in which case the console renderer is used.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    base_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        redact_secrets,
    ]

    if settings.LOG_JSON:
        processors = base_processors + [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = base_processors + [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=cast(Any, processors),
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )

    # Library logs (uvicorn, azure-core) go through the same stream
    logging.basicConfig(format="%(message)s", stream=sys.stderr, level=level)
    # azure-core logs every HTTP request at INFO
    logging.getLogger("azure").setLevel(max(level, logging.WARNING))
