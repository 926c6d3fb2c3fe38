"""Structured logging for the automation process.

Every entry carries the application name and environment. Integration
secrets (tokens, client secrets, decrypted credentials) are masked before
rendering, so a careless ``logger.info(..., credentials=creds)`` never
reaches the log sink in clear text.
"""

import logging
import sys
from typing import Any, Literal

import structlog
from structlog.types import EventDict, Processor

from ops_hub.config.settings import get_settings

REDACTED = "***REDACTED***"

SECRET_KEYS = frozenset(
    {
        "access_token",
        "refresh_token",
        "client_secret",
        "api_key",
        "api_token",
        "credentials",
        "encryption_key",
        "password",
    }
)

# Per-request INFO lines from the HTTP stack drown out sweep events
NOISY_LOGGERS = ("httpx", "httpcore")


def mask_secrets(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
    """Replace the value of any secret-looking key with a placeholder."""
    for key in SECRET_KEYS.intersection(event_dict):
        event_dict[key] = REDACTED
    return event_dict


def _app_context(app_name: str, environment: str) -> Processor:
    def add_app_context(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("app", app_name)
        event_dict.setdefault("environment", environment)
        return event_dict

    return add_app_context


def configure_logging(
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] | None = None,
    format: Literal["json", "console"] | None = None,
) -> None:
    """Configure structlog on top of stdlib logging.

    Args:
        level: Overrides ``LOG_LEVEL``.
        format: Overrides ``LOG_FORMAT``. ``json`` in production, ``console``
            when a human is watching.
    """
    settings = get_settings()
    log_level = getattr(logging, level or settings.log_level)

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level)
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))

    processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        _app_context(settings.app_name, settings.environment),
        mask_secrets,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]

    if (format or settings.log_format) == "json":
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(
            structlog.dev.ConsoleRenderer(
                colors=sys.stdout.isatty(),
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
