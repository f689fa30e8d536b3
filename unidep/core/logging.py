"""Structured logging — structlog rendering through stdlib logging.

Everything goes to stderr so ``--json`` output on stdout stays parseable.
Commands bind ``command`` and pipeline refreshes bind ``project`` with
:func:`structlog.contextvars.bound_contextvars`; ``merge_contextvars`` adds
them to every event logged inside.
"""

from __future__ import annotations

import logging
import logging.config
from collections.abc import MutableMapping
from typing import Any

import structlog

from unidep.core.config import Settings

# Third-party loggers that are noisy at INFO.
_QUIET_LOGGERS = {"httpx": "WARNING", "httpcore": "WARNING"}

SECRET_KEYS = frozenset({"auth", "password", "token"})
MASK = "***"


def mask_secrets(
    logger: Any, method_name: str, event_dict: MutableMapping[str, Any]
) -> MutableMapping[str, Any]:
    """Replace credential values so repository passwords never reach a log line."""
    for key in SECRET_KEYS.intersection(event_dict):
        if event_dict[key]:
            event_dict[key] = MASK
    return event_dict


def _shared_processors() -> list[structlog.types.Processor]:
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        mask_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def _renderer(log_format: str) -> structlog.types.Processor:
    if log_format.lower() == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def setup_logging(settings: Settings | None = None, *, level: str | None = None) -> None:
    """Configure structlog and stdlib logging from *settings* (default: environment).

    *level* overrides ``settings.log_level``; the CLI passes ``DEBUG`` for
    ``--verbose``.
    """
    settings = settings or Settings.from_env()
    log_level = (level or settings.log_level).upper()
    shared = _shared_processors()

    structlog.configure(
        processors=shared + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    loggers: dict[str, dict[str, str]] = {"unidep": {"level": log_level}}
    loggers.update({name: {"level": quiet} for name, quiet in _QUIET_LOGGERS.items()})
    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        _renderer(settings.log_format),
                    ],
                },
            },
            "handlers": {
                "default": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "structlog",
                },
            },
            "root": {"handlers": ["default"], "level": log_level},
            "loggers": loggers,
        }
    )
