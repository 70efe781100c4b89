"""Structured logging configuration: structlog + stdlib logging."""

from __future__ import annotations

import logging
import logging.config
import os

import structlog

# Logger channels used across the package, keyed by their env suffix.
CHANNELS: dict[str, str] = {
    "ENGINE": "dephealth.engine",
    "CACHE": "dephealth.cache",
    "CONFIG": "dephealth.config",
}


def _channel_levels(default: str) -> dict[str, dict[str, str]]:
    loggers = {"dephealth": {"level": default}}
    for suffix, name in CHANNELS.items():
        level = os.environ.get(f"DEPHEALTH_LOG_LEVEL_{suffix}")
        if level:
            loggers[name] = {"level": level.upper()}
    return loggers


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog and stdlib logging.

    Explicit arguments win over the environment:
        DEPHEALTH_LOG_LEVEL           : package log level (default: INFO)
        DEPHEALTH_LOG_LEVEL_<CHANNEL> : override for one channel
                                        (ENGINE, CACHE, CONFIG)
        DEPHEALTH_LOG_FORMAT          : console | json (default: console)
    """
    log_level = (level or os.environ.get("DEPHEALTH_LOG_LEVEL", "INFO")).upper()
    log_format = (log_format or os.environ.get("DEPHEALTH_LOG_FORMAT", "console")).lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if log_format == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=shared_processors
        + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared_processors,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
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
            "root": {
                "handlers": ["default"],
                "level": log_level,
            },
            "loggers": {
                **_channel_levels(log_level),
                "httpx": {"level": "WARNING"},
                "httpcore": {"level": "WARNING"},
            },
        }
    )
