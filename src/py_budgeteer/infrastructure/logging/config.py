"""structlog setup for the valuation engine.

Logs are diagnostics, never command output: the console handler writes to
stderr unless a stream is given, so CLI stdout stays parseable. With
LOGGING_ENABLED=false every logger is a no-op, structlog-native and stdlib alike.
"""
from __future__ import annotations

import logging
import logging.handlers
import sys
from typing import IO, Any

import structlog

from py_budgeteer.infrastructure.config.settings import BaseAppSettings, get_settings

__all__ = ["configure_logging", "get_logger"]


def _resolve_level(level_name: str) -> int:
    level = logging.getLevelName(level_name.upper())
    return level if isinstance(level, int) else logging.INFO


def _disable() -> None:
    # root keeps a NullHandler so logging.lastResort never prints either
    logging.basicConfig(handlers=[logging.NullHandler()], level=logging.CRITICAL, force=True)
    structlog.configure(
        processors=[structlog.processors.KeyValueRenderer()],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(logging.CRITICAL),
        cache_logger_on_first_use=True,
    )


def _file_handler(settings: BaseAppSettings) -> logging.Handler:
    if settings.log_rotation == "size":
        return logging.handlers.RotatingFileHandler(
            filename=settings.log_file,  # type: ignore[arg-type]
            maxBytes=max(1024, settings.log_max_bytes),
            backupCount=max(1, settings.log_backup_count),
            encoding="utf-8",
        )
    return logging.handlers.TimedRotatingFileHandler(
        filename=settings.log_file,  # type: ignore[arg-type]
        when=settings.log_rotate_when,
        interval=1,
        backupCount=max(1, settings.log_backup_count),
        utc=settings.log_rotate_utc,
        encoding="utf-8",
    )


def configure_logging(stream: IO[str] | None = None) -> None:
    """Route structlog through stdlib logging with a console or JSON renderer.

    Args:
        stream: Console stream; defaults to ``sys.stderr``. Ignored when JSON
            logs go to LOG_FILE (size or time rotation).

    Reconfiguration is forced, so repeated calls replace handlers instead of
    stacking them.
    """
    settings = get_settings()
    if not settings.logging_enabled:
        _disable()
        return

    timestamper = structlog.processors.TimeStamper(fmt="iso")
    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        timestamper,
    ]
    renderer: structlog.types.Processor = (
        structlog.processors.JSONRenderer() if settings.json_logs else structlog.dev.ConsoleRenderer()
    )

    if settings.json_logs and settings.log_file:
        handler = _file_handler(settings)
    else:
        handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer, foreign_pre_chain=shared))
    logging.basicConfig(handlers=[handler], level=_resolve_level(settings.log_level), force=True)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,  # type: ignore[arg-type]
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = "py_budgeteer") -> structlog.BoundLogger:
    """Structured logger; configures logging on first use when nothing has."""
    if not logging.getLogger().handlers:
        configure_logging()
    return structlog.get_logger(name)
