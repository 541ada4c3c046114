"""
Structured logging setup using structlog.

Application modules log through the standard library
(``logging.getLogger(__name__)``) and pass context with ``extra=``; the
formatter installed here runs those records through structlog so every
line carries the same keys regardless of where it came from.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any

import structlog
from opentelemetry import trace

from queuesync import __version__
from queuesync.config import Settings, get_settings

# Chatty third-party loggers kept at WARNING
QUIET_LOGGERS = ("uvicorn.access", "websockets", "httpx")


def add_trace_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Attach the current OpenTelemetry trace and span ids, if any."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def add_service_context(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Tag every record with the service name and version."""
    event_dict.setdefault("service", get_settings().otel_service_name)
    event_dict.setdefault("service_version", __version__)
    return event_dict


def flatten_enums(logger: Any, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """
    Render enum values (action codes, reject reasons, sync kinds) by name.

    ActionCode is an IntEnum, so without this JSON output would show the
    bare wire number.
    """
    for key, value in event_dict.items():
        if isinstance(value, Enum):
            event_dict[key] = value.name.lower()
    return event_dict


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        add_trace_context,
        add_service_context,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.stdlib.ExtraAdder(),
        flatten_enums,
    ]


def _renderer(settings: Settings) -> Any:
    if settings.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure structured logging for the application.

    Args:
        settings: Settings to read the level and format from. Defaults to
            the cached application settings.
    """
    settings = settings or get_settings()
    shared = _shared_processors()

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(settings),
            ],
        )
    )

    root_logger = logging.getLogger()
    root_logger.handlers = [handler]
    root_logger.setLevel(getattr(logging, settings.log_level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


@contextmanager
def connection_context(**kwargs: Any) -> Iterator[None]:
    """
    Bind keys (client id, role) to every record logged while a connection
    is being served, removing them again afterwards.
    """
    with structlog.contextvars.bound_contextvars(**kwargs):
        yield
