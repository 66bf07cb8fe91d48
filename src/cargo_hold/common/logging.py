"""Structured logging with structlog and correlation IDs."""

import logging
import uuid
from contextvars import ContextVar
from typing import Any

import structlog

correlation_id_var: ContextVar[str] = ContextVar("correlation_id", default="")


def get_correlation_id() -> str:
    return correlation_id_var.get()


def set_correlation_id(cid: str | None = None) -> str:
    cid = cid or uuid.uuid4().hex[:16]
    correlation_id_var.set(cid)
    return cid


def add_correlation_id(logger: structlog.types.WrappedLogger, method_name: str, event_dict: dict) -> dict:
    cid = correlation_id_var.get()
    if cid:
        event_dict["correlation_id"] = cid
    return event_dict


class ProcessFields:
    """Stamps every event with fixed per-process fields such as the worker identity.

    Request-scoped context is cleared on each request, so these live outside it.
    """

    def __init__(self, **fields: Any) -> None:
        self.fields = fields

    def __call__(self, logger: structlog.types.WrappedLogger, method_name: str, event_dict: dict) -> dict:
        for key, value in self.fields.items():
            event_dict.setdefault(key, value)
        return event_dict


def resolve_log_level(log_level: str) -> int:
    """Map a level name such as ``"debug"`` to its numeric value, defaulting to INFO."""
    level = logging.getLevelName(log_level.upper())
    return level if isinstance(level, int) else logging.INFO


def configure_logging(log_level: str = "INFO", **process_fields: Any) -> None:
    """JSON logs to stdout, filtered at ``log_level``.

    ``process_fields`` (e.g. ``worker_id=1``) are added to every event.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            add_correlation_id,  # type: ignore[list-item]
            ProcessFields(**process_fields),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(resolve_log_level(log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
