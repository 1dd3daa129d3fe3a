"""Stdout logging configuration for faultline consumers.

Records that carry an exception get its classification fields (code, type,
severity, status) next to the bound context, so a pipeline can index domain
failures without parsing tracebacks.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from . import fields
from .context import bind_context, error_fields, get_context

if TYPE_CHECKING:
    from ..config.models import LoggingSettings


def _record_error(record: logging.LogRecord) -> BaseException | None:
    if record.exc_info and record.exc_info[1] is not None:
        return record.exc_info[1]
    return None


class ContextFilter(logging.Filter):
    """Inject bound context and exception classification into each record."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = get_context()
        for key, value in error_fields(_record_error(record)).items():
            context.setdefault(key, value)
        setattr(record, "context", context)
        for key, value in context.items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """Emit newline-delimited JSON logs with stable core fields."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            fields.TIMESTAMP: datetime.now(UTC).isoformat(),
            fields.LEVEL: record.levelname,
            fields.LOGGER: record.name,
            fields.MESSAGE: record.getMessage(),
        }

        context = getattr(record, "context", None)
        if isinstance(context, dict):
            payload.update(context)

        if record.exc_info:
            payload[fields.EXCEPTION] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str, separators=(",", ":"))


class PlainFormatter(logging.Formatter):
    """Human-readable formatter that appends context and error classification."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        context = getattr(record, "context", None)
        if not isinstance(context, dict) or not context:
            return message
        suffix = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        head, _, trace = message.partition("\n")
        if trace:
            return f"{head} {suffix}\n{trace}"
        return f"{head} {suffix}"


def configure_logging(
    settings: LoggingSettings | None = None,
    *,
    level: str | None = None,
    json_output: bool | None = None,
    service: str | None = None,
    environment: str | None = None,
) -> None:
    """Configure root logging with a single stdout handler.

    Values come from ``settings`` (the ``logging`` configuration subtree) and
    explicit keyword arguments win over it. Existing root handlers are
    replaced so repeated calls never duplicate emissions.
    """
    if settings is not None:
        level = level if level is not None else settings.level
        json_output = json_output if json_output is not None else settings.json_output
        service = service if service is not None else settings.service
        environment = environment if environment is not None else settings.environment
    resolved_level = (level or "INFO").upper()

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(resolved_level)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(resolved_level)
    handler.addFilter(ContextFilter())
    handler.setFormatter(JsonFormatter() if json_output is not False else PlainFormatter())

    root.addHandler(handler)

    seed_context: dict[str, str] = {}
    if service:
        seed_context[fields.SERVICE] = service
    if environment:
        seed_context[fields.ENVIRONMENT] = environment
    if seed_context:
        bind_context(**seed_context)


def get_logger(name: str | None = None) -> logging.Logger:
    """Return a logger using Python's standard logging hierarchy."""
    return logging.getLogger(name)
