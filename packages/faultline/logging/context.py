"""Logging context shared by classification logs and domain errors.

Values live in a ``ContextVar`` so they follow threads and asyncio tasks.
Correlation ids bound here are copied into ``DomainError.metadata`` by
``DomainError.with_context``, and ``error_fields`` renders an exception as the
classification fields every registry log line carries.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import Iterator, Mapping

from . import fields

_LOG_CONTEXT: ContextVar[dict[str, str]] = ContextVar("faultline_log_context", default={})

CORRELATION_FIELDS = (fields.REQUEST_ID, fields.TRACE_ID, fields.USER_ID)


def get_context() -> dict[str, str]:
    """Return a shallow copy of current logging context."""
    return dict(_LOG_CONTEXT.get())


def correlation_ids() -> dict[str, str]:
    """Return the bound request, trace and user ids that are non-empty."""
    current = _LOG_CONTEXT.get()
    return {key: current[key] for key in CORRELATION_FIELDS if current.get(key)}


def bind_context(**values: object) -> None:
    """Bind values into the current context as strings; ``None`` is skipped."""
    if not values:
        return
    current = _LOG_CONTEXT.get().copy()
    for key, value in values.items():
        if value is None:
            continue
        current[str(key)] = str(value)
    _LOG_CONTEXT.set(current)


def clear_context(*keys: str) -> None:
    """Clear selected keys or the entire logging context."""
    if not keys:
        _LOG_CONTEXT.set({})
        return
    current = _LOG_CONTEXT.get().copy()
    for key in keys:
        current.pop(key, None)
    _LOG_CONTEXT.set(current)


@contextmanager
def log_context(values: Mapping[str, object] | None = None, **extra: object) -> Iterator[None]:
    """Temporarily bind ``values`` and ``extra`` for the duration of a block."""
    token = _LOG_CONTEXT.set(_LOG_CONTEXT.get().copy())
    try:
        bind_context(**{**dict(values or {}), **extra})
        yield
    finally:
        _LOG_CONTEXT.reset(token)


def error_fields(exc: BaseException | None) -> dict[str, str]:
    """Return classification log fields for ``exc``.

    Domain errors contribute code, type, severity, status and retry flag;
    any other exception contributes its type name only.
    """
    if exc is None:
        return {}
    from ..errors.domain_error import DomainError

    rendered = {fields.EXCEPTION_TYPE: type(exc).__name__}
    if isinstance(exc, DomainError):
        rendered[fields.ERROR_CODE] = exc.code
        if exc.type:
            rendered[fields.ERROR_TYPE] = exc.type
        rendered[fields.SEVERITY] = exc.severity.label
        rendered[fields.STATUS_CODE] = str(exc.status_code)
        rendered[fields.RETRYABLE] = str(exc.is_retryable()).lower()
    return rendered
