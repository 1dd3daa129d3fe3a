"""Inspection helpers that accept any exception, domain or not."""

from __future__ import annotations

from . import codes
from .domain_error import DomainError
from .exceptions import ErrorChainCycleError
from .factories import get_default_factory
from .types import DEFAULT_STATUS_CODE

_RETRYABLE_MARKERS = (
    "timeout",
    "connection refused",
    "connection reset",
    "temporary failure",
    "service unavailable",
    "too many requests",
)


def wrap(code: str, message: str, err: BaseException | None) -> DomainError | None:
    """Return a domain error with ``code`` whose cause is ``err``.

    ``None`` in gives ``None`` out.
    """
    if err is None:
        return None
    return get_default_factory().new_with_cause(code, message, err)


def is_retryable(err: BaseException | None) -> bool:
    """Return whether ``err`` may succeed on retry.

    Non-domain errors fall back to built-in transient exception types and a
    short list of message markers.
    """
    if err is None:
        return False
    if isinstance(err, DomainError):
        return err.is_retryable()
    if isinstance(err, (TimeoutError, ConnectionError)):
        return True
    text = str(err).lower()
    return any(marker in text for marker in _RETRYABLE_MARKERS)


def is_temporary(err: BaseException | None) -> bool:
    if err is None:
        return False
    if isinstance(err, DomainError):
        return err.is_temporary()
    return isinstance(err, (TimeoutError, ConnectionError))


def get_error_type(err: BaseException | None) -> str:
    """Return the type value of a domain error, else ``""``."""
    if isinstance(err, DomainError):
        return err.type
    return ""


def get_error_code(err: BaseException | None) -> str:
    if isinstance(err, DomainError):
        return err.code
    if err is None:
        return ""
    return codes.UNKNOWN_ERROR


def get_status_code(err: BaseException | None) -> int:
    if isinstance(err, DomainError):
        return err.status_code
    return DEFAULT_STATUS_CODE


def get_root_cause(err: BaseException | None) -> BaseException | None:
    """Return the innermost cause of ``err``.

    Domain errors follow ``unwrap()``; other exceptions follow ``__cause__``.
    When a domain chain ends without a foreign cause the innermost domain error
    is returned.
    """
    if err is None:
        return None
    seen: set[int] = set()
    current = err
    while True:
        if id(current) in seen:
            raise ErrorChainCycleError(message="cause chain contains a cycle")
        seen.add(id(current))
        parent = current.unwrap() if isinstance(current, DomainError) else current.__cause__
        if parent is None:
            return current
        current = parent


def format_error(err: BaseException | None) -> str:
    """Render ``err`` for logs; domain errors use ``detailed_string``."""
    if err is None:
        return ""
    if isinstance(err, DomainError):
        return err.detailed_string()
    return f"{type(err).__name__}: {err}"
