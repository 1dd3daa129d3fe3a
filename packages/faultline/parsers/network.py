"""Timeout and network error parsers."""

from __future__ import annotations

import errno
import socket

import httpx

from ..errors.types import ErrorType, Severity
from .base import ParsedError, base_details, error_text, find_in_chain

_TIMEOUT_TYPES = (TimeoutError, httpx.TimeoutException)
_TIMEOUT_MARKERS = ("timeout", "timed out", "deadline exceeded", "context deadline")

# Checked in order; the first match names the timeout.
_TIMEOUT_KINDS: tuple[tuple[str, type[BaseException] | None, str, str], ...] = (
    ("context deadline", None, "context_deadline", "Context deadline exceeded"),
    ("connection timeout", httpx.ConnectTimeout, "connection", "Connection timeout"),
    ("read timeout", httpx.ReadTimeout, "read", "Read timeout"),
    ("write timeout", httpx.WriteTimeout, "write", "Write timeout"),
    ("pool timeout", httpx.PoolTimeout, "pool", "Connection pool timeout"),
)


class TimeoutErrorParser:
    """Classify timeouts from the runtime, sockets, httpx and free text."""

    def can_parse(self, err: BaseException) -> bool:
        if find_in_chain(err, _TIMEOUT_TYPES) is not None:
            return True
        text = error_text(err).lower()
        return any(marker in text for marker in _TIMEOUT_MARKERS)

    def parse(self, err: BaseException) -> ParsedError:
        text = error_text(err).lower()
        details = base_details(err)
        message = "Operation timeout"
        for marker, exc_type, kind, label in _TIMEOUT_KINDS:
            if marker in text or (exc_type is not None and find_in_chain(err, exc_type) is not None):
                details["timeout_type"] = kind
                message = label
                break
        return ParsedError(
            code="TIMEOUT_ERROR",
            message=message,
            type=ErrorType.TIMEOUT,
            severity=Severity.HIGH,
            details=details,
            retryable=True,
            temporary=True,
        )


_NETWORK_ERRNOS = frozenset(
    {
        errno.ECONNREFUSED,
        errno.ECONNRESET,
        errno.ECONNABORTED,
        errno.ETIMEDOUT,
        errno.ENETUNREACH,
        errno.EHOSTUNREACH,
        errno.EPIPE,
    }
)
_ADDRESS_ERRNOS = frozenset({errno.EADDRINUSE, errno.EADDRNOTAVAIL})
_DNS_NOT_FOUND = frozenset(
    value for value in (getattr(socket, "EAI_NONAME", None), getattr(socket, "EAI_NODATA", None)) if value is not None
)
_NETWORK_MARKERS = ("connection refused", "timeout", "network", "dns")


def _request_url(err: httpx.HTTPError) -> str | None:
    """Return the request URL of an httpx error when one is attached."""
    try:
        return str(err.request.url)
    except RuntimeError:
        return None


class NetworkErrorParser:
    """Classify socket, DNS, address and HTTP transport failures."""

    def can_parse(self, err: BaseException) -> bool:
        if isinstance(err, (ConnectionError, socket.gaierror, socket.herror, httpx.TransportError, httpx.InvalidURL)):
            return True
        if isinstance(err, OSError) and err.errno in _NETWORK_ERRNOS | _ADDRESS_ERRNOS:
            return True
        text = error_text(err).lower()
        return any(marker in text for marker in _NETWORK_MARKERS)

    def parse(self, err: BaseException) -> ParsedError:
        details = base_details(err)
        code = "NET_UNKNOWN"
        message = "Network error"
        retryable = True

        if isinstance(err, (socket.gaierror, socket.herror)):
            code = "NET_DNS_ERROR"
            message = f"DNS resolution failed: {err.strerror or error_text(err)}"
            details["errno"] = err.errno
            retryable = err.errno not in _DNS_NOT_FOUND
        elif isinstance(err, (httpx.InvalidURL, httpx.UnsupportedProtocol)):
            code = "NET_URL_ERROR"
            message = f"URL error: {error_text(err)}"
            retryable = False
        elif isinstance(err, OSError) and err.errno in _ADDRESS_ERRNOS:
            code = "NET_ADDR_ERROR"
            message = f"Address error: {err.strerror or error_text(err)}"
            details["errno"] = err.errno
            retryable = False
        elif isinstance(err, httpx.TransportError):
            code = "NET_OP_ERROR"
            message = f"Network operation failed: {type(err).__name__}"
            details["operation"] = type(err).__name__
            url = _request_url(err)
            if url is not None:
                details["url"] = url
        elif isinstance(err, OSError) and (isinstance(err, ConnectionError) or err.errno in _NETWORK_ERRNOS):
            code = "NET_OP_ERROR"
            message = f"Network operation failed: {err.strerror or type(err).__name__}"
            details["operation"] = type(err).__name__
            if err.errno is not None:
                details["errno"] = err.errno

        return ParsedError(
            code=code,
            message=message,
            type=ErrorType.NETWORK,
            severity=Severity.HIGH,
            details=details,
            retryable=retryable,
            temporary=retryable,
        )
