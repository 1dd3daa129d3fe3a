"""gRPC and HTTP status error parsers."""

from __future__ import annotations

import re

import grpc
import httpx

from ..errors.types import ErrorType
from .base import ParsedError, base_details, error_text

_GRPC_TEXT_RE = re.compile(r"rpc error: code = (\w+) desc = (.*)", re.DOTALL)
_GRPC_REPR_RE = re.compile(r"StatusCode\.([A-Z_]+)")
_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")

_GRPC_TYPES: dict[grpc.StatusCode, ErrorType] = {
    grpc.StatusCode.CANCELLED: ErrorType.GRPC,
    grpc.StatusCode.UNKNOWN: ErrorType.GRPC,
    grpc.StatusCode.INVALID_ARGUMENT: ErrorType.VALIDATION,
    grpc.StatusCode.DEADLINE_EXCEEDED: ErrorType.TIMEOUT,
    grpc.StatusCode.NOT_FOUND: ErrorType.NOT_FOUND,
    grpc.StatusCode.ALREADY_EXISTS: ErrorType.CONFLICT,
    grpc.StatusCode.PERMISSION_DENIED: ErrorType.AUTHORIZATION,
    grpc.StatusCode.RESOURCE_EXHAUSTED: ErrorType.RESOURCE_EXHAUSTED,
    grpc.StatusCode.FAILED_PRECONDITION: ErrorType.BUSINESS_RULE,
    grpc.StatusCode.ABORTED: ErrorType.CONFLICT,
    grpc.StatusCode.OUT_OF_RANGE: ErrorType.BAD_REQUEST,
    grpc.StatusCode.UNIMPLEMENTED: ErrorType.UNSUPPORTED,
    grpc.StatusCode.INTERNAL: ErrorType.INTERNAL,
    grpc.StatusCode.UNAVAILABLE: ErrorType.EXTERNAL_SERVICE,
    grpc.StatusCode.DATA_LOSS: ErrorType.INTERNAL,
    grpc.StatusCode.UNAUTHENTICATED: ErrorType.AUTHENTICATION,
}

_GRPC_RETRYABLE: frozenset[grpc.StatusCode] = frozenset(
    {
        grpc.StatusCode.UNAVAILABLE,
        grpc.StatusCode.DEADLINE_EXCEEDED,
        grpc.StatusCode.RESOURCE_EXHAUSTED,
        grpc.StatusCode.ABORTED,
    }
)


def _status_from_name(name: str) -> grpc.StatusCode | None:
    """Resolve ``UNAVAILABLE`` or ``DeadlineExceeded`` style names."""
    key = name if name.isupper() else _CAMEL_RE.sub("_", name).upper()
    try:
        return grpc.StatusCode[key]
    except KeyError:
        return None


def _grpc_status(err: BaseException) -> tuple[grpc.StatusCode | None, str | None]:
    """Return ``(status, description)`` for a call error or its rendered text."""
    if isinstance(err, grpc.RpcError) and callable(getattr(err, "code", None)):
        status = err.code()
        description = err.details() if callable(getattr(err, "details", None)) else None
        return status, description
    text = error_text(err)
    match = _GRPC_TEXT_RE.search(text)
    if match:
        return _status_from_name(match.group(1)), match.group(2).strip()
    match = _GRPC_REPR_RE.search(text)
    if match:
        return _status_from_name(match.group(1)), None
    return None, None


class GRPCErrorParser:
    """Classify gRPC call failures by status code."""

    def can_parse(self, err: BaseException) -> bool:
        if isinstance(err, grpc.RpcError):
            return True
        text = error_text(err)
        return bool(_GRPC_TEXT_RE.search(text) or _GRPC_REPR_RE.search(text))

    def parse(self, err: BaseException) -> ParsedError:
        details = base_details(err)
        status, description = _grpc_status(err)
        if status is None or status == grpc.StatusCode.OK:
            return ParsedError(
                code="GRPC_UNKNOWN",
                message=description or "gRPC error",
                type=ErrorType.GRPC,
                details=details,
            )
        details["grpc_status"] = status.name
        error_type = _GRPC_TYPES.get(status, ErrorType.GRPC)
        retryable = status in _GRPC_RETRYABLE
        return ParsedError(
            code=f"GRPC_{status.name}",
            message=description or f"gRPC call failed: {status.name}",
            type=error_type,
            severity=error_type.default_severity,
            details=details,
            retryable=retryable,
            temporary=retryable,
        )


_HTTP_TEXT_RE = re.compile(r"\b(?:status(?: code)?|HTTP(?:/\d(?:\.\d)?)?)[\s:=]*([1-5]\d{2})\b", re.IGNORECASE)

_HTTP_TYPES: dict[int, ErrorType] = {
    400: ErrorType.BAD_REQUEST,
    401: ErrorType.AUTHENTICATION,
    403: ErrorType.AUTHORIZATION,
    404: ErrorType.NOT_FOUND,
    405: ErrorType.UNSUPPORTED,
    408: ErrorType.TIMEOUT,
    409: ErrorType.CONFLICT,
    415: ErrorType.UNSUPPORTED,
    422: ErrorType.UNPROCESSABLE,
    429: ErrorType.RATE_LIMIT,
    500: ErrorType.INTERNAL,
    501: ErrorType.UNSUPPORTED,
    502: ErrorType.EXTERNAL_SERVICE,
    503: ErrorType.EXTERNAL_SERVICE,
    504: ErrorType.TIMEOUT,
}

_HTTP_RETRYABLE = frozenset({408, 429, 502, 503, 504})


def _http_type(status: int) -> ErrorType:
    if status in _HTTP_TYPES:
        return _HTTP_TYPES[status]
    if 400 <= status < 500:
        return ErrorType.BAD_REQUEST
    if status >= 500:
        return ErrorType.EXTERNAL_SERVICE
    return ErrorType.HTTP


class HTTPErrorParser:
    """Classify HTTP status failures from httpx or rendered text."""

    def can_parse(self, err: BaseException) -> bool:
        if isinstance(err, httpx.HTTPStatusError):
            return True
        return bool(_HTTP_TEXT_RE.search(error_text(err)))

    def parse(self, err: BaseException) -> ParsedError:
        details = base_details(err)
        status: int | None = None
        if isinstance(err, httpx.HTTPStatusError):
            status = err.response.status_code
            details["url"] = str(err.request.url)
            retry_after = err.response.headers.get("retry-after")
            if retry_after:
                details["retry_after"] = retry_after
        else:
            match = _HTTP_TEXT_RE.search(error_text(err))
            if match:
                status = int(match.group(1))
        if status is None:
            return ParsedError(code="HTTP_UNKNOWN", message="HTTP error", type=ErrorType.HTTP, details=details)

        details["status_code"] = status
        error_type = _http_type(status)
        retryable = status in _HTTP_RETRYABLE
        return ParsedError(
            code=f"HTTP_{status}",
            message=f"HTTP {status} response",
            type=error_type,
            severity=error_type.default_severity,
            details=details,
            retryable=retryable,
            temporary=retryable,
        )
