"""Redis and MongoDB error parsers."""

from __future__ import annotations

import re

from ..errors.types import Category, ErrorType, Severity
from .base import ParsedError, base_details, error_text

_REDIS_CODE_RE = re.compile(r"(ERR|WRONGTYPE|NOSCRIPT|BUSY|READONLY|NOAUTH|LOADING|MASTERDOWN|MISCONF)")
_REDIS_MARKERS = ("redis", "dial tcp", "connection pool")


class RedisErrorParser:
    """Classify Redis client and server reply errors.

    When text matches several cases the first one listed wins: timeout,
    connection, wrong type, auth, read-only, busy.
    """

    def can_parse(self, err: BaseException) -> bool:
        text = error_text(err)
        lowered = text.lower()
        if type(err).__module__.startswith("redis"):
            return True
        return any(marker in lowered for marker in _REDIS_MARKERS) or bool(_REDIS_CODE_RE.search(text))

    def parse(self, err: BaseException) -> ParsedError:
        text = error_text(err)
        lowered = text.lower()
        details = base_details(err)

        if "timeout" in lowered or "deadline" in lowered:
            code, kind, severity, retryable = "REDIS_TIMEOUT", "timeout", Severity.HIGH, True
        elif "connection refused" in lowered or "connection reset" in lowered:
            code, kind, severity, retryable = "REDIS_CONNECTION_ERROR", "connection", Severity.HIGH, True
        elif "WRONGTYPE" in text:
            code, kind, severity, retryable = "REDIS_WRONG_TYPE", "data_type", Severity.MEDIUM, False
        elif "NOAUTH" in text:
            code, kind, severity, retryable = "REDIS_AUTH_ERROR", "authentication", Severity.HIGH, False
        elif "READONLY" in text:
            code, kind, severity, retryable = "REDIS_READONLY", "readonly", Severity.MEDIUM, True
        elif "BUSY" in text:
            code, kind, severity, retryable = "REDIS_BUSY", "busy", Severity.MEDIUM, True
        else:
            code, kind, severity, retryable = "REDIS_UNKNOWN", "unknown", Severity.MEDIUM, False

        details["error_type"] = kind
        match = _REDIS_CODE_RE.search(text)
        if match:
            details["redis_error_code"] = match.group(0)
        return ParsedError(
            code=code,
            message=text,
            type=ErrorType.DATABASE,
            severity=severity,
            category=Category.TECHNICAL,
            details=details,
            retryable=retryable,
            temporary=retryable,
        )


_MONGO_CODE_RE = re.compile(r"\((\d+)\)")
_MONGO_MARKERS = ("mongo", "bson", "replica set", "oplog", "collection")

# code -> (parsed code, error_type detail, severity, retryable)
_MONGO_CODES: dict[str, tuple[str, str, Severity, bool]] = {
    "11000": ("MONGO_DUPLICATE_KEY", "duplicate_key", Severity.MEDIUM, False),
    "50": ("MONGO_TIMEOUT", "timeout", Severity.HIGH, True),
    "13": ("MONGO_UNAUTHORIZED", "authorization", Severity.HIGH, False),
    "18": ("MONGO_AUTH_FAILED", "authentication", Severity.HIGH, False),
}


def _mongo_code(err: BaseException, text: str) -> str | None:
    """Return the server error code from a pymongo error or ``(NNN)`` text."""
    if type(err).__module__.startswith("pymongo"):
        value = getattr(err, "code", None)
        if isinstance(value, int):
            return str(value)
    match = _MONGO_CODE_RE.search(text)
    if match:
        return match.group(1)
    return None


class MongoDBErrorParser:
    """Classify MongoDB failures by server code, else by message."""

    def can_parse(self, err: BaseException) -> bool:
        if type(err).__module__.startswith(("pymongo", "bson")):
            return True
        text = error_text(err)
        lowered = text.lower()
        return any(marker in lowered for marker in _MONGO_MARKERS) or bool(_MONGO_CODE_RE.search(text))

    def parse(self, err: BaseException) -> ParsedError:
        text = error_text(err)
        lowered = text.lower()
        details = base_details(err)
        server_code = _mongo_code(err, text)

        if server_code is not None:
            details["mongo_error_code"] = server_code
            known = _MONGO_CODES.get(server_code)
            if known is not None:
                code, kind, severity, retryable = known
                details["error_type"] = kind
            else:
                code, severity, retryable = f"MONGO_ERROR_{server_code}", Severity.MEDIUM, False
        elif "timeout" in lowered or "deadline" in lowered:
            code, severity, retryable = "MONGO_TIMEOUT", Severity.HIGH, True
        elif "connection" in lowered and "refused" in lowered:
            code, severity, retryable = "MONGO_CONNECTION_ERROR", Severity.HIGH, True
        elif "auth" in lowered:
            code, severity, retryable = "MONGO_AUTH_ERROR", Severity.HIGH, False
        elif "replica set" in lowered:
            code, severity, retryable = "MONGO_REPLICA_SET_ERROR", Severity.HIGH, True
        else:
            code, severity, retryable = "MONGO_UNKNOWN", Severity.MEDIUM, False

        return ParsedError(
            code=code,
            message=text,
            type=ErrorType.DATABASE,
            severity=severity,
            category=Category.TECHNICAL,
            details=details,
            retryable=retryable,
            temporary=retryable,
        )
