"""AWS error parser."""

from __future__ import annotations

import builtins
import re
from typing import Any, Mapping

from ..errors.types import Category, ErrorType, Severity
from .base import ParsedError, base_details, error_text

_AWS_CODE_RE = re.compile(r"([A-Z][a-zA-Z]+Exception|[A-Z][a-zA-Z]+Error)")
_REQUEST_ID_RE = re.compile(r"RequestId:\s*([a-f0-9\-]+)")
_THROTTLING_RE = re.compile(r"(Throttling|TooManyRequests|RequestLimitExceeded)")
_AWS_MARKERS = ("aws", "s3", "dynamodb", "lambda", "requestid", "throttling")


def _client_error(err: BaseException) -> tuple[str | None, str | None]:
    """Return ``(code, request_id)`` from a botocore-style ``response`` dict."""
    response = getattr(err, "response", None)
    if not isinstance(response, Mapping):
        return None, None
    error: Mapping[str, Any] = response.get("Error") or {}
    metadata: Mapping[str, Any] = response.get("ResponseMetadata") or {}
    code = error.get("Code")
    request_id = metadata.get("RequestId")
    return (str(code) if code else None), (str(request_id) if request_id else None)


def _code_from_text(text: str) -> str | None:
    """Return the first exception-like identifier that is not a Python builtin."""
    for match in _AWS_CODE_RE.finditer(text):
        name = match.group(0)
        if not hasattr(builtins, name):
            return name
    return None


def _severity(code: str) -> Severity:
    lowered = code.lower()
    if "internal" in lowered or "service" in lowered:
        return Severity.CRITICAL
    if "throttl" in lowered or "limit" in lowered:
        return Severity.HIGH
    return Severity.MEDIUM


def _is_retryable(code: str) -> bool:
    lowered = code.lower()
    return any(marker in lowered for marker in ("throttl", "internal", "service", "timeout"))


def _is_temporary(code: str) -> bool:
    lowered = code.lower()
    return any(marker in lowered for marker in ("throttl", "timeout", "busy"))


class AWSErrorParser:
    """Classify AWS SDK and service errors."""

    def can_parse(self, err: BaseException) -> bool:
        if _client_error(err)[0] is not None:
            return True
        text = error_text(err)
        lowered = text.lower()
        return any(marker in lowered for marker in _AWS_MARKERS) or _code_from_text(text) is not None

    def parse(self, err: BaseException) -> ParsedError:
        text = error_text(err)
        details = base_details(err)
        aws_code, request_id = _client_error(err)
        aws_code = aws_code or _code_from_text(text)

        if aws_code is not None:
            code = f"AWS_{aws_code.upper()}"
            details["aws_error_code"] = aws_code
            severity = _severity(aws_code)
            retryable = _is_retryable(aws_code)
            temporary = _is_temporary(aws_code)
        else:
            code, severity, retryable, temporary = "AWS_UNKNOWN", Severity.MEDIUM, False, False

        if request_id is None:
            match = _REQUEST_ID_RE.search(text)
            request_id = match.group(1) if match else None
        if request_id is not None:
            details["request_id"] = request_id

        if _THROTTLING_RE.search(text) or (aws_code and _THROTTLING_RE.search(aws_code)):
            details["throttled"] = True
            severity, retryable, temporary = Severity.HIGH, True, True

        return ParsedError(
            code=code,
            message=text,
            type=ErrorType.CLOUD,
            severity=severity,
            category=Category.INFRASTRUCTURE,
            details=details,
            retryable=retryable,
            temporary=temporary,
        )
