"""Parser for Python's own exception hierarchy.

Matches only on exception type, never on message text, so in the registry it
ranks above the keyword-driven NoSQL, cloud and generic SQL parsers.
"""

from __future__ import annotations

import json

import pydantic

from ..errors.types import ErrorType, Severity
from .base import ParsedError, base_details, error_text

# Checked in order; subclasses before their bases.
_BUILTIN_RULES: tuple[tuple[type[BaseException] | tuple[type[BaseException], ...], str, ErrorType, str], ...] = (
    ((json.JSONDecodeError, UnicodeError), "PY_DECODE_ERROR", ErrorType.SERIALIZATION, "Malformed input"),
    (ValueError, "PY_VALUE_ERROR", ErrorType.VALIDATION, "Invalid value"),
    (TypeError, "PY_TYPE_ERROR", ErrorType.BAD_REQUEST, "Invalid argument type"),
    ((LookupError, FileNotFoundError), "PY_NOT_FOUND", ErrorType.NOT_FOUND, "Resource not found"),
    (PermissionError, "PY_PERMISSION_DENIED", ErrorType.AUTHORIZATION, "Permission denied"),
    (NotImplementedError, "PY_NOT_IMPLEMENTED", ErrorType.UNSUPPORTED, "Operation not supported"),
    (MemoryError, "PY_MEMORY_ERROR", ErrorType.RESOURCE_EXHAUSTED, "Out of memory"),
)

_HANDLED = tuple(
    exc_type
    for rule in _BUILTIN_RULES
    for exc_type in (rule[0] if isinstance(rule[0], tuple) else (rule[0],))
)


def _validation_fields(err: pydantic.ValidationError) -> dict[str, list[str]]:
    """Group pydantic error messages by dotted field location."""
    grouped: dict[str, list[str]] = {}
    for item in err.errors():
        location = ".".join(str(part) for part in item.get("loc", ())) or "__root__"
        grouped.setdefault(location, []).append(str(item.get("msg", "")))
    return grouped


class BuiltinErrorParser:
    """Classify plain Python exceptions into ``PY_*`` codes."""

    def can_parse(self, err: BaseException) -> bool:
        return isinstance(err, _HANDLED)

    def parse(self, err: BaseException) -> ParsedError:
        details = base_details(err, exception_type=type(err).__name__)
        if isinstance(err, pydantic.ValidationError):
            details["fields"] = _validation_fields(err)
            return ParsedError(
                code="PY_VALIDATION_ERROR",
                message=f"{err.error_count()} validation error(s) for {err.title}",
                type=ErrorType.VALIDATION,
                details=details,
            )
        for exc_types, code, error_type, fallback in _BUILTIN_RULES:
            if isinstance(err, exc_types):
                return ParsedError(
                    code=code,
                    message=str(err) or fallback,
                    type=error_type,
                    severity=error_type.default_severity,
                    details=details,
                    retryable=error_type.is_retryable,
                    temporary=error_type.is_temporary,
                )
        return ParsedError(
            code="PY_UNKNOWN",
            message=error_text(err),
            type=ErrorType.INTERNAL,
            severity=Severity.MEDIUM,
            details=details,
        )
