"""Fluent builder for domain errors."""

from __future__ import annotations

import copy
from datetime import datetime
from typing import Any, Iterable, Mapping

from . import codes
from .domain_error import DomainError, capture_stack, ensure_acyclic, utc_now
from .types import Category, ErrorType, Severity


class ErrorBuilder:
    """Accumulate domain error fields and produce a ``DomainError``.

    A builder is a per-call scratch object and is not shared between threads.
    Every ``with_*`` method returns the builder itself.
    """

    def __init__(self, *, code: str = codes.DEFAULT_CODE, capture_stack: bool = False) -> None:
        self._default_code = code
        self._capture_default = capture_stack
        self.reset()

    def reset(self) -> ErrorBuilder:
        """Clear every accumulated field."""
        self._code = self._default_code
        self._message = ""
        self._error_type: ErrorType | None = None
        self._severity: Severity | None = None
        self._category: Category | None = None
        self._details: dict[str, Any] = {}
        self._metadata: dict[str, Any] = {}
        self._tags: list[str] = []
        self._headers: dict[str, str] = {}
        self._status: int | None = None
        self._cause: BaseException | None = None
        self._retryable: bool | None = None
        self._temporary: bool | None = None
        self._timestamp: datetime | None = None
        self._capture_stack = self._capture_default
        return self

    def with_code(self, code: str) -> ErrorBuilder:
        self._code = code
        return self

    def with_message(self, message: str) -> ErrorBuilder:
        self._message = message
        return self

    def with_message_format(self, template: str, *args: Any, **kwargs: Any) -> ErrorBuilder:
        """Set the message from a ``str.format`` template."""
        self._message = template.format(*args, **kwargs)
        return self

    def with_type(self, error_type: ErrorType | str) -> ErrorBuilder:
        self._error_type = ErrorType.coerce(error_type)
        return self

    def with_severity(self, severity: Severity | int | str) -> ErrorBuilder:
        self._severity = Severity.parse(severity)
        return self

    def with_category(self, category: Category | str) -> ErrorBuilder:
        self._category = Category(category)
        return self

    def with_detail(self, key: str, value: Any) -> ErrorBuilder:
        self._details[key] = value
        return self

    def with_details(self, details: Mapping[str, Any]) -> ErrorBuilder:
        self._details.update(details)
        return self

    def with_metadata(self, metadata: Mapping[str, Any]) -> ErrorBuilder:
        self._metadata.update(metadata)
        return self

    def with_metadata_entry(self, key: str, value: Any) -> ErrorBuilder:
        self._metadata[key] = value
        return self

    def with_tag(self, tag: str) -> ErrorBuilder:
        self._tags.append(tag)
        return self

    def with_tags(self, tags: Iterable[str]) -> ErrorBuilder:
        self._tags.extend(tags)
        return self

    def with_header(self, name: str, value: str) -> ErrorBuilder:
        self._headers[name] = value
        return self

    def with_headers(self, headers: Mapping[str, str]) -> ErrorBuilder:
        self._headers.update(headers)
        return self

    def with_status_code(self, status: int) -> ErrorBuilder:
        """Set an explicit status; range is checked by ``build``."""
        self._status = status
        return self

    def with_cause(self, cause: BaseException | None) -> ErrorBuilder:
        self._cause = cause
        return self

    def with_retryable(self, retryable: bool) -> ErrorBuilder:
        self._retryable = retryable
        return self

    def with_temporary(self, temporary: bool) -> ErrorBuilder:
        self._temporary = temporary
        return self

    def with_timestamp(self, timestamp: datetime) -> ErrorBuilder:
        self._timestamp = timestamp
        return self

    def with_stack_trace(self, enabled: bool = True) -> ErrorBuilder:
        """Toggle capture of the build call site."""
        self._capture_stack = enabled
        return self

    def clone(self) -> ErrorBuilder:
        """Return an independent builder with the same accumulated state."""
        other = copy.copy(self)
        other._details = dict(self._details)
        other._metadata = dict(self._metadata)
        other._tags = list(self._tags)
        other._headers = dict(self._headers)
        return other

    def build(self) -> DomainError:
        """Produce the error.

        Raises ``ValueError`` for a status outside 100..599 and
        ``ErrorChainCycleError`` when the cause chain loops.
        """
        ensure_acyclic(self._cause)
        stack = capture_stack() if self._capture_stack else ()
        return DomainError(
            code=self._code or codes.DEFAULT_CODE,
            message=self._message,
            error_type=self._error_type,
            severity=self._severity,
            category=self._category,
            details=self._details,
            metadata=self._metadata,
            tags=tuple(self._tags),
            headers=self._headers,
            status=self._status,
            cause=self._cause,
            retryable=self._retryable,
            temporary=self._temporary,
            timestamp=self._timestamp or utc_now(),
            stack=stack,
        )
