"""Domain error value type.

A ``DomainError`` is a frozen value: ``wrap``, ``chain``, ``with_status_code``,
``with_context`` and ``clone`` return new instances and never share mutable
payloads with the original. Mappings are copied into read-only views at
construction time.
"""

from __future__ import annotations

import json
import os
import traceback
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from ..logging import fields as log_fields
from ..logging.context import correlation_ids
from .exceptions import ErrorChainCycleError, init_kwargs, raisable, rebuild_exception
from .serialization import ErrorRecord, jsonable
from .types import DEFAULT_STATUS_CODE, Category, ErrorType, Severity

DEFAULT_MESSAGE = "An unexpected error occurred"
STACK_DEPTH = 16

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


@dataclass(frozen=True)
class StackFrame:
    """One captured call-site frame."""

    function: str
    file: str
    line: int
    message: str = ""

    def __str__(self) -> str:
        location = f"{self.function} ({self.file}:{self.line})"
        if self.message:
            return f"{location}: {self.message}"
        return location


def utc_now() -> datetime:
    """Return the current UTC time."""
    return datetime.now(timezone.utc)


def capture_stack(message: str = "", *, limit: int = STACK_DEPTH) -> tuple[StackFrame, ...]:
    """Capture caller frames outside this package, innermost first.

    ``message`` labels the innermost frame.
    """
    captured: list[StackFrame] = []
    for summary in reversed(traceback.extract_stack()):
        if summary.filename.startswith(_PACKAGE_DIR):
            continue
        captured.append(
            StackFrame(
                function=summary.name,
                file=os.path.basename(summary.filename),
                line=summary.lineno or 0,
                message=message if not captured else "",
            )
        )
        if len(captured) >= limit:
            break
    return tuple(captured)


@raisable
@dataclass(frozen=True, eq=False)
class DomainError(Exception):
    """Structured, classified application failure.

    ``severity`` and ``category`` default from ``error_type`` when omitted.
    ``status``, ``retryable`` and ``temporary`` are explicit overrides; the
    effective values are exposed by ``status_code``, ``is_retryable()`` and
    ``is_temporary()``.
    """

    code: str
    message: str
    error_type: ErrorType | None = None
    severity: Severity | None = None
    category: Category | None = None
    details: Mapping[str, Any] = field(default_factory=dict)
    metadata: Mapping[str, Any] = field(default_factory=dict, repr=False)
    tags: tuple[str, ...] = ()
    headers: Mapping[str, str] = field(default_factory=dict, repr=False)
    status: int | None = None
    cause: BaseException | None = None
    chained: tuple[BaseException, ...] = ()
    retryable: bool | None = None
    temporary: bool | None = None
    timestamp: datetime = field(default_factory=utc_now, repr=False)
    stack: tuple[StackFrame, ...] = field(default=(), repr=False)

    def __post_init__(self) -> None:
        error_type = ErrorType.coerce(self.error_type)
        if self.status is not None and not 100 <= self.status <= 599:
            raise ValueError(f"invalid status code: {self.status}")
        severity = self.severity
        if severity is None:
            severity = error_type.default_severity if error_type else Severity.MEDIUM
        category = self.category
        if category is None and error_type is not None:
            category = error_type.default_category

        _set = object.__setattr__
        _set(self, "error_type", error_type)
        _set(self, "message", self.message or DEFAULT_MESSAGE)
        _set(self, "severity", Severity.parse(severity))
        _set(self, "category", Category(category) if category is not None else None)
        _set(self, "details", MappingProxyType(dict(self.details)))
        _set(self, "metadata", MappingProxyType(dict(self.metadata)))
        _set(self, "headers", MappingProxyType(dict(self.headers)))
        _set(self, "tags", tuple(dict.fromkeys(self.tags)))
        _set(self, "chained", tuple(self.chained))
        _set(self, "stack", tuple(self.stack))
        if isinstance(self.cause, BaseException):
            _set(self, "__cause__", self.cause)

    def __str__(self) -> str:
        rendered = f"[{self.code}] {self.message}"
        if self.cause is not None:
            rendered += f": {self.cause}"
        for other in self.chained:
            rendered += f"; {other}"
        return rendered

    @property
    def type(self) -> str:
        """Return the error type value, or ``""`` when untyped."""
        return self.error_type.value if self.error_type is not None else ""

    @property
    def status_code(self) -> int:
        """Return the explicit status, else the type default, else 500."""
        if self.status is not None:
            return self.status
        if self.error_type is not None:
            return self.error_type.default_status_code
        return DEFAULT_STATUS_CODE

    def unwrap(self) -> BaseException | None:
        """Return the single parent cause."""
        return self.cause

    def is_retryable(self) -> bool:
        """Return the explicit retry flag, else the type policy."""
        if self.retryable is not None:
            return self.retryable
        return self.error_type is not None and self.error_type.is_retryable

    def is_temporary(self) -> bool:
        """Return the explicit temporary flag, else the type policy."""
        if self.temporary is not None:
            return self.temporary
        return self.error_type is not None and self.error_type.is_temporary

    def root_cause(self) -> BaseException | None:
        """Follow ``unwrap()`` to the first cause that is not a domain error.

        Returns ``None`` when the chain ends in a domain error without a cause.
        Raises ``ErrorChainCycleError`` when the chain loops.
        """
        seen = {id(self)}
        current = self.cause
        while isinstance(current, DomainError):
            if id(current) in seen:
                raise ErrorChainCycleError(message=f"cause chain of [{self.code}] contains a cycle")
            seen.add(id(current))
            current = current.cause
        return current

    def wrap(self, message: str, err: BaseException | None) -> DomainError:
        """Return a copy whose cause is ``err``.

        The previous cause moves to the lateral chain. Details, metadata, tags
        and headers missing here are inherited from a wrapped domain error.
        """
        if err is None:
            return self
        chained = self.chained
        if self.cause is not None:
            chained = chained + (self.cause,)
        details = dict(self.details)
        metadata = dict(self.metadata)
        headers = dict(self.headers)
        tags = self.tags
        if isinstance(err, DomainError):
            details = {**err.details, **details}
            metadata = {**err.metadata, **metadata}
            headers = {**err.headers, **headers}
            tags = tags + err.tags
        frame = capture_stack(message, limit=1)
        return self._derive(
            cause=err,
            chained=chained,
            details=details,
            metadata=metadata,
            headers=headers,
            tags=tags,
            stack=self.stack + frame,
        )

    def chain(self, err: BaseException | None) -> DomainError:
        """Return a copy with ``err`` appended to the lateral chain."""
        if err is None:
            return self
        frame = capture_stack(f"chained: {err}", limit=1)
        return self._derive(chained=self.chained + (err,), stack=self.stack + frame)

    def with_status_code(self, status: int) -> DomainError:
        """Return a copy with an explicit protocol status."""
        return self._derive(status=status)

    def with_context(
        self,
        *,
        request_id: str | None = None,
        trace_id: str | None = None,
        user_id: str | None = None,
    ) -> DomainError:
        """Return a copy carrying correlation ids in ``metadata``.

        Ids not passed explicitly are read from the bound logging context.
        """
        bound = correlation_ids()
        metadata = dict(self.metadata)
        for key, value in (
            (log_fields.REQUEST_ID, request_id),
            (log_fields.TRACE_ID, trace_id),
            (log_fields.USER_ID, user_id),
        ):
            resolved = value if value is not None else bound.get(key)
            if resolved:
                metadata[key] = resolved
        return self._derive(metadata=metadata)

    def clone(self) -> DomainError:
        """Return an independent copy with the same content."""
        return self._derive()

    def _derive(self, **changes: Any) -> DomainError:
        """Build a new instance of the same class with ``changes`` applied."""
        return replace(self, **changes)

    def _init_kwargs(self) -> dict[str, Any]:
        kwargs = init_kwargs(self)
        for name in ("details", "metadata", "headers"):
            kwargs[name] = dict(kwargs[name])
        return kwargs

    def __reduce__(self) -> tuple[Any, ...]:
        return rebuild_exception, (type(self), self._init_kwargs())

    def to_record(self) -> ErrorRecord:
        """Return the structured record form."""
        return ErrorRecord(
            code=self.code,
            message=self.message,
            type=self.type,
            severity=self.severity.label,
            category=self.category.value if self.category is not None else None,
            details=dict(self.details),
            tags=list(self.tags),
            timestamp=self.timestamp,
            status_code=self.status_code,
            retryable=self.is_retryable(),
            temporary=self.is_temporary(),
            cause=str(self.cause) if self.cause is not None else None,
        )

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-compatible dict. Metadata and headers stay internal."""
        return self.to_record().model_dump(mode="json", exclude_none=True)

    def to_json(self) -> str:
        """Render the error as a JSON document."""
        return json.dumps(self.to_dict())

    def response_body(self) -> dict[str, Any]:
        """Return the payload transport adapters send to clients."""
        return self.to_dict()

    @classmethod
    def from_record(cls, record: ErrorRecord) -> DomainError:
        """Rebuild an error from its record form. The cause is not restored."""
        return cls(
            code=record.code,
            message=record.message,
            error_type=ErrorType.coerce(record.type) if ErrorType.is_valid(record.type) else None,
            severity=Severity.parse(record.severity),
            category=Category(record.category) if record.category else None,
            details=record.details,
            tags=tuple(record.tags),
            status=record.status_code,
            retryable=record.retryable,
            temporary=record.temporary,
            timestamp=record.timestamp,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> DomainError:
        """Parse a document produced by ``to_json``."""
        return cls.from_record(ErrorRecord.model_validate_json(raw))

    def format_stack_trace(self) -> str:
        """Render captured frames, one per line."""
        return "\n".join(f"  at {frame}" for frame in self.stack)

    def detailed_string(self) -> str:
        """Render a multi-line diagnostic description."""
        lines = [
            f"Error: {self.code}",
            f"Message: {self.message}",
            f"Type: {self.type or '-'}",
            f"Severity: {self.severity.label}",
        ]
        if self.category is not None:
            lines.append(f"Category: {self.category.value}")
        lines.append(f"Status: {self.status_code}")
        lines.append(f"Timestamp: {self.timestamp.isoformat()}")
        if self.tags:
            lines.append(f"Tags: {', '.join(self.tags)}")
        if self.details:
            lines.append(f"Details: {json.dumps(jsonable(self.details), sort_keys=True)}")
        if self.cause is not None:
            lines.append(f"Cause: {self.cause}")
        for index, other in enumerate(self.chained, start=1):
            lines.append(f"Chained[{index}]: {other}")
        if self.stack:
            lines.append("Stack:")
            lines.append(self.format_stack_trace())
        return "\n".join(lines)


def ensure_acyclic(cause: BaseException | None) -> None:
    """Raise ``ErrorChainCycleError`` when ``cause`` leads back to itself."""
    seen: set[int] = set()
    current = cause
    while current is not None:
        if id(current) in seen:
            raise ErrorChainCycleError(message="cause chain contains a cycle")
        seen.add(id(current))
        if isinstance(current, DomainError):
            current = current.cause
        else:
            current = current.__cause__


def merge_tags(*groups: Iterable[str]) -> tuple[str, ...]:
    """Concatenate tag groups, dropping duplicates and blanks."""
    merged: dict[str, None] = {}
    for group in groups:
        for tag in group:
            if tag:
                merged[tag] = None
    return tuple(merged)
