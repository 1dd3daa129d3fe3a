"""Registry of declared error codes and their message templates."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from . import codes
from .domain_error import DomainError
from .exceptions import ErrorCodeExistsError, ErrorCodeNotFoundError, InvalidErrorCodeInfoError
from .factories import ErrorFactory
from .types import Category, ErrorType, Severity

COMMON_TAG = "common"


@dataclass(frozen=True)
class ErrorCodeInfo:
    """Declaration of one error code.

    ``message`` is a ``str.format`` template rendered by
    ``ErrorCodeRegistry.create_error``.
    """

    code: str
    message: str
    type: ErrorType | str | None = None
    status_code: int = 500
    severity: Severity = Severity.MEDIUM
    category: Category | None = None
    retryable: bool = False
    temporary: bool = False
    tags: tuple[str, ...] = ()
    description: str = ""
    examples: tuple[str, ...] = ()


_COMMON_CODES: tuple[tuple[str, ErrorType, str, Severity, bool], ...] = (
    (codes.VALIDATION_FAILED, ErrorType.VALIDATION, "Validation failed", Severity.LOW, False),
    (codes.NOT_FOUND, ErrorType.NOT_FOUND, "Resource not found", Severity.LOW, False),
    (codes.ALREADY_EXISTS, ErrorType.CONFLICT, "Resource already exists", Severity.LOW, False),
    (codes.BUSINESS_RULE_VIOLATION, ErrorType.BUSINESS_RULE, "Business rule violation", Severity.MEDIUM, False),
    (codes.AUTHENTICATION_FAILED, ErrorType.AUTHENTICATION, "Authentication failed", Severity.MEDIUM, False),
    (codes.ACCESS_DENIED, ErrorType.AUTHORIZATION, "Access denied", Severity.MEDIUM, False),
    (codes.INTERNAL_ERROR, ErrorType.INTERNAL, "Internal server error", Severity.CRITICAL, False),
    (codes.EXTERNAL_SERVICE_UNAVAILABLE, ErrorType.EXTERNAL_SERVICE, "External service unavailable", Severity.HIGH, True),
    (codes.REQUEST_TIMEOUT, ErrorType.TIMEOUT, "Request timeout", Severity.HIGH, True),
    (codes.RATE_LIMIT_EXCEEDED, ErrorType.RATE_LIMIT, "Rate limit exceeded", Severity.HIGH, True),
    (codes.DATABASE_ERROR, ErrorType.DATABASE, "Database error", Severity.CRITICAL, False),
    (codes.CONFIGURATION_ERROR, ErrorType.CONFIGURATION, "Configuration error", Severity.CRITICAL, False),
    (codes.CIRCUIT_BREAKER_OPEN, ErrorType.CIRCUIT_BREAKER, "Circuit breaker open", Severity.HIGH, True),
    (codes.RESOURCE_EXHAUSTED, ErrorType.RESOURCE_EXHAUSTED, "Resource exhausted", Severity.HIGH, True),
    (codes.OPERATION_NOT_SUPPORTED, ErrorType.UNSUPPORTED, "Operation not supported", Severity.LOW, False),
)


def common_codes() -> list[ErrorCodeInfo]:
    """Return declarations for the pre-registered ``E0xx`` family."""
    return [
        ErrorCodeInfo(
            code=code,
            message=message,
            type=error_type,
            status_code=error_type.default_status_code,
            severity=severity,
            retryable=retryable,
            tags=(COMMON_TAG,),
            description=f"Common error code: {message}",
        )
        for code, error_type, message, severity, retryable in _COMMON_CODES
    ]


def validate_info(info: ErrorCodeInfo) -> None:
    """Raise ``InvalidErrorCodeInfoError`` when ``info`` breaks an invariant."""
    if not info.code:
        raise InvalidErrorCodeInfoError(message="code cannot be empty")
    if not info.message:
        raise InvalidErrorCodeInfoError(message="message cannot be empty", code=info.code)
    if not 100 <= info.status_code <= 599:
        raise InvalidErrorCodeInfoError(
            message=f"invalid status code {info.status_code} for {info.code}",
            code=info.code,
        )
    if info.type and not ErrorType.is_valid(info.type):
        raise InvalidErrorCodeInfoError(message=f"invalid error type {info.type!r} for {info.code}", code=info.code)


class ErrorCodeRegistry:
    """Thread-safe table of ``ErrorCodeInfo`` keyed by code."""

    def __init__(self, *, factory: ErrorFactory | None = None, include_common: bool = True) -> None:
        self._factory = factory or ErrorFactory()
        self._codes: dict[str, ErrorCodeInfo] = {}
        self._lock = threading.RLock()
        if include_common:
            self.register_many(common_codes())

    def register(self, info: ErrorCodeInfo) -> None:
        """Add ``info``; the code must not already be registered."""
        validate_info(info)
        with self._lock:
            if info.code in self._codes:
                raise ErrorCodeExistsError(message=f"error code already exists: {info.code}", code=info.code)
            self._codes[info.code] = info

    def register_many(self, infos: Iterable[ErrorCodeInfo]) -> None:
        """Add several declarations; nothing is added when any one fails."""
        pending = list(infos)
        seen: set[str] = set()
        with self._lock:
            for info in pending:
                validate_info(info)
                if info.code in self._codes or info.code in seen:
                    raise ErrorCodeExistsError(message=f"error code already exists: {info.code}", code=info.code)
                seen.add(info.code)
            for info in pending:
                self._codes[info.code] = info

    def get(self, code: str) -> ErrorCodeInfo | None:
        with self._lock:
            return self._codes.get(code)

    def exists(self, code: str) -> bool:
        with self._lock:
            return code in self._codes

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and self.exists(code)

    def __len__(self) -> int:
        return self.count()

    def count(self) -> int:
        with self._lock:
            return len(self._codes)

    def list_codes(self) -> list[ErrorCodeInfo]:
        """Return every declaration ordered by code."""
        with self._lock:
            return sorted(self._codes.values(), key=lambda info: info.code)

    def list_by_type(self, error_type: ErrorType | str) -> list[ErrorCodeInfo]:
        wanted = ErrorType.coerce(error_type)
        return [info for info in self.list_codes() if ErrorType.coerce(info.type or None) == wanted]

    def list_by_severity(self, severity: Severity | int | str) -> list[ErrorCodeInfo]:
        wanted = Severity.parse(severity)
        return [info for info in self.list_codes() if info.severity == wanted]

    def search(self, pattern: str) -> list[ErrorCodeInfo]:
        """Return declarations whose code, message or description contains ``pattern``."""
        needle = pattern.lower()
        return [
            info
            for info in self.list_codes()
            if needle in info.code.lower() or needle in info.message.lower() or needle in info.description.lower()
        ]

    def create_error(self, code: str, *args: Any, **kwargs: Any) -> DomainError:
        """Build a domain error from a registered template."""
        info = self.get(code)
        if info is None:
            raise ErrorCodeNotFoundError(message=f"error code not found: {code}", code=code)
        message = info.message.format(*args, **kwargs) if args or kwargs else info.message
        builder = (
            self._factory.builder()
            .with_code(info.code)
            .with_message(message)
            .with_status_code(info.status_code)
            .with_severity(info.severity)
            .with_tags(info.tags)
            .with_retryable(info.retryable)
            .with_temporary(info.temporary)
        )
        if info.type:
            builder.with_type(info.type)
        if info.category is not None:
            builder.with_category(info.category)
        return builder.build()

    def update(self, info: ErrorCodeInfo) -> None:
        """Replace an existing declaration."""
        validate_info(info)
        with self._lock:
            if info.code not in self._codes:
                raise ErrorCodeNotFoundError(message=f"error code not found: {info.code}", code=info.code)
            self._codes[info.code] = info

    def remove(self, code: str) -> None:
        with self._lock:
            if code not in self._codes:
                raise ErrorCodeNotFoundError(message=f"error code not found: {code}", code=code)
            del self._codes[code]

    def clear(self) -> None:
        with self._lock:
            self._codes.clear()

    def export(self) -> dict[str, ErrorCodeInfo]:
        """Return a copy of the code table."""
        with self._lock:
            return dict(self._codes)

    def import_codes(self, entries: Mapping[str, ErrorCodeInfo], *, overwrite: bool = False) -> None:
        """Load a code table; nothing is imported when any entry fails."""
        with self._lock:
            for key, info in entries.items():
                if key != info.code:
                    raise InvalidErrorCodeInfoError(
                        message=f"code mismatch: key {key!r} != info code {info.code!r}",
                        code=key,
                    )
                validate_info(info)
                if not overwrite and key in self._codes:
                    raise ErrorCodeExistsError(message=f"error code already exists: {key}", code=key)
            self._codes.update(entries)


_DEFAULT_REGISTRY: ErrorCodeRegistry | None = None
_DEFAULT_LOCK = threading.Lock()


def get_default_code_registry() -> ErrorCodeRegistry:
    """Return the lazily created process-wide code registry."""
    global _DEFAULT_REGISTRY
    with _DEFAULT_LOCK:
        if _DEFAULT_REGISTRY is None:
            _DEFAULT_REGISTRY = ErrorCodeRegistry()
        return _DEFAULT_REGISTRY


def set_default_code_registry(registry: ErrorCodeRegistry | None) -> None:
    """Replace the process-wide code registry; ``None`` resets to lazy creation."""
    global _DEFAULT_REGISTRY
    with _DEFAULT_LOCK:
        _DEFAULT_REGISTRY = registry
