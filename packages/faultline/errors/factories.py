"""Factory helpers for creating consistent domain errors."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Sequence

from . import codes
from .builder import ErrorBuilder
from .domain_error import DomainError
from .types import ErrorType, Severity
from .validation import ValidationError

if TYPE_CHECKING:
    from ..config.models import FactorySettings, FaultlineSettings
    from ..parsers.base import ParsedError


class ErrorFactory:
    """Create domain errors with shared defaults.

    ``prefix`` is joined to caller-supplied codes passed to ``new`` and
    ``new_with_cause``. ``default_tags`` and ``default_metadata`` are attached
    to every error the factory produces.
    """

    def __init__(
        self,
        *,
        default_code: str = codes.DEFAULT_CODE,
        default_severity: Severity = Severity.MEDIUM,
        capture_stack: bool = False,
        prefix: str = "",
        default_tags: Iterable[str] = (),
        default_metadata: Mapping[str, Any] | None = None,
    ) -> None:
        self.default_code = default_code
        self.default_severity = default_severity
        self.capture_stack = capture_stack
        self.prefix = prefix
        self.default_tags = tuple(default_tags)
        self.default_metadata = dict(default_metadata or {})

    @classmethod
    def from_settings(cls, settings: FactorySettings, **overrides: Any) -> ErrorFactory:
        """Build a factory from the ``factory`` configuration subtree."""
        options: dict[str, Any] = {
            "default_code": settings.default_code,
            "default_severity": Severity.parse(settings.default_severity),
            "capture_stack": settings.capture_stack,
            "prefix": settings.prefix,
            "default_tags": settings.default_tags,
        }
        options.update(overrides)
        return cls(**options)

    def builder(self) -> ErrorBuilder:
        """Return a builder seeded with this factory's defaults."""
        return (
            ErrorBuilder(code=self.default_code, capture_stack=self.capture_stack)
            .with_tags(self.default_tags)
            .with_metadata(self.default_metadata)
        )

    def new(self, code: str, message: str, *, error_type: ErrorType | str | None = None) -> DomainError:
        """Create an error; an empty ``code`` falls back to the default code."""
        builder = self.builder().with_code(self._code(code)).with_message(message)
        if error_type:
            builder.with_type(error_type)
        else:
            builder.with_severity(self.default_severity)
        return builder.build()

    def new_with_cause(
        self,
        code: str,
        message: str,
        cause: BaseException | None,
        *,
        error_type: ErrorType | str | None = None,
    ) -> DomainError:
        """Create an error whose ``unwrap()`` returns ``cause``."""
        builder = self.builder().with_code(self._code(code)).with_message(message).with_cause(cause)
        if error_type:
            builder.with_type(error_type)
        else:
            builder.with_severity(self.default_severity)
        return builder.build()

    def new_validation(
        self,
        message: str = "",
        fields: Mapping[str, Sequence[str]] | None = None,
    ) -> ValidationError:
        return ValidationError(
            message=message or "Validation failed",
            tags=self.default_tags,
            metadata=self.default_metadata,
            initial_fields=fields,
        )

    def new_not_found(self, entity: str, id: str = "") -> DomainError:
        message = f"{entity} with ID '{id}' not found" if id else f"{entity} not found"
        return (
            self.builder()
            .with_code(codes.NOT_FOUND)
            .with_message(message)
            .with_type(ErrorType.NOT_FOUND)
            .with_details({"entity": entity, "id": id})
            .with_tag("not_found")
            .build()
        )

    def new_unauthorized(self, message: str = "") -> DomainError:
        return self._simple(
            codes.AUTHENTICATION_FAILED,
            message or "Authentication required",
            ErrorType.AUTHENTICATION,
            "authentication",
        )

    def new_forbidden(self, message: str = "") -> DomainError:
        return self._simple(codes.ACCESS_DENIED, message or "Access denied", ErrorType.AUTHORIZATION, "authorization")

    def new_internal(self, message: str = "", cause: BaseException | None = None) -> DomainError:
        """Create a critical internal error, wrapping ``cause`` when given."""
        err = (
            self.builder()
            .with_code(codes.INTERNAL_ERROR)
            .with_message(message or "Internal server error")
            .with_type(ErrorType.INTERNAL)
            .with_severity(Severity.CRITICAL)
            .with_tag("internal")
            .build()
        )
        if cause is not None:
            err = err.wrap("internal error", cause)
        return err

    def new_bad_request(self, message: str = "") -> DomainError:
        return self._simple(codes.BAD_REQUEST, message or "Bad request", ErrorType.BAD_REQUEST, "bad_request")

    def new_conflict(self, message: str = "") -> DomainError:
        return self._simple(codes.ALREADY_EXISTS, message or "Resource conflict", ErrorType.CONFLICT, "conflict")

    def new_timeout(self, message: str = "") -> DomainError:
        return (
            self.builder()
            .with_code(codes.REQUEST_TIMEOUT)
            .with_message(message or "Operation timeout")
            .with_type(ErrorType.TIMEOUT)
            .with_severity(Severity.HIGH)
            .with_tag("timeout")
            .build()
        )

    def new_circuit_breaker(self, service: str = "") -> DomainError:
        message = f"Circuit breaker is open for service: {service}" if service else "Circuit breaker is open"
        return (
            self.builder()
            .with_code(codes.CIRCUIT_BREAKER_OPEN)
            .with_message(message)
            .with_type(ErrorType.CIRCUIT_BREAKER)
            .with_severity(Severity.HIGH)
            .with_detail("service", service)
            .with_tag("circuit_breaker")
            .build()
        )

    def from_parsed(self, parsed: ParsedError, cause: BaseException | None = None) -> DomainError:
        """Lift a parser classification into a domain error."""
        return (
            self.builder()
            .with_code(parsed.code)
            .with_message(parsed.message)
            .with_type(parsed.type)
            .with_severity(parsed.severity)
            .with_category(parsed.category)
            .with_details(parsed.details)
            .with_retryable(parsed.retryable)
            .with_temporary(parsed.temporary)
            .with_cause(cause)
            .build()
        )

    def _code(self, code: str) -> str:
        if not code:
            return self.default_code
        if self.prefix:
            return f"{self.prefix}_{code}"
        return code

    def _simple(self, code: str, message: str, error_type: ErrorType, tag: str) -> DomainError:
        return self.builder().with_code(code).with_message(message).with_type(error_type).with_tag(tag).build()


_DEFAULT_FACTORY: ErrorFactory | None = None
_DEFAULT_LOCK = threading.Lock()


def get_default_factory(settings: FaultlineSettings | None = None) -> ErrorFactory:
    """Return the lazily created process-wide factory.

    The first call builds it from the ``factory`` settings subtree (loaded from
    the environment and YAML config when omitted); later calls ignore
    ``settings``.
    """
    global _DEFAULT_FACTORY
    with _DEFAULT_LOCK:
        if _DEFAULT_FACTORY is None:
            if settings is None:
                from ..config import load_settings

                settings = load_settings()
            _DEFAULT_FACTORY = ErrorFactory.from_settings(settings.factory)
        return _DEFAULT_FACTORY


def set_default_factory(factory: ErrorFactory | None) -> None:
    """Replace the process-wide factory; ``None`` resets to lazy creation."""
    global _DEFAULT_FACTORY
    with _DEFAULT_LOCK:
        _DEFAULT_FACTORY = factory


def new(code: str, message: str) -> DomainError:
    return get_default_factory().new(code, message)


def new_with_cause(code: str, message: str, cause: BaseException | None) -> DomainError:
    return get_default_factory().new_with_cause(code, message, cause)


def new_validation(message: str = "", fields: Mapping[str, Sequence[str]] | None = None) -> ValidationError:
    return get_default_factory().new_validation(message, fields)


def not_found(entity: str, id: str = "") -> DomainError:
    return get_default_factory().new_not_found(entity, id)


def unauthorized(message: str = "") -> DomainError:
    return get_default_factory().new_unauthorized(message)


def forbidden(message: str = "") -> DomainError:
    return get_default_factory().new_forbidden(message)


def internal(message: str = "", cause: BaseException | None = None) -> DomainError:
    return get_default_factory().new_internal(message, cause)


def bad_request(message: str = "") -> DomainError:
    return get_default_factory().new_bad_request(message)


def conflict(message: str = "") -> DomainError:
    return get_default_factory().new_conflict(message)


def timeout(message: str = "") -> DomainError:
    return get_default_factory().new_timeout(message)


def circuit_breaker(service: str = "") -> DomainError:
    return get_default_factory().new_circuit_breaker(service)
