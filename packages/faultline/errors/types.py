"""Canonical error taxonomy for faultline.

This module defines the closed set of error types together with their default
severity, protocol status, category and retry policy. Every other module reads
policy from here instead of keeping private copies of these tables.
"""

from __future__ import annotations

from enum import Enum, IntEnum


class Severity(IntEnum):
    """Ordinal severity levels, lowest first."""

    LOW = 0
    MEDIUM = 1
    HIGH = 2
    CRITICAL = 3

    @property
    def label(self) -> str:
        """Return the lowercase display name."""
        return self.name.lower()

    @classmethod
    def parse(cls, value: Severity | int | str) -> Severity:
        """Coerce a name or ordinal into a ``Severity``."""
        if isinstance(value, Severity):
            return value
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError as exc:
                raise ValueError(f"unknown severity: {value!r}") from exc
        return cls(value)


class Category(str, Enum):
    """High-level ownership categories for classified failures."""

    BUSINESS = "business"
    TECHNICAL = "technical"
    INFRASTRUCTURE = "infrastructure"
    SECURITY = "security"
    PERFORMANCE = "performance"
    INTEGRATION = "integration"


class ErrorType(str, Enum):
    """Closed set of error type tags."""

    # Data and persistence
    REPOSITORY = "repository"
    DATABASE = "database"
    CACHE = "cache"
    MIGRATION = "migration"
    SERIALIZATION = "serialization"

    # Input
    VALIDATION = "validation"
    BAD_REQUEST = "bad_request"
    UNPROCESSABLE = "unprocessable"
    UNSUPPORTED = "unsupported"

    # Business
    BUSINESS_RULE = "business"
    WORKFLOW = "workflow"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"

    # Security
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    SECURITY = "security"
    FORBIDDEN = "forbidden"

    # System
    INTERNAL = "internal"
    INFRASTRUCTURE = "infrastructure"
    CONFIGURATION = "configuration"
    DEPENDENCY = "dependency"
    CIRCUIT_BREAKER = "circuit_breaker"

    # Communication
    EXTERNAL_SERVICE = "external_service"
    TIMEOUT = "timeout"
    RATE_LIMIT = "rate_limit"
    RESOURCE_EXHAUSTED = "resource_exhausted"
    NETWORK = "network"
    CLOUD = "cloud"

    # Protocol
    HTTP = "http"
    GRPC = "grpc"
    GRAPHQL = "graphql"
    WEBSOCKET = "websocket"

    @classmethod
    def is_valid(cls, value: object) -> bool:
        """Return ``True`` when ``value`` names a member of the closed set."""
        if isinstance(value, ErrorType):
            return True
        return isinstance(value, str) and value in _VALUES

    @classmethod
    def coerce(cls, value: ErrorType | str | None) -> ErrorType | None:
        """Return the member for ``value``; ``None`` and ``""`` map to ``None``."""
        if value is None or value == "":
            return None
        if isinstance(value, ErrorType):
            return value
        try:
            return cls(value)
        except ValueError as exc:
            raise ValueError(f"unknown error type: {value!r}") from exc

    @property
    def group(self) -> str:
        """Return the taxonomy group (data, input, business, ...)."""
        return _GROUPS[self]

    @property
    def default_status_code(self) -> int:
        """Return the default protocol status (HTTP convention)."""
        return _STATUS_CODES.get(self, DEFAULT_STATUS_CODE)

    @property
    def default_severity(self) -> Severity:
        """Return the default severity for this type."""
        return _SEVERITIES.get(self, Severity.MEDIUM)

    @property
    def default_category(self) -> Category:
        """Return the default ownership category for this type."""
        return _CATEGORY_OVERRIDES.get(self, _CATEGORIES[self.group])

    @property
    def is_retryable(self) -> bool:
        """Return whether failures of this type may succeed on retry."""
        return self in _RETRYABLE

    @property
    def is_temporary(self) -> bool:
        """Return whether failures of this type are expected to clear."""
        return self in _RETRYABLE


DEFAULT_STATUS_CODE = 500

_VALUES = frozenset(member.value for member in ErrorType)

_GROUPS: dict[ErrorType, str] = {
    ErrorType.REPOSITORY: "data",
    ErrorType.DATABASE: "data",
    ErrorType.CACHE: "data",
    ErrorType.MIGRATION: "data",
    ErrorType.SERIALIZATION: "data",
    ErrorType.VALIDATION: "input",
    ErrorType.BAD_REQUEST: "input",
    ErrorType.UNPROCESSABLE: "input",
    ErrorType.UNSUPPORTED: "input",
    ErrorType.BUSINESS_RULE: "business",
    ErrorType.WORKFLOW: "business",
    ErrorType.CONFLICT: "business",
    ErrorType.NOT_FOUND: "business",
    ErrorType.AUTHENTICATION: "security",
    ErrorType.AUTHORIZATION: "security",
    ErrorType.SECURITY: "security",
    ErrorType.FORBIDDEN: "security",
    ErrorType.INTERNAL: "system",
    ErrorType.INFRASTRUCTURE: "system",
    ErrorType.CONFIGURATION: "system",
    ErrorType.DEPENDENCY: "system",
    ErrorType.CIRCUIT_BREAKER: "system",
    ErrorType.EXTERNAL_SERVICE: "communication",
    ErrorType.TIMEOUT: "communication",
    ErrorType.RATE_LIMIT: "communication",
    ErrorType.RESOURCE_EXHAUSTED: "communication",
    ErrorType.NETWORK: "communication",
    ErrorType.CLOUD: "communication",
    ErrorType.HTTP: "protocol",
    ErrorType.GRPC: "protocol",
    ErrorType.GRAPHQL: "protocol",
    ErrorType.WEBSOCKET: "protocol",
}

_STATUS_CODES: dict[ErrorType, int] = {
    ErrorType.REPOSITORY: 500,
    ErrorType.DATABASE: 500,
    ErrorType.MIGRATION: 500,
    ErrorType.CACHE: 503,
    ErrorType.SERIALIZATION: 422,
    ErrorType.VALIDATION: 400,
    ErrorType.BAD_REQUEST: 400,
    ErrorType.UNPROCESSABLE: 422,
    ErrorType.UNSUPPORTED: 415,
    ErrorType.BUSINESS_RULE: 422,
    ErrorType.WORKFLOW: 422,
    ErrorType.CONFLICT: 409,
    ErrorType.NOT_FOUND: 404,
    ErrorType.AUTHENTICATION: 401,
    ErrorType.AUTHORIZATION: 403,
    ErrorType.FORBIDDEN: 403,
    ErrorType.SECURITY: 403,
    ErrorType.INTERNAL: 500,
    ErrorType.CONFIGURATION: 500,
    ErrorType.INFRASTRUCTURE: 503,
    ErrorType.CIRCUIT_BREAKER: 503,
    ErrorType.DEPENDENCY: 424,
    ErrorType.EXTERNAL_SERVICE: 502,
    ErrorType.TIMEOUT: 504,
    ErrorType.RATE_LIMIT: 429,
    ErrorType.RESOURCE_EXHAUSTED: 507,
    ErrorType.NETWORK: 503,
    ErrorType.CLOUD: 502,
    ErrorType.HTTP: 500,
    ErrorType.GRPC: 500,
    ErrorType.GRAPHQL: 400,
    ErrorType.WEBSOCKET: 500,
}

_SEVERITIES: dict[ErrorType, Severity] = {
    ErrorType.VALIDATION: Severity.LOW,
    ErrorType.BAD_REQUEST: Severity.LOW,
    ErrorType.NOT_FOUND: Severity.LOW,
    ErrorType.CONFLICT: Severity.LOW,
    ErrorType.BUSINESS_RULE: Severity.MEDIUM,
    ErrorType.UNPROCESSABLE: Severity.MEDIUM,
    ErrorType.AUTHENTICATION: Severity.MEDIUM,
    ErrorType.AUTHORIZATION: Severity.MEDIUM,
    ErrorType.EXTERNAL_SERVICE: Severity.HIGH,
    ErrorType.TIMEOUT: Severity.HIGH,
    ErrorType.RATE_LIMIT: Severity.HIGH,
    ErrorType.CIRCUIT_BREAKER: Severity.HIGH,
    ErrorType.INTERNAL: Severity.CRITICAL,
    ErrorType.INFRASTRUCTURE: Severity.CRITICAL,
    ErrorType.DATABASE: Severity.CRITICAL,
    ErrorType.SECURITY: Severity.CRITICAL,
}

_CATEGORIES: dict[str, Category] = {
    "data": Category.TECHNICAL,
    "input": Category.BUSINESS,
    "business": Category.BUSINESS,
    "security": Category.SECURITY,
    "system": Category.INFRASTRUCTURE,
    "communication": Category.INTEGRATION,
    "protocol": Category.INTEGRATION,
}

_CATEGORY_OVERRIDES: dict[ErrorType, Category] = {
    ErrorType.INTERNAL: Category.TECHNICAL,
    ErrorType.CONFIGURATION: Category.TECHNICAL,
    ErrorType.TIMEOUT: Category.PERFORMANCE,
    ErrorType.RATE_LIMIT: Category.PERFORMANCE,
    ErrorType.RESOURCE_EXHAUSTED: Category.PERFORMANCE,
    ErrorType.NETWORK: Category.INFRASTRUCTURE,
    ErrorType.CLOUD: Category.INFRASTRUCTURE,
}

_RETRYABLE: frozenset[ErrorType] = frozenset(
    {
        ErrorType.EXTERNAL_SERVICE,
        ErrorType.TIMEOUT,
        ErrorType.RATE_LIMIT,
        ErrorType.RESOURCE_EXHAUSTED,
        ErrorType.NETWORK,
        ErrorType.CLOUD,
        ErrorType.CIRCUIT_BREAKER,
    }
)


def status_code_for(error_type: ErrorType | str | None) -> int:
    """Return the default status for a type value; unknown values map to 500."""
    if error_type is None or not ErrorType.is_valid(error_type):
        return DEFAULT_STATUS_CODE
    return ErrorType(error_type).default_status_code
