"""Parser contract and the classification result type."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Protocol, runtime_checkable

from ..errors.types import Category, ErrorType, Severity

ORIGINAL_MESSAGE = "original_message"


@dataclass(frozen=True)
class ParsedError:
    """Classification of one raw error. ``details`` is read-only."""

    code: str
    message: str
    type: ErrorType
    severity: Severity = Severity.MEDIUM
    category: Category | None = None
    details: Mapping[str, Any] = field(default_factory=dict)
    retryable: bool = False
    temporary: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", ErrorType(self.type))
        object.__setattr__(self, "severity", Severity.parse(self.severity))
        category = self.category if self.category is not None else self.type.default_category
        object.__setattr__(self, "category", Category(category))
        object.__setattr__(self, "details", MappingProxyType(dict(self.details)))

    def to_dict(self) -> dict[str, Any]:
        """Return a plain dict suitable for structured logs."""
        return {
            "code": self.code,
            "message": self.message,
            "type": self.type.value,
            "severity": self.severity.label,
            "category": self.category.value if self.category is not None else None,
            "details": dict(self.details),
            "retryable": self.retryable,
            "temporary": self.temporary,
        }


@runtime_checkable
class ErrorParser(Protocol):
    """Recognise and classify errors from one upstream system.

    ``can_parse`` is pure. ``parse`` is only called after ``can_parse``
    returned ``True`` and degrades to an ``*_UNKNOWN`` code instead of raising.
    """

    def can_parse(self, err: BaseException) -> bool:
        """Return whether this parser recognises ``err``."""

    def parse(self, err: BaseException) -> ParsedError:
        """Classify ``err``."""


def error_text(err: BaseException) -> str:
    """Return the rendered text parsers match against.

    Exceptions with an empty message render as their type name.
    """
    text = str(err)
    if text:
        return text
    return type(err).__name__


def base_details(err: BaseException, **extra: Any) -> dict[str, Any]:
    """Return the detail map every parser starts from."""
    details: dict[str, Any] = {ORIGINAL_MESSAGE: error_text(err)}
    details.update(extra)
    return details


def find_in_chain(err: BaseException, types: type | tuple[type, ...]) -> BaseException | None:
    """Return the first exception in ``err``'s cause/context chain matching ``types``."""
    seen: set[int] = set()
    current: BaseException | None = err
    while current is not None and id(current) not in seen:
        if isinstance(current, types):
            return current
        seen.add(id(current))
        current = current.__cause__ or current.__context__
    return None
