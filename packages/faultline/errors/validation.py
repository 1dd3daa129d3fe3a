"""Validation errors with a mutable, lock-guarded field map."""

from __future__ import annotations

import threading
from dataclasses import InitVar, dataclass, field
from typing import Any, Mapping, Sequence

from . import codes
from .domain_error import DomainError
from .exceptions import raisable
from .types import ErrorType

DEFAULT_VALIDATION_MESSAGE = "Validation failed"


@raisable
@dataclass(frozen=True, eq=False)
class ValidationError(DomainError):
    """Domain error of type ``validation`` carrying per-field messages.

    The field map is the only mutable state in the error model. ``add_field``,
    ``add_fields`` and ``merge`` mutate it in place; every reader takes the
    same re-entrant lock, so one instance may be shared across threads.
    """

    code: str = codes.VALIDATION_FAILED
    message: str = DEFAULT_VALIDATION_MESSAGE
    error_type: ErrorType | None = ErrorType.VALIDATION
    initial_fields: InitVar[Mapping[str, Sequence[str]] | None] = None
    _fields: dict[str, list[str]] = field(init=False, repr=False, default_factory=dict)
    _lock: threading.RLock = field(init=False, repr=False, default_factory=threading.RLock)

    def __post_init__(self, initial_fields: Mapping[str, Sequence[str]] | None) -> None:
        super().__post_init__()
        if initial_fields:
            self.add_fields(initial_fields)

    @property
    def fields(self) -> dict[str, list[str]]:
        """Return a snapshot of the field map."""
        with self._lock:
            return {name: list(messages) for name, messages in self._fields.items()}

    def add_field(self, name: str, message: str) -> ValidationError:
        """Append one message for ``name``."""
        with self._lock:
            self._fields.setdefault(name, []).append(message)
        return self

    def add_fields(self, entries: Mapping[str, Sequence[str] | str]) -> ValidationError:
        """Append messages for several fields."""
        with self._lock:
            for name, messages in entries.items():
                if isinstance(messages, str):
                    messages = [messages]
                self._fields.setdefault(name, []).extend(messages)
        return self

    def merge(self, other: ValidationError) -> ValidationError:
        """Append every field message from ``other``."""
        if other is self:
            return self
        return self.add_fields(other.fields)

    def with_field_prefix(self, prefix: str) -> ValidationError:
        """Return a copy whose field names are prefixed with ``prefix.``."""
        prefixed = {f"{prefix}.{name}": messages for name, messages in self.fields.items()}
        return self._derive(initial_fields=prefixed)

    def has_field(self, name: str) -> bool:
        """Return whether ``name`` has at least one message."""
        with self._lock:
            return bool(self._fields.get(name))

    def field_errors(self, name: str) -> list[str]:
        """Return the messages recorded for ``name``."""
        with self._lock:
            return list(self._fields.get(name, ()))

    def total_errors(self) -> int:
        """Return the number of messages across all fields."""
        with self._lock:
            return sum(len(messages) for messages in self._fields.values())

    def _derive(self, **changes: Any) -> ValidationError:
        changes.setdefault("initial_fields", self.fields)
        return super()._derive(**changes)

    def _init_kwargs(self) -> dict[str, Any]:
        kwargs = super()._init_kwargs()
        kwargs["initial_fields"] = self.fields
        return kwargs

    def to_dict(self) -> dict[str, Any]:
        rendered = super().to_dict()
        rendered.setdefault("details", {})["fields"] = self.fields
        return rendered
