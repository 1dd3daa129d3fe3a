"""Structured record shape for rendered domain errors.

``ErrorRecord`` is the wire/log form of a ``DomainError``. Transport adapters
build protocol responses from it; ``DomainError.from_json`` reads it back.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, field_serializer


class ErrorRecord(BaseModel):
    """Serializable snapshot of one domain error."""

    model_config = ConfigDict(frozen=True)

    code: str
    message: str
    type: str = ""
    severity: str = "medium"
    category: str | None = None
    details: dict[str, Any] = Field(default_factory=dict)
    tags: list[str] = Field(default_factory=list)
    timestamp: datetime
    status_code: int = 500
    retryable: bool = False
    temporary: bool = False
    cause: str | None = None

    @field_serializer("details")
    def _serialize_details(self, value: dict[str, Any]) -> dict[str, Any]:
        """Render detail values that JSON cannot carry as strings."""
        return {str(key): jsonable(item) for key, item in value.items()}


def jsonable(value: Any) -> Any:
    """Return ``value`` reduced to JSON-compatible primitives."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Mapping):
        return {str(key): jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [jsonable(item) for item in value]
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)
