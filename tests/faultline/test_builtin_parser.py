"""Tests for the parser of Python's own exception hierarchy."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pydantic
import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from packages.faultline.parsers import BuiltinErrorParser


class _Opaque(Exception):
    """Synthetic exception outside the builtin hierarchy rules."""


class _Payload(pydantic.BaseModel):
    email: str
    age: int


@pytest.mark.parametrize(
    ("err", "code", "error_type"),
    [
        (ValueError("bad amount"), "PY_VALUE_ERROR", "validation"),
        (TypeError("expected str"), "PY_TYPE_ERROR", "bad_request"),
        (KeyError("sku"), "PY_NOT_FOUND", "not_found"),
        (FileNotFoundError("missing.txt"), "PY_NOT_FOUND", "not_found"),
        (PermissionError("denied"), "PY_PERMISSION_DENIED", "authorization"),
        (NotImplementedError(), "PY_NOT_IMPLEMENTED", "unsupported"),
        (UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"), "PY_DECODE_ERROR", "serialization"),
    ],
)
def test_builtin_rules(err: BaseException, code: str, error_type: str) -> None:
    """Each builtin family maps to its ``PY_*`` code and type."""
    parser = BuiltinErrorParser()

    assert parser.can_parse(err) is True
    parsed = parser.parse(err)
    assert parsed.code == code
    assert parsed.type.value == error_type
    assert parsed.details["exception_type"] == type(err).__name__


def test_json_decode_error_is_serialization() -> None:
    """JSON decode errors are checked before the ``ValueError`` rule."""
    try:
        json.loads("{not json")
    except json.JSONDecodeError as exc:
        err = exc

    assert BuiltinErrorParser().parse(err).code == "PY_DECODE_ERROR"


def test_empty_message_uses_fallback_text() -> None:
    """Exceptions without text render a readable message."""
    assert BuiltinErrorParser().parse(NotImplementedError()).message == "Operation not supported"


def test_pydantic_validation_error_groups_fields() -> None:
    """Pydantic validation failures expose per-field messages."""
    try:
        _Payload.model_validate({"email": "a@example.test", "age": "old"})
    except pydantic.ValidationError as exc:
        err = exc

    parsed = BuiltinErrorParser().parse(err)
    assert parsed.code == "PY_VALIDATION_ERROR"
    assert list(parsed.details["fields"]) == ["age"]


def test_foreign_exceptions_are_refused() -> None:
    """Exceptions outside the builtin rules are not recognised."""
    assert BuiltinErrorParser().can_parse(_Opaque("opaque failure")) is False
