"""Tests for classification entry points and exception normalization."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from packages.faultline.classify import classify, classify_or_unknown, exception_to_error, parsed_to_error
from packages.faultline.errors import DomainError, ErrorFactory, codes
from packages.faultline.parsers import (
    DistributedParserRegistry,
    NoParserFoundError,
    ParsedError,
    get_default_registry,
    set_default_registry,
)


class _Opaque(Exception):
    """Synthetic exception no stock parser recognises."""


@pytest.fixture(autouse=True)
def _isolated_default_registry() -> Iterator[None]:
    set_default_registry(DistributedParserRegistry())
    yield
    set_default_registry(None)


def test_classify_uses_default_registry() -> None:
    """Without an explicit registry the process default is used."""
    parsed = classify(_Opaque("dial tcp: i/o timeout"))

    assert parsed.code == "TIMEOUT_ERROR"
    assert get_default_registry() is get_default_registry()


def test_classify_propagates_misses() -> None:
    """``classify`` surfaces unmatched errors explicitly."""
    with pytest.raises(NoParserFoundError):
        classify(_Opaque("opaque failure"))


def test_classify_or_unknown_substitutes_unknown() -> None:
    """The convenience variant never raises for unmatched errors."""
    parsed = classify_or_unknown(_Opaque("opaque failure"))

    assert parsed.code == codes.UNKNOWN_ERROR
    assert parsed.type.value == "internal"
    assert parsed.details["exception_type"] == "_Opaque"


def test_exception_to_error_wraps_foreign_exceptions() -> None:
    """Foreign exceptions become domain errors with the original as cause."""
    exc = ConnectionResetError(104, "Connection reset by peer")
    err = exception_to_error(exc, factory=ErrorFactory(default_tags=("edge",)))

    assert err.code == "NET_OP_ERROR"
    assert err.type == "network"
    assert err.is_retryable() is True
    assert err.root_cause() is exc
    assert err.tags == ("edge",)


def test_exception_to_error_passes_domain_errors_through() -> None:
    """Domain errors are already normalized."""
    original = DomainError(code="E1", message="already classified")
    assert exception_to_error(original) is original


def test_exception_to_error_with_explicit_registry() -> None:
    """An explicit registry overrides the default."""
    registry = DistributedParserRegistry(include_builtin=False)
    err = exception_to_error(KeyError("sku"), registry=registry)

    assert err.code == codes.UNKNOWN_ERROR
    assert err.status_code == 500


def test_parsed_to_error_keeps_classification_fields() -> None:
    """Lifted errors copy details and flags from the classification."""
    parsed = ParsedError(
        code="HTTP_429",
        message="HTTP 429 response",
        type="rate_limit",
        details={"status_code": 429},
        retryable=True,
        temporary=True,
    )
    err = parsed_to_error(parsed)

    assert err.status_code == 429
    assert err.details == {"status_code": 429}
    assert err.is_temporary() is True
