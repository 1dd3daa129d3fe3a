"""Tests for the error type taxonomy and its policy tables."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from packages.faultline.errors.types import Category, ErrorType, Severity, status_code_for


def test_every_error_type_has_a_group_and_category() -> None:
    """Every member of the closed set should resolve group and category."""
    for error_type in ErrorType:
        assert error_type.group in {"data", "input", "business", "security", "system", "communication", "protocol"}
        assert isinstance(error_type.default_category, Category)


def test_default_status_codes_follow_http_conventions() -> None:
    """Status defaults should match the documented type table."""
    assert ErrorType.VALIDATION.default_status_code == 400
    assert ErrorType.NOT_FOUND.default_status_code == 404
    assert ErrorType.CONFLICT.default_status_code == 409
    assert ErrorType.AUTHENTICATION.default_status_code == 401
    assert ErrorType.AUTHORIZATION.default_status_code == 403
    assert ErrorType.RATE_LIMIT.default_status_code == 429
    assert ErrorType.TIMEOUT.default_status_code == 504
    assert ErrorType.CIRCUIT_BREAKER.default_status_code == 503
    assert ErrorType.INTERNAL.default_status_code == 500


def test_retry_policy_covers_transient_types_only() -> None:
    """Only communication-style failures should be retryable by default."""
    assert ErrorType.TIMEOUT.is_retryable is True
    assert ErrorType.NETWORK.is_temporary is True
    assert ErrorType.CIRCUIT_BREAKER.is_retryable is True
    assert ErrorType.VALIDATION.is_retryable is False
    assert ErrorType.INTERNAL.is_temporary is False


def test_is_valid_and_coerce_accept_only_known_values() -> None:
    """Unknown type strings should be rejected; empty maps to ``None``."""
    assert ErrorType.is_valid("validation") is True
    assert ErrorType.is_valid(ErrorType.GRPC) is True
    assert ErrorType.is_valid("nonsense") is False
    assert ErrorType.coerce("") is None
    assert ErrorType.coerce("timeout") is ErrorType.TIMEOUT
    with pytest.raises(ValueError):
        ErrorType.coerce("nonsense")


def test_status_code_for_unknown_type_is_500() -> None:
    """Unknown or missing types should map to the internal default status."""
    assert status_code_for(None) == 500
    assert status_code_for("nonsense") == 500
    assert status_code_for("not_found") == 404


def test_severity_is_ordered_and_parses_names() -> None:
    """Severity should compare by ordinal and parse case-insensitively."""
    assert Severity.LOW < Severity.MEDIUM < Severity.HIGH < Severity.CRITICAL
    assert Severity.parse("High") is Severity.HIGH
    assert Severity.parse(3) is Severity.CRITICAL
    assert Severity.CRITICAL.label == "critical"
    with pytest.raises(ValueError):
        Severity.parse("urgent")
