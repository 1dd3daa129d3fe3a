"""Unit tests for the fluent error builder."""

from __future__ import annotations

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from packages.faultline.errors import Category, ErrorBuilder, ErrorType, Severity, codes


def test_build_collects_every_field() -> None:
    """Every ``with_*`` call should land on the built error."""
    cause = TimeoutError("upstream slow")
    stamp = datetime(2024, 1, 2, tzinfo=timezone.utc)
    err = (
        ErrorBuilder()
        .with_code("PAY_001")
        .with_message_format("payment {} failed", "p-7")
        .with_type(ErrorType.EXTERNAL_SERVICE)
        .with_severity("critical")
        .with_category(Category.INTEGRATION)
        .with_detail("provider", "acme")
        .with_metadata_entry("attempt", 2)
        .with_tags(["payments", "acme"])
        .with_header("Retry-After", "30")
        .with_status_code(502)
        .with_cause(cause)
        .with_retryable(False)
        .with_timestamp(stamp)
        .build()
    )

    assert err.code == "PAY_001"
    assert err.message == "payment p-7 failed"
    assert err.type == "external_service"
    assert err.severity is Severity.CRITICAL
    assert err.category is Category.INTEGRATION
    assert err.details == {"provider": "acme"}
    assert err.metadata == {"attempt": 2}
    assert err.tags == ("payments", "acme")
    assert err.headers == {"Retry-After": "30"}
    assert err.status_code == 502
    assert err.unwrap() is cause
    assert err.is_retryable() is False
    assert err.is_temporary() is True
    assert err.timestamp == stamp


def test_empty_builder_produces_default_code() -> None:
    """A bare build should use the default code and message."""
    err = ErrorBuilder().build()
    assert err.code == codes.DEFAULT_CODE
    assert err.message


def test_invalid_status_fails_on_build() -> None:
    """Out-of-range statuses are rejected when the error is produced."""
    with pytest.raises(ValueError):
        ErrorBuilder().with_status_code(42).build()


def test_clone_is_independent() -> None:
    """Mutating a cloned builder must not affect the original."""
    original = ErrorBuilder().with_code("A").with_detail("k", 1)
    copy = original.clone().with_code("B").with_detail("k", 2)

    assert original.build().details == {"k": 1}
    assert copy.build().code == "B"
    assert original.build().code == "A"


def test_built_errors_do_not_share_builder_state() -> None:
    """Later builder mutations must not leak into already built errors."""
    builder = ErrorBuilder().with_detail("k", 1)
    first = builder.build()
    builder.with_detail("k", 2)

    assert first.details == {"k": 1}


def test_reset_clears_accumulated_state() -> None:
    """Reset should return the builder to its defaults."""
    builder = ErrorBuilder(code="X").with_message("m").with_tag("t")
    err = builder.reset().build()

    assert err.code == "X"
    assert err.tags == ()


def test_stack_capture_records_call_site() -> None:
    """Enabled stack capture should record this test as a frame."""
    err = ErrorBuilder().with_stack_trace().build()

    assert err.stack
    assert err.stack[0].function == "test_stack_capture_records_call_site"
    assert "test_stack_capture_records_call_site" in err.format_stack_trace()
