"""Unit tests for the domain error value type."""

from __future__ import annotations

import copy
import json
import pickle
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from packages.faultline.errors import (
    Category,
    DomainError,
    ErrorBuilder,
    ErrorChainCycleError,
    ErrorType,
    Severity,
    ValidationError,
)
from packages.faultline.errors.domain_error import DEFAULT_MESSAGE
from packages.faultline.logging import log_context
from packages.faultline.parsers import ParserExecutionError, ParserNotFoundError


def _error(**overrides: object) -> DomainError:
    options: dict[str, object] = {"code": "E100", "message": "order rejected"}
    options.update(overrides)
    return DomainError(**options)


def test_defaults_derive_from_error_type() -> None:
    """Severity, category and status should default from the declared type."""
    err = _error(error_type=ErrorType.NOT_FOUND)

    assert err.type == "not_found"
    assert err.severity is Severity.LOW
    assert err.category is Category.BUSINESS
    assert err.status_code == 404
    assert err.is_retryable() is False


def test_untyped_error_renders_message_and_internal_status() -> None:
    """An untyped error should still have a message and a 500 status."""
    err = DomainError(code="E101", message="")

    assert err.message == DEFAULT_MESSAGE
    assert err.type == ""
    assert err.status_code == 500
    assert str(err) == f"[E101] {DEFAULT_MESSAGE}"


def test_explicit_overrides_beat_type_policy() -> None:
    """Explicit status and retry flags should override type defaults."""
    err = _error(error_type="timeout", status=503, retryable=False, temporary=False)

    assert err.status_code == 503
    assert err.is_retryable() is False
    assert err.is_temporary() is False


def test_invalid_status_is_rejected_at_construction() -> None:
    """Status overrides outside 100..599 should fail immediately."""
    with pytest.raises(ValueError):
        _error(status=99)
    with pytest.raises(ValueError):
        _error().with_status_code(600)


def test_payload_mappings_are_read_only_copies() -> None:
    """Caller mutations after construction must not leak into the error."""
    details = {"order_id": "o-1"}
    err = _error(details=details)
    details["order_id"] = "changed"

    assert err.details["order_id"] == "o-1"
    with pytest.raises(TypeError):
        err.details["order_id"] = "x"  # type: ignore[index]


def test_tags_are_deduplicated_in_insertion_order() -> None:
    """Tags behave like an ordered set."""
    err = _error(tags=("billing", "retry", "billing"))
    assert err.tags == ("billing", "retry")


def test_wrap_sets_cause_and_inherits_payload() -> None:
    """Wrapping should return a new error inheriting missing details and tags."""
    inner = _error(code="E200", details={"table": "orders"}, tags=("db",))
    outer = _error(details={"order_id": "o-1"}).wrap("saving order", inner)

    assert outer.unwrap() is inner
    assert outer.__cause__ is inner
    assert outer.details == {"table": "orders", "order_id": "o-1"}
    assert outer.tags == ("db",)
    assert outer.stack[-1].message == "saving order"


def test_wrap_moves_previous_cause_to_chain() -> None:
    """A second wrap keeps the first cause as a lateral sibling."""
    first = KeyError("first")
    second = OSError("second")
    err = _error(cause=first).wrap("again", second)

    assert err.unwrap() is second
    assert err.chained == (first,)


def test_chain_adds_siblings_without_changing_cause() -> None:
    """Chained errors render alongside the primary message."""
    cause = RuntimeError("primary")
    err = _error(cause=cause).chain(ValueError("sibling"))

    assert err.unwrap() is cause
    assert str(err) == "[E100] order rejected: primary; sibling"
    assert _error().chain(None).chained == ()


def test_root_cause_of_three_level_chain_is_innermost_foreign_error() -> None:
    """Root cause should return the innermost non-domain error unchanged."""
    leaf = ConnectionResetError("peer reset")
    level1 = _error(code="E1").wrap("read", leaf)
    level2 = _error(code="E2").wrap("fetch", level1)
    level3 = _error(code="E3").wrap("handle", level2)

    assert level3.root_cause() is leaf


def test_root_cause_terminates_for_any_depth() -> None:
    """Root cause walks terminate for chains of every depth."""
    leaf = OSError("disk")
    err: DomainError = _error(cause=leaf)
    for depth in range(20):
        assert err.root_cause() is leaf
        err = _error(code=f"E{depth}").wrap("layer", err)


def test_root_cause_is_none_when_chain_has_no_foreign_error() -> None:
    """A chain of domain errors without a leaf cause has no root cause."""
    err = _error().wrap("outer", _error(code="E2"))
    assert err.root_cause() is None


def test_root_cause_detects_cycles() -> None:
    """A looping chain is a programming error."""
    first = _error(code="E1")
    second = _error(code="E2", cause=first)
    object.__setattr__(first, "cause", second)

    with pytest.raises(ErrorChainCycleError):
        first.root_cause()


def test_builder_refuses_cyclic_cause() -> None:
    """Build should not produce an error whose cause chain loops."""
    first = _error(code="E1")
    second = _error(code="E2", cause=first)
    object.__setattr__(first, "cause", second)

    with pytest.raises(ErrorChainCycleError):
        ErrorBuilder().with_cause(first).build()


def test_with_context_reads_bound_logging_context() -> None:
    """Correlation ids come from explicit args first, then bound context."""
    with log_context({"request_id": "req-1", "trace_id": "trace-1"}):
        err = _error().with_context(user_id="u-9", trace_id="trace-override")

    assert err.metadata == {"request_id": "req-1", "trace_id": "trace-override", "user_id": "u-9"}


def test_serialized_form_round_trips_identity_fields() -> None:
    """Serializing and parsing should keep code, message and type."""
    err = _error(error_type=ErrorType.CONFLICT, details={"key": "sku-1"}, tags=("inventory",))
    restored = DomainError.from_json(err.to_json())

    assert restored.code == err.code
    assert restored.message == err.message
    assert restored.type == err.type
    assert restored.details == {"key": "sku-1"}
    assert restored.timestamp == err.timestamp


def test_to_dict_has_required_keys_and_hides_metadata() -> None:
    """Rendered records carry the public fields only."""
    err = _error(error_type="validation", metadata={"secret": "x"}, headers={"Retry-After": "5"})
    rendered = err.to_dict()

    assert {"code", "message", "type", "severity", "details", "timestamp"} <= set(rendered)
    assert rendered["severity"] == "low"
    assert rendered["status_code"] == 400
    assert "metadata" not in rendered
    assert "headers" not in rendered
    json.dumps(rendered)


def test_non_json_detail_values_render_as_strings() -> None:
    """Arbitrary detail objects should not break serialization."""
    err = _error(details={"path": Path("/tmp/x"), "ids": (1, 2)})
    rendered = err.to_dict()

    assert rendered["details"] == {"path": "/tmp/x", "ids": [1, 2]}


def test_clone_is_independent_equal_content() -> None:
    """Clones share content but not identity."""
    err = _error(details={"a": 1})
    copy = err.clone()

    assert copy is not err
    assert copy.details == err.details
    assert copy.timestamp == err.timestamp


def test_detailed_string_lists_cause_and_chain() -> None:
    """The diagnostic rendering should include cause and chained errors."""
    err = _error(error_type="database", cause=OSError("disk")).chain(KeyError("k"))
    text = err.detailed_string()

    assert "Error: E100" in text
    assert "Type: database" in text
    assert "Cause: disk" in text
    assert "Chained[1]:" in text


@contextmanager
def _scope() -> Iterator[None]:
    yield


def test_domain_errors_raise_through_context_managers() -> None:
    """Raised errors keep their identity when unwinding through ``with`` blocks."""
    err = _error()
    with pytest.raises(DomainError) as caught:
        with _scope():
            raise err
    assert caught.value is err
    assert caught.value.__traceback__ is not None

    with pytest.raises(DomainError) as caught:
        with log_context({"request_id": "req-9"}):
            raise _error(code="E101")
    assert caught.value.code == "E101"


def test_validation_errors_raise_through_context_managers() -> None:
    """The mutable subclass unwinds the same way."""
    with pytest.raises(ValidationError) as caught:
        with _scope():
            raise ValidationError(initial_fields={"email": ["required"]})
    assert caught.value.has_field("email")


def test_raised_errors_accept_chaining_and_notes() -> None:
    """Implicit context and notes are set on live exceptions; fields stay frozen."""
    with pytest.raises(DomainError) as caught:
        try:
            raise KeyError("sku")
        except KeyError:
            raise _error()
    caught.value.add_note("while pricing")

    assert isinstance(caught.value.__context__, KeyError)
    assert caught.value.__notes__ == ["while pricing"]
    with pytest.raises(AttributeError):
        caught.value.code = "E2"  # type: ignore[misc]


def test_library_errors_raise_through_context_managers() -> None:
    """Registry failures are frozen dataclasses too."""
    with pytest.raises(ParserNotFoundError) as caught:
        with log_context({"parser": "ghost"}):
            raise ParserNotFoundError(message="parser ghost not found", parser="ghost")
    assert caught.value.parser == "ghost"


def test_deepcopy_and_pickle_rebuild_from_fields() -> None:
    """Copies keep content and read-only payloads."""
    cause = OSError("disk full")
    err = _error(error_type=ErrorType.CONFLICT, details={"order": 7}, tags=("billing",), cause=cause)

    for restored in (copy.deepcopy(err), pickle.loads(pickle.dumps(err))):
        assert restored is not err
        assert (restored.code, restored.message, restored.type) == (err.code, err.message, err.type)
        assert restored.details == {"order": 7}
        assert restored.tags == ("billing",)
        assert restored.timestamp == err.timestamp
        assert str(restored.unwrap()) == "disk full"
        with pytest.raises(TypeError):
            restored.details["order"] = 8  # type: ignore[index]


def test_deepcopy_of_validation_error_copies_field_map() -> None:
    """Field messages survive a deep copy and stay independent."""
    err = ValidationError(initial_fields={"email": ["required"]})
    copied = copy.deepcopy({"payload": err})["payload"]
    copied.add_field("age", "must be positive")

    assert isinstance(copied, ValidationError)
    assert copied.total_errors() == 2
    assert err.total_errors() == 1


def test_library_errors_deepcopy() -> None:
    """Keyword-built library errors copy with their fields."""
    err = ParserExecutionError(message="parser redis failed", parser="redis", cause=RuntimeError("bug"))
    copied = copy.deepcopy(err)

    assert copied.parser == "redis"
    assert str(copied) == "parser redis failed"
    assert isinstance(copied.cause, RuntimeError)
