"""Tests for structured logging configuration and context propagation."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Iterator

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from packages.faultline.config import LoggingSettings
from packages.faultline.errors import DomainError, ErrorType
from packages.faultline.logging import (
    bind_context,
    clear_context,
    configure_logging,
    correlation_ids,
    error_fields,
    get_context,
    get_logger,
    log_context,
)
from packages.faultline.parsers import DistributedParserRegistry, NoParserFoundError


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    clear_context()
    yield
    clear_context()
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


def test_log_context_is_scoped() -> None:
    """Context bound in a block disappears after it."""
    bind_context(service="billing", empty=None)
    with log_context({"request_id": "r-1"}):
        assert get_context() == {"service": "billing", "request_id": "r-1"}
    assert get_context() == {"service": "billing"}
    clear_context("service")
    assert get_context() == {}


def test_json_output_carries_classification_fields(capsys: pytest.CaptureFixture[str]) -> None:
    """A classification miss logs one JSON line with structured fields."""
    configure_logging(level="DEBUG", json_output=True, service="faultline-test", environment="ci")
    registry = DistributedParserRegistry(include_builtin=False)

    with pytest.raises(NoParserFoundError):
        registry.parse(RuntimeError("opaque failure"))

    lines = [json.loads(line) for line in capsys.readouterr().out.splitlines() if line.strip()]
    miss = [line for line in lines if line.get("event") == "error_classification_miss"]
    assert len(miss) == 1
    assert miss[0]["level"] == "WARNING"
    assert miss[0]["exception_type"] == "RuntimeError"
    assert miss[0]["candidates"] == "0"
    assert miss[0]["service"] == "faultline-test"
    assert miss[0]["environment"] == "ci"


def test_plain_output_appends_context(capsys: pytest.CaptureFixture[str]) -> None:
    """The plain formatter appends sorted ``key=value`` context."""
    configure_logging(level="INFO", json_output=False)

    with log_context({"parser": "redis"}):
        get_logger("faultline.test").info("hello")

    output = capsys.readouterr().out
    assert "INFO faultline.test hello" in output
    assert "parser=redis" in output


def test_configure_logging_replaces_handlers() -> None:
    """Repeated configuration never duplicates handlers."""
    configure_logging()
    configure_logging()
    assert len(logging.getLogger().handlers) == 1


def test_configure_logging_from_settings(capsys: pytest.CaptureFixture[str]) -> None:
    """The ``logging`` settings subtree drives level, format and seed context."""
    settings = LoggingSettings(level="WARNING", json_output=False, service="ledger", environment="stage")
    configure_logging(settings)
    logger = get_logger("faultline.test")

    logger.info("dropped")
    logger.warning("kept")

    output = capsys.readouterr().out
    assert "dropped" not in output
    assert "WARNING faultline.test kept" in output
    assert "environment=stage" in output
    assert "service=ledger" in output


def test_keyword_arguments_override_settings(capsys: pytest.CaptureFixture[str]) -> None:
    """Explicit arguments win over the settings object."""
    configure_logging(LoggingSettings(level="WARNING", json_output=False), level="DEBUG", json_output=True)
    get_logger("faultline.test").debug("visible")

    line = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert line["message"] == "visible"
    assert line["level"] == "DEBUG"


def test_logged_domain_errors_carry_classification_fields(capsys: pytest.CaptureFixture[str]) -> None:
    """Records with a domain error add its code, type, severity and status."""
    configure_logging(level="INFO", json_output=True)
    err = DomainError(code="E404", message="order missing", error_type=ErrorType.NOT_FOUND)

    get_logger("faultline.test").error("lookup failed", exc_info=err)

    line = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert line["error_code"] == "E404"
    assert line["error_type"] == "not_found"
    assert line["severity"] == "low"
    assert line["status_code"] == "404"
    assert line["retryable"] == "false"
    assert line["exception_type"] == "DomainError"
    assert "exception" in line


def test_error_fields_for_foreign_exceptions() -> None:
    """Other exceptions contribute their type name only."""
    assert error_fields(None) == {}
    assert error_fields(KeyError("sku")) == {"exception_type": "KeyError"}


def test_correlation_ids_skip_unbound_fields() -> None:
    """Only non-empty correlation ids are reported."""
    with log_context(request_id="req-1", parser="redis", user_id=""):
        assert correlation_ids() == {"request_id": "req-1"}
