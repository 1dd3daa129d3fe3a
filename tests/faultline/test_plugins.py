"""Tests for parser plugins, the custom parser factory and matcher parsers."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Mapping

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from packages.faultline.errors import Severity
from packages.faultline.parsers import (
    CustomParserFactory,
    GenericDatabasePlugin,
    ParsedError,
    ParserConfigError,
    ParserFactory,
    ParserPlugin,
    ParserRegistrationError,
    UnsupportedParserTypeError,
)


class _Opaque(Exception):
    """Synthetic exception carrying only text."""


class _EchoParser:
    """Parser built by a custom kind; recognises everything."""

    def __init__(self, config: Mapping[str, Any]) -> None:
        self.label = str(config.get("label", "echo"))

    def can_parse(self, err: BaseException) -> bool:
        return True

    def parse(self, err: BaseException) -> ParsedError:
        return ParsedError(code=self.label.upper(), message=str(err), type="internal")


def test_generic_database_plugin_satisfies_protocol() -> None:
    """The stock plugin describes itself and validates its default config."""
    plugin = GenericDatabasePlugin()

    assert isinstance(plugin, ParserPlugin)
    assert plugin.name == "generic_database"
    assert plugin.version == "1.0.0"
    plugin.validate_config(plugin.default_config())


def test_generic_database_plugin_rejects_bad_shapes() -> None:
    """Missing keys or wrong types fail before a parser is built."""
    plugin = GenericDatabasePlugin()

    with pytest.raises(ParserConfigError):
        plugin.validate_config({"patterns": ["db"]})
    with pytest.raises(ParserConfigError):
        plugin.validate_config({"patterns": "db", "error_codes": {}})
    with pytest.raises(ParserConfigError):
        plugin.create_parser({"error_codes": {}})


def test_generic_database_parser_uses_first_configured_keyword() -> None:
    """Keywords are tried in configuration order."""
    plugin = GenericDatabasePlugin()
    parser = plugin.create_parser(plugin.default_config())
    err = _Opaque("database connection timeout")

    assert parser.can_parse(err) is True
    parsed = parser.parse(err)
    assert parsed.code == "DB_TIMEOUT"
    assert parsed.details["matched_keyword"] == "timeout"
    assert parsed.severity is Severity.HIGH
    assert parsed.retryable is True
    assert parser.parse(_Opaque("database exploded")).code == "GENERIC_DB_ERROR"


def test_factory_builds_regex_matcher() -> None:
    """Regex matchers capture groups into details."""
    factory = CustomParserFactory()
    parser = factory.create_parser(
        "regex_matcher",
        {"pattern": r"quota (\w+) exceeded", "error_code": "QUOTA", "error_type": "rate_limit", "severity": "high"},
    )
    parsed = parser.parse(_Opaque("quota uploads exceeded"))

    assert parsed.code == "QUOTA"
    assert parsed.type.value == "rate_limit"
    assert parsed.severity is Severity.HIGH
    assert parsed.details["regex_matches"] == ["uploads"]
    assert parsed.retryable is True


def test_factory_rejects_invalid_regex() -> None:
    """A pattern that does not compile is a configuration error."""
    with pytest.raises(ParserConfigError):
        CustomParserFactory().create_parser("regex_matcher", {"pattern": "(unclosed"})


def test_factory_builds_keyword_matcher() -> None:
    """Keyword matchers are case-insensitive and report matches."""
    parser = CustomParserFactory().create_parser("keyword_matcher", {"keywords": ["Quota", "limit"]})
    parsed = parser.parse(_Opaque("QUOTA limit reached"))

    assert parsed.code == "KEYWORD_MATCH"
    assert parsed.details["matched_keywords"] == ["Quota", "limit"]
    with pytest.raises(ParserConfigError):
        CustomParserFactory().create_parser("keyword_matcher", {"keywords": []})


def test_factory_builds_json_error_parser() -> None:
    """JSON documents override code, message and type."""
    parser = CustomParserFactory().create_parser("json_error_parser", {})
    err = _Opaque('{"code": "ACCT_LOCKED", "message": "account locked", "type": "authorization"}')

    assert parser.can_parse(err) is True
    parsed = parser.parse(err)
    assert parsed.code == "ACCT_LOCKED"
    assert parsed.message == "account locked"
    assert parsed.type.value == "authorization"
    assert parser.can_parse(_Opaque("plain text")) is False


def test_factory_unknown_kind_fails() -> None:
    """Unknown kinds raise ``UnsupportedParserTypeError``."""
    with pytest.raises(UnsupportedParserTypeError) as exc_info:
        CustomParserFactory().create_parser("xml_matcher", {})
    assert exc_info.value.kind == "xml_matcher"


def test_custom_types_extend_and_shadow_builtin_kinds() -> None:
    """Registered kinds are listed and used before built-in kinds."""
    factory = CustomParserFactory()
    factory.register_custom_type("echo", _EchoParser)
    factory.register_custom_type("regex_matcher", _EchoParser)

    assert isinstance(factory, ParserFactory)
    assert factory.supported_types() == ["regex_matcher", "keyword_matcher", "json_error_parser", "echo"]
    assert factory.create_parser("echo", {"label": "hi"}).parse(_Opaque("x")).code == "HI"
    assert isinstance(factory.create_parser("regex_matcher", {}), _EchoParser)


def test_register_custom_type_validates_arguments() -> None:
    """Empty names and missing constructors are rejected."""
    factory = CustomParserFactory()
    with pytest.raises(ParserRegistrationError):
        factory.register_custom_type("", _EchoParser)
    with pytest.raises(ParserRegistrationError):
        factory.register_custom_type("echo", None)  # type: ignore[arg-type]
