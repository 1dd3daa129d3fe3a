"""Parser plugins, parser factories and the configurable parsers they build.

Plugin and factory configurations are plain mappings (they arrive from YAML or
the environment). Each kind validates its mapping through a pydantic model and
reports failures as ``ParserConfigError``.
"""

from __future__ import annotations

import json
import re
from typing import Any, Callable, Mapping, Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..errors.types import Category, ErrorType, Severity
from .base import ErrorParser, ParsedError, base_details, error_text
from .errors import ParserConfigError, ParserRegistrationError, UnsupportedParserTypeError

TConfig = TypeVar("TConfig", bound=BaseModel)

ParserConstructor = Callable[[Mapping[str, Any]], ErrorParser]


@runtime_checkable
class ParserPlugin(Protocol):
    """Self-describing, configurable source of one parser."""

    name: str
    version: str
    description: str

    def default_config(self) -> dict[str, Any]:
        """Return a configuration that ``validate_config`` accepts."""

    def validate_config(self, config: Mapping[str, Any]) -> None:
        """Raise ``ParserConfigError`` when ``config`` is unusable."""

    def create_parser(self, config: Mapping[str, Any]) -> ErrorParser:
        """Build a parser from a validated configuration."""


@runtime_checkable
class ParserFactory(Protocol):
    """Builds parsers of several named kinds from configuration mappings."""

    def create_parser(self, kind: str, config: Mapping[str, Any]) -> ErrorParser:
        """Build a parser of ``kind``."""

    def supported_types(self) -> list[str]:
        """Return the kinds this factory can build."""

    def register_custom_type(self, name: str, constructor: ParserConstructor) -> None:
        """Add a kind backed by ``constructor``."""


def validate_model(model: type[TConfig], config: Mapping[str, Any] | None, *, owner: str) -> TConfig:
    """Validate ``config`` into ``model`` or raise ``ParserConfigError``."""
    if config is None:
        raise ParserConfigError(message=f"{owner}: configuration cannot be None", parser=owner)
    try:
        return model.model_validate(dict(config))
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in item['loc']) or 'config'}: {item['msg']}" for item in exc.errors()
        )
        raise ParserConfigError(message=f"{owner}: invalid configuration ({problems})", parser=owner) from exc


def _severity_for_code(code: str) -> Severity:
    if "TIMEOUT" in code or "CONNECTION" in code:
        return Severity.HIGH
    return Severity.MEDIUM


class GenericDatabaseConfig(BaseModel):
    """Configuration of ``GenericDatabasePlugin``."""

    model_config = ConfigDict(extra="ignore")

    patterns: list[str]
    error_codes: dict[str, str]


class GenericDatabaseParser:
    """Keyword-driven database parser built by ``GenericDatabasePlugin``.

    ``error_codes`` keywords are tried in configuration order; the first
    keyword found in the message picks the code.
    """

    def __init__(self, config: GenericDatabaseConfig) -> None:
        self._patterns = [pattern.lower() for pattern in config.patterns]
        self._codes = dict(config.error_codes)

    def can_parse(self, err: BaseException) -> bool:
        text = error_text(err).lower()
        return any(pattern in text for pattern in self._patterns)

    def parse(self, err: BaseException) -> ParsedError:
        text = error_text(err)
        lowered = text.lower()
        details = base_details(err)
        code = "GENERIC_DB_ERROR"
        for keyword, mapped in self._codes.items():
            if keyword.lower() in lowered:
                code = mapped
                details["matched_keyword"] = keyword
                break
        retryable = "TIMEOUT" in code or "CONNECTION" in code
        return ParsedError(
            code=code,
            message=text,
            type=ErrorType.DATABASE,
            severity=_severity_for_code(code),
            category=Category.TECHNICAL,
            details=details,
            retryable=retryable,
            temporary=retryable,
        )


class GenericDatabasePlugin:
    """Plugin that builds a keyword-driven database parser."""

    name = "generic_database"
    version = "1.0.0"
    description = "Generic database error parser with configurable patterns"

    def default_config(self) -> dict[str, Any]:
        return {
            "patterns": ["database", "sql", "connection", "query"],
            "error_codes": {
                "timeout": "DB_TIMEOUT",
                "connection": "DB_CONNECTION_ERROR",
                "constraint": "DB_CONSTRAINT_VIOLATION",
                "syntax": "DB_SYNTAX_ERROR",
            },
        }

    def validate_config(self, config: Mapping[str, Any]) -> None:
        validate_model(GenericDatabaseConfig, config, owner=self.name)

    def create_parser(self, config: Mapping[str, Any]) -> ErrorParser:
        return GenericDatabaseParser(validate_model(GenericDatabaseConfig, config, owner=self.name))


class _MatcherConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    error_type: ErrorType = ErrorType.INTERNAL
    severity: Severity = Severity.MEDIUM

    @field_validator("severity", mode="before")
    @classmethod
    def _parse_severity(cls, value: object) -> object:
        if isinstance(value, (str, int)):
            return Severity.parse(value)
        return value


class RegexMatcherConfig(_MatcherConfig):
    pattern: str = Field(min_length=1)
    error_code: str = "REGEX_MATCH"

    @field_validator("pattern")
    @classmethod
    def _compile(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            raise ValueError(f"invalid regex pattern: {exc}") from exc
        return value


class KeywordMatcherConfig(_MatcherConfig):
    keywords: list[str] = Field(min_length=1)
    error_code: str = "KEYWORD_MATCH"

    @field_validator("keywords")
    @classmethod
    def _non_blank(cls, value: list[str]) -> list[str]:
        cleaned = [keyword for keyword in value if keyword.strip()]
        if not cleaned:
            raise ValueError("at least one keyword is required")
        return cleaned


class JSONErrorConfig(_MatcherConfig):
    error_code: str = "JSON_ERROR"


class RegexMatcherParser:
    """Match rendered text against one regular expression."""

    def __init__(self, config: RegexMatcherConfig) -> None:
        self._regex = re.compile(config.pattern)
        self._config = config

    def can_parse(self, err: BaseException) -> bool:
        return bool(self._regex.search(error_text(err)))

    def parse(self, err: BaseException) -> ParsedError:
        text = error_text(err)
        details = base_details(err)
        match = self._regex.search(text)
        if match and match.groups():
            details["regex_matches"] = list(match.groups())
        return ParsedError(
            code=self._config.error_code,
            message=text,
            type=self._config.error_type,
            severity=self._config.severity,
            details=details,
            retryable=self._config.error_type.is_retryable,
            temporary=self._config.error_type.is_temporary,
        )


class KeywordMatcherParser:
    """Match rendered text against case-insensitive keywords."""

    def __init__(self, config: KeywordMatcherConfig) -> None:
        self._keywords = list(config.keywords)
        self._config = config

    def can_parse(self, err: BaseException) -> bool:
        text = error_text(err).lower()
        return any(keyword.lower() in text for keyword in self._keywords)

    def parse(self, err: BaseException) -> ParsedError:
        text = error_text(err)
        lowered = text.lower()
        matched = [keyword for keyword in self._keywords if keyword.lower() in lowered]
        return ParsedError(
            code=self._config.error_code,
            message=text,
            type=self._config.error_type,
            severity=self._config.severity,
            details=base_details(err, matched_keywords=matched),
            retryable=self._config.error_type.is_retryable,
            temporary=self._config.error_type.is_temporary,
        )


class JSONErrorParser:
    """Classify errors whose text is a JSON object.

    ``code``, ``message`` and ``type`` members of the document override the
    configured defaults when present.
    """

    def __init__(self, config: JSONErrorConfig | None = None) -> None:
        self._config = config or JSONErrorConfig()

    def can_parse(self, err: BaseException) -> bool:
        text = error_text(err).strip()
        return text.startswith("{") and text.endswith("}")

    def parse(self, err: BaseException) -> ParsedError:
        text = error_text(err)
        details = base_details(err, raw_json=text)
        code = self._config.error_code
        message = text
        error_type = self._config.error_type
        try:
            document = json.loads(text)
        except json.JSONDecodeError:
            document = None
        if isinstance(document, dict):
            code = str(document.get("code") or code)
            message = str(document.get("message") or message)
            if ErrorType.is_valid(document.get("type")):
                error_type = ErrorType(document["type"])
        return ParsedError(
            code=code,
            message=message,
            type=error_type,
            severity=self._config.severity,
            details=details,
            retryable=error_type.is_retryable,
            temporary=error_type.is_temporary,
        )


class CustomParserFactory:
    """Factory for matcher parsers plus caller-registered kinds.

    Registered kinds shadow built-in kinds of the same name.
    """

    BUILTIN_TYPES = ("regex_matcher", "keyword_matcher", "json_error_parser")

    def __init__(self) -> None:
        self._custom: dict[str, ParserConstructor] = {}

    def create_parser(self, kind: str, config: Mapping[str, Any]) -> ErrorParser:
        constructor = self._custom.get(kind)
        if constructor is not None:
            return constructor(config)
        if kind == "regex_matcher":
            return RegexMatcherParser(validate_model(RegexMatcherConfig, config, owner=kind))
        if kind == "keyword_matcher":
            return KeywordMatcherParser(validate_model(KeywordMatcherConfig, config, owner=kind))
        if kind == "json_error_parser":
            return JSONErrorParser(validate_model(JSONErrorConfig, config or {}, owner=kind))
        raise UnsupportedParserTypeError(message=f"unknown parser type: {kind}", kind=kind)

    def supported_types(self) -> list[str]:
        return list(dict.fromkeys([*self.BUILTIN_TYPES, *self._custom]))

    def register_custom_type(self, name: str, constructor: ParserConstructor) -> None:
        if not name:
            raise ParserRegistrationError(message="type name cannot be empty")
        if constructor is None:
            raise ParserRegistrationError(message=f"constructor for {name} cannot be None", parser=name)
        self._custom[name] = constructor
