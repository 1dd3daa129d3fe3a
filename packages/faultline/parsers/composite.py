"""Ordered composition of parsers and the module-level parse helper."""

from __future__ import annotations

from typing import Iterable

from ..errors import codes
from ..errors.types import ErrorType, Severity
from .base import ErrorParser, ParsedError, base_details, error_text
from .database import MySQLErrorParser, PostgreSQLErrorParser, SQLErrorParser
from .network import NetworkErrorParser, TimeoutErrorParser


def _fallback(err: BaseException, code: str) -> ParsedError:
    return ParsedError(
        code=code,
        message=error_text(err),
        type=ErrorType.INTERNAL,
        severity=Severity.MEDIUM,
        details=base_details(err),
    )


class CompositeErrorParser:
    """Delegate to the first child parser that recognises the error."""

    def __init__(self, parsers: Iterable[ErrorParser] = ()) -> None:
        self._parsers = list(parsers)

    @property
    def parsers(self) -> tuple[ErrorParser, ...]:
        return tuple(self._parsers)

    def add(self, parser: ErrorParser) -> CompositeErrorParser:
        """Append a child; it is consulted after the existing ones."""
        self._parsers.append(parser)
        return self

    def can_parse(self, err: BaseException) -> bool:
        return any(parser.can_parse(err) for parser in self._parsers)

    def parse(self, err: BaseException) -> ParsedError:
        """Return the first child classification, else ``UNKNOWN_ERROR``."""
        for parser in self._parsers:
            if parser.can_parse(err):
                return parser.parse(err)
        return _fallback(err, codes.UNKNOWN_ERROR)


def default_parser() -> CompositeErrorParser:
    """Return the stock chain: timeout, network, PostgreSQL, MySQL, SQL."""
    return CompositeErrorParser(
        [
            TimeoutErrorParser(),
            NetworkErrorParser(),
            PostgreSQLErrorParser(),
            MySQLErrorParser(),
            SQLErrorParser(),
        ]
    )


def parse_error(err: BaseException, parser: ErrorParser | None = None) -> ParsedError:
    """Classify ``err`` with ``parser`` (default chain when omitted).

    Unrecognised errors classify as ``UNPARSEABLE_ERROR``.
    """
    if parser is None:
        parser = default_parser()
    if not parser.can_parse(err):
        return _fallback(err, codes.UNPARSEABLE_ERROR)
    return parser.parse(err)
