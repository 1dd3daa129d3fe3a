"""Typed errors for the parser registry, plugins and factories."""

from __future__ import annotations

from dataclasses import dataclass

from ..errors.exceptions import FaultlineError, raisable


@raisable
@dataclass(frozen=True)
class ParserRegistryError(FaultlineError):
    """Base error for parser registry failures."""

    parser: str = ""


@raisable
@dataclass(frozen=True)
class ParserRegistrationError(ParserRegistryError, ValueError):
    """A parser, plugin or factory registration was rejected."""


@raisable
@dataclass(frozen=True)
class ParserNotFoundError(ParserRegistryError, LookupError):
    """No parser is registered under the requested name."""


@raisable
@dataclass(frozen=True)
class ParserNotConfigurableError(ParserRegistryError):
    """The parser is neither plugin-backed nor buildable by a factory."""


@raisable
@dataclass(frozen=True)
class ParserConfigError(ParserRegistryError, ValueError):
    """A plugin or factory configuration failed validation."""


@raisable
@dataclass(frozen=True)
class UnsupportedParserTypeError(ParserConfigError):
    """A parser factory was asked for a kind it does not build."""

    kind: str = ""


@raisable
@dataclass(frozen=True)
class NoParserFoundError(ParserRegistryError, LookupError):
    """No enabled parser recognised the error."""

    candidates: int = 0


@raisable
@dataclass(frozen=True)
class ParseCancelledError(ParserRegistryError):
    """Dispatch stopped because its cancellation token fired."""


@raisable
@dataclass(frozen=True)
class ParserExecutionError(ParserRegistryError, RuntimeError):
    """A parser raised while classifying an error."""

    cause: BaseException | None = None
