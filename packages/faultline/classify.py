"""Classification entry points tying parsers to domain errors.

Callers either want the raw ``ParsedError`` (``classify``) or a ready
``DomainError`` carrying the original exception as its cause
(``exception_to_error``).
"""

from __future__ import annotations

from .errors import codes
from .errors.domain_error import DomainError
from .errors.factories import ErrorFactory, get_default_factory
from .parsers.base import ParsedError, base_details, error_text
from .parsers.errors import NoParserFoundError
from .parsers.registry import CancellationToken, DistributedParserRegistry, get_default_registry


def classify(
    err: BaseException,
    *,
    registry: DistributedParserRegistry | None = None,
    token: CancellationToken | None = None,
) -> ParsedError:
    """Classify ``err`` with ``registry`` (process default when omitted).

    Registry failures propagate unchanged, including ``NoParserFoundError``.
    """
    parsed, _ = (registry or get_default_registry()).parse(err, token=token)
    return parsed


def classify_or_unknown(
    err: BaseException,
    *,
    registry: DistributedParserRegistry | None = None,
    token: CancellationToken | None = None,
) -> ParsedError:
    """Like ``classify`` but unrecognised errors become ``UNKNOWN_ERROR``."""
    try:
        return classify(err, registry=registry, token=token)
    except NoParserFoundError:
        return ParsedError(
            code=codes.UNKNOWN_ERROR,
            message=error_text(err),
            type="internal",
            details=base_details(err, exception_type=type(err).__name__),
        )


def parsed_to_error(
    parsed: ParsedError,
    cause: BaseException | None = None,
    *,
    factory: ErrorFactory | None = None,
) -> DomainError:
    """Lift a classification into a ``DomainError`` through ``factory``."""
    return (factory or get_default_factory()).from_parsed(parsed, cause)


def exception_to_error(
    exc: BaseException,
    *,
    factory: ErrorFactory | None = None,
    registry: DistributedParserRegistry | None = None,
    token: CancellationToken | None = None,
) -> DomainError:
    """Normalize any exception into a ``DomainError``.

    Domain errors pass through unchanged. Everything else is classified and
    wrapped so ``exc`` stays reachable as the cause.
    """
    if isinstance(exc, DomainError):
        return exc
    parsed = classify_or_unknown(exc, registry=registry, token=token)
    return parsed_to_error(parsed, exc, factory=factory)
