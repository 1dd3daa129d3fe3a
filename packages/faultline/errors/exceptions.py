"""Typed library failures raised by the error model and code registry.

These are control-flow exceptions for misuse of the library itself. Domain
errors produced for application failures live in ``domain_error``.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, TypeVar

_E = TypeVar("_E", bound=BaseException)

# Set by ``raise``, ``contextlib`` and ``add_note`` on live exceptions.
_EXCEPTION_STATE = frozenset(
    {"__traceback__", "__cause__", "__context__", "__suppress_context__", "__notes__"}
)


def raisable(cls: type[_E]) -> type[_E]:
    """Let a frozen dataclass exception travel through raise machinery.

    Apply above ``@dataclass(frozen=True)`` on every exception class.
    Traceback and chaining attributes bypass the frozen guard; dataclass
    fields stay immutable.
    """
    frozen_setattr = cls.__setattr__
    frozen_delattr = cls.__delattr__

    def __setattr__(self: Any, name: str, value: Any) -> None:
        if name in _EXCEPTION_STATE:
            object.__setattr__(self, name, value)
        else:
            frozen_setattr(self, name, value)

    def __delattr__(self: Any, name: str) -> None:
        if name in _EXCEPTION_STATE:
            object.__delattr__(self, name)
        else:
            frozen_delattr(self, name)

    cls.__setattr__ = __setattr__  # type: ignore[method-assign,assignment]
    cls.__delattr__ = __delattr__  # type: ignore[method-assign,assignment]
    return cls


def init_kwargs(err: Any) -> dict[str, Any]:
    """Return the keyword arguments that rebuild dataclass exception ``err``."""
    return {item.name: getattr(err, item.name) for item in fields(err) if item.init}


def rebuild_exception(cls: type[_E], kwargs: dict[str, Any]) -> _E:
    """Pickle target: construct ``cls`` from keyword arguments."""
    return cls(**kwargs)


@raisable
@dataclass(frozen=True)
class FaultlineError(Exception):
    """Base error type for faultline library failures."""

    message: str

    def __str__(self) -> str:
        """Return the human-readable error message."""
        return self.message

    def __reduce__(self) -> tuple[Any, ...]:
        # ``args`` is empty under keyword construction.
        return rebuild_exception, (type(self), init_kwargs(self))


@raisable
@dataclass(frozen=True)
class ErrorChainCycleError(FaultlineError, RuntimeError):
    """A cause chain loops back on itself."""


@raisable
@dataclass(frozen=True)
class ErrorCodeRegistryError(FaultlineError):
    """Base error for error code registry failures."""

    code: str = ""


@raisable
@dataclass(frozen=True)
class InvalidErrorCodeInfoError(ErrorCodeRegistryError, ValueError):
    """An ``ErrorCodeInfo`` declaration violates its invariants."""


@raisable
@dataclass(frozen=True)
class ErrorCodeExistsError(ErrorCodeRegistryError):
    """A code is already registered."""


@raisable
@dataclass(frozen=True)
class ErrorCodeNotFoundError(ErrorCodeRegistryError, LookupError):
    """A code is not registered."""
