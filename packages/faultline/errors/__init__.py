"""Public domain error API for faultline."""

from . import codes
from .builder import ErrorBuilder
from .code_registry import (
    ErrorCodeInfo,
    ErrorCodeRegistry,
    common_codes,
    get_default_code_registry,
    set_default_code_registry,
)
from .domain_error import DomainError, StackFrame
from .exceptions import (
    ErrorChainCycleError,
    ErrorCodeExistsError,
    ErrorCodeNotFoundError,
    ErrorCodeRegistryError,
    FaultlineError,
    InvalidErrorCodeInfoError,
)
from .factories import ErrorFactory, get_default_factory, set_default_factory
from .helpers import (
    format_error,
    get_error_code,
    get_error_type,
    get_root_cause,
    get_status_code,
    is_retryable,
    is_temporary,
    wrap,
)
from .serialization import ErrorRecord
from .types import Category, ErrorType, Severity, status_code_for
from .validation import ValidationError

__all__ = [
    "Category",
    "DomainError",
    "ErrorBuilder",
    "ErrorChainCycleError",
    "ErrorCodeExistsError",
    "ErrorCodeInfo",
    "ErrorCodeNotFoundError",
    "ErrorCodeRegistry",
    "ErrorCodeRegistryError",
    "ErrorFactory",
    "ErrorRecord",
    "ErrorType",
    "FaultlineError",
    "InvalidErrorCodeInfoError",
    "Severity",
    "StackFrame",
    "ValidationError",
    "codes",
    "common_codes",
    "format_error",
    "get_default_code_registry",
    "get_default_factory",
    "get_error_code",
    "get_error_type",
    "get_root_cause",
    "get_status_code",
    "is_retryable",
    "is_temporary",
    "set_default_code_registry",
    "set_default_factory",
    "status_code_for",
    "wrap",
]
