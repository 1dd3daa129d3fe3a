"""Public error-parsing API for faultline."""

from .base import ErrorParser, ParsedError, find_in_chain
from .builtin import BuiltinErrorParser
from .cloud import AWSErrorParser
from .composite import CompositeErrorParser, default_parser, parse_error
from .database import MySQLErrorParser, PostgreSQLErrorParser, SQLErrorParser
from .errors import (
    NoParserFoundError,
    ParseCancelledError,
    ParserConfigError,
    ParserExecutionError,
    ParserNotConfigurableError,
    ParserNotFoundError,
    ParserRegistrationError,
    ParserRegistryError,
    UnsupportedParserTypeError,
)
from .network import NetworkErrorParser, TimeoutErrorParser
from .nosql import MongoDBErrorParser, RedisErrorParser
from .plugins import (
    CustomParserFactory,
    GenericDatabasePlugin,
    JSONErrorParser,
    KeywordMatcherParser,
    ParserFactory,
    ParserPlugin,
    RegexMatcherParser,
)
from .protocol import GRPCErrorParser, HTTPErrorParser
from .registry import (
    CancellationToken,
    DistributedParserRegistry,
    ParserMetrics,
    get_default_registry,
    set_default_registry,
)
from .telemetry import ClassificationMetrics, create_classification_metrics

__all__ = [
    "AWSErrorParser",
    "BuiltinErrorParser",
    "CancellationToken",
    "ClassificationMetrics",
    "CompositeErrorParser",
    "CustomParserFactory",
    "DistributedParserRegistry",
    "ErrorParser",
    "GRPCErrorParser",
    "GenericDatabasePlugin",
    "HTTPErrorParser",
    "JSONErrorParser",
    "KeywordMatcherParser",
    "MongoDBErrorParser",
    "MySQLErrorParser",
    "NetworkErrorParser",
    "NoParserFoundError",
    "ParseCancelledError",
    "ParsedError",
    "ParserConfigError",
    "ParserExecutionError",
    "ParserFactory",
    "ParserMetrics",
    "ParserNotConfigurableError",
    "ParserNotFoundError",
    "ParserPlugin",
    "ParserRegistrationError",
    "ParserRegistryError",
    "PostgreSQLErrorParser",
    "RedisErrorParser",
    "RegexMatcherParser",
    "SQLErrorParser",
    "TimeoutErrorParser",
    "UnsupportedParserTypeError",
    "create_classification_metrics",
    "default_parser",
    "find_in_chain",
    "get_default_registry",
    "parse_error",
    "set_default_registry",
]
