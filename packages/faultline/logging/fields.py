"""Canonical logging field names for classification and error events.

Keeping names centralized prevents drift between the registry, the factory and
whatever log pipeline the host application feeds.
"""

TIMESTAMP = "timestamp"
LEVEL = "level"
LOGGER = "logger"
MESSAGE = "message"
EVENT = "event"

# Correlation fields copied into domain error metadata.
REQUEST_ID = "request_id"
TRACE_ID = "trace_id"
USER_ID = "user_id"

# Classification fields.
PARSER = "parser"
PARSER_PRIORITY = "parser_priority"
ERROR_CODE = "error_code"
ERROR_TYPE = "error_type"
EXCEPTION_TYPE = "exception_type"
DURATION_MS = "duration_ms"
OUTCOME = "outcome"
CANDIDATES = "candidates"
SEVERITY = "severity"
STATUS_CODE = "status_code"
RETRYABLE = "retryable"
EXCEPTION = "exception"

CLASSIFICATION_EVENT = "error_classification"
CLASSIFICATION_MISS_EVENT = "error_classification_miss"
CLASSIFICATION_FAILURE_EVENT = "error_classification_failure"
CLASSIFICATION_CANCELLED_EVENT = "error_classification_cancelled"
REGISTRY_CHANGE_EVENT = "parser_registry_change"

# Common service-level fields.
SERVICE = "service"
ENVIRONMENT = "environment"
