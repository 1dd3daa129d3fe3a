"""Shared error code constants.

These constants are stable machine-readable codes. The ``E0xx`` family is
pre-registered in every ``ErrorCodeRegistry``; parser fallbacks are emitted by
the classification layer when nothing more specific is known.
"""

# Common registered codes
VALIDATION_FAILED = "E001"
NOT_FOUND = "E002"
ALREADY_EXISTS = "E003"
BUSINESS_RULE_VIOLATION = "E004"
AUTHENTICATION_FAILED = "E005"
ACCESS_DENIED = "E006"
INTERNAL_ERROR = "E007"
EXTERNAL_SERVICE_UNAVAILABLE = "E008"
REQUEST_TIMEOUT = "E009"
RATE_LIMIT_EXCEEDED = "E010"
DATABASE_ERROR = "E011"
CONFIGURATION_ERROR = "E012"
CIRCUIT_BREAKER_OPEN = "E013"
RESOURCE_EXHAUSTED = "E014"
OPERATION_NOT_SUPPORTED = "E015"

# Factory default when callers pass an empty code
DEFAULT_CODE = "E999"

# Bad request shares the validation family code
BAD_REQUEST = VALIDATION_FAILED

# Classification fallbacks
UNKNOWN_ERROR = "UNKNOWN_ERROR"
UNPARSEABLE_ERROR = "UNPARSEABLE_ERROR"
