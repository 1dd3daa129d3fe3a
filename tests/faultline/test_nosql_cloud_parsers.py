"""Tests for Redis, MongoDB and AWS error parsers."""

from __future__ import annotations

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2]))

from packages.faultline.errors import Category, Severity
from packages.faultline.parsers import AWSErrorParser, MongoDBErrorParser, RedisErrorParser


class _Opaque(Exception):
    """Synthetic exception carrying only text."""


class _ClientErrorLike(Exception):
    """Synthetic botocore-style client error."""

    def __init__(self, code: str, request_id: str) -> None:
        super().__init__(f"An error occurred ({code}) when calling the operation")
        self.response = {
            "Error": {"Code": code, "Message": "denied"},
            "ResponseMetadata": {"RequestId": request_id},
        }


def test_redis_first_listed_case_wins() -> None:
    """Text matching timeout and connection classifies as timeout."""
    parsed = RedisErrorParser().parse(_Opaque("redis: connection refused after timeout"))

    assert parsed.code == "REDIS_TIMEOUT"
    assert parsed.details["error_type"] == "timeout"
    assert parsed.retryable is True


def test_redis_reply_codes() -> None:
    """Server reply prefixes map to dedicated codes."""
    parser = RedisErrorParser()
    wrong_type = parser.parse(_Opaque("WRONGTYPE Operation against a key holding the wrong kind of value"))

    assert wrong_type.code == "REDIS_WRONG_TYPE"
    assert wrong_type.details["redis_error_code"] == "WRONGTYPE"
    assert wrong_type.category is Category.TECHNICAL
    assert parser.parse(_Opaque("NOAUTH Authentication required.")).code == "REDIS_AUTH_ERROR"
    assert parser.parse(_Opaque("READONLY You can't write against a read only replica.")).code == "REDIS_READONLY"
    assert parser.parse(_Opaque("BUSY Redis is busy running a script")).code == "REDIS_BUSY"


def test_redis_unknown_reply() -> None:
    """Recognised but unmapped replies become ``REDIS_UNKNOWN``."""
    parsed = RedisErrorParser().parse(_Opaque("ERR unknown command 'FOO'"))
    assert parsed.code == "REDIS_UNKNOWN"
    assert parsed.retryable is False


def test_mongo_server_codes() -> None:
    """Numeric server codes map to known Mongo codes."""
    parser = MongoDBErrorParser()
    duplicate = parser.parse(_Opaque("E11000 duplicate key error collection: shop.users (11000)"))

    assert duplicate.code == "MONGO_DUPLICATE_KEY"
    assert duplicate.details["mongo_error_code"] == "11000"
    assert parser.parse(_Opaque("command failed (9001)")).code == "MONGO_ERROR_9001"


def test_mongo_text_fallbacks() -> None:
    """Without a code, message keywords choose the classification."""
    parser = MongoDBErrorParser()

    assert parser.parse(_Opaque("mongo: server selection timeout")).code == "MONGO_TIMEOUT"
    assert parser.parse(_Opaque("mongo: replica set has no primary")).code == "MONGO_REPLICA_SET_ERROR"
    assert parser.parse(_Opaque("mongo: cursor exhausted")).code == "MONGO_UNKNOWN"


def test_aws_reads_client_error_response() -> None:
    """Structured responses supply the AWS code and request id."""
    parser = AWSErrorParser()
    err = _ClientErrorLike("ThrottlingException", "abc-123")

    assert parser.can_parse(err) is True
    parsed = parser.parse(err)
    assert parsed.code == "AWS_THROTTLINGEXCEPTION"
    assert parsed.details["request_id"] == "abc-123"
    assert parsed.details["throttled"] is True
    assert parsed.severity is Severity.HIGH
    assert parsed.retryable is True
    assert parsed.category is Category.INFRASTRUCTURE


def test_aws_text_code_and_request_id() -> None:
    """Rendered SDK text is parsed when no response is attached."""
    parsed = AWSErrorParser().parse(
        _Opaque("InternalServiceError: s3 failed RequestId: 9f8e-77aa")
    )

    assert parsed.code == "AWS_INTERNALSERVICEERROR"
    assert parsed.details["request_id"] == "9f8e-77aa"
    assert parsed.severity is Severity.CRITICAL
    assert parsed.retryable is True


def test_aws_ignores_python_builtin_exception_names() -> None:
    """Builtin exception names in text are not AWS codes."""
    parser = AWSErrorParser()

    assert parser.can_parse(KeyError()) is False
    assert parser.parse(_Opaque("s3 ValueError happened")).code == "AWS_UNKNOWN"
