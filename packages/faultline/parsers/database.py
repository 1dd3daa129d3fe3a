"""Relational database error parsers: PostgreSQL, MySQL and generic SQL."""

from __future__ import annotations

import re

from sqlalchemy import exc as sa_exc

from ..errors.types import ErrorType, Severity
from .base import ParsedError, base_details, error_text

_SQLSTATE_RE = re.compile(r"SQLSTATE[\s:]*([0-9A-Z]{5})")

# Driver messages that carry no SQLSTATE but identify one unambiguously.
_PG_PHRASES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"duplicate key value"), "23505"),
    (re.compile(r"violates foreign key constraint"), "23503"),
    (re.compile(r"violates not-null constraint|null value in column"), "23502"),
    (re.compile(r"violates check constraint"), "23514"),
    (re.compile(r'relation "[^"]+" does not exist'), "42P01"),
    (re.compile(r'column "[^"]+" does not exist'), "42703"),
    (re.compile(r"could not serialize access"), "40001"),
    (re.compile(r"deadlock detected"), "40P01"),
    (re.compile(r"too many (?:connections|clients)"), "53300"),
    (re.compile(r"terminating connection due to administrator command"), "57P01"),
)

_PG_MESSAGES = {
    "23505": "Unique constraint violation",
    "23503": "Foreign key constraint violation",
    "23502": "Not null constraint violation",
    "23514": "Check constraint violation",
    "42P01": "Table does not exist",
    "42703": "Column does not exist",
    "08006": "Connection failure",
    "08001": "Unable to connect to database",
    "57P01": "Admin shutdown",
    "53300": "Too many connections",
    "40001": "Serialization failure",
    "40P01": "Deadlock detected",
}

_PG_RETRYABLE = frozenset({"08006", "08001", "57P01", "53300", "40001", "40P01"})


def _driver_sqlstate(err: BaseException) -> str | None:
    """Return a SQLSTATE exposed by psycopg, psycopg2 or a wrapping ``DBAPIError``."""
    candidates = [err]
    orig = getattr(err, "orig", None)
    if isinstance(orig, BaseException):
        candidates.append(orig)
    for candidate in candidates:
        for attr in ("sqlstate", "pgcode"):
            value = getattr(candidate, attr, None)
            if isinstance(value, str) and len(value) == 5:
                return value
    return None


class PostgreSQLErrorParser:
    """Classify PostgreSQL failures by SQLSTATE."""

    def can_parse(self, err: BaseException) -> bool:
        if _driver_sqlstate(err) is not None:
            return True
        text = error_text(err)
        return "SQLSTATE" in text or "postgres" in text or "pq:" in text

    def parse(self, err: BaseException) -> ParsedError:
        text = error_text(err)
        state = _driver_sqlstate(err) or self._sqlstate_from_text(text)
        details = base_details(err, database_type="postgresql")
        if state is None:
            return ParsedError(
                code="DB_UNKNOWN",
                message="Database error",
                type=ErrorType.DATABASE,
                severity=Severity.HIGH,
                details=details,
            )
        details["sqlstate"] = state
        retryable = state in _PG_RETRYABLE
        return ParsedError(
            code=f"DB_{state}",
            message=_PG_MESSAGES.get(state, f"Database error (SQLSTATE {state})"),
            type=ErrorType.DATABASE,
            severity=Severity.HIGH,
            details=details,
            retryable=retryable,
            temporary=retryable,
        )

    @staticmethod
    def _sqlstate_from_text(text: str) -> str | None:
        match = _SQLSTATE_RE.search(text)
        if match:
            return match.group(1)
        for pattern, state in _PG_PHRASES:
            if pattern.search(text):
                return state
        return None


_MYSQL_RE = re.compile(r"Error (\d+): (.+)")
_MYSQL_DRIVER_MODULES = ("pymysql", "MySQLdb", "mysql.connector")
_MYSQL_RETRYABLE = frozenset({"1040", "1041", "1205", "1213", "2003", "2006", "2013"})


def _driver_mysql_code(err: BaseException) -> tuple[str, str] | None:
    """Return ``(code, message)`` from a PyMySQL/mysqlclient exception."""
    if not type(err).__module__.startswith(_MYSQL_DRIVER_MODULES):
        return None
    if err.args and isinstance(err.args[0], int):
        message = str(err.args[1]) if len(err.args) > 1 else "MySQL error"
        return str(err.args[0]), message
    return None


class MySQLErrorParser:
    """Classify MySQL failures by server error number."""

    def can_parse(self, err: BaseException) -> bool:
        if _driver_mysql_code(err) is not None:
            return True
        text = error_text(err)
        return "mysql" in text.lower() or bool(_MYSQL_RE.search(text))

    def parse(self, err: BaseException) -> ParsedError:
        details = base_details(err, database_type="mysql")
        found = _driver_mysql_code(err)
        if found is None:
            match = _MYSQL_RE.search(error_text(err))
            if match:
                found = match.group(1), match.group(2)
        if found is None:
            return ParsedError(
                code="MYSQL_UNKNOWN",
                message="MySQL error",
                type=ErrorType.DATABASE,
                severity=Severity.HIGH,
                details=details,
            )
        code, message = found
        details["mysql_code"] = code
        retryable = code in _MYSQL_RETRYABLE
        return ParsedError(
            code=f"MYSQL_{code}",
            message=message,
            type=ErrorType.DATABASE,
            severity=Severity.HIGH,
            details=details,
            retryable=retryable,
            temporary=retryable,
        )


_SQL_KEYWORDS = ("sql", "database", "query", "transaction")


class SQLErrorParser:
    """Generic SQL fallback for SQLAlchemy errors and database-flavoured text."""

    def can_parse(self, err: BaseException) -> bool:
        if isinstance(err, sa_exc.SQLAlchemyError):
            return True
        text = error_text(err).lower()
        return any(keyword in text for keyword in _SQL_KEYWORDS)

    def parse(self, err: BaseException) -> ParsedError:
        details = base_details(err)
        if isinstance(err, sa_exc.NoResultFound):
            return ParsedError(
                code="SQL_NO_ROWS",
                message="No rows found",
                type=ErrorType.DATABASE,
                severity=Severity.LOW,
                details=details,
            )
        if isinstance(err, sa_exc.PendingRollbackError) or (
            isinstance(err, sa_exc.ResourceClosedError) and "transaction" in error_text(err).lower()
        ):
            return ParsedError(
                code="SQL_TX_DONE",
                message="Transaction already committed or rolled back",
                type=ErrorType.DATABASE,
                details=details,
            )
        if isinstance(err, (sa_exc.ResourceClosedError, sa_exc.DisconnectionError)):
            return ParsedError(
                code="SQL_CONN_DONE",
                message="Database connection is closed",
                type=ErrorType.DATABASE,
                details=details,
                retryable=True,
                temporary=True,
            )
        return ParsedError(
            code="SQL_UNKNOWN",
            message="SQL error",
            type=ErrorType.DATABASE,
            details=details,
        )
