"""
Error taxonomy for the SQL middleware.

Every failure the service reports carries an explicit ``ErrorKind`` tag so the
HTTP layer can map it onto a status code without inspecting driver types:

- ``ValidationError``: caller input missing or malformed (400, no database contact).
- ``DatabaseConnectionError``: the pool could not be established (500).
- ``ExecutionError``: the database rejected a statement, procedure, bulk load
  or transaction (500, with the driver SQLSTATE when there is one).
- ``RollbackError``: secondary failure while unwinding a transaction; logged,
  never returned in place of the primary error.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    CONNECTION = "connection"
    EXECUTION = "execution"
    ROLLBACK = "rollback"


class MiddlewareError(Exception):
    """Base class for all errors raised by the middleware."""

    kind: ErrorKind = ErrorKind.EXECUTION

    def __init__(self, message: str, code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class ValidationError(MiddlewareError):
    kind = ErrorKind.VALIDATION


class DatabaseConnectionError(MiddlewareError):
    """Raised when the pool cannot be established after exhausting retries."""

    kind = ErrorKind.CONNECTION

    def __init__(self, message: str, code: Optional[str] = None, attempts: int = 0) -> None:
        super().__init__(message, code)
        self.attempts = attempts


class ExecutionError(MiddlewareError):
    kind = ErrorKind.EXECUTION

    @classmethod
    def from_driver(cls, exc: BaseException) -> "ExecutionError":
        """Wrap a driver exception, keeping its message and SQLSTATE."""
        return cls(describe_error(exc), code=sqlstate_of(exc))


class RollbackError(MiddlewareError):
    kind = ErrorKind.ROLLBACK


def sqlstate_of(exc: Optional[BaseException]) -> Optional[str]:
    """Return the SQLSTATE of a psycopg error, or None for anything else."""
    return getattr(exc, "sqlstate", None) if exc is not None else None


def describe_error(exc: BaseException) -> str:
    text = str(exc).strip()
    return text or exc.__class__.__name__


__all__ = [
    "DatabaseConnectionError",
    "ErrorKind",
    "ExecutionError",
    "MiddlewareError",
    "RollbackError",
    "ValidationError",
    "describe_error",
    "sqlstate_of",
]
