"""
SQL Middleware - run SQL over an HTTP boundary.

Accepts JSON requests and forwards them to PostgreSQL as:

- Raw queries with named parameters
- Stored-procedure calls
- Bulk inserts (COPY)
- Multi-statement transactions

returning the database's result set as JSON. The single shared connection
pool is supervised by a PoolManager that connects with bounded retries and
reconnects after connection-class failures.
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from sql_middleware.config import Settings, get_settings
from sql_middleware.errors import (
    DatabaseConnectionError,
    ErrorKind,
    ExecutionError,
    MiddlewareError,
    RollbackError,
    ValidationError,
)
from sql_middleware.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Errors
    "DatabaseConnectionError",
    "ErrorKind",
    "ExecutionError",
    "MiddlewareError",
    "RollbackError",
    "ValidationError",
    # Logging
    "configure_logging",
    "get_logger",
]
