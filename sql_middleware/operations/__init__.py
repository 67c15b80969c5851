"""
Database operations package for the SQL middleware.

Each operation borrows the shared pool from the PoolManager and shares the
same failure policy (see ``operations.base``).
"""

from sql_middleware.operations.base import DatabaseOperation
from sql_middleware.operations.bulk import BulkLoader
from sql_middleware.operations.executor import StatementExecutor
from sql_middleware.operations.transaction import TransactionCoordinator, TransactionState

__all__ = [
    "BulkLoader",
    "DatabaseOperation",
    "StatementExecutor",
    "TransactionCoordinator",
    "TransactionState",
]
