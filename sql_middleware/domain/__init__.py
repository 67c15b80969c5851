"""
Domain package for the SQL middleware.

Exports the transient request/result values passed between the HTTP layer
and the database operations.
"""

from sql_middleware.domain.models import (
    BulkResult,
    BulkSpec,
    ExecutionRequest,
    ExecutionResult,
    TransactionPlan,
    TransactionResult,
)

__all__ = [
    "BulkResult",
    "BulkSpec",
    "ExecutionRequest",
    "ExecutionResult",
    "TransactionPlan",
    "TransactionResult",
]
