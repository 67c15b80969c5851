"""
Domain models for the SQL middleware.

Transient values built per HTTP call and handed to the database operations:
an execution request (raw statement or stored procedure), its normalized
result, a bulk-load specification and a transaction plan. None of them
outlives the call that created it.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

Row = Dict[str, Any]


class ExecutionRequest(BaseModel):
    """
    Either a raw statement or a stored-procedure name, plus named parameters.

    Parameters are bound by name; their order carries no meaning.
    """

    statement_text: Optional[str] = Field(None, description="Raw SQL text.")
    procedure_name: Optional[str] = Field(None, description="Stored procedure to CALL.")
    named_parameters: Dict[str, Any] = Field(default_factory=dict)

    model_config = {
        "frozen": True,
        "populate_by_name": True,
    }

    @property
    def is_procedure(self) -> bool:
        return not (self.statement_text or "").strip() and bool((self.procedure_name or "").strip())


class ExecutionResult(BaseModel):
    """
    Normalized result of one statement or procedure call.

    ``rows`` keeps the database's row order and, within each row, its column order.
    """

    rows: List[Row] = Field(default_factory=list)
    rows_affected: int = 0
    output_parameters: Optional[Dict[str, Any]] = None

    model_config = {"frozen": True}


class BulkSpec(BaseModel):
    table_name: Optional[str] = None
    rows: List[Row] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def columns(self) -> List[str]:
        """Column list taken from the first row's keys, in insertion order."""
        return list(self.rows[0].keys()) if self.rows else []


class BulkResult(BaseModel):
    rows_affected: int = 0

    model_config = {"frozen": True}


class TransactionPlan(BaseModel):
    """Ordered raw statements executed against one transaction scope."""

    statements: List[ExecutionRequest] = Field(default_factory=list)

    model_config = {"frozen": True}


class TransactionResult(BaseModel):
    results: List[ExecutionResult] = Field(default_factory=list)

    model_config = {"frozen": True}


__all__ = [
    "BulkResult",
    "BulkSpec",
    "ExecutionRequest",
    "ExecutionResult",
    "Row",
    "TransactionPlan",
    "TransactionResult",
]
