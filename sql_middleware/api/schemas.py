"""
Request bodies accepted by the HTTP API.

Fields are optional at the schema level so that a missing value is reported
by the middleware's own validation (400 with a plain message) rather than a
generic schema error.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from sql_middleware.domain.models import BulkSpec, ExecutionRequest, TransactionPlan


class QueryBody(BaseModel):
    query: Optional[str] = None
    params: Optional[Dict[str, Any]] = None

    def to_request(self) -> ExecutionRequest:
        return ExecutionRequest(statement_text=self.query, named_parameters=self.params or {})


class ProcedureBody(BaseModel):
    procedure: Optional[str] = None
    params: Optional[Dict[str, Any]] = None

    def to_request(self) -> ExecutionRequest:
        return ExecutionRequest(procedure_name=self.procedure, named_parameters=self.params or {})


class BulkBody(BaseModel):
    table: Optional[str] = None
    data: Optional[List[Dict[str, Any]]] = None

    def to_spec(self) -> BulkSpec:
        return BulkSpec(table_name=self.table, rows=self.data or [])


class TransactionBody(BaseModel):
    queries: Optional[List[QueryBody]] = None

    def to_plan(self) -> TransactionPlan:
        return TransactionPlan(statements=[entry.to_request() for entry in self.queries or []])


__all__ = ["BulkBody", "ProcedureBody", "QueryBody", "TransactionBody"]
