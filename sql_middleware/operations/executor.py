"""
Statement executor: raw SQL statements and stored-procedure calls.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping

from psycopg import sql

from sql_middleware.domain.models import ExecutionRequest, ExecutionResult
from sql_middleware.errors import ValidationError
from sql_middleware.operations.base import (
    DatabaseOperation,
    bind_parameters,
    collect_result,
    run_statement,
)
from sql_middleware.utils.logging import get_logger
from sql_middleware.utils.profiler import profile_block

log = get_logger(__name__)

PARAMETER_NAME = re.compile(r"\w+")


def qualified_identifier(name: str) -> sql.Identifier:
    """Quote a possibly schema-qualified name (``schema.object``) part by part."""
    parts = [part for part in name.strip().split(".") if part]
    if not parts:
        raise ValidationError(f"Invalid identifier: {name!r}")
    return sql.Identifier(*parts)


def build_call_statement(procedure_name: str, params: Mapping[str, Any]) -> sql.Composed:
    """``CALL proc(name => %(name)s, ...)`` using named-argument notation."""
    for key in params:
        if not isinstance(key, str) or not PARAMETER_NAME.fullmatch(key):
            raise ValidationError(f"Invalid parameter name: {key!r}")
    arguments = sql.SQL(", ").join(
        sql.SQL("{} => {}").format(sql.Identifier(key), sql.Placeholder(key)) for key in params
    )
    return sql.SQL("CALL {}({})").format(qualified_identifier(procedure_name), arguments)


class StatementExecutor(DatabaseOperation):
    name = "execute"

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """
        Run a raw statement or a stored procedure with named parameters.

        Raises ValidationError before touching the pool when neither a
        statement nor a procedure name is given.
        """
        if not _non_empty(request.statement_text) and not _non_empty(request.procedure_name):
            raise ValidationError("Either a query or a procedure name is required")

        if request.is_procedure:
            statement = build_call_statement(request.procedure_name, request.named_parameters)
            return await self._with_pool(lambda pool: self._call(pool, request, statement))
        return await self._with_pool(lambda pool: self._query(pool, request))

    async def _query(self, pool: Any, request: ExecutionRequest) -> ExecutionResult:
        with profile_block("query") as stats:
            async with pool.connection() as conn:
                result = await run_statement(
                    conn, request.statement_text, request.named_parameters
                )
        log.info(
            "Query executed",
            extra={"rows_affected": result.rows_affected, "duration_ms": stats.duration_ms},
        )
        return result

    async def _call(
        self, pool: Any, request: ExecutionRequest, statement: sql.Composed
    ) -> ExecutionResult:
        with profile_block("procedure") as stats:
            async with pool.connection() as conn:
                async with conn.cursor() as cur:
                    await cur.execute(statement, bind_parameters(request.named_parameters))
                    result = await collect_result(cur)
        # CALL returns OUT/INOUT arguments as a single row
        output: Dict[str, Any] = dict(result.rows[0]) if result.rows else {}
        log.info(
            "Procedure executed",
            extra={"procedure": request.procedure_name, "duration_ms": stats.duration_ms},
        )
        return ExecutionResult(rows=[], rows_affected=result.rows_affected, output_parameters=output)


def _non_empty(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


__all__ = ["StatementExecutor", "build_call_statement", "qualified_identifier"]
