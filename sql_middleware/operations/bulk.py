"""
Bulk loader: one COPY for a whole list of row objects.

Columns come from the first row's keys, in insertion order, and are all
declared as nullable text; a key missing from a later row is written as NULL.
Callers that need typed columns pre-create the table and let PostgreSQL cast
the text on input.
"""

from __future__ import annotations

import json
from typing import Any, List, Optional, Sequence

from psycopg import sql

from sql_middleware.domain.models import BulkResult, BulkSpec, Row
from sql_middleware.errors import ValidationError
from sql_middleware.operations.base import DatabaseOperation
from sql_middleware.operations.executor import qualified_identifier
from sql_middleware.utils.logging import get_logger
from sql_middleware.utils.profiler import profile_block

log = get_logger(__name__)

COLUMN_TYPE = "text"


def as_text(value: Any) -> Optional[str]:
    """Render a JSON value as the text written to a text column."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value)
    return str(value)


def extract_rows(columns: Sequence[str], rows: Sequence[Row]) -> List[List[Optional[str]]]:
    """Values of every row in *columns* order; absent keys become None."""
    return [[as_text(row.get(column)) for column in columns] for row in rows]


def build_copy_statement(table_name: str, columns: Sequence[str]) -> sql.Composed:
    return sql.SQL("COPY {} ({}) FROM STDIN").format(
        qualified_identifier(table_name),
        sql.SQL(", ").join(sql.Identifier(column) for column in columns),
    )


class BulkLoader(DatabaseOperation):
    name = "bulk_insert"

    async def bulk_insert(self, spec: BulkSpec) -> BulkResult:
        if not spec.table_name or not spec.table_name.strip() or not spec.rows:
            raise ValidationError("Valid table name and data array are required")
        columns = spec.columns
        if not columns:
            raise ValidationError("The first data row must have at least one column")

        statement = build_copy_statement(spec.table_name, columns)
        values = extract_rows(columns, spec.rows)

        async def load(pool: Any) -> BulkResult:
            with profile_block("bulk") as stats:
                async with pool.connection() as conn:
                    async with conn.cursor() as cur:
                        async with cur.copy(statement) as copy:
                            copy.set_types([COLUMN_TYPE] * len(columns))
                            for row in values:
                                await copy.write_row(row)
                        count = cur.rowcount
            rows_affected = count if count is not None and count >= 0 else len(values)
            log.info(
                "Bulk insert finished",
                extra={
                    "table": spec.table_name,
                    "rows_affected": rows_affected,
                    "duration_ms": stats.duration_ms,
                },
            )
            return BulkResult(rows_affected=rows_affected)

        return await self._with_pool(load)


__all__ = ["BulkLoader", "as_text", "build_copy_statement", "extract_rows"]
