"""
Shared plumbing for database operations.

Concrete operations (statement executor, bulk loader, transaction coordinator)
subclass DatabaseOperation, which borrows the pool from the PoolManager and
applies the common failure policy: driver errors become ExecutionError, and a
connection-class failure triggers one best-effort reconnect before the error
is surfaced. The failed request itself is never retried.
"""

from __future__ import annotations

import abc
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, TypeVar

from fastapi.encoders import jsonable_encoder
from psycopg.types.multirange import Multirange
from psycopg.types.range import Range

from sql_middleware.domain.models import ExecutionResult
from sql_middleware.errors import ExecutionError, MiddlewareError
from sql_middleware.infrastructure.pool_manager import PoolManager, is_connection_error
from sql_middleware.utils.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

# Driver types FastAPI's encoder cannot render (non-UTF-8 bytes, ranges).
ROW_VALUE_ENCODERS: Dict[Any, Callable[[Any], Any]] = {
    bytes: lambda value: "\\x" + value.hex(),
    memoryview: lambda value: "\\x" + value.hex(),
    Range: str,
    Multirange: lambda value: [str(item) for item in value],
}


class DatabaseOperation(abc.ABC):
    """
    Base class for operations that run against the shared pool.

    Subclasses set ``name`` (used in logs) and call ``_with_pool``.
    """

    name: str

    def __init__(self, manager: PoolManager) -> None:
        self._manager = manager

    async def _with_pool(self, work: Callable[[Any], Awaitable[T]]) -> T:
        pool = await self._manager.ensure_pool()
        try:
            return await work(pool)
        except MiddlewareError:
            raise
        except Exception as exc:
            log.error("%s failed: %s", self.name, exc)
            if is_connection_error(exc):
                await self._manager.try_reconnect(1)
            raise ExecutionError.from_driver(exc) from exc


def bind_parameters(params: Optional[Mapping[str, Any]]) -> Optional[Dict[str, Any]]:
    """Named parameters for ``cursor.execute``; None disables placeholder parsing."""
    return dict(params) if params else None


async def collect_result(cursor: Any) -> ExecutionResult:
    """
    Project the cursor's results into an ExecutionResult.

    Rows come from the first result set that has columns; the affected count
    is the first result's count only (later counts in a batch are dropped).
    Row values are converted to JSON-safe values here, so a statement that
    ran inside a transaction can always be reported once it commits.
    """
    rows_affected = _normalize_count(cursor.rowcount)
    rows = None
    while True:
        if rows is None and cursor.description is not None:
            rows = [json_safe_row(row) for row in await cursor.fetchall()]
        if not cursor.nextset():
            break
    return ExecutionResult(rows=rows or [], rows_affected=rows_affected)


async def run_statement(
    conn: Any, statement: Any, params: Optional[Mapping[str, Any]] = None
) -> ExecutionResult:
    """Execute one statement on *conn* with named parameters and collect its result."""
    async with conn.cursor() as cur:
        await cur.execute(statement, bind_parameters(params))
        return await collect_result(cur)


def json_safe_value(value: Any) -> Any:
    """Encode one column value for a JSON response; unknown types become their text form."""
    try:
        return jsonable_encoder(value, custom_encoder=ROW_VALUE_ENCODERS)
    except (TypeError, ValueError):
        return str(value)


def json_safe_row(row: Mapping[str, Any]) -> Dict[str, Any]:
    return {column: json_safe_value(value) for column, value in row.items()}


def _normalize_count(count: Optional[int]) -> int:
    # psycopg reports -1 for commands without a row count
    return count if count is not None and count >= 0 else 0


__all__ = [
    "DatabaseOperation",
    "bind_parameters",
    "collect_result",
    "json_safe_row",
    "json_safe_value",
    "run_statement",
]
