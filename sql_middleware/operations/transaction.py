"""
Transaction coordinator: ordered raw statements inside one transaction.

State machine::

    NOT_STARTED -> BEGAN -> EXECUTING -> COMMITTED
                            EXECUTING -> ROLLING_BACK -> ROLLED_BACK

Statements run strictly one after another on a single pooled connection.
Results are returned only after COMMIT; a failure rolls everything back and
the statement's error is raised even if the rollback itself fails.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, List

from sql_middleware.domain.models import ExecutionResult, TransactionPlan, TransactionResult
from sql_middleware.errors import RollbackError, ValidationError, describe_error
from sql_middleware.operations.base import DatabaseOperation, run_statement
from sql_middleware.utils.logging import get_logger
from sql_middleware.utils.profiler import profile_block

log = get_logger(__name__)


class TransactionState(str, Enum):
    NOT_STARTED = "not_started"
    BEGAN = "began"
    EXECUTING = "executing"
    COMMITTED = "committed"
    ROLLING_BACK = "rolling_back"
    ROLLED_BACK = "rolled_back"


class TransactionScope:
    """One transaction on one connection, tracking its state."""

    def __init__(self, conn: Any) -> None:
        self._conn = conn
        self.state = TransactionState.NOT_STARTED

    async def begin(self) -> None:
        await self._conn.execute("BEGIN")
        self.state = TransactionState.BEGAN

    async def run(self, plan: TransactionPlan) -> List[ExecutionResult]:
        self.state = TransactionState.EXECUTING
        results: List[ExecutionResult] = []
        for statement in plan.statements:
            results.append(
                await run_statement(self._conn, statement.statement_text, statement.named_parameters)
            )
        return results

    async def commit(self) -> None:
        await self._conn.execute("COMMIT")
        self.state = TransactionState.COMMITTED

    async def rollback(self) -> None:
        """Roll back; a failure here is logged as RollbackError and not raised."""
        if self.state in (TransactionState.NOT_STARTED, TransactionState.COMMITTED):
            return
        self.state = TransactionState.ROLLING_BACK
        try:
            await self._conn.execute("ROLLBACK")
        except Exception as exc:
            error = RollbackError(f"Transaction rollback failed: {describe_error(exc)}")
            log.error("%s", error.message, exc_info=exc)
        self.state = TransactionState.ROLLED_BACK


class TransactionCoordinator(DatabaseOperation):
    name = "transaction"

    async def run_transaction(self, plan: TransactionPlan) -> TransactionResult:
        if not plan.statements:
            raise ValidationError("Valid queries array is required")
        for index, statement in enumerate(plan.statements):
            text = statement.statement_text
            if not isinstance(text, str) or not text.strip():
                raise ValidationError(f"Query is required for transaction entry {index}")

        async def work(pool: Any) -> TransactionResult:
            with profile_block("transaction") as stats:
                async with pool.connection() as conn:
                    scope = TransactionScope(conn)
                    try:
                        await scope.begin()
                        results = await scope.run(plan)
                        await scope.commit()
                    except BaseException:
                        await scope.rollback()
                        raise
            log.info(
                "Transaction committed",
                extra={"statements": len(results), "duration_ms": stats.duration_ms},
            )
            return TransactionResult(results=results)

        return await self._with_pool(work)


__all__ = ["TransactionCoordinator", "TransactionScope", "TransactionState"]
