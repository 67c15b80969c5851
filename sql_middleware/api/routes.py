"""
HTTP routes of the SQL middleware.

Thin mapping between JSON bodies and the database operations; errors are
raised as middleware exceptions and shaped by ``exception_handlers``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from sql_middleware.api.schemas import BulkBody, ProcedureBody, QueryBody, TransactionBody
from sql_middleware.errors import DatabaseConnectionError, ValidationError, describe_error
from sql_middleware.infrastructure.pool_manager import PoolManager
from sql_middleware.operations import BulkLoader, StatementExecutor, TransactionCoordinator
from sql_middleware.utils.logging import get_logger

log = get_logger(__name__)

router = APIRouter()

TABLES_QUERY = """
SELECT table_schema, table_name, table_type
FROM information_schema.tables
WHERE table_schema NOT IN ('pg_catalog', 'information_schema')
ORDER BY table_schema, table_name
"""


def _manager(request: Request) -> PoolManager:
    return request.app.state.pool_manager


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    return "SQL middleware is running"


@router.get("/api/health")
async def health(request: Request) -> Dict[str, Any]:
    database = await _manager(request).check_health()
    return {
        "status": "OK",
        "message": "Service is running",
        "environment": request.app.state.settings.app_env,
        "database": database,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/api/diagnostics")
async def diagnostics(request: Request) -> Any:
    settings = request.app.state.settings
    manager = _manager(request)
    try:
        report: Dict[str, Any] = {
            "environment": settings.app_env,
            "db_config": settings.masked_db_config(),
            "pool_initialized": manager.is_initialized,
        }
        if not manager.is_initialized:
            try:
                await manager.ensure_pool(1)
            except DatabaseConnectionError as exc:
                report["connection_test"] = {"success": False, "message": exc.message}
                return report

        probe = await manager.check_health()
        report["connection_test"] = {"success": probe["connected"], "message": probe["message"]}
        if probe["connected"]:
            report["tables"] = await _list_tables(manager)
        return report
    except Exception as exc:
        log.error("Diagnostics failed: %s", exc, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": describe_error(exc)})


async def _list_tables(manager: PoolManager) -> List[Dict[str, Any]]:
    async with manager.pool.connection() as conn:
        async with conn.cursor() as cur:
            await cur.execute(TABLES_QUERY)
            return [dict(row) for row in await cur.fetchall()]


@router.post("/api/query")
async def run_query(body: QueryBody, request: Request) -> Dict[str, Any]:
    if not body.query:
        raise ValidationError("Query is required")
    executor: StatementExecutor = request.app.state.executor
    result = await executor.execute(body.to_request())
    return {"success": True, "data": result.rows, "rowsAffected": result.rows_affected}


@router.post("/api/procedure")
async def run_procedure(body: ProcedureBody, request: Request) -> Dict[str, Any]:
    if not body.procedure:
        raise ValidationError("Procedure name is required")
    executor: StatementExecutor = request.app.state.executor
    result = await executor.execute(body.to_request())
    return {
        "success": True,
        "data": result.rows,
        "outputParameters": result.output_parameters or {},
        "rowsAffected": result.rows_affected,
    }


@router.post("/api/bulk")
async def run_bulk(body: BulkBody, request: Request) -> Dict[str, Any]:
    loader: BulkLoader = request.app.state.bulk_loader
    result = await loader.bulk_insert(body.to_spec())
    return {"success": True, "rowsAffected": result.rows_affected}


@router.post("/api/transaction")
async def run_transaction(body: TransactionBody, request: Request) -> Dict[str, Any]:
    coordinator: TransactionCoordinator = request.app.state.transactions
    result = await coordinator.run_transaction(body.to_plan())
    return {
        "success": True,
        "results": [
            {"data": item.rows, "rowsAffected": item.rows_affected} for item in result.results
        ],
    }


__all__ = ["router"]
