"""
Application factory and lifespan for the SQL middleware HTTP service.

Startup tries to establish the pool with the configured number of attempts;
if that fails the service still starts so health and diagnostics can report
the problem, and requests connect lazily. Shutdown closes the pool.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sql_middleware import __version__
from sql_middleware.api.exception_handlers import register_exception_handlers
from sql_middleware.api.middleware import RequestLoggingMiddleware
from sql_middleware.api.routes import router
from sql_middleware.config import Settings, get_settings
from sql_middleware.errors import DatabaseConnectionError
from sql_middleware.infrastructure.pool_manager import PoolManager, get_pool_manager
from sql_middleware.operations import BulkLoader, StatementExecutor, TransactionCoordinator
from sql_middleware.utils.logging import get_logger

log = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    manager: PoolManager = app.state.pool_manager
    settings: Settings = app.state.settings
    log.info("Starting SQL middleware", extra={"environment": settings.app_env})
    try:
        await manager.ensure_pool(settings.db_connect_attempts)
    except DatabaseConnectionError as exc:
        log.error("Starting without a database connection: %s", exc.message)
    try:
        yield
    finally:
        log.info("Shutting down, closing SQL connection pool")
        await manager.close()


def create_app(
    settings: Optional[Settings] = None,
    manager: Optional[PoolManager] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Parameters
    ----------
    settings : Settings, optional
        Defaults to the cached ``get_settings()``.
    manager : PoolManager, optional
        Defaults to the process-wide ``get_pool_manager()``.
    """
    settings = settings or get_settings()
    manager = manager or get_pool_manager()

    app = FastAPI(
        title="SQL Middleware",
        description="Run SQL statements, procedures, bulk loads and transactions over HTTP.",
        version=__version__,
        docs_url="/docs" if settings.is_development else None,
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.pool_manager = manager
    app.state.executor = StatementExecutor(manager)
    app.state.bulk_loader = BulkLoader(manager)
    app.state.transactions = TransactionCoordinator(manager)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    register_exception_handlers(app)
    app.include_router(router)
    return app


__all__ = ["create_app", "lifespan"]
