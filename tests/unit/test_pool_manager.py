from __future__ import annotations

import psycopg
import pytest
from psycopg_pool import PoolTimeout

from sql_middleware.errors import DatabaseConnectionError
from sql_middleware.infrastructure.pool_manager import PoolManager, is_connection_error

MAX_ATTEMPTS = 5


@pytest.mark.asyncio
async def test_ensure_pool_is_idempotent(manager: PoolManager, pool_factory) -> None:
    first = await manager.ensure_pool()
    second = await manager.ensure_pool()

    assert first is second
    assert pool_factory.calls == 1
    assert manager.is_initialized


@pytest.mark.asyncio
async def test_ensure_pool_retries_with_linear_backoff(manager, pool_factory, sleeps) -> None:
    pool_factory.failures = 2

    pool = await manager.ensure_pool()

    assert pool is pool_factory.pools[0]
    assert pool_factory.calls == 3
    assert sleeps.delays == [2.0, 4.0]


@pytest.mark.asyncio
async def test_ensure_pool_gives_up_after_max_attempts(manager, pool_factory, sleeps) -> None:
    pool_factory.failures = 100
    pool_factory.error = psycopg.OperationalError("connection refused")

    with pytest.raises(DatabaseConnectionError) as excinfo:
        await manager.ensure_pool(MAX_ATTEMPTS)

    assert pool_factory.calls == MAX_ATTEMPTS
    assert sleeps.delays == [2.0, 4.0, 6.0, 8.0]
    assert excinfo.value.attempts == MAX_ATTEMPTS
    assert "connection refused" in excinfo.value.message
    assert excinfo.value.__cause__ is pool_factory.error
    assert manager.pool is None


@pytest.mark.asyncio
async def test_reconnect_replaces_pool_and_closes_the_old_one(manager, pool_factory) -> None:
    old = await manager.ensure_pool()

    new = await manager.reconnect(1)

    assert new is not old
    assert old.closed is True
    assert manager.pool is new


@pytest.mark.asyncio
async def test_stale_pool_close_failure_is_ignored(manager, pool_factory) -> None:
    old = await manager.ensure_pool()
    old.close_error = psycopg.OperationalError("socket already gone")

    new = await manager.reconnect(1)

    assert manager.pool is new
    assert pool_factory.calls == 2


@pytest.mark.asyncio
async def test_try_reconnect_swallows_failure(manager, pool_factory, sleeps) -> None:
    await manager.ensure_pool()
    pool_factory.failures = 100

    assert await manager.try_reconnect(1) is False
    assert manager.pool is None
    assert sleeps.delays == []


@pytest.mark.asyncio
async def test_check_health_without_pool(manager: PoolManager) -> None:
    health = await manager.check_health()

    assert health["connected"] is False
    assert "not initialized" in health["message"]


@pytest.mark.asyncio
async def test_check_health_runs_probe(manager, fake_db) -> None:
    await manager.ensure_pool()

    health = await manager.check_health()

    assert health == {"connected": True, "message": "Database connection is healthy"}
    assert fake_db.statements == ["SELECT 1"]


@pytest.mark.asyncio
async def test_check_health_reports_failure_without_raising(manager, fake_db) -> None:
    await manager.ensure_pool()

    def broken(query, params):
        raise psycopg.OperationalError("server closed the connection unexpectedly")

    fake_db.responder = broken
    health = await manager.check_health()

    assert health["connected"] is False
    assert "server closed the connection" in health["message"]


@pytest.mark.asyncio
async def test_close_is_idempotent(manager) -> None:
    pool = await manager.ensure_pool()

    await manager.close()
    await manager.close()

    assert pool.closed is True
    assert manager.pool is None


@pytest.mark.parametrize(
    "exc, expected",
    [
        (psycopg.OperationalError("timeout expired"), True),
        (psycopg.InterfaceError("connection already closed"), True),
        (PoolTimeout("couldn't get a connection after 30.00 sec"), True),
        (ConnectionResetError("reset by peer"), True),
        (psycopg.errors.UndefinedTable("relation \"nope\" does not exist"), False),
        (psycopg.errors.UniqueViolation("duplicate key"), False),
        (psycopg.errors.SyntaxError("syntax error at or near \"SELEC\""), False),
    ],
)
def test_is_connection_error_classification(exc, expected) -> None:
    assert is_connection_error(exc) is expected
