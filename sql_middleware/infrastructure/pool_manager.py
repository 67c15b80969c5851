"""
Connection-pool lifecycle management for the SQL middleware.

The PoolManager owns the single process-wide ``AsyncConnectionPool``. It
establishes the pool with bounded retries (linear backoff through tenacity),
re-establishes it lazily when a request finds it missing, replaces it
wholesale on reconnect and offers a non-raising health probe. Other
components borrow the pool through ``ensure_pool()`` and never keep it.

No lock guards pool replacement: concurrent callers may each run a
(re)connect and the last successful install wins.
"""

from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Any, Awaitable, Callable, Dict, Optional

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    stop_after_attempt,
    wait_incrementing,
)

from sql_middleware.config import Settings, get_settings
from sql_middleware.errors import DatabaseConnectionError, describe_error, sqlstate_of
from sql_middleware.utils.logging import get_logger

log = get_logger(__name__)

VALIDATION_QUERY = "SELECT 1"

# Failures meaning the session or network is unusable, as opposed to a bad
# statement. PoolTimeout, PoolClosed and QueryCanceled are OperationalErrors.
CONNECTION_ERROR_TYPES = (
    psycopg.OperationalError,
    psycopg.InterfaceError,
    OSError,
    TimeoutError,
)

PoolFactory = Callable[[], Awaitable[Any]]


def is_connection_error(exc: BaseException) -> bool:
    """Return True if *exc* indicates a dead connection rather than a bad statement."""
    return isinstance(exc, CONNECTION_ERROR_TYPES)


class PoolManager:
    """
    Supervisor of the shared connection pool.

    Parameters
    ----------
    settings : Settings, optional
        Connection and retry configuration; defaults to ``get_settings()``.
    pool_factory : callable, optional
        Coroutine function returning a freshly opened, validated pool. Defaults
        to building a psycopg ``AsyncConnectionPool`` from settings.
    sleep : callable, optional
        Coroutine used to wait between attempts (``asyncio.sleep``).
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        pool_factory: Optional[PoolFactory] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._settings = settings or get_settings()
        self._pool_factory = pool_factory or self._open_pool
        self._sleep = sleep
        self._pool: Optional[Any] = None
        self._stale: Optional[Any] = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def pool(self) -> Optional[Any]:
        """The live pool, or None when not (yet) connected."""
        return self._pool

    @property
    def is_initialized(self) -> bool:
        return self._pool is not None

    async def ensure_pool(self, max_attempts: Optional[int] = None) -> Any:
        """
        Return the live pool, establishing it first if absent.

        An existing pool is returned as-is without validation. Otherwise up to
        ``max_attempts`` connects are made, waiting ``backoff × attempt``
        seconds after each failed one except the last.

        Raises
        ------
        DatabaseConnectionError
            When every attempt failed; chained to the last underlying failure.
        """
        if self._pool is not None:
            return self._pool

        attempts = max_attempts or self._settings.db_connect_attempts
        backoff = self._settings.db_retry_backoff_seconds
        retrying = AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_incrementing(start=backoff, increment=backoff),
            sleep=self._sleep,
            before_sleep=before_sleep_log(log, logging.WARNING),
            reraise=False,
        )

        pool = None
        try:
            async for attempt in retrying:
                with attempt:
                    log.info(
                        "Connecting to database",
                        extra={
                            "attempt": attempt.retry_state.attempt_number,
                            "max_attempts": attempts,
                            "db_host": self._settings.db_host,
                        },
                    )
                    pool = await self._connect()
        except RetryError as exc:
            last = exc.last_attempt.exception()
            log.error("Database connection failed after %d attempt(s): %s", attempts, last)
            raise DatabaseConnectionError(
                f"Database connection failed after {attempts} attempt(s): "
                f"{describe_error(last) if last else 'unknown error'}",
                code=sqlstate_of(last),
                attempts=attempts,
            ) from last

        self._pool = pool
        log.info("Connected to database", extra={"db_host": self._settings.db_host})
        return pool

    async def reconnect(self, max_attempts: int = 1) -> Any:
        """
        Discard the current pool and establish a new one.

        The discarded pool is closed at the start of the next connect attempt.
        """
        if self._pool is not None:
            self._stale = self._pool
            self._pool = None
        return await self.ensure_pool(max_attempts)

    async def try_reconnect(self, max_attempts: int = 1) -> bool:
        """Best-effort reconnect; failures are logged and swallowed."""
        try:
            await self.reconnect(max_attempts)
        except DatabaseConnectionError as exc:
            log.warning("Reconnect after connection failure did not succeed: %s", exc)
            return False
        return True

    async def check_health(self) -> Dict[str, Any]:
        """Probe the pool with a trivial query; never raises."""
        if self._pool is None:
            return {"connected": False, "message": "Database pool is not initialized"}
        try:
            async with self._pool.connection() as conn:
                await conn.execute(VALIDATION_QUERY)
        except Exception as exc:
            log.warning("Database health probe failed: %s", exc)
            return {"connected": False, "message": f"Database query failed: {describe_error(exc)}"}
        return {"connected": True, "message": "Database connection is healthy"}

    async def close(self) -> None:
        """Close the live and any stale pool. Safe to call repeatedly."""
        await self._close_stale()
        if self._pool is not None:
            pool, self._pool = self._pool, None
            log.info("Closing database connection pool")
            try:
                await pool.close()
            except Exception as exc:
                log.warning("Error while closing database pool: %s", exc)

    async def _connect(self) -> Any:
        await self._close_stale()
        return await self._pool_factory()

    async def _close_stale(self) -> None:
        if self._stale is None:
            return
        stale, self._stale = self._stale, None
        try:
            await stale.close()
        except Exception as exc:
            log.warning("Ignoring failure while closing stale pool: %s", exc)

    async def _open_pool(self) -> AsyncConnectionPool:
        """Open a psycopg pool from settings and validate it with a trivial query."""
        settings = self._settings
        timeout = settings.db_timeout_seconds
        pool = AsyncConnectionPool(
            conninfo=settings.conninfo(),
            min_size=settings.db_pool_min,
            max_size=settings.db_pool_max,
            timeout=timeout,
            kwargs={"autocommit": True, "row_factory": dict_row},
            open=False,
            name="sql-middleware",
        )
        try:
            await pool.open(wait=True, timeout=timeout)
            async with pool.connection() as conn:
                await conn.execute(VALIDATION_QUERY)
        except BaseException:
            await pool.close()
            raise
        return pool


@lru_cache(maxsize=1)
def get_pool_manager() -> PoolManager:
    """
    Process-wide PoolManager built from the cached settings.
    """
    return PoolManager()


__all__ = [
    "CONNECTION_ERROR_TYPES",
    "PoolManager",
    "VALIDATION_QUERY",
    "get_pool_manager",
    "is_connection_error",
]
