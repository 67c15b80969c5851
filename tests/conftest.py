"""
Pytest configuration for the SQL middleware.

Provides fixtures for:
- Settings override for unit and integration tests
- A PoolManager wired to in-memory fakes with a recording sleep
- Live database access for integration tests
"""

from __future__ import annotations

import os

import psycopg
import pytest

from sql_middleware.config import Settings
from sql_middleware.infrastructure.pool_manager import PoolManager

from tests.fakes import FakeDatabase, FakePoolFactory, SleepRecorder


@pytest.fixture
def test_settings() -> Settings:
    """
    Settings fixture independent of the developer's environment and .env file.
    """
    return Settings(
        _env_file=None,
        db_host="db.test",
        db_port=5432,
        db_user="middleware",
        db_password="s3cret",
        db_name="middleware_test",
        app_env="test",
        host="0.0.0.0",
        db_encrypt=True,
        db_timeout_seconds=30,
        db_pool_min=0,
        db_pool_max=10,
        db_connect_attempts=5,
        db_retry_backoff_seconds=2.0,
    )


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


@pytest.fixture
def pool_factory(fake_db: FakeDatabase) -> FakePoolFactory:
    return FakePoolFactory(fake_db)


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def manager(
    test_settings: Settings, pool_factory: FakePoolFactory, sleeps: SleepRecorder
) -> PoolManager:
    return PoolManager(settings=test_settings, pool_factory=pool_factory, sleep=sleeps)


@pytest.fixture(scope="session")
def live_settings() -> Settings:
    """
    Settings for integration tests, overridable via environment variables in CI.
    """
    return Settings(
        _env_file=None,
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "postgres"),
        db_encrypt=os.getenv("DB_ENCRYPT", "false").lower() == "true",
        db_connect_attempts=1,
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def db_connection_available(live_settings: Settings) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(live_settings.conninfo(), connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False
