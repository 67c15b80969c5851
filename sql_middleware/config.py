"""
Configuration settings for the SQL middleware.

Uses Pydantic Settings to load environment variables for the database
connection, pool sizing, retry policy, HTTP listener and logging. Variable
names follow the deployment conventions of the service (``DB_SERVER`` and
``NODE_ENV`` are accepted as aliases of ``DB_HOST`` and ``APP_ENV``).
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, List

from psycopg.conninfo import make_conninfo
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MASKED_PASSWORD = "****"


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", validation_alias=AliasChoices("DB_HOST", "DB_SERVER"))
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("postgres", alias="DB_NAME")
    db_encrypt: bool = Field(True, alias="DB_ENCRYPT")
    db_timeout_seconds: float = Field(30.0, alias="DB_TIMEOUT_SECONDS")

    # Pool lifecycle
    db_pool_min: int = Field(0, alias="DB_POOL_MIN")
    db_pool_max: int = Field(10, alias="DB_POOL_MAX")
    db_connect_attempts: int = Field(5, alias="DB_CONNECT_ATTEMPTS")
    db_retry_backoff_seconds: float = Field(2.0, alias="DB_RETRY_BACKOFF_SECONDS")

    # Application
    app_env: str = Field("production", validation_alias=AliasChoices("APP_ENV", "NODE_ENV"))
    host: str = Field("0.0.0.0", alias="HOST")
    port: int = Field(3000, alias="PORT")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")
    cors_origins: List[str] = Field(default_factory=lambda: ["*"], alias="CORS_ORIGINS")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.app_env.lower() == "development"

    @property
    def ssl_mode(self) -> str:
        """
        Map the encryption flag and environment onto a libpq ``sslmode``.

        Outside production the server certificate is trusted without
        verification, mirroring a local/dev setup with self-signed certs.
        """
        if not self.db_encrypt:
            return "disable"
        return "verify-full" if self.is_production else "require"

    def conninfo(self) -> str:
        """Compose the libpq connection string, including timeouts and TLS mode."""
        timeout_ms = int(self.db_timeout_seconds * 1000)
        return make_conninfo(
            host=self.db_host,
            port=self.db_port,
            user=self.db_user,
            password=self.db_password,
            dbname=self.db_name,
            sslmode=self.ssl_mode,
            connect_timeout=max(1, int(self.db_timeout_seconds)),
            options=f"-c statement_timeout={timeout_ms}",
        )

    def masked_db_config(self) -> Dict[str, Any]:
        """Database configuration safe to expose over diagnostics."""
        return {
            "host": self.db_host,
            "port": self.db_port,
            "user": self.db_user,
            "password": MASKED_PASSWORD if self.db_password else None,
            "database": self.db_name,
            "encrypt": self.db_encrypt,
            "sslmode": self.ssl_mode,
            "timeout_seconds": self.db_timeout_seconds,
            "pool": {"min": self.db_pool_min, "max": self.db_pool_max},
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["MASKED_PASSWORD", "Settings", "get_settings"]
