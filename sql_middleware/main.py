from __future__ import annotations

import asyncio
import json
import sys
from typing import Optional

import typer
import uvicorn

from sql_middleware.config import get_settings
from sql_middleware.errors import DatabaseConnectionError
from sql_middleware.infrastructure.pool_manager import PoolManager
from sql_middleware.utils.logging import configure_logging

app = typer.Typer(help="SQL Middleware CLI.")


@app.command()
def info() -> None:
    """
    Show effective configuration values (password masked).
    """
    settings = get_settings()
    typer.echo(
        json.dumps(
            {
                "environment": settings.app_env,
                "listen": f"{settings.host}:{settings.port}",
                "db_config": settings.masked_db_config(),
                "connect_attempts": settings.db_connect_attempts,
            },
            indent=2,
        )
    )


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address (default from HOST)."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Listening port (default from PORT)."),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes (development only)."),
) -> None:
    """
    Run the HTTP service.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    uvicorn.run(
        "sql_middleware.api.app:create_app",
        factory=True,
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_config=None,
    )


@app.command()
def ping() -> None:
    """
    Connect once and print the database health probe.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)
    result = asyncio.run(_ping())
    typer.echo(json.dumps(result))
    if not result["connected"]:
        raise typer.Exit(code=1)


async def _ping() -> dict:
    manager = PoolManager()
    try:
        await manager.ensure_pool(1)
        return await manager.check_health()
    except DatabaseConnectionError as exc:
        return {"connected": False, "message": exc.message}
    finally:
        await manager.close()


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
