"""
Infrastructure package for the SQL middleware.

Centralizes database connectivity concerns (pool lifecycle, reconnects,
health probing). Keep this layer focused on I/O and resource management,
decoupled from request handling.
"""

from sql_middleware.infrastructure.pool_manager import (
    PoolManager,
    get_pool_manager,
    is_connection_error,
)

__all__ = [
    "PoolManager",
    "get_pool_manager",
    "is_connection_error",
]
