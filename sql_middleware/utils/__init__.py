"""
Utilities package for the SQL middleware.

Exports shared helpers for logging and timing. Keep this package lightweight
and free of domain-specific logic.
"""

from sql_middleware.utils.logging import configure_logging, get_logger
from sql_middleware.utils.profiler import ProfileStats, profile_block

__all__ = [
    "configure_logging",
    "get_logger",
    "ProfileStats",
    "profile_block",
]
