"""
HTTP layer of the SQL middleware (FastAPI).
"""

from sql_middleware.api.app import create_app

__all__ = ["create_app"]
