"""
Exception handlers for the FastAPI application.

Maps the middleware's error kinds onto HTTP responses:

- ValidationError and malformed bodies -> 400 ``{error}``
- DatabaseConnectionError / ExecutionError -> 500 ``{success: false, error, errorCode}``
- anything else -> 500 ``{success: false, error: "Internal server error"}``

In development, 500 responses also carry the traceback under ``details``.
"""

from __future__ import annotations

import traceback
from typing import Any, Dict

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from sql_middleware.errors import MiddlewareError, ValidationError
from sql_middleware.utils.logging import get_logger

log = get_logger(__name__)


def _is_development(request: Request) -> bool:
    return request.app.state.settings.is_development


def _with_details(request: Request, content: Dict[str, Any], exc: BaseException) -> Dict[str, Any]:
    if _is_development(request):
        content["details"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return content


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Caller input missing or malformed; the database was not contacted."""
    message = exc.message if isinstance(exc, ValidationError) else str(exc)
    log.warning("Rejected %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})


async def request_validation_handler(request: Request, exc: Exception) -> JSONResponse:
    """Body is not valid JSON or does not match the expected shape."""
    errors = []
    if isinstance(exc, RequestValidationError):
        for error in exc.errors():
            errors.append(
                {
                    "field": ".".join(str(loc) for loc in error["loc"]),
                    "message": error["msg"],
                    "type": error["type"],
                }
            )
    log.warning("Invalid request body on %s: %s", request.url.path, errors)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Invalid request body", "details": errors},
    )


async def database_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Connection or execution failure reported by the database layer."""
    message = exc.message if isinstance(exc, MiddlewareError) else str(exc)
    code = exc.code if isinstance(exc, MiddlewareError) else None
    log.error("%s %s failed: %s", request.method, request.url.path, message)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_with_details(request, {"success": False, "error": message, "errorCode": code}, exc),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all unhandled exceptions.

    Logs the full exception with traceback and returns a safe error response.
    """
    log.error(
        "Unhandled exception on %s %s: %s",
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_with_details(request, {"success": False, "error": "Internal server error"}, exc),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI application."""
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(MiddlewareError, database_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)


__all__ = ["register_exception_handlers"]
