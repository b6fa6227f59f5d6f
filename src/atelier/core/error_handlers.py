import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from atelier.core.config import settings
from atelier.core.errors import AppError
from atelier.schemas.base import ErrorResponse

logger = logging.getLogger(__name__)


def error_response(error: str, status_code: int = 500, details: Any = None) -> JSONResponse:
    """Build the standard ``{"success": false, "error": ...}`` body."""
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle authorization and state errors raised by guards and services."""
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    else:
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.message, exc.status_code)


async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle Pydantic validation errors."""
    logger.error(f"Validation error: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"success": False, "error": "Validation failed", "detail": exc.errors()},
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Handle SQLAlchemy database errors."""
    logger.error(f"Database error: {str(exc)}", exc_info=True)
    return error_response(
        "Database error occurred",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        details=_trace(exc),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other exceptions."""
    logger.error(f"Unexpected error: {str(exc)}", exc_info=True)
    return error_response(
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        details=_trace(exc),
    )


def _trace(exc: Exception) -> list[str] | None:
    # stack traces only leave the process outside production
    if not settings.include_error_details:
        return None
    return traceback.format_exception(type(exc), exc, exc.__traceback__)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(ValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
