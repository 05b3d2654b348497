"""Exception handlers that give every API failure the same JSON shape:

    {"error": {"message": ..., "status_code": ..., "details": {...}}}

`details` is omitted when empty. Request parsing failures (body, path or
query) are reported as 400 rather than FastAPI's default 422. Storage and
unexpected failures are logged with their traceback; the client only sees a
generic message.
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from core.exceptions import AppException, describe_validation_errors
from core.logger import get_logger

logger = get_logger("core.error_handlers")


def create_error_response(
    message: str,
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    """Wrap `message` and optional `details` in the error envelope."""
    error: Dict[str, Any] = {"message": message, "status_code": status_code}
    if details:
        error["details"] = details
    return JSONResponse(status_code=status_code, content={"error": error})


def _where(request: Request) -> str:
    return f"{request.method} {request.url.path}"


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """Client errors log as warnings, upstream or internal failures as errors."""
    if exc.status_code >= 500:
        logger.error("%s failed: %s %s", _where(request), exc.message, exc.details or "")
    else:
        logger.warning("%s rejected (%s): %s", _where(request), exc.status_code, exc.message)
    return create_error_response(exc.message, exc.status_code, exc.details)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = describe_validation_errors(exc.errors())
    logger.warning("%s invalid request: %s", _where(request), errors)
    return create_error_response(
        "Validation error",
        status.HTTP_400_BAD_REQUEST,
        {"validation_errors": errors},
    )


async def sqlalchemy_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("%s database error", _where(request), exc_info=exc)
    return create_error_response(
        "A database error occurred",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"type": "database_error"},
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s unhandled %s", _where(request), type(exc).__name__, exc_info=exc)
    return create_error_response(
        "An internal server error occurred",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        {"type": "internal_error"},
    )


EXCEPTION_HANDLERS = (
    (AppException, app_exception_handler),
    (RequestValidationError, validation_exception_handler),
    (SQLAlchemyError, sqlalchemy_exception_handler),
    (Exception, generic_exception_handler),
)


def register_exception_handlers(app: FastAPI) -> None:
    """Install every handler in `EXCEPTION_HANDLERS` on `app`."""
    for exc_class, handler in EXCEPTION_HANDLERS:
        app.add_exception_handler(exc_class, handler)
    logger.info("Registered %s exception handlers", len(EXCEPTION_HANDLERS))
