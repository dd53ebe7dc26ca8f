# app/exception_handlers.py
"""
Exception handlers mapping errors to HTTP responses.

Error Response Format:
    {
        "message": "First (or only) human-readable message",
        "errors": ["every", "violation", "message"]
    }
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.correlation import current_request_id
from auth.errors import AuthError, InternalError

logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = InternalError.default_message


def error_response(status_code: int, messages: list[str]) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"message": messages[0], "errors": messages},
    )


def _format_validation_error(error: dict) -> str:
    """Turn one pydantic error into 'field: message'."""
    location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    message = error.get("msg", "Invalid value")
    return f"{'.'.join(location)}: {message}" if location else message


async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{type(exc).__name__} on {request.method} {request.url.path}: {exc.message}")
    return error_response(exc.status_code, exc.messages)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    messages = [_format_validation_error(error) for error in exc.errors()] or ["Validation failed"]
    return error_response(status.HTTP_400_BAD_REQUEST, messages)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        f"Unhandled error on {request.method} {request.url.path} "
        f"(request_id={current_request_id()})"
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, [GENERIC_ERROR_MESSAGE])


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AuthError, auth_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
