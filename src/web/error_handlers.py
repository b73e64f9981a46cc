"""
Custom error handlers for the Briefly Tracker API.

Every failure is returned as ``{"success": false, "error": ..., "message": ...}``
with user-friendly messages; technical details only go to the log.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.store.click_log import WriteConflictError
from src.store.document_store import StoreError
from src.summarizers.llm_client import InferenceError
from src.web.schemas import ErrorResponse


logger = logging.getLogger(__name__)

# User-friendly error messages (don't expose technical details)
ERROR_MESSAGES = {
    # Store errors
    "write_conflict": "Another update landed at the same time. Please resend the signals.",
    "version_conflict": "The document changed while it was being updated. Please try again.",
    "not_found": "The requested document does not exist.",
    "store_error": "The data store is unavailable right now. Please try again later.",
    # Inference errors
    "inference_parse": "The AI response could not be understood. Please try again.",
    "inference_error": "The AI service is unavailable right now. Please try again later.",
    # Request errors
    "validation_error": "Please check your request and try again.",
    # Generic errors
    "server_error": "Something went wrong on our end. Please try again in a few moments.",
}

# Short error labels per HTTP status for the ``error`` field
ERROR_LABELS = {
    status.HTTP_400_BAD_REQUEST: "Bad request",
    status.HTTP_401_UNAUTHORIZED: "Unauthorized",
    status.HTTP_404_NOT_FOUND: "Not found",
    status.HTTP_405_METHOD_NOT_ALLOWED: "Method not allowed",
    status.HTTP_409_CONFLICT: "Write conflict",
}


def error_response(
    status_code: int, error: str, message: str, details: Optional[List[Dict[str, Any]]] = None
) -> JSONResponse:
    """Build the standard JSON error envelope."""
    content = ErrorResponse(error=error, message=message, details=details)
    return JSONResponse(
        status_code=status_code, content=content.model_dump(exclude_none=True)
    )


def get_friendly_message(exception: Exception) -> str:
    """
    Convert exception to user-friendly message.

    Args:
        exception: The exception that was raised

    Returns:
        User-friendly error message (no technical details)
    """
    exception_name = exception.__class__.__name__

    if exception_name == "WriteConflictError":
        return ERROR_MESSAGES["write_conflict"]
    elif exception_name == "VersionConflictError":
        return ERROR_MESSAGES["version_conflict"]
    elif exception_name == "DocumentNotFoundError":
        return ERROR_MESSAGES["not_found"]
    elif exception_name == "InferenceParseError":
        return ERROR_MESSAGES["inference_parse"]
    elif exception_name == "InferenceError":
        return ERROR_MESSAGES["inference_error"]
    elif isinstance(exception, StoreError):
        return ERROR_MESSAGES["store_error"]
    else:
        return ERROR_MESSAGES["server_error"]


async def write_conflict_handler(request: Request, exc: WriteConflictError) -> JSONResponse:
    """Concurrent writers won the race twice; the client should resend."""
    logger.warning(f"Write conflict in {request.method} {request.url.path}: {exc}")
    return error_response(
        status.HTTP_409_CONFLICT, "Failed to track signals", get_friendly_message(exc)
    )


async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    """Store failures surface as 500 with a friendly message."""
    logger.error(f"Store error in {request.method} {request.url.path}: {exc}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Store request failed", get_friendly_message(exc)
    )


async def inference_error_handler(request: Request, exc: InferenceError) -> JSONResponse:
    """Inference failures are a hard failure of the single request."""
    logger.error(f"Inference error in {request.method} {request.url.path}: {exc}")
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to summarize", get_friendly_message(exc)
    )


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Wrap routing/auth HTTP errors (405, 401, 404...) in the JSON envelope."""
    error = ERROR_LABELS.get(exc.status_code, "Request failed")
    message = exc.detail if isinstance(exc.detail, str) else error
    response = error_response(exc.status_code, error, message)
    if getattr(exc, "headers", None):
        response.headers.update(exc.headers)
    return response


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors as 400 Bad Request.

    Args:
        request: The FastAPI request
        exc: The validation error

    Returns:
        JSON response with validation error details
    """
    logger.warning(
        f"Validation error in {request.method} {request.url.path}: {exc.errors()}"
    )

    # Serialize errors properly (ctx may hold exception objects)
    errors = []
    for error in exc.errors():
        clean_error = {
            "type": error.get("type"),
            "loc": list(error.get("loc", ())),
            "msg": error.get("msg"),
        }
        errors.append(clean_error)

    first = errors[0]["msg"] if errors else ERROR_MESSAGES["validation_error"]
    return error_response(
        status.HTTP_400_BAD_REQUEST,
        ERROR_LABELS[status.HTTP_400_BAD_REQUEST],
        first,
        details=errors,
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Catch-all exception handler for unexpected errors.

    Logs full exception details; returns a generic message.
    """
    logger.error(
        f"Unhandled exception in {request.method} {request.url.path}",
        exc_info=exc,
    )
    return error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "Internal server error",
        ERROR_MESSAGES["server_error"],
    )


def register_error_handlers(app: FastAPI) -> None:
    """Attach all handlers; more specific exception classes take precedence."""
    app.add_exception_handler(WriteConflictError, write_conflict_handler)
    app.add_exception_handler(StoreError, store_error_handler)
    app.add_exception_handler(InferenceError, inference_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)
