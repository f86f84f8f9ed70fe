"""Map dispatch errors to HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from carenotify.errors import (
    InvalidNotification,
    InvalidTransitionError,
    NotificationNotFoundError,
    PermissionDeniedError,
    QueueFullError,
    StorageError,
)
from carenotify.logging import get_module_logger

logger = get_module_logger()

STATUS_CODES = {
    InvalidNotification: 422,
    PermissionDeniedError: 403,
    NotificationNotFoundError: 404,
    InvalidTransitionError: 409,
    QueueFullError: 503,
    StorageError: 503,
}


async def notification_error_handler(request: Request, exc: Exception) -> JSONResponse:
    status_code = next(
        (code for error, code in STATUS_CODES.items() if isinstance(exc, error)),
        500,
    )
    if status_code >= 500:
        logger.error(
            "api_request_failed",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            error_type=type(exc).__name__,
        )
    else:
        logger.info(
            "api_request_rejected",
            path=request.url.path,
            status_code=status_code,
            error=str(exc),
        )
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "message": str(exc)},
    )


def setup_error_handlers(app: FastAPI) -> None:
    for error in STATUS_CODES:
        app.add_exception_handler(error, notification_error_handler)
