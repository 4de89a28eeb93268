"""Domain errors raised by the scheduling services"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    """Base class; carries the HTTP status and a stable machine-readable code"""

    status_code = 500
    code = "SERVER_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SchedulingError):
    status_code = 400
    code = "VALIDATION_ERROR"


class NotFoundError(SchedulingError):
    status_code = 404
    code = "NOT_FOUND"

    @classmethod
    def for_resource(cls, resource: str) -> "NotFoundError":
        return cls(f"{resource} not found")


class ConflictError(SchedulingError):
    """The requested interval is no longer free for the staff member"""

    status_code = 400
    code = "CONFLICT"


class InvalidTransitionError(SchedulingError):
    status_code = 400
    code = "INVALID_TRANSITION"

    def __init__(self, from_status: str, to_status: str):
        super().__init__(f"Cannot transition from {from_status} to {to_status}")
        self.from_status = from_status
        self.to_status = to_status


class GroupFullError(SchedulingError):
    status_code = 400
    code = "GROUP_FULL"

    def __init__(self, message: str = "Group is full"):
        super().__init__(message)


class UnauthorizedError(SchedulingError):
    status_code = 401
    code = "UNAUTHORIZED"

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class RateLimitedError(SchedulingError):
    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, retry_after_seconds: int):
        super().__init__("Too many booking attempts. Please try again later.")
        self.retry_after_seconds = retry_after_seconds


class ServerError(SchedulingError):
    status_code = 500
    code = "SERVER_ERROR"

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


# ============================================================================
# FastAPI exception handlers
# ============================================================================

async def scheduling_error_handler(request: Request, exc: SchedulingError):
    if exc.status_code >= 500:
        logger.error(f"Server error on {request.method} {request.url.path}: {exc.message}")
    headers = None
    if isinstance(exc, UnauthorizedError):
        headers = {"WWW-Authenticate": "Bearer"}
    elif isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
        headers=headers,
    )


async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception(f"Database error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": ServerError.code},
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "code": ServerError.code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SchedulingError, scheduling_error_handler)
    app.add_exception_handler(SQLAlchemyError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
