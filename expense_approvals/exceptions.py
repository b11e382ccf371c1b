import enum
from typing import ClassVar

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorKind(enum.StrEnum):
    """Caller-facing error categories. Each maps to a distinct notification."""

    NOT_FOUND = "NotFound"
    INVALID_TRANSITION = "InvalidTransition"
    APPROVER_NOT_ELIGIBLE = "ApproverNotEligible"
    OUT_OF_SEQUENCE = "OutOfSequence"
    VALIDATION_ERROR = "ValidationError"
    CONFLICT = "Conflict"
    FORBIDDEN = "Forbidden"


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    kind: ClassVar[ErrorKind | None] = None

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class NotFoundError(AppError):
    """Referenced expense, rule or user does not exist."""

    kind = ErrorKind.NOT_FOUND

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class InvalidTransitionError(AppError):
    """Action attempted against an expense in the wrong or a terminal state."""

    kind = ErrorKind.INVALID_TRANSITION

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class ApproverNotEligibleError(AppError):
    """Caller does not hold a pending entry on the expense's approver roster."""

    kind = ErrorKind.APPROVER_NOT_ELIGIBLE

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class OutOfSequenceError(AppError):
    """Approver acted before the approvers ahead of them under a sequential rule."""

    kind = ErrorKind.OUT_OF_SEQUENCE

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class ValidationFailedError(AppError):
    """Malformed expense or rule input that passed schema validation."""

    kind = ErrorKind.VALIDATION_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


class ConflictError(AppError):
    """Duplicate record or a write based on a stale version."""

    kind = ErrorKind.CONFLICT

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class ForbiddenError(AppError):
    """Caller's role or ownership does not permit the action."""

    kind = ErrorKind.FORBIDDEN

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.kind.value if exc.kind else type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error=ErrorKind.VALIDATION_ERROR.value,
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
