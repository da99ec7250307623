import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int
    context: dict[str, Any] | None = None


class AppError(Exception):
    """Base application exception."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        context: dict[str, Any] | None = None,
    ) -> None:
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.context = context
        super().__init__(self.message)


class NotFound(AppError):
    status_code = status.HTTP_404_NOT_FOUND


# ---------------------------------------------------------------------------
# Input validation: rejected before any mutation
# ---------------------------------------------------------------------------


class InvalidInput(AppError):
    """Request is malformed for the business rules (user corrects input)."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidDateRange(InvalidInput):
    pass


class InvalidQuantity(InvalidInput):
    pass


class NoBalanceSelected(InvalidInput):
    pass


# ---------------------------------------------------------------------------
# Business-rule rejections
# ---------------------------------------------------------------------------


class BalanceRuleViolation(AppError):
    """A balance invariant would be broken by the requested mutation."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


class InsufficientBalance(BalanceRuleViolation):
    pass


class ExceedsAvailableDays(BalanceRuleViolation):
    pass


class ExceedsAnnualCap(BalanceRuleViolation):
    pass


class WouldUnderflow(BalanceRuleViolation):
    pass


class BalanceNotBookable(BalanceRuleViolation):
    pass


class NoEmployeesInScope(AppError):
    """A collective vacation must reach at least one active employee."""

    status_code = status.HTTP_422_UNPROCESSABLE_ENTITY


# ---------------------------------------------------------------------------
# Booking state errors
# ---------------------------------------------------------------------------


class AlreadyCompleted(AppError):
    status_code = status.HTTP_409_CONFLICT


class AlreadyCancelled(AppError):
    status_code = status.HTTP_409_CONFLICT


class NotReschedulable(AppError):
    """Only bookings that have not started yet can move."""

    status_code = status.HTTP_409_CONFLICT


class OverlappingBooking(AppError):
    status_code = status.HTTP_409_CONFLICT


class ExternalStoreError(AppError):
    """The persistence layer failed. Never retried here; callers may re-invoke."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
            context=exc.context,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


async def _store_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Unhandled store failure on %s %s", request.method, request.url.path)
    return await _app_exception_handler(request, ExternalStoreError(f"Data store failure: {type(exc).__name__}"))


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _store_exception_handler)  # type: ignore[arg-type]
