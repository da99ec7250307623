# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from vacation_service.models.enums import BookingKind, BookingStatus

# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class BookVacationRequest(BaseModel):
    """Request body for booking an individual vacation.

    Date-range and balance checks happen in the service so that rejections
    carry the domain error names.
    """

    employee_id: uuid.UUID
    balance_id: uuid.UUID | None = None
    start_date: date
    end_date: date
    sell_days_on_booking: bool = False
    cash_out_days: int = Field(default=0, ge=0)
    notes: str | None = Field(default=None, max_length=1000)


class RescheduleBookingRequest(BaseModel):
    """Request body for moving a scheduled booking to new dates."""

    start_date: date
    end_date: date


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BookingResponse(BaseModel):
    """Response schema for a single booking."""

    id: uuid.UUID
    company_id: uuid.UUID
    employee_id: uuid.UUID
    balance_id: uuid.UUID
    collective_id: uuid.UUID | None
    kind: BookingKind
    start_date: date
    end_date: date
    days: int
    cash_out_days: int
    status: BookingStatus
    notes: str | None
    cancelled_at: datetime | None
    created_at: datetime


class BookingListResponse(BaseModel):
    """Paginated list of bookings."""

    items: list[BookingResponse]
    total: int


class UpcomingBooking(BaseModel):
    """A booking joined with the employee's directory data."""

    booking_id: uuid.UUID
    employee_id: uuid.UUID
    full_name: str
    code: str | None
    unit_id: uuid.UUID | None
    department_id: uuid.UUID | None
    kind: BookingKind
    start_date: date
    end_date: date
    days: int
    status: BookingStatus


class UpcomingBookingListResponse(BaseModel):
    """Upcoming bookings ordered by start date."""

    items: list[UpcomingBooking]
    total: int

