# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from vacation_service.api.deps import AdminDep, AsOfDep, AuthDep, validate_company_scope
from vacation_service.db import SessionDep
from vacation_service.schemas.booking import (
    BookingListResponse,
    BookingResponse,
    BookVacationRequest,
    RescheduleBookingRequest,
    UpcomingBookingListResponse,
)
from vacation_service.services import booking as booking_service

bookings_router = APIRouter(
    prefix="/companies/{company_id}/bookings",
    tags=["bookings"],
    dependencies=[Depends(validate_company_scope)],
)

employee_bookings_router = APIRouter(
    prefix="/companies/{company_id}/employees/{employee_id}/bookings",
    tags=["bookings"],
    dependencies=[Depends(validate_company_scope)],
)


@bookings_router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def book_vacation(
    payload: BookVacationRequest,
    session: SessionDep,
    auth: AdminDep,
    as_of: AsOfDep,
) -> BookingResponse:
    """Book a vacation against one balance (admin only)."""
    return await booking_service.book_vacation(session, auth, payload, as_of)


@bookings_router.get("/upcoming", response_model=UpcomingBookingListResponse)
async def list_upcoming_bookings(
    session: SessionDep,
    auth: AuthDep,
    as_of: AsOfDep,
    limit: int = Query(default=50, ge=1, le=200),
) -> UpcomingBookingListResponse:
    """Scheduled and running vacations across the company, soonest first."""
    return await booking_service.list_upcoming_bookings(session, auth.company_id, as_of, limit)


@bookings_router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_vacation(
    booking_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
    as_of: AsOfDep,
) -> BookingResponse:
    """Cancel a vacation that has not finished yet (admin only)."""
    return await booking_service.cancel_vacation(session, auth, booking_id, as_of)


@bookings_router.put("/{booking_id}/dates", response_model=BookingResponse)
async def reschedule_vacation(
    booking_id: uuid.UUID,
    payload: RescheduleBookingRequest,
    session: SessionDep,
    auth: AdminDep,
    as_of: AsOfDep,
) -> BookingResponse:
    """Move a vacation that has not started to new dates (admin only)."""
    return await booking_service.reschedule_vacation(session, auth, booking_id, payload, as_of)


@employee_bookings_router.get("", response_model=BookingListResponse)
async def list_employee_bookings(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    as_of: AsOfDep,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> BookingListResponse:
    """Vacations of one employee, most recent first."""
    return await booking_service.list_employee_bookings(session, auth.company_id, employee_id, as_of, offset, limit)
