# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query, status

from vacation_service.api.deps import AdminDep, AsOfDep, AuthDep, validate_company_scope
from vacation_service.db import SessionDep
from vacation_service.schemas.booking import BookingListResponse
from vacation_service.schemas.collective import (
    CollectiveBookingResult,
    CollectiveVacationListResponse,
    CreateCollectiveVacationRequest,
    DeleteCollectiveResponse,
)
from vacation_service.services import collective as collective_service

collectives_router = APIRouter(
    prefix="/companies/{company_id}/collective-vacations",
    tags=["collective-vacations"],
    dependencies=[Depends(validate_company_scope)],
)


@collectives_router.post("", response_model=CollectiveBookingResult, status_code=status.HTTP_201_CREATED)
async def book_collective(
    payload: CreateCollectiveVacationRequest,
    session: SessionDep,
    auth: AdminDep,
    as_of: AsOfDep,
) -> CollectiveBookingResult:
    """Book one vacation block for every active employee in scope (admin only).

    Employees without a suitable balance are skipped and listed in the result.
    """
    return await collective_service.book_collective(session, auth, payload, as_of)


@collectives_router.get("", response_model=CollectiveVacationListResponse)
async def list_collectives(
    session: SessionDep,
    auth: AuthDep,
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> CollectiveVacationListResponse:
    return await collective_service.list_collectives(session, auth.company_id, offset, limit)


@collectives_router.get("/{collective_id}/bookings", response_model=BookingListResponse)
async def list_collective_bookings(
    collective_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    as_of: AsOfDep,
) -> BookingListResponse:
    """Bookings generated by a collective vacation, cancelled ones included."""
    return await collective_service.list_collective_bookings(session, auth.company_id, collective_id, as_of)


@collectives_router.delete("/{collective_id}", response_model=DeleteCollectiveResponse)
async def delete_collective(
    collective_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
    as_of: AsOfDep,
) -> DeleteCollectiveResponse:
    """Delete a collective vacation and cancel its unfinished bookings (admin only)."""
    return await collective_service.delete_collective(session, auth, collective_id, as_of)
