# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field


class CreateCollectiveVacationRequest(BaseModel):
    """Request body for booking a collective vacation.

    Leaving both ``unit_id`` and ``department_id`` empty targets every
    active employee of the company.
    """

    title: str = Field(min_length=1, max_length=255)
    start_date: date
    end_date: date
    unit_id: uuid.UUID | None = None
    department_id: uuid.UUID | None = None
    notes: str | None = Field(default=None, max_length=1000)


class CollectiveVacationResponse(BaseModel):
    """A collective vacation with the number of employees it currently books."""

    id: uuid.UUID
    company_id: uuid.UUID
    title: str
    start_date: date
    end_date: date
    days: int
    unit_id: uuid.UUID | None
    department_id: uuid.UUID | None
    notes: str | None
    affected_employees: int
    created_at: datetime


class CollectiveBookingResult(BaseModel):
    """Outcome of fanning a collective vacation out to employees.

    A partial batch is a normal outcome: ``skipped_employee_ids`` lists the
    employees without a balance able to cover the block.
    """

    collective: CollectiveVacationResponse
    booked_count: int
    skipped_employee_ids: list[uuid.UUID]
    partial: bool


class CollectiveVacationListResponse(BaseModel):
    """Collective vacations, newest first."""

    items: list[CollectiveVacationResponse]
    total: int


class DeleteCollectiveResponse(BaseModel):
    """Outcome of deleting a collective vacation."""

    collective_id: uuid.UUID
    cancelled_bookings: int
    kept_completed_bookings: int
