# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, Field


class PeriodWindow(BaseModel):
    """An acquisition period that has fully elapsed."""

    period_start: date
    period_end: date


class MissingPeriodsResponse(BaseModel):
    """Elapsed acquisition periods with no balance record for one employee."""

    employee_id: uuid.UUID
    hire_date: date | None
    items: list[PeriodWindow]
    total: int


class EligibleEmployee(BaseModel):
    """An employee owed at least one balance record."""

    employee_id: uuid.UUID
    full_name: str
    code: str | None
    missing_periods: list[PeriodWindow]
    missing_count: int


class EligibleEmployeeListResponse(BaseModel):
    """Employees eligible for period generation."""

    items: list[EligibleEmployee]
    total: int


class MaterializePeriodsRequest(BaseModel):
    """Request body for generating balance records."""

    employee_ids: list[uuid.UUID] = Field(min_length=1)


class MaterializePeriodsResponse(BaseModel):
    """Outcome of a generation run."""

    created: int
    processed: int
    skipped_employee_ids: list[uuid.UUID]
