# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

from pydantic import BaseModel, Field

from vacation_service.models.enums import EmployeeStatus


class UpsertEmployeeRequest(BaseModel):
    """Request body for creating or updating an employee in the directory stub."""

    full_name: str = Field(min_length=1, max_length=255)
    code: str | None = Field(default=None, max_length=50)
    hire_date: date | None = None
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    unit_id: uuid.UUID | None = None
    department_id: uuid.UUID | None = None


class EmployeeResponse(BaseModel):
    """Employee as returned by the directory."""

    id: uuid.UUID
    company_id: uuid.UUID
    full_name: str
    code: str | None
    hire_date: date | None
    status: EmployeeStatus
    unit_id: uuid.UUID | None
    department_id: uuid.UUID | None


class EmployeeListResponse(BaseModel):
    """List of employees."""

    items: list[EmployeeResponse]
    total: int
