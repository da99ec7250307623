# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

from sqlmodel import Field

from vacation_service.models.base import CompanyScoped, TimestampMixin, UUIDBase


class CollectiveVacation(UUIDBase, CompanyScoped, TimestampMixin, table=True):
    """A company-wide (or unit/department-wide) vacation block."""

    __tablename__ = "collective_vacation"

    title: str = Field(max_length=255)
    start_date: date
    end_date: date
    days: int
    unit_id: uuid.UUID | None = None
    department_id: uuid.UUID | None = None
    notes: str | None = None
    created_by: uuid.UUID
