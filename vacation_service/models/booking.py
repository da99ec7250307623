# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

import sqlalchemy as sa
from sqlmodel import Field

from vacation_service.models.base import CompanyScoped, TimestampMixin, UUIDBase
from vacation_service.models.enums import BookingKind


class VacationBooking(UUIDBase, CompanyScoped, TimestampMixin, table=True):
    """A vacation drawn against exactly one balance."""

    __tablename__ = "vacation_booking"
    __table_args__ = (sa.Index("ix_booking_company_start", "company_id", "start_date"),)

    employee_id: uuid.UUID = Field(index=True)
    balance_id: uuid.UUID = Field(
        sa_column=sa.Column(
            sa.Uuid, sa.ForeignKey("vacation_balance.id", ondelete="RESTRICT"), nullable=False, index=True
        ),
    )
    # Kept after the collective vacation itself is deleted.
    collective_id: uuid.UUID | None = Field(default=None, index=True)
    kind: str = Field(default=BookingKind.INDIVIDUAL, max_length=50)
    start_date: date
    end_date: date
    days: int
    cash_out_days: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    notes: str | None = None
    created_by: uuid.UUID
    cancelled_at: datetime | None = Field(default=None, sa_type=sa.DateTime(timezone=True))  # ty: ignore[invalid-argument-type]
    cancelled_by: uuid.UUID | None = None
