# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date

import sqlalchemy as sa
from sqlmodel import Field

from vacation_service.models.base import CompanyScoped, TimestampMixin, UUIDBase


class VacationBalance(UUIDBase, CompanyScoped, TimestampMixin, table=True):
    """Days owed to an employee for one 12-month acquisition period.

    Remaining days and status are derived from the stored counters on every
    read; see ``vacation_service.services.balance.derive_balance_state``.
    """

    __tablename__ = "vacation_balance"
    __table_args__ = (
        sa.UniqueConstraint("company_id", "employee_id", "period_start", name="uq_balance_employee_period"),
        sa.CheckConstraint("days_taken + days_sold <= days_entitled", name="ck_balance_not_overdrawn"),
    )

    employee_id: uuid.UUID = Field(index=True)
    period_start: date
    period_end: date
    days_entitled: int = Field(default=30, sa_column_kwargs={"server_default": "30"})
    days_taken: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    days_sold: int = Field(default=0, sa_column_kwargs={"server_default": "0"})
    expiration_date: date = Field(index=True)
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
