# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel

from vacation_service.models.enums import AlertTier, BalanceStatus, ExpirationSituation


class BalanceReportRow(BaseModel):
    """A balance projected together with the employee's directory data."""

    balance_id: uuid.UUID
    employee_id: uuid.UUID
    full_name: str
    code: str | None
    unit_id: uuid.UUID | None
    department_id: uuid.UUID | None
    period_start: date
    period_end: date
    days_entitled: int
    days_taken: int
    days_sold: int
    days_remaining: int
    expiration_date: date
    days_until_expiration: int
    status: BalanceStatus
    alert_tier: AlertTier


class BalanceReportResponse(BaseModel):
    """Paginated balance report."""

    items: list[BalanceReportRow]
    total: int


class ExpiringBalance(BaseModel):
    """A balance with days left, classified against its legal deadline."""

    balance_id: uuid.UUID
    employee_id: uuid.UUID
    full_name: str
    code: str | None
    period_start: date
    period_end: date
    days_remaining: int
    expiration_date: date
    days_until_expiration: int
    situation: ExpirationSituation


class ExpiringBalanceListResponse(BaseModel):
    """Balances with days left, soonest deadline first."""

    items: list[ExpiringBalance]
    total: int


class EmployeeAtRisk(BaseModel):
    """An employee accumulating more open vacation days than the risk threshold."""

    employee_id: uuid.UUID
    full_name: str
    total_remaining_days: int


class AlertSummaryResponse(BaseModel):
    """Dashboard counters over balances and bookings."""

    as_of: date
    urgent_count: int
    warning_count: int
    overdue_count: int
    employees_at_risk: list[EmployeeAtRisk]
    total_remaining_days: int
    scheduled_bookings: int
    in_progress_bookings: int
    cancelled_bookings: int


class AuditLogEntryResponse(BaseModel):
    """Response schema for a single audit log entry."""

    id: uuid.UUID
    company_id: uuid.UUID
    actor_id: uuid.UUID
    entity_type: str
    entity_id: uuid.UUID
    action: str
    before_json: dict[str, Any] | None
    after_json: dict[str, Any] | None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    """Paginated list of audit log entries."""

    items: list[AuditLogEntryResponse]
    total: int
