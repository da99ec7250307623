# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field

from vacation_service.models.enums import AlertTier, BalanceStatus

# ---------------------------------------------------------------------------
# Balance response schemas
# ---------------------------------------------------------------------------


class BalanceResponse(BaseModel):
    """One acquisition period with its derived fields."""

    id: uuid.UUID
    company_id: uuid.UUID
    employee_id: uuid.UUID
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
    version: int
    created_at: datetime


class BalanceListResponse(BaseModel):
    """All balances of one employee, newest period first."""

    items: list[BalanceResponse]
    total: int
    total_remaining_days: int


# ---------------------------------------------------------------------------
# Mutation payloads
# ---------------------------------------------------------------------------


class SellDaysRequest(BaseModel):
    """Request body for converting vacation days into cash (abono pecuniário)."""

    days: int = Field(ge=1, description="Whole days to sell; at most 10 per period in total")


class AdjustEntitlementRequest(BaseModel):
    """Request body for the administrative entitlement override."""

    days_entitled: int = Field(ge=0)
