from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from vacation_service.config import get_settings
from vacation_service.db import commit_or_raise
from vacation_service.exceptions import (
    ExceedsAnnualCap,
    InsufficientBalance,
    InvalidQuantity,
    NotFound,
    WouldUnderflow,
)
from vacation_service.models.balance import VacationBalance
from vacation_service.models.enums import AlertTier, AuditAction, AuditEntityType, BalanceStatus
from vacation_service.schemas.balance import BalanceListResponse, BalanceResponse
from vacation_service.services.audit import model_to_audit_dict, write_audit_log

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from vacation_service.schemas.auth import AuthContext


# ---------------------------------------------------------------------------
# Derived state (no DB)
# ---------------------------------------------------------------------------


def derive_balance_state(
    days_entitled: int,
    days_taken: int,
    days_sold: int,
    expiration_date: date,
    as_of: date,
) -> tuple[int, BalanceStatus]:
    """Return (days_remaining, status) for the given counters.

    Status precedence: TAKEN, then EXPIRED, then PARTIAL, then AVAILABLE.
    A fully used balance stays TAKEN after its deadline. Remaining days never
    go below zero, even for a row overdrawn outside this service.
    """
    remaining = max(days_entitled - days_taken - days_sold, 0)
    if remaining == 0:
        status = BalanceStatus.TAKEN
    elif as_of > expiration_date:
        status = BalanceStatus.EXPIRED
    elif days_taken + days_sold > 0:
        status = BalanceStatus.PARTIAL
    else:
        status = BalanceStatus.AVAILABLE
    return remaining, status


def balance_state(balance: VacationBalance, as_of: date) -> tuple[int, BalanceStatus]:
    return derive_balance_state(
        balance.days_entitled,
        balance.days_taken,
        balance.days_sold,
        balance.expiration_date,
        as_of,
    )


def ensure_within_entitlement(days_entitled: int, days_taken: int, days_sold: int) -> None:
    """Raise InsufficientBalance if the counters would overdraw the period."""
    if days_taken < 0 or days_sold < 0 or days_taken + days_sold > days_entitled:
        raise InsufficientBalance(
            "Balance cannot cover the requested days",
            context={
                "days_entitled": days_entitled,
                "days_taken": days_taken,
                "days_sold": days_sold,
            },
        )


def days_until_expiration(balance: VacationBalance, as_of: date) -> int:
    """Signed day count to the deadline; negative once it has passed."""
    return (balance.expiration_date - as_of).days


def alert_tier(balance: VacationBalance, as_of: date) -> AlertTier:
    """Classify how close a balance with days left is to its deadline."""
    _, status = balance_state(balance, as_of)
    if status in (BalanceStatus.TAKEN, BalanceStatus.EXPIRED):
        return AlertTier.NONE

    settings = get_settings()
    days_left = days_until_expiration(balance, as_of)
    if days_left <= settings.alert_urgent_days:
        return AlertTier.URGENT
    if days_left <= settings.alert_warning_days:
        return AlertTier.WARNING
    return AlertTier.NONE


def apply_balance_change(balance: VacationBalance, *, taken_delta: int = 0, sold_delta: int = 0) -> None:
    """Move the stored counters, re-checking the entitlement invariant first."""
    new_taken = balance.days_taken + taken_delta
    new_sold = balance.days_sold + sold_delta
    ensure_within_entitlement(balance.days_entitled, new_taken, new_sold)
    balance.days_taken = new_taken
    balance.days_sold = new_sold
    balance.version += 1


def build_balance_response(balance: VacationBalance, as_of: date) -> BalanceResponse:
    """Map a balance model to its response schema with derived fields."""
    remaining, status = balance_state(balance, as_of)
    return BalanceResponse(
        id=balance.id,
        company_id=balance.company_id,
        employee_id=balance.employee_id,
        period_start=balance.period_start,
        period_end=balance.period_end,
        days_entitled=balance.days_entitled,
        days_taken=balance.days_taken,
        days_sold=balance.days_sold,
        days_remaining=remaining,
        expiration_date=balance.expiration_date,
        days_until_expiration=days_until_expiration(balance, as_of),
        status=status,
        alert_tier=alert_tier(balance, as_of),
        version=balance.version,
        created_at=balance.created_at,
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def get_balance_for_update(
    session: AsyncSession,
    company_id: uuid.UUID,
    balance_id: uuid.UUID,
) -> VacationBalance | None:
    """Fetch a balance with a FOR UPDATE lock so concurrent writers serialize on it.

    The row is re-read under the lock even if the session already holds it.
    """
    result = await session.execute(
        select(VacationBalance)
        .where(
            col(VacationBalance.id) == balance_id,
            col(VacationBalance.company_id) == company_id,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def _get_balance_for_update_or_404(
    session: AsyncSession,
    company_id: uuid.UUID,
    balance_id: uuid.UUID,
) -> VacationBalance:
    balance = await get_balance_for_update(session, company_id, balance_id)
    if balance is None:
        raise NotFound("Balance not found", context={"balance_id": str(balance_id)})
    return balance


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def list_employee_balances(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    as_of: date,
) -> BalanceListResponse:
    """All balances of an employee, newest period first."""
    result = await session.execute(
        select(VacationBalance)
        .where(
            col(VacationBalance.company_id) == company_id,
            col(VacationBalance.employee_id) == employee_id,
        )
        .order_by(col(VacationBalance.period_start).desc())
    )
    items = [build_balance_response(b, as_of) for b in result.scalars().all()]
    open_days = sum(
        item.days_remaining for item in items if item.status in (BalanceStatus.AVAILABLE, BalanceStatus.PARTIAL)
    )
    return BalanceListResponse(items=items, total=len(items), total_remaining_days=open_days)


async def get_balance(
    session: AsyncSession,
    company_id: uuid.UUID,
    balance_id: uuid.UUID,
    as_of: date,
) -> BalanceResponse:
    result = await session.execute(
        select(VacationBalance).where(
            col(VacationBalance.id) == balance_id,
            col(VacationBalance.company_id) == company_id,
        )
    )
    balance = result.scalar_one_or_none()
    if balance is None:
        raise NotFound("Balance not found", context={"balance_id": str(balance_id)})
    return build_balance_response(balance, as_of)


# ---------------------------------------------------------------------------
# Write path
# ---------------------------------------------------------------------------


async def sell_days(
    session: AsyncSession,
    auth: AuthContext,
    balance_id: uuid.UUID,
    days: int,
    as_of: date,
) -> BalanceResponse:
    """Convert vacation days of one period into cash.

    Flow:
    1. Validate the quantity
    2. Lock the balance with SELECT FOR UPDATE
    3. Enforce the per-period cap on sold days
    4. Enforce the remaining-days limit
    5. Update counters and version
    6. Write audit log
    7. Commit
    """
    if days < 1:
        raise InvalidQuantity("Days to sell must be a positive whole number", context={"days": days})

    balance = await _get_balance_for_update_or_404(session, auth.company_id, balance_id)

    cap = get_settings().max_days_sold_per_period
    if balance.days_sold + days > cap:
        raise ExceedsAnnualCap(
            f"At most {cap} days can be sold per period",
            context={"days_sold": balance.days_sold, "requested": days, "cap_remaining": cap - balance.days_sold},
        )

    remaining, _ = balance_state(balance, as_of)
    if days > remaining:
        raise InsufficientBalance(
            "Not enough remaining days to sell",
            context={"days_remaining": remaining, "requested": days},
        )

    before = model_to_audit_dict(balance)
    apply_balance_change(balance, sold_delta=days)
    await session.flush()

    write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.BALANCE,
        entity_id=balance.id,
        action=AuditAction.SELL,
        before=before,
        after=balance,
    )

    await commit_or_raise(session)
    return build_balance_response(balance, as_of)


async def adjust_entitlement(
    session: AsyncSession,
    auth: AuthContext,
    balance_id: uuid.UUID,
    days_entitled: int,
    as_of: date,
) -> BalanceResponse:
    """Administrative override of a period's entitlement.

    The new value may not drop below what is already taken plus sold.
    """
    if days_entitled < 0:
        raise InvalidQuantity("Entitlement cannot be negative", context={"days_entitled": days_entitled})

    balance = await _get_balance_for_update_or_404(session, auth.company_id, balance_id)

    consumed = balance.days_taken + balance.days_sold
    if days_entitled < consumed:
        raise WouldUnderflow(
            "Entitlement cannot drop below days already taken or sold",
            context={"days_entitled": days_entitled, "days_taken": balance.days_taken, "days_sold": balance.days_sold},
        )

    before = model_to_audit_dict(balance)
    balance.days_entitled = days_entitled
    balance.version += 1
    await session.flush()

    write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.BALANCE,
        entity_id=balance.id,
        action=AuditAction.UPDATE,
        before=before,
        after=balance,
    )

    await commit_or_raise(session)
    return build_balance_response(balance, as_of)
