"""Acquisition-period generator: which 12-month windows an employee is owed a balance for."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING

from dateutil.relativedelta import relativedelta
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from vacation_service.config import get_settings
from vacation_service.db import commit_or_raise
from vacation_service.exceptions import NotFound
from vacation_service.models.balance import VacationBalance
from vacation_service.models.enums import AuditAction, AuditEntityType
from vacation_service.schemas.period import (
    EligibleEmployee,
    EligibleEmployeeListResponse,
    MissingPeriodsResponse,
    PeriodWindow,
)
from vacation_service.services.audit import write_audit_log
from vacation_service.services.employee import get_employee_service

if TYPE_CHECKING:
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from vacation_service.schemas.auth import AuthContext

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result dataclasses
# ---------------------------------------------------------------------------


@dataclass
class MaterializeResult:
    """Summary of a period generation run."""

    processed: int = 0
    created: int = 0
    skipped_employee_ids: list[uuid.UUID] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Pure computation helpers (no DB)
# ---------------------------------------------------------------------------


def acquisition_window(hire_date: date, index: int) -> tuple[date, date]:
    """Return the inclusive (start, end) of the index-th period after hire.

    Both bounds are offset from the hire date itself, so a Feb 29 hire keeps
    landing on Feb 28/29 instead of drifting a day per year.
    """
    start = hire_date + relativedelta(years=index)
    end = hire_date + relativedelta(years=index + 1) - timedelta(days=1)
    return start, end


def expiration_date_for(period_end: date, months: int | None = None) -> date:
    """Legal deadline to enjoy a period: period end plus the concession window."""
    if months is None:
        months = get_settings().expiration_months
    return period_end + relativedelta(months=months)


def elapsed_windows(hire_date: date, as_of: date) -> list[tuple[date, date]]:
    """All periods since hire whose end date is on or before ``as_of``, oldest first."""
    windows: list[tuple[date, date]] = []
    index = 0
    while True:
        start, end = acquisition_window(hire_date, index)
        if end > as_of:
            break
        windows.append((start, end))
        index += 1
    return windows


def missing_windows(
    hire_date: date,
    existing_starts: Iterable[date],
    as_of: date,
) -> list[tuple[date, date]]:
    """Elapsed periods that have no balance record starting on the same day."""
    existing = set(existing_starts)
    return [(start, end) for start, end in elapsed_windows(hire_date, as_of) if start not in existing]


# ---------------------------------------------------------------------------
# DB-backed helpers
# ---------------------------------------------------------------------------


async def _existing_period_starts(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
) -> set[date]:
    result = await session.execute(
        select(VacationBalance.period_start).where(
            col(VacationBalance.company_id) == company_id,
            col(VacationBalance.employee_id) == employee_id,
        )
    )
    return set(result.scalars().all())


async def _existing_starts_by_employee(
    session: AsyncSession,
    company_id: uuid.UUID,
) -> dict[uuid.UUID, set[date]]:
    result = await session.execute(
        select(VacationBalance.employee_id, VacationBalance.period_start).where(
            col(VacationBalance.company_id) == company_id,
        )
    )
    starts: dict[uuid.UUID, set[date]] = {}
    for employee_id, period_start in result.all():
        starts.setdefault(employee_id, set()).add(period_start)
    return starts


def _to_windows(windows: list[tuple[date, date]]) -> list[PeriodWindow]:
    return [PeriodWindow(period_start=start, period_end=end) for start, end in windows]


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def list_missing_periods(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    as_of: date,
) -> MissingPeriodsResponse:
    """List the elapsed periods of one employee that still lack a balance record."""
    employee = await get_employee_service().get_employee(company_id, employee_id)
    if employee is None:
        raise NotFound("Employee not found", context={"employee_id": str(employee_id)})

    if employee.hire_date is None:
        logger.info("Employee %s has no hire date; not eligible for period generation", employee_id)
        return MissingPeriodsResponse(employee_id=employee_id, hire_date=None, items=[], total=0)

    existing = await _existing_period_starts(session, company_id, employee_id)
    windows = _to_windows(missing_windows(employee.hire_date, existing, as_of))
    return MissingPeriodsResponse(
        employee_id=employee_id,
        hire_date=employee.hire_date,
        items=windows,
        total=len(windows),
    )


async def list_eligible_employees(
    session: AsyncSession,
    company_id: uuid.UUID,
    as_of: date,
) -> EligibleEmployeeListResponse:
    """Active employees owed at least one balance record, ordered by name."""
    employees = await get_employee_service().list_employees(company_id)
    starts_by_employee = await _existing_starts_by_employee(session, company_id)

    items: list[EligibleEmployee] = []
    for employee in employees:
        if not employee.is_active:
            continue
        if employee.hire_date is None:
            logger.info("Employee %s has no hire date; not eligible for period generation", employee.id)
            continue

        windows = missing_windows(employee.hire_date, starts_by_employee.get(employee.id, set()), as_of)
        if not windows:
            continue

        items.append(
            EligibleEmployee(
                employee_id=employee.id,
                full_name=employee.full_name,
                code=employee.code,
                missing_periods=_to_windows(windows),
                missing_count=len(windows),
            )
        )

    return EligibleEmployeeListResponse(items=items, total=len(items))


# ---------------------------------------------------------------------------
# Write path
# ---------------------------------------------------------------------------


async def materialize_periods(
    session: AsyncSession,
    auth: AuthContext,
    employee_ids: list[uuid.UUID],
    as_of: date,
) -> MaterializeResult:
    """Create one balance record per missing period for each employee.

    Missing windows are re-derived here rather than trusted from an earlier
    listing. Re-running is a no-op: existing periods are filtered out before
    insert and the unique (employee, period_start) constraint backs that up.
    """
    settings = get_settings()
    result = MaterializeResult()
    directory = get_employee_service()

    for employee_id in dict.fromkeys(employee_ids):
        result.processed += 1

        employee = await directory.get_employee(auth.company_id, employee_id)
        if employee is None or employee.hire_date is None:
            logger.info("Skipping period generation for employee %s: unknown or no hire date", employee_id)
            result.skipped_employee_ids.append(employee_id)
            continue

        existing = await _existing_period_starts(session, auth.company_id, employee_id)
        for period_start, period_end in missing_windows(employee.hire_date, existing, as_of):
            balance = VacationBalance(
                company_id=auth.company_id,
                employee_id=employee_id,
                period_start=period_start,
                period_end=period_end,
                days_entitled=settings.default_days_entitled,
                days_taken=0,
                days_sold=0,
                expiration_date=expiration_date_for(period_end, settings.expiration_months),
            )

            # A concurrent run may have inserted the same period; only that row is rolled back.
            try:
                async with session.begin_nested():
                    session.add(balance)
                    await session.flush()
            except IntegrityError:
                logger.info("Period %s for employee %s already exists", period_start, employee_id)
                continue

            write_audit_log(
                session,
                company_id=auth.company_id,
                actor_id=auth.user_id,
                entity_type=AuditEntityType.BALANCE,
                entity_id=balance.id,
                action=AuditAction.CREATE,
                after=balance,
            )
            result.created += 1

    await commit_or_raise(session)
    logger.info(
        "Period generation complete: processed=%d created=%d skipped=%d",
        result.processed,
        result.created,
        len(result.skipped_employee_ids),
    )
    return result
