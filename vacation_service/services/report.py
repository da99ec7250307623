"""Reporting service: balance reports, expiration alerts, and audit log queries."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from vacation_service.config import get_settings
from vacation_service.models.audit import AuditLog
from vacation_service.models.balance import VacationBalance
from vacation_service.models.booking import VacationBooking
from vacation_service.models.enums import AlertTier, BalanceStatus, BookingStatus, ExpirationSituation
from vacation_service.schemas.report import (
    AlertSummaryResponse,
    AuditLogEntryResponse,
    AuditLogListResponse,
    BalanceReportResponse,
    BalanceReportRow,
    EmployeeAtRisk,
    ExpiringBalance,
    ExpiringBalanceListResponse,
)
from vacation_service.services.balance import alert_tier, balance_state, days_until_expiration
from vacation_service.services.booking import derive_booking_status
from vacation_service.services.employee import EmployeeInfo, get_employee_service

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

_OPEN = (BalanceStatus.AVAILABLE, BalanceStatus.PARTIAL)


async def _company_balances(session: AsyncSession, company_id: uuid.UUID) -> list[VacationBalance]:
    result = await session.execute(
        select(VacationBalance)
        .where(col(VacationBalance.company_id) == company_id)
        .order_by(col(VacationBalance.expiration_date), col(VacationBalance.period_start))
    )
    return list(result.scalars().all())


async def _employee_index(company_id: uuid.UUID) -> dict[uuid.UUID, EmployeeInfo]:
    return {e.id: e for e in await get_employee_service().list_employees(company_id)}


def classify_expiration(days_left: int) -> ExpirationSituation:
    """OVERDUE past the deadline, ALERT inside the warning window, OK otherwise."""
    if days_left < 0:
        return ExpirationSituation.OVERDUE
    if days_left <= get_settings().alert_warning_days:
        return ExpirationSituation.ALERT
    return ExpirationSituation.OK


async def get_balance_report(
    session: AsyncSession,
    company_id: uuid.UUID,
    as_of: date,
    *,
    unit_id: uuid.UUID | None = None,
    department_id: uuid.UUID | None = None,
    status: BalanceStatus | None = None,
    offset: int = 0,
    limit: int = 50,
) -> BalanceReportResponse:
    """Balances projected with employee data, earliest deadline first.

    Status is derived per row, so filtering on it happens after loading.
    """
    employees = await _employee_index(company_id)

    rows: list[BalanceReportRow] = []
    for balance in await _company_balances(session, company_id):
        employee = employees.get(balance.employee_id)
        if unit_id is not None and (employee is None or employee.unit_id != unit_id):
            continue
        if department_id is not None and (employee is None or employee.department_id != department_id):
            continue

        remaining, balance_status = balance_state(balance, as_of)
        if status is not None and balance_status != status:
            continue

        rows.append(
            BalanceReportRow(
                balance_id=balance.id,
                employee_id=balance.employee_id,
                full_name=employee.full_name if employee else str(balance.employee_id),
                code=employee.code if employee else None,
                unit_id=employee.unit_id if employee else None,
                department_id=employee.department_id if employee else None,
                period_start=balance.period_start,
                period_end=balance.period_end,
                days_entitled=balance.days_entitled,
                days_taken=balance.days_taken,
                days_sold=balance.days_sold,
                days_remaining=remaining,
                expiration_date=balance.expiration_date,
                days_until_expiration=days_until_expiration(balance, as_of),
                status=balance_status,
                alert_tier=alert_tier(balance, as_of),
            )
        )

    return BalanceReportResponse(items=rows[offset : offset + limit], total=len(rows))


async def list_expiring_balances(
    session: AsyncSession,
    company_id: uuid.UUID,
    as_of: date,
    within_days: int | None = None,
) -> ExpiringBalanceListResponse:
    """Balances that still have days left, soonest deadline first."""
    employees = await _employee_index(company_id)

    items: list[ExpiringBalance] = []
    for balance in await _company_balances(session, company_id):
        remaining, _ = balance_state(balance, as_of)
        if remaining <= 0:
            continue
        days_left = days_until_expiration(balance, as_of)
        if within_days is not None and days_left > within_days:
            continue

        employee = employees.get(balance.employee_id)
        items.append(
            ExpiringBalance(
                balance_id=balance.id,
                employee_id=balance.employee_id,
                full_name=employee.full_name if employee else str(balance.employee_id),
                code=employee.code if employee else None,
                period_start=balance.period_start,
                period_end=balance.period_end,
                days_remaining=remaining,
                expiration_date=balance.expiration_date,
                days_until_expiration=days_left,
                situation=classify_expiration(days_left),
            )
        )

    items.sort(key=lambda item: item.days_until_expiration)
    return ExpiringBalanceListResponse(items=items, total=len(items))


async def get_alert_summary(
    session: AsyncSession,
    company_id: uuid.UUID,
    as_of: date,
) -> AlertSummaryResponse:
    """Dashboard counters: alert tiers, overdue periods, employees at risk, booking states."""
    settings = get_settings()
    employees = await _employee_index(company_id)

    urgent = warning = overdue = 0
    open_days_by_employee: dict[uuid.UUID, int] = {}
    for balance in await _company_balances(session, company_id):
        remaining, balance_status = balance_state(balance, as_of)
        if balance_status == BalanceStatus.EXPIRED:
            overdue += 1
            continue
        if balance_status not in _OPEN:
            continue

        tier = alert_tier(balance, as_of)
        if tier == AlertTier.URGENT:
            urgent += 1
        elif tier == AlertTier.WARNING:
            warning += 1
        open_days_by_employee[balance.employee_id] = open_days_by_employee.get(balance.employee_id, 0) + remaining

    at_risk = [
        EmployeeAtRisk(
            employee_id=employee_id,
            full_name=employees[employee_id].full_name if employee_id in employees else str(employee_id),
            total_remaining_days=total,
        )
        for employee_id, total in open_days_by_employee.items()
        if total > settings.risk_threshold_days
    ]
    at_risk.sort(key=lambda e: e.total_remaining_days, reverse=True)

    bookings_result = await session.execute(
        select(VacationBooking).where(col(VacationBooking.company_id) == company_id)
    )
    booking_counts = dict.fromkeys(BookingStatus, 0)
    for booking in bookings_result.scalars().all():
        booking_counts[derive_booking_status(booking, as_of)] += 1

    return AlertSummaryResponse(
        as_of=as_of,
        urgent_count=urgent,
        warning_count=warning,
        overdue_count=overdue,
        employees_at_risk=at_risk,
        total_remaining_days=sum(open_days_by_employee.values()),
        scheduled_bookings=booking_counts[BookingStatus.SCHEDULED],
        in_progress_bookings=booking_counts[BookingStatus.IN_PROGRESS],
        cancelled_bookings=booking_counts[BookingStatus.CANCELLED],
    )


async def query_audit_log(
    session: AsyncSession,
    company_id: uuid.UUID,
    *,
    entity_type: str | None = None,
    entity_id: uuid.UUID | None = None,
    action: str | None = None,
    actor_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> AuditLogListResponse:
    """Query audit log entries with optional filters."""
    filters = [col(AuditLog.company_id) == company_id]

    if entity_type is not None:
        filters.append(col(AuditLog.entity_type) == entity_type)
    if entity_id is not None:
        filters.append(col(AuditLog.entity_id) == entity_id)
    if action is not None:
        filters.append(col(AuditLog.action) == action)
    if actor_id is not None:
        filters.append(col(AuditLog.actor_id) == actor_id)

    count_result = await session.execute(select(func.count()).select_from(AuditLog).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(AuditLog).where(*filters).order_by(col(AuditLog.created_at).desc()).offset(offset).limit(limit)
    )
    entries = list(result.scalars().all())

    return AuditLogListResponse(
        items=[
            AuditLogEntryResponse(
                id=e.id,
                company_id=e.company_id,
                actor_id=e.actor_id,
                entity_type=e.entity_type,
                entity_id=e.entity_id,
                action=e.action,
                before_json=e.before_json,
                after_json=e.after_json,
                created_at=e.created_at,
            )
            for e in entries
        ],
        total=total,
    )
