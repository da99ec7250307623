from __future__ import annotations

import logging
import uuid
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from vacation_service.db import commit_or_raise
from vacation_service.exceptions import NoEmployeesInScope, NotFound
from vacation_service.models.balance import VacationBalance
from vacation_service.models.booking import VacationBooking
from vacation_service.models.collective import CollectiveVacation
from vacation_service.models.enums import (
    AuditAction,
    AuditEntityType,
    BalanceStatus,
    BookingKind,
    BookingStatus,
)
from vacation_service.schemas.booking import BookingListResponse
from vacation_service.schemas.collective import (
    CollectiveBookingResult,
    CollectiveVacationListResponse,
    CollectiveVacationResponse,
    DeleteCollectiveResponse,
)
from vacation_service.services.audit import model_to_audit_dict, write_audit_log
from vacation_service.services.balance import balance_state
from vacation_service.services.booking import (
    build_booking_response,
    create_booking,
    derive_booking_status,
    find_overlapping_booking,
    release_booking,
    validate_date_range,
)
from vacation_service.services.employee import list_active_in_scope

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from vacation_service.schemas.auth import AuthContext
    from vacation_service.schemas.collective import CreateCollectiveVacationRequest

logger = logging.getLogger(__name__)

_BOOKABLE = (BalanceStatus.AVAILABLE, BalanceStatus.PARTIAL)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _build_collective_response(collective: CollectiveVacation, affected: int) -> CollectiveVacationResponse:
    return CollectiveVacationResponse(
        id=collective.id,
        company_id=collective.company_id,
        title=collective.title,
        start_date=collective.start_date,
        end_date=collective.end_date,
        days=collective.days,
        unit_id=collective.unit_id,
        department_id=collective.department_id,
        notes=collective.notes,
        affected_employees=affected,
        created_at=collective.created_at,
    )


async def _get_collective_or_404(
    session: AsyncSession,
    company_id: uuid.UUID,
    collective_id: uuid.UUID,
) -> CollectiveVacation:
    result = await session.execute(
        select(CollectiveVacation).where(
            col(CollectiveVacation.id) == collective_id,
            col(CollectiveVacation.company_id) == company_id,
        )
    )
    collective = result.scalar_one_or_none()
    if collective is None:
        raise NotFound("Collective vacation not found", context={"collective_id": str(collective_id)})
    return collective


async def pick_balance_for_block(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    days: int,
    as_of: date,
) -> VacationBalance | None:
    """Oldest open balance of the employee that can absorb the whole block.

    All of the employee's balances are locked so the chosen one cannot be
    drained by a concurrent booking before the debit lands.
    """
    result = await session.execute(
        select(VacationBalance)
        .where(
            col(VacationBalance.company_id) == company_id,
            col(VacationBalance.employee_id) == employee_id,
        )
        .order_by(col(VacationBalance.period_start))
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    for balance in result.scalars().all():
        remaining, status = balance_state(balance, as_of)
        if status in _BOOKABLE and remaining >= days:
            return balance
    return None


async def _active_booking_counts(
    session: AsyncSession,
    collective_ids: list[uuid.UUID],
) -> dict[uuid.UUID, int]:
    if not collective_ids:
        return {}
    result = await session.execute(
        select(VacationBooking.collective_id, func.count())
        .where(
            col(VacationBooking.collective_id).in_(collective_ids),
            col(VacationBooking.cancelled_at).is_(None),
        )
        .group_by(col(VacationBooking.collective_id))
    )
    return {collective_id: count for collective_id, count in result.all()}


# ---------------------------------------------------------------------------
# Write path
# ---------------------------------------------------------------------------


async def book_collective(
    session: AsyncSession,
    auth: AuthContext,
    payload: CreateCollectiveVacationRequest,
    as_of: date,
) -> CollectiveBookingResult:
    """Book the same vacation block for every active employee in scope.

    Flow:
    1. Validate the date range
    2. Resolve active employees for the unit/department filter; an empty
       scope is rejected before anything is written
    3. Insert the collective vacation
    4. Per employee: pick the oldest open balance able to cover the block,
       skipping employees without one or with an overlapping vacation
    5. Insert one booking per covered employee and debit its balance
    6. Write audit log
    7. Commit once for the whole batch

    Skipped employees do not abort the batch; they are reported back.
    """
    # 1. Validate.
    days = validate_date_range(payload.start_date, payload.end_date)

    # 2. Employees in scope.
    employees = await list_active_in_scope(auth.company_id, payload.unit_id, payload.department_id)
    if not employees:
        raise NoEmployeesInScope(
            "No active employee matches the collective vacation scope",
            context={
                "unit_id": str(payload.unit_id) if payload.unit_id else None,
                "department_id": str(payload.department_id) if payload.department_id else None,
            },
        )

    # 3. Collective record.
    collective = CollectiveVacation(
        company_id=auth.company_id,
        title=payload.title,
        start_date=payload.start_date,
        end_date=payload.end_date,
        days=days,
        unit_id=payload.unit_id,
        department_id=payload.department_id,
        notes=payload.notes,
        created_by=auth.user_id,
    )
    session.add(collective)
    await session.flush()

    # 4-5. Fan out.
    booked_count = 0
    skipped: list[uuid.UUID] = []
    for employee in employees:
        overlap = await find_overlapping_booking(
            session, auth.company_id, employee.id, payload.start_date, payload.end_date
        )
        if overlap is not None:
            logger.info("Collective %s: employee %s already has booking %s", collective.id, employee.id, overlap.id)
            skipped.append(employee.id)
            continue

        balance = await pick_balance_for_block(session, auth.company_id, employee.id, days, as_of)
        if balance is None:
            logger.info("Collective %s: employee %s has no balance covering %d days", collective.id, employee.id, days)
            skipped.append(employee.id)
            continue

        await create_booking(
            session,
            auth,
            balance=balance,
            start_date=payload.start_date,
            end_date=payload.end_date,
            days=days,
            kind=BookingKind.COLLECTIVE,
            collective_id=collective.id,
            notes=payload.notes,
        )
        booked_count += 1

    # 6. Audit.
    after = model_to_audit_dict(collective)
    after["booked_count"] = booked_count
    after["skipped_employee_ids"] = [str(e) for e in skipped]
    write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.COLLECTIVE_VACATION,
        entity_id=collective.id,
        action=AuditAction.CREATE,
        after=after,
    )

    # 7. Commit.
    await commit_or_raise(session)

    if skipped:
        logger.warning(
            "Collective vacation %s booked partially: booked=%d skipped=%d",
            collective.id,
            booked_count,
            len(skipped),
        )

    return CollectiveBookingResult(
        collective=_build_collective_response(collective, booked_count),
        booked_count=booked_count,
        skipped_employee_ids=skipped,
        partial=bool(skipped),
    )


async def delete_collective(
    session: AsyncSession,
    auth: AuthContext,
    collective_id: uuid.UUID,
    as_of: date,
) -> DeleteCollectiveResponse:
    """Delete a collective vacation and cancel the bookings it generated.

    Bookings that are already completed stay as history; everything else is
    cancelled and its days credited back, in the same transaction as the delete.
    """
    collective = await _get_collective_or_404(session, auth.company_id, collective_id)

    result = await session.execute(
        select(VacationBooking)
        .where(
            col(VacationBooking.company_id) == auth.company_id,
            col(VacationBooking.collective_id) == collective.id,
            col(VacationBooking.cancelled_at).is_(None),
        )
        .order_by(col(VacationBooking.created_at))
        .with_for_update()
        .execution_options(populate_existing=True)
    )

    cancelled = 0
    kept = 0
    for booking in result.scalars().all():
        if derive_booking_status(booking, as_of) == BookingStatus.COMPLETED:
            kept += 1
            continue
        await release_booking(session, auth, booking, as_of)
        cancelled += 1

    write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.COLLECTIVE_VACATION,
        entity_id=collective.id,
        action=AuditAction.DELETE,
        before=collective,
    )
    await session.delete(collective)

    await commit_or_raise(session)
    logger.info("Collective vacation %s deleted: cancelled=%d kept=%d", collective_id, cancelled, kept)
    return DeleteCollectiveResponse(
        collective_id=collective_id,
        cancelled_bookings=cancelled,
        kept_completed_bookings=kept,
    )


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def list_collectives(
    session: AsyncSession,
    company_id: uuid.UUID,
    offset: int = 0,
    limit: int = 50,
) -> CollectiveVacationListResponse:
    """Collective vacations, newest block first, with their live booking counts."""
    count_result = await session.execute(
        select(func.count())
        .select_from(CollectiveVacation)
        .where(col(CollectiveVacation.company_id) == company_id)
    )
    total = count_result.scalar_one()

    result = await session.execute(
        select(CollectiveVacation)
        .where(col(CollectiveVacation.company_id) == company_id)
        .order_by(col(CollectiveVacation.start_date).desc(), col(CollectiveVacation.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    collectives = list(result.scalars().all())
    counts = await _active_booking_counts(session, [c.id for c in collectives])

    items = [_build_collective_response(c, counts.get(c.id, 0)) for c in collectives]
    return CollectiveVacationListResponse(items=items, total=total)


async def list_collective_bookings(
    session: AsyncSession,
    company_id: uuid.UUID,
    collective_id: uuid.UUID,
    as_of: date,
) -> BookingListResponse:
    await _get_collective_or_404(session, company_id, collective_id)

    result = await session.execute(
        select(VacationBooking)
        .where(
            col(VacationBooking.company_id) == company_id,
            col(VacationBooking.collective_id) == collective_id,
        )
        .order_by(col(VacationBooking.created_at))
    )
    items = [build_booking_response(b, as_of) for b in result.scalars().all()]
    return BookingListResponse(items=items, total=len(items))
