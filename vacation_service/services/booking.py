# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import UTC, date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.orm.attributes import set_committed_value
from sqlmodel import col

from vacation_service.config import get_settings
from vacation_service.db import commit_or_raise
from vacation_service.exceptions import (
    AlreadyCancelled,
    AlreadyCompleted,
    BalanceNotBookable,
    ExceedsAnnualCap,
    ExceedsAvailableDays,
    InsufficientBalance,
    InvalidDateRange,
    InvalidQuantity,
    NoBalanceSelected,
    NotFound,
    NotReschedulable,
    OverlappingBooking,
)
from vacation_service.models.booking import VacationBooking
from vacation_service.models.enums import (
    AuditAction,
    AuditEntityType,
    BalanceStatus,
    BookingKind,
    BookingStatus,
)
from vacation_service.schemas.booking import (
    BookingListResponse,
    BookingResponse,
    UpcomingBooking,
    UpcomingBookingListResponse,
)
from vacation_service.services.audit import model_to_audit_dict, write_audit_log
from vacation_service.services.balance import (
    apply_balance_change,
    derive_balance_state,
    get_balance_for_update,
)
from vacation_service.services.employee import get_employee_service

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from vacation_service.models.balance import VacationBalance
    from vacation_service.schemas.auth import AuthContext
    from vacation_service.schemas.booking import BookVacationRequest, RescheduleBookingRequest

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Pure helpers (no DB)
# ---------------------------------------------------------------------------


def validate_date_range(start_date: date, end_date: date) -> int:
    """Return the inclusive day count of the range, rejecting reversed ranges."""
    if end_date < start_date:
        raise InvalidDateRange(
            "End date must be on or after start date",
            context={"start_date": start_date.isoformat(), "end_date": end_date.isoformat()},
        )
    return (end_date - start_date).days + 1


def derive_booking_status(booking: VacationBooking, as_of: date) -> BookingStatus:
    """Calendar-driven status; an explicit cancellation always wins."""
    if booking.cancelled_at is not None:
        return BookingStatus.CANCELLED
    if as_of < booking.start_date:
        return BookingStatus.SCHEDULED
    if as_of <= booking.end_date:
        return BookingStatus.IN_PROGRESS
    return BookingStatus.COMPLETED


def check_balance_covers(
    balance: VacationBalance,
    days: int,
    as_of: date,
    *,
    cash_out_days: int = 0,
    released_days: int = 0,
) -> None:
    """Reject a booking the balance cannot carry.

    ``released_days`` are treated as already returned to the balance, which
    is how a reschedule re-validates against its own previous reservation.
    """
    remaining, status = derive_balance_state(
        balance.days_entitled,
        balance.days_taken - released_days,
        balance.days_sold,
        balance.expiration_date,
        as_of,
    )
    if status == BalanceStatus.EXPIRED:
        raise BalanceNotBookable(
            "Balance has expired and can no longer be booked",
            context={"balance_id": str(balance.id), "expiration_date": balance.expiration_date.isoformat()},
        )
    if days > remaining:
        raise ExceedsAvailableDays(
            "Requested days exceed the days remaining in the period",
            context={"requested_days": days, "days_remaining": remaining},
        )
    if cash_out_days:
        cap = get_settings().max_days_sold_per_period
        if balance.days_sold + cash_out_days > cap:
            raise ExceedsAnnualCap(
                f"At most {cap} days can be sold per period",
                context={
                    "days_sold": balance.days_sold,
                    "requested": cash_out_days,
                    "cap_remaining": max(cap - balance.days_sold, 0),
                },
            )
        if days + cash_out_days > remaining:
            raise InsufficientBalance(
                "Remaining days cannot cover the vacation plus the days sold",
                context={"requested_days": days, "cash_out_days": cash_out_days, "days_remaining": remaining},
            )


def build_booking_response(booking: VacationBooking, as_of: date) -> BookingResponse:
    """Map a booking model to its response schema."""
    return BookingResponse(
        id=booking.id,
        company_id=booking.company_id,
        employee_id=booking.employee_id,
        balance_id=booking.balance_id,
        collective_id=booking.collective_id,
        kind=BookingKind(booking.kind),
        start_date=booking.start_date,
        end_date=booking.end_date,
        days=booking.days,
        cash_out_days=booking.cash_out_days,
        status=derive_booking_status(booking, as_of),
        notes=booking.notes,
        cancelled_at=booking.cancelled_at,
        created_at=booking.created_at,
    )


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def _get_booking_or_404(
    session: AsyncSession,
    company_id: uuid.UUID,
    booking_id: uuid.UUID,
    *,
    for_update: bool = False,
) -> VacationBooking:
    """Fetch a booking by ID scoped to company. Raises 404 if not found.

    With ``for_update`` the row is locked and re-read from the database, so a
    stale copy in the identity map never decides the booking's status.
    """
    query = select(VacationBooking).where(
        col(VacationBooking.id) == booking_id,
        col(VacationBooking.company_id) == company_id,
    )
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await session.execute(query)
    booking = result.scalar_one_or_none()
    if booking is None:
        raise NotFound("Booking not found", context={"booking_id": str(booking_id)})
    return booking


async def find_overlapping_booking(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
    exclude_booking_id: uuid.UUID | None = None,
) -> VacationBooking | None:
    """Return a non-cancelled booking of the employee sharing at least one day with the range."""
    query = select(VacationBooking).where(
        col(VacationBooking.company_id) == company_id,
        col(VacationBooking.employee_id) == employee_id,
        col(VacationBooking.cancelled_at).is_(None),
        col(VacationBooking.start_date) <= end_date,
        col(VacationBooking.end_date) >= start_date,
    )
    if exclude_booking_id is not None:
        query = query.where(col(VacationBooking.id) != exclude_booking_id)

    result = await session.execute(query.limit(1))
    return result.scalar_one_or_none()


async def _check_booking_overlap(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    start_date: date,
    end_date: date,
    exclude_booking_id: uuid.UUID | None = None,
) -> None:
    existing = await find_overlapping_booking(
        session, company_id, employee_id, start_date, end_date, exclude_booking_id
    )
    if existing is not None:
        raise OverlappingBooking(
            "Booking overlaps an existing vacation of the employee",
            context={"booking_id": str(existing.id)},
        )


async def create_booking(
    session: AsyncSession,
    auth: AuthContext,
    *,
    balance: VacationBalance,
    start_date: date,
    end_date: date,
    days: int,
    kind: BookingKind,
    cash_out_days: int = 0,
    collective_id: uuid.UUID | None = None,
    notes: str | None = None,
) -> VacationBooking:
    """Insert a booking and debit its balance; the caller owns the commit.

    The balance must already be locked and validated by the caller.
    """
    balance_before = model_to_audit_dict(balance)
    apply_balance_change(balance, taken_delta=days, sold_delta=cash_out_days)

    booking = VacationBooking(
        company_id=auth.company_id,
        employee_id=balance.employee_id,
        balance_id=balance.id,
        collective_id=collective_id,
        kind=kind.value,
        start_date=start_date,
        end_date=end_date,
        days=days,
        cash_out_days=cash_out_days,
        notes=notes,
        created_by=auth.user_id,
    )
    session.add(booking)
    await session.flush()

    write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.BOOKING,
        entity_id=booking.id,
        action=AuditAction.CREATE,
        after=booking,
    )
    write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.BALANCE,
        entity_id=balance.id,
        action=AuditAction.UPDATE,
        before=balance_before,
        after=balance,
    )
    return booking


async def release_booking(
    session: AsyncSession,
    auth: AuthContext,
    booking: VacationBooking,
    as_of: date,
) -> None:
    """Cancel a booking and return its days to the balance; the caller owns the commit.

    Completed vacations were enjoyed and are never reversed. A second
    cancellation is rejected so the days are credited back only once: the
    booking is claimed with ``UPDATE ... WHERE cancelled_at IS NULL`` and the
    balance is only credited when this call is the one that flipped the row.
    """
    status = derive_booking_status(booking, as_of)
    if status == BookingStatus.CANCELLED:
        raise AlreadyCancelled("Booking is already cancelled", context={"booking_id": str(booking.id)})
    if status == BookingStatus.COMPLETED:
        raise AlreadyCompleted("Completed vacations cannot be cancelled", context={"booking_id": str(booking.id)})

    booking_before = model_to_audit_dict(booking)
    cancelled_at = datetime.now(UTC)
    claimed = await session.execute(
        update(VacationBooking)
        .where(col(VacationBooking.id) == booking.id, col(VacationBooking.cancelled_at).is_(None))
        .values(cancelled_at=cancelled_at, cancelled_by=auth.user_id)
        .execution_options(synchronize_session=False)
    )
    if claimed.rowcount != 1:  # type: ignore[attr-defined]
        logger.warning("Booking %s was cancelled concurrently; not crediting it again", booking.id)
        raise AlreadyCancelled("Booking is already cancelled", context={"booking_id": str(booking.id)})
    set_committed_value(booking, "cancelled_at", cancelled_at)
    set_committed_value(booking, "cancelled_by", auth.user_id)

    balance = await get_balance_for_update(session, booking.company_id, booking.balance_id)
    if balance is None:
        raise NotFound("Balance not found", context={"balance_id": str(booking.balance_id)})

    balance_before = model_to_audit_dict(balance)
    apply_balance_change(balance, taken_delta=-booking.days, sold_delta=-booking.cash_out_days)
    await session.flush()

    write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.BOOKING,
        entity_id=booking.id,
        action=AuditAction.CANCEL,
        before=booking_before,
        after=booking,
    )
    write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.BALANCE,
        entity_id=balance.id,
        action=AuditAction.UPDATE,
        before=balance_before,
        after=balance,
    )


# ---------------------------------------------------------------------------
# Write path
# ---------------------------------------------------------------------------


async def book_vacation(
    session: AsyncSession,
    auth: AuthContext,
    payload: BookVacationRequest,
    as_of: date,
) -> BookingResponse:
    """Book an individual vacation against one balance.

    Flow:
    1. Validate the date range and the cash-out request
    2. Lock the selected balance with SELECT FOR UPDATE
    3. Reject expired balances and ranges longer than the days left
    4. Reject overlaps with the employee's other bookings
    5. Insert the booking and debit taken (and sold) days
    6. Write audit log
    7. Commit
    """
    # 1. Validate input.
    days = validate_date_range(payload.start_date, payload.end_date)
    cash_out_days = payload.cash_out_days if payload.sell_days_on_booking else 0
    if payload.cash_out_days and not payload.sell_days_on_booking:
        raise InvalidQuantity(
            "Cash-out days require sell_days_on_booking",
            context={"cash_out_days": payload.cash_out_days},
        )
    if payload.sell_days_on_booking and cash_out_days < 1:
        raise InvalidQuantity("Selling days on booking requires at least one cash-out day")

    if payload.balance_id is None:
        raise NoBalanceSelected("A balance must be selected for the booking")

    # 2. Lock balance.
    balance = await get_balance_for_update(session, auth.company_id, payload.balance_id)
    if balance is None or balance.employee_id != payload.employee_id:
        raise NoBalanceSelected(
            "Selected balance does not belong to the employee",
            context={"balance_id": str(payload.balance_id), "employee_id": str(payload.employee_id)},
        )

    # 3. Balance rules.
    check_balance_covers(balance, days, as_of, cash_out_days=cash_out_days)

    # 4. Overlap.
    await _check_booking_overlap(session, auth.company_id, payload.employee_id, payload.start_date, payload.end_date)

    # 5-6. Insert, debit, audit.
    booking = await create_booking(
        session,
        auth,
        balance=balance,
        start_date=payload.start_date,
        end_date=payload.end_date,
        days=days,
        kind=BookingKind.INDIVIDUAL,
        cash_out_days=cash_out_days,
        notes=payload.notes,
    )

    # 7. Commit.
    await commit_or_raise(session)
    return build_booking_response(booking, as_of)


async def cancel_vacation(
    session: AsyncSession,
    auth: AuthContext,
    booking_id: uuid.UUID,
    as_of: date,
) -> BookingResponse:
    """Cancel a scheduled or running vacation, crediting its days back."""
    booking = await _get_booking_or_404(session, auth.company_id, booking_id, for_update=True)
    await release_booking(session, auth, booking, as_of)
    await commit_or_raise(session)
    return build_booking_response(booking, as_of)


async def reschedule_vacation(
    session: AsyncSession,
    auth: AuthContext,
    booking_id: uuid.UUID,
    payload: RescheduleBookingRequest,
    as_of: date,
) -> BookingResponse:
    """Move a scheduled booking to new dates on the same balance.

    Flow:
    1. Only SCHEDULED bookings can move
    2. Validate the new range
    3. Lock the balance and re-check it as if the old days were returned
    4. Reject overlaps with the employee's other bookings
    5. Apply the day delta and the new dates
    6. Write audit log
    7. Commit
    """
    booking = await _get_booking_or_404(session, auth.company_id, booking_id, for_update=True)

    # 1. State check.
    status = derive_booking_status(booking, as_of)
    if status == BookingStatus.CANCELLED:
        raise AlreadyCancelled("Booking is already cancelled", context={"booking_id": str(booking.id)})
    if status == BookingStatus.COMPLETED:
        raise AlreadyCompleted("Completed vacations cannot be changed", context={"booking_id": str(booking.id)})
    if status != BookingStatus.SCHEDULED:
        raise NotReschedulable(
            "Only vacations that have not started can be rescheduled",
            context={"booking_id": str(booking.id), "status": status.value},
        )

    # 2. New range.
    new_days = validate_date_range(payload.start_date, payload.end_date)

    # 3. Lock balance and re-check.
    balance = await get_balance_for_update(session, auth.company_id, booking.balance_id)
    if balance is None:
        raise NotFound("Balance not found", context={"balance_id": str(booking.balance_id)})
    check_balance_covers(balance, new_days, as_of, released_days=booking.days)

    # 4. Overlap.
    await _check_booking_overlap(
        session,
        auth.company_id,
        booking.employee_id,
        payload.start_date,
        payload.end_date,
        exclude_booking_id=booking.id,
    )

    # 5. Apply.
    booking_before = model_to_audit_dict(booking)
    balance_before = model_to_audit_dict(balance)
    apply_balance_change(balance, taken_delta=new_days - booking.days)
    booking.start_date = payload.start_date
    booking.end_date = payload.end_date
    booking.days = new_days
    await session.flush()

    # 6. Audit.
    write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.BOOKING,
        entity_id=booking.id,
        action=AuditAction.RESCHEDULE,
        before=booking_before,
        after=booking,
    )
    write_audit_log(
        session,
        company_id=auth.company_id,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.BALANCE,
        entity_id=balance.id,
        action=AuditAction.UPDATE,
        before=balance_before,
        after=balance,
    )

    # 7. Commit.
    await commit_or_raise(session)
    logger.info("Booking %s moved to %s..%s", booking.id, booking.start_date, booking.end_date)
    return build_booking_response(booking, as_of)


# ---------------------------------------------------------------------------
# Read path
# ---------------------------------------------------------------------------


async def list_employee_bookings(
    session: AsyncSession,
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    as_of: date,
    offset: int = 0,
    limit: int = 50,
) -> BookingListResponse:
    """Bookings of one employee, most recent start first."""
    base_filter = [
        col(VacationBooking.company_id) == company_id,
        col(VacationBooking.employee_id) == employee_id,
    ]

    count_result = await session.execute(select(func.count()).select_from(VacationBooking).where(*base_filter))
    total = count_result.scalar_one()

    result = await session.execute(
        select(VacationBooking)
        .where(*base_filter)
        .order_by(col(VacationBooking.start_date).desc(), col(VacationBooking.created_at).desc())
        .offset(offset)
        .limit(limit)
    )
    items = [build_booking_response(b, as_of) for b in result.scalars().all()]
    return BookingListResponse(items=items, total=total)


async def list_upcoming_bookings(
    session: AsyncSession,
    company_id: uuid.UUID,
    as_of: date,
    limit: int = 50,
) -> UpcomingBookingListResponse:
    """Scheduled and running vacations joined with employee data, soonest first."""
    result = await session.execute(
        select(VacationBooking)
        .where(
            col(VacationBooking.company_id) == company_id,
            col(VacationBooking.cancelled_at).is_(None),
            col(VacationBooking.end_date) >= as_of,
        )
        .order_by(col(VacationBooking.start_date), col(VacationBooking.created_at))
        .limit(limit)
    )
    bookings = list(result.scalars().all())

    employees = {e.id: e for e in await get_employee_service().list_employees(company_id)}
    items: list[UpcomingBooking] = []
    for booking in bookings:
        employee = employees.get(booking.employee_id)
        items.append(
            UpcomingBooking(
                booking_id=booking.id,
                employee_id=booking.employee_id,
                full_name=employee.full_name if employee else str(booking.employee_id),
                code=employee.code if employee else None,
                unit_id=employee.unit_id if employee else None,
                department_id=employee.department_id if employee else None,
                kind=BookingKind(booking.kind),
                start_date=booking.start_date,
                end_date=booking.end_date,
                days=booking.days,
                status=derive_booking_status(booking, as_of),
            )
        )
    return UpcomingBookingListResponse(items=items, total=len(items))
