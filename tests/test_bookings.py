"""Tests for individual bookings: validation order, balance debits, cancellation, rescheduling, and reads."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import col

from conftest import AUTH_HEADERS, BASE_URL, COMPANY_ID, EMPLOYEE_HEADERS
from vacation_service.config import get_settings
from vacation_service.exceptions import AlreadyCancelled
from vacation_service.models.audit import AuditLog
from vacation_service.models.booking import VacationBooking
from vacation_service.schemas.auth import AuthContext
from vacation_service.schemas.booking import BookVacationRequest
from vacation_service.services.booking import book_vacation, cancel_vacation, release_booking

if TYPE_CHECKING:
    from httpx import AsyncClient

AS_OF = date(2025, 3, 1)
PARAMS = {"as_of": AS_OF.isoformat()}
BOOKINGS_URL = f"{BASE_URL}/bookings"
ADMIN = AuthContext(company_id=COMPANY_ID, user_id=uuid.uuid4(), role="admin")


# ---------------------------------------------------------------------------
# Test helpers
# ---------------------------------------------------------------------------


def _booking_body(
    employee_id: uuid.UUID,
    balance_id: uuid.UUID | None,
    start: str = "2025-04-01",
    end: str = "2025-04-10",
    **extra: object,
) -> dict:
    body: dict = {
        "employee_id": str(employee_id),
        "balance_id": str(balance_id) if balance_id else None,
        "start_date": start,
        "end_date": end,
    }
    body.update(extra)
    return body


async def _book(client: AsyncClient, body: dict, params: dict | None = None):  # type: ignore[no-untyped-def]
    return await client.post(BOOKINGS_URL, params=params or PARAMS, json=body, headers=AUTH_HEADERS)


async def _get_balance(client: AsyncClient, balance_id: uuid.UUID, as_of: date = AS_OF) -> dict:
    resp = await client.get(
        f"{BASE_URL}/balances/{balance_id}", params={"as_of": as_of.isoformat()}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 200
    data: dict = resp.json()
    return data


# ---------------------------------------------------------------------------
# Booking
# ---------------------------------------------------------------------------


async def test_book_vacation(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)

    resp = await _book(async_client, _booking_body(employee.id, balance.id, notes="Beach"))
    assert resp.status_code == 201
    data = resp.json()
    assert data["days"] == 10
    assert data["kind"] == "INDIVIDUAL"
    assert data["status"] == "SCHEDULED"
    assert data["cash_out_days"] == 0
    assert data["collective_id"] is None

    after = await _get_balance(async_client, balance.id)
    assert after["days_taken"] == 10
    assert after["days_remaining"] == 20
    assert after["status"] == "PARTIAL"
    assert after["version"] == 2


async def test_booking_beyond_remaining_days(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id, days_taken=20)

    resp = await _book(async_client, _booking_body(employee.id, balance.id, end="2025-04-15"))
    assert resp.status_code == 422
    body = resp.json()
    assert body["error"] == "ExceedsAvailableDays"
    assert body["context"] == {"requested_days": 15, "days_remaining": 10}

    after = await _get_balance(async_client, balance.id)
    assert after["days_taken"] == 20
    assert after["version"] == 1


async def test_booking_exactly_remaining_days_takes_balance(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id, days_taken=20)

    resp = await _book(async_client, _booking_body(employee.id, balance.id))
    assert resp.status_code == 201
    assert (await _get_balance(async_client, balance.id))["status"] == "TAKEN"


async def test_reversed_date_range(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    resp = await _book(async_client, _booking_body(employee.id, balance.id, start="2025-04-10", end="2025-04-01"))
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidDateRange"


async def test_single_day_booking(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    resp = await _book(async_client, _booking_body(employee.id, balance.id, start="2025-04-01", end="2025-04-01"))
    assert resp.status_code == 201
    assert resp.json()["days"] == 1


async def test_booking_without_balance(async_client: AsyncClient, hire) -> None:
    employee = hire()
    resp = await _book(async_client, _booking_body(employee.id, None))
    assert resp.status_code == 400
    assert resp.json()["error"] == "NoBalanceSelected"


async def test_booking_on_other_employees_balance(async_client: AsyncClient, hire, make_balance) -> None:
    owner = hire("Owner")
    other = hire("Other")
    balance = await make_balance(owner.id)
    resp = await _book(async_client, _booking_body(other.id, balance.id))
    assert resp.status_code == 400
    assert resp.json()["error"] == "NoBalanceSelected"


async def test_booking_on_unknown_balance(async_client: AsyncClient, hire) -> None:
    resp = await _book(async_client, _booking_body(hire().id, uuid.uuid4()))
    assert resp.status_code == 400
    assert resp.json()["error"] == "NoBalanceSelected"


async def test_booking_on_expired_balance(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id, period_start=date(2023, 1, 10))
    resp = await _book(async_client, _booking_body(employee.id, balance.id))
    assert resp.status_code == 422
    assert resp.json()["error"] == "BalanceNotBookable"


async def test_overlapping_booking(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    assert (await _book(async_client, _booking_body(employee.id, balance.id))).status_code == 201

    resp = await _book(async_client, _booking_body(employee.id, balance.id, start="2025-04-10", end="2025-04-12"))
    assert resp.status_code == 409
    assert resp.json()["error"] == "OverlappingBooking"


async def test_booking_requires_admin(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    resp = await async_client.post(
        BOOKINGS_URL, json=_booking_body(employee.id, balance.id), headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 403


async def test_booking_writes_audit(async_client: AsyncClient, db_session: AsyncSession, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    booking_id = (await _book(async_client, _booking_body(employee.id, balance.id))).json()["id"]

    result = await db_session.execute(select(AuditLog).where(col(AuditLog.entity_id) == uuid.UUID(booking_id)))
    entry = result.scalar_one()
    assert entry.entity_type == "BOOKING"
    assert entry.action == "CREATE"

    result = await db_session.execute(select(AuditLog).where(col(AuditLog.entity_id) == balance.id))
    balance_entry = result.scalar_one()
    assert balance_entry.before_json is not None and balance_entry.before_json["days_taken"] == 0
    assert balance_entry.after_json is not None and balance_entry.after_json["days_taken"] == 10


# ---------------------------------------------------------------------------
# Selling days while booking
# ---------------------------------------------------------------------------


async def test_booking_with_cash_out(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    resp = await _book(
        async_client,
        _booking_body(employee.id, balance.id, sell_days_on_booking=True, cash_out_days=5),
    )
    assert resp.status_code == 201
    assert resp.json()["cash_out_days"] == 5

    after = await _get_balance(async_client, balance.id)
    assert after["days_taken"] == 10
    assert after["days_sold"] == 5
    assert after["days_remaining"] == 15


async def test_cash_out_without_flag(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    resp = await _book(async_client, _booking_body(employee.id, balance.id, cash_out_days=5))
    assert resp.status_code == 400
    assert resp.json()["error"] == "InvalidQuantity"


async def test_cash_out_over_cap(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id, days_sold=8)
    resp = await _book(
        async_client,
        _booking_body(employee.id, balance.id, sell_days_on_booking=True, cash_out_days=3),
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "ExceedsAnnualCap"
    assert resp.json()["context"]["cap_remaining"] == 2


async def test_cash_out_above_default_cap_is_a_business_error(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    resp = await _book(
        async_client,
        _booking_body(employee.id, balance.id, sell_days_on_booking=True, cash_out_days=11),
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "ExceedsAnnualCap"


async def test_cash_out_cap_follows_settings(
    async_client: AsyncClient, monkeypatch: pytest.MonkeyPatch, hire, make_balance
) -> None:
    monkeypatch.setattr(get_settings(), "max_days_sold_per_period", 12)
    employee = hire()
    balance = await make_balance(employee.id)
    resp = await _book(
        async_client,
        _booking_body(employee.id, balance.id, sell_days_on_booking=True, cash_out_days=11),
    )
    assert resp.status_code == 201
    assert (await _get_balance(async_client, balance.id))["days_sold"] == 11


async def test_cash_out_beyond_remaining(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id, days_taken=15)
    resp = await _book(
        async_client,
        _booking_body(employee.id, balance.id, sell_days_on_booking=True, cash_out_days=6),
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "InsufficientBalance"


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


async def test_cancel_restores_taken_balance(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id, days_taken=20)
    booking_id = (await _book(async_client, _booking_body(employee.id, balance.id))).json()["id"]
    assert (await _get_balance(async_client, balance.id))["status"] == "TAKEN"

    resp = await async_client.post(f"{BOOKINGS_URL}/{booking_id}/cancel", params=PARAMS, headers=AUTH_HEADERS)
    assert resp.status_code == 200
    assert resp.json()["status"] == "CANCELLED"
    assert resp.json()["cancelled_at"] is not None

    after = await _get_balance(async_client, balance.id)
    assert after["days_remaining"] == 10
    assert after["status"] == "PARTIAL"


async def test_cancel_returns_untouched_balance_to_available(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    body = _booking_body(employee.id, balance.id, end="2025-04-30")
    booking_id = (await _book(async_client, body)).json()["id"]

    await async_client.post(f"{BOOKINGS_URL}/{booking_id}/cancel", params=PARAMS, headers=AUTH_HEADERS)
    after = await _get_balance(async_client, balance.id)
    assert after["days_remaining"] == 30
    assert after["status"] == "AVAILABLE"


async def test_cancel_restores_cash_out(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    body = _booking_body(employee.id, balance.id, sell_days_on_booking=True, cash_out_days=4)
    booking_id = (await _book(async_client, body)).json()["id"]

    await async_client.post(f"{BOOKINGS_URL}/{booking_id}/cancel", params=PARAMS, headers=AUTH_HEADERS)
    after = await _get_balance(async_client, balance.id)
    assert after["days_taken"] == 0
    assert after["days_sold"] == 0


async def test_cancel_twice(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    booking_id = (await _book(async_client, _booking_body(employee.id, balance.id))).json()["id"]

    first = await async_client.post(f"{BOOKINGS_URL}/{booking_id}/cancel", params=PARAMS, headers=AUTH_HEADERS)
    second = await async_client.post(f"{BOOKINGS_URL}/{booking_id}/cancel", params=PARAMS, headers=AUTH_HEADERS)
    assert first.status_code == 200
    assert second.status_code == 409
    assert second.json()["error"] == "AlreadyCancelled"
    assert (await _get_balance(async_client, balance.id))["days_taken"] == 0


async def test_cancel_through_stale_session_credits_once(db_session: AsyncSession, hire, make_balance) -> None:
    """A second session holding an out-of-date copy of the booking cannot reverse it again."""
    employee = hire()
    balance = await make_balance(employee.id)

    def _request(start: date, end: date) -> BookVacationRequest:
        return BookVacationRequest(employee_id=employee.id, balance_id=balance.id, start_date=start, end_date=end)

    short = await book_vacation(db_session, ADMIN, _request(date(2025, 4, 1), date(2025, 4, 5)), AS_OF)
    await book_vacation(db_session, ADMIN, _request(date(2025, 5, 1), date(2025, 5, 10)), AS_OF)

    other = AsyncSession(bind=db_session.bind, expire_on_commit=False, join_transaction_mode="create_savepoint")
    try:
        stale = await other.get(VacationBooking, short.id)
        assert stale is not None
        assert stale.cancelled_at is None

        await cancel_vacation(db_session, ADMIN, short.id, AS_OF)

        with pytest.raises(AlreadyCancelled):
            await release_booking(other, ADMIN, stale, AS_OF)

        await db_session.refresh(balance)
        assert balance.days_taken == 10
        await db_session.commit()
    finally:
        await other.close()


async def test_cancel_completed_vacation(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    booking_id = (await _book(async_client, _booking_body(employee.id, balance.id))).json()["id"]

    resp = await async_client.post(
        f"{BOOKINGS_URL}/{booking_id}/cancel", params={"as_of": "2025-04-11"}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "AlreadyCompleted"
    assert (await _get_balance(async_client, balance.id))["days_taken"] == 10


async def test_cancel_in_progress_vacation(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    booking_id = (await _book(async_client, _booking_body(employee.id, balance.id))).json()["id"]

    resp = await async_client.post(
        f"{BOOKINGS_URL}/{booking_id}/cancel", params={"as_of": "2025-04-05"}, headers=AUTH_HEADERS
    )
    assert resp.status_code == 200
    assert (await _get_balance(async_client, balance.id))["days_taken"] == 0


async def test_cancel_unknown_booking(async_client: AsyncClient) -> None:
    resp = await async_client.post(f"{BOOKINGS_URL}/{uuid.uuid4()}/cancel", headers=AUTH_HEADERS)
    assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Rescheduling
# ---------------------------------------------------------------------------


async def test_reschedule_shorter(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    booking_id = (await _book(async_client, _booking_body(employee.id, balance.id))).json()["id"]

    resp = await async_client.put(
        f"{BOOKINGS_URL}/{booking_id}/dates",
        params=PARAMS,
        json={"start_date": "2025-05-05", "end_date": "2025-05-09"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    assert resp.json()["days"] == 5
    assert (await _get_balance(async_client, balance.id))["days_taken"] == 5


async def test_reschedule_may_use_its_own_days(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id, days_taken=20)
    booking_id = (await _book(async_client, _booking_body(employee.id, balance.id))).json()["id"]

    # Overlapping its own old range is fine; the balance is already fully taken by this booking.
    resp = await async_client.put(
        f"{BOOKINGS_URL}/{booking_id}/dates",
        params=PARAMS,
        json={"start_date": "2025-04-05", "end_date": "2025-04-14"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 200
    assert (await _get_balance(async_client, balance.id))["days_taken"] == 30


async def test_reschedule_beyond_remaining(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id, days_taken=20)
    booking_id = (await _book(async_client, _booking_body(employee.id, balance.id, end="2025-04-05"))).json()["id"]

    resp = await async_client.put(
        f"{BOOKINGS_URL}/{booking_id}/dates",
        params=PARAMS,
        json={"start_date": "2025-04-01", "end_date": "2025-04-11"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 422
    assert resp.json()["error"] == "ExceedsAvailableDays"
    assert (await _get_balance(async_client, balance.id))["days_taken"] == 25


async def test_reschedule_started_vacation(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    booking_id = (await _book(async_client, _booking_body(employee.id, balance.id))).json()["id"]

    resp = await async_client.put(
        f"{BOOKINGS_URL}/{booking_id}/dates",
        params={"as_of": "2025-04-02"},
        json={"start_date": "2025-05-01", "end_date": "2025-05-10"},
        headers=AUTH_HEADERS,
    )
    assert resp.status_code == 409
    assert resp.json()["error"] == "NotReschedulable"


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def test_list_employee_bookings(async_client: AsyncClient, hire, make_balance) -> None:
    employee = hire()
    balance = await make_balance(employee.id)
    await _book(async_client, _booking_body(employee.id, balance.id))
    await _book(async_client, _booking_body(employee.id, balance.id, start="2025-06-02", end="2025-06-06"))

    resp = await async_client.get(
        f"{BASE_URL}/employees/{employee.id}/bookings",
        params={"as_of": "2025-04-05"},
        headers=EMPLOYEE_HEADERS,
    )
    assert resp.status_code == 200
    data = resp.json()
    assert data["total"] == 2
    assert [b["start_date"] for b in data["items"]] == ["2025-06-02", "2025-04-01"]
    assert [b["status"] for b in data["items"]] == ["SCHEDULED", "IN_PROGRESS"]


async def test_list_upcoming_bookings(async_client: AsyncClient, hire, make_balance) -> None:
    ana = hire("Ana", code="E-1")
    bruno = hire("Bruno")
    ana_balance = await make_balance(ana.id)
    bruno_balance = await make_balance(bruno.id)
    await _book(async_client, _booking_body(bruno.id, bruno_balance.id, start="2025-05-01", end="2025-05-05"))
    await _book(async_client, _booking_body(ana.id, ana_balance.id))
    past = await _book(
        async_client, _booking_body(ana.id, ana_balance.id, start="2025-03-10", end="2025-03-12")
    )
    assert past.status_code == 201

    resp = await async_client.get(
        f"{BOOKINGS_URL}/upcoming", params={"as_of": "2025-03-20"}, headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 200
    items = resp.json()["items"]
    assert [i["full_name"] for i in items] == ["Ana", "Bruno"]
    assert items[0]["code"] == "E-1"
