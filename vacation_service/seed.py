"""Seed script for development data.

Run with:  python -m vacation_service.seed
The API must be listening on BASE_URL.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import date, timedelta

import httpx

BASE_URL = "http://localhost:8000"
COMPANY_ID = "00000000-0000-0000-0000-000000000001"
ADMIN_USER_ID = "00000000-0000-0000-0000-000000000001"

HEADERS = {
    "Content-Type": "application/json",
    "X-Company-Id": COMPANY_ID,
    "X-User-Id": ADMIN_USER_ID,
    "X-Role": "admin",
}

OPERATIONS_UNIT_ID = "00000000-0000-0000-0000-0000000000a1"
FINANCE_DEPARTMENT_ID = "00000000-0000-0000-0000-0000000000d1"

# Well-known employee UUIDs
ANA_ID = "00000000-0000-0000-0000-000000000002"
BRUNO_ID = "00000000-0000-0000-0000-000000000003"
CARLA_ID = "00000000-0000-0000-0000-000000000004"
DIEGO_ID = "00000000-0000-0000-0000-000000000005"

EMPLOYEES = [
    {
        "id": ANA_ID,
        "full_name": "Ana Souza",
        "code": "E-001",
        "hire_date": "2021-03-01",
        "unit_id": OPERATIONS_UNIT_ID,
        "department_id": FINANCE_DEPARTMENT_ID,
    },
    {
        "id": BRUNO_ID,
        "full_name": "Bruno Lima",
        "code": "E-002",
        "hire_date": "2022-08-15",
        "unit_id": OPERATIONS_UNIT_ID,
        "department_id": FINANCE_DEPARTMENT_ID,
    },
    {
        "id": CARLA_ID,
        "full_name": "Carla Mendes",
        "code": "E-003",
        "hire_date": "2023-11-20",
        "unit_id": OPERATIONS_UNIT_ID,
    },
    {
        # No hire date: listed in the directory but never eligible for periods.
        "id": DIEGO_ID,
        "full_name": "Diego Alves",
        "code": "E-004",
        "hire_date": None,
    },
]


async def _safe_post(client: httpx.AsyncClient, url: str, json: dict, label: str) -> dict | None:
    """POST tolerating business-rule rejections so the script can be re-run."""
    resp = await client.post(url, json=json, headers=HEADERS)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    if resp.status_code in (409, 422):
        print(f"  [SKIP] {label} ({resp.json().get('error')})")
        return None
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def _safe_put(client: httpx.AsyncClient, url: str, json: dict, label: str) -> dict | None:
    """PUT (upsert), naturally idempotent."""
    resp = await client.put(url, json=json, headers=HEADERS)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def seed_employees(client: httpx.AsyncClient) -> None:
    """Seed employees via PUT (upsert)."""
    print("\n--- Seeding employees ---")
    for emp in EMPLOYEES:
        body = {k: v for k, v in emp.items() if k != "id"}
        await _safe_put(
            client,
            f"{BASE_URL}/companies/{COMPANY_ID}/employees/{emp['id']}",
            body,
            str(emp["full_name"]),
        )


async def seed_periods(client: httpx.AsyncClient) -> None:
    """Materialize every elapsed acquisition period of the eligible employees."""
    print("\n--- Generating acquisition periods ---")
    resp = await client.get(f"{BASE_URL}/companies/{COMPANY_ID}/periods/eligible", headers=HEADERS)
    if resp.status_code != 200:
        print(f"  [ERROR] Listing eligible employees: {resp.status_code}")
        return

    employee_ids = [item["employee_id"] for item in resp.json()["items"]]
    if not employee_ids:
        print("  [SKIP] No missing periods")
        return

    result = await _safe_post(
        client,
        f"{BASE_URL}/companies/{COMPANY_ID}/periods/materialize",
        {"employee_ids": employee_ids},
        f"Materialize periods for {len(employee_ids)} employees",
    )
    if result:
        print(f"  created={result['created']} skipped={len(result['skipped_employee_ids'])}")


async def _oldest_open_balance(client: httpx.AsyncClient, employee_id: str) -> dict | None:
    resp = await client.get(
        f"{BASE_URL}/companies/{COMPANY_ID}/employees/{employee_id}/balances",
        headers=HEADERS,
    )
    if resp.status_code != 200:
        return None
    open_items = [i for i in resp.json()["items"] if i["status"] in ("AVAILABLE", "PARTIAL")]
    return min(open_items, key=lambda i: i["period_start"]) if open_items else None


async def seed_bookings(client: httpx.AsyncClient) -> None:
    """Book an individual vacation for Ana and sell days for Bruno."""
    print("\n--- Seeding bookings ---")
    today = date.today()

    ana_balance = await _oldest_open_balance(client, ANA_ID)
    if ana_balance:
        start = today + timedelta(days=21)
        await _safe_post(
            client,
            f"{BASE_URL}/companies/{COMPANY_ID}/bookings",
            {
                "employee_id": ANA_ID,
                "balance_id": ana_balance["id"],
                "start_date": start.isoformat(),
                "end_date": (start + timedelta(days=9)).isoformat(),
                "notes": "Family trip",
            },
            "Booking: Ana 10 days",
        )

    bruno_balance = await _oldest_open_balance(client, BRUNO_ID)
    if bruno_balance:
        await _safe_post(
            client,
            f"{BASE_URL}/companies/{COMPANY_ID}/balances/{bruno_balance['id']}/sell",
            {"days": 5},
            "Sell: Bruno 5 days",
        )


async def seed_collective(client: httpx.AsyncClient) -> None:
    """Book a year-end collective vacation for the operations unit."""
    print("\n--- Seeding collective vacation ---")
    today = date.today()
    start = date(today.year, 12, 26)
    if start <= today:
        start = date(today.year + 1, 12, 26)

    result = await _safe_post(
        client,
        f"{BASE_URL}/companies/{COMPANY_ID}/collective-vacations",
        {
            "title": "Year-end recess",
            "start_date": start.isoformat(),
            "end_date": (start + timedelta(days=4)).isoformat(),
            "unit_id": OPERATIONS_UNIT_ID,
        },
        "Collective: year-end recess",
    )
    if result and result["partial"]:
        print(f"  [WARN] {len(result['skipped_employee_ids'])} employees skipped")


async def main() -> None:
    print("=" * 60)
    print("  Vacation Service: Development Seed Script")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            print("Make sure the API is running (uvicorn vacation_service.main:app)")
            sys.exit(1)

        await seed_employees(client)
        await seed_periods(client)
        await seed_bookings(client)
        await seed_collective(client)

    print("\n" + "=" * 60)
    print("  Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
