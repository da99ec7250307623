from __future__ import annotations

import os
import uuid
from datetime import date, timedelta
from typing import TYPE_CHECKING

import pytest
from dateutil.relativedelta import relativedelta
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from vacation_service.db import get_session
from vacation_service.main import app
from vacation_service.models import SQLModel, VacationBalance
from vacation_service.services.employee import EmployeeInfo, InMemoryEmployeeService, set_employee_service

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Awaitable, Callable, Iterator

    from sqlalchemy.ext.asyncio import AsyncEngine

TEST_DATABASE_URL = os.environ.get("TEST_DATABASE_URL", "sqlite+aiosqlite:///:memory:")

COMPANY_ID = uuid.uuid4()
ADMIN_ID = uuid.uuid4()
AUTH_HEADERS = {
    "X-Company-Id": str(COMPANY_ID),
    "X-User-Id": str(ADMIN_ID),
    "X-Role": "admin",
}
EMPLOYEE_HEADERS = {
    "X-Company-Id": str(COMPANY_ID),
    "X-User-Id": str(uuid.uuid4()),
    "X-Role": "employee",
}
BASE_URL = f"/companies/{COMPANY_ID}"


def _enable_sqlite_savepoints(engine: AsyncEngine) -> None:
    """Let SQLAlchemy drive BEGIN itself so SAVEPOINT works on pysqlite."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, _record):  # type: ignore[no-untyped-def]
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):  # type: ignore[no-untyped-def]
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
async def engine() -> AsyncIterator[AsyncEngine]:
    """Create a fresh database per test.

    Defaults to in-memory SQLite; point TEST_DATABASE_URL at Postgres to run
    against the production dialect.
    """
    if TEST_DATABASE_URL.startswith("sqlite"):
        _engine = create_async_engine(TEST_DATABASE_URL, poolclass=StaticPool)
        _enable_sqlite_savepoints(_engine)
    else:
        _engine = create_async_engine(TEST_DATABASE_URL)
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield _engine
    async with _engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.drop_all)
    await _engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Yield a database session wrapped in a transaction that rolls back after each test."""
    async with engine.connect() as conn:
        txn = await conn.begin()
        session = AsyncSession(bind=conn, expire_on_commit=False, join_transaction_mode="create_savepoint")
        yield session
        await session.close()
        await txn.rollback()


@pytest.fixture
async def async_client(db_session: AsyncSession) -> AsyncIterator[AsyncClient]:
    """Async HTTP client with the database session dependency overridden."""

    async def _override_get_session() -> AsyncIterator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_session] = _override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def directory() -> Iterator[InMemoryEmployeeService]:
    """A fresh employee directory for every test."""
    svc = InMemoryEmployeeService()
    set_employee_service(svc)
    yield svc
    set_employee_service(InMemoryEmployeeService())


@pytest.fixture
def hire(directory: InMemoryEmployeeService) -> Callable[..., EmployeeInfo]:
    """Seed an active employee of the test company and return it."""

    def _hire(
        full_name: str = "Maria Silva",
        hire_date: date | None = date(2020, 1, 10),
        **kwargs: object,
    ) -> EmployeeInfo:
        employee = EmployeeInfo(
            id=uuid.uuid4(),
            company_id=COMPANY_ID,
            full_name=full_name,
            hire_date=hire_date,
            **kwargs,  # type: ignore[arg-type]
        )
        directory.seed(employee)
        return employee

    return _hire


@pytest.fixture
def make_balance(db_session: AsyncSession) -> Callable[..., Awaitable[VacationBalance]]:
    """Insert a balance directly, bypassing the generator."""

    async def _make(
        employee_id: uuid.UUID,
        *,
        period_start: date = date(2024, 1, 10),
        days_entitled: int = 30,
        days_taken: int = 0,
        days_sold: int = 0,
        expiration_date: date | None = None,
    ) -> VacationBalance:
        period_end = period_start + relativedelta(years=1) - timedelta(days=1)
        balance = VacationBalance(
            company_id=COMPANY_ID,
            employee_id=employee_id,
            period_start=period_start,
            period_end=period_end,
            days_entitled=days_entitled,
            days_taken=days_taken,
            days_sold=days_sold,
            expiration_date=expiration_date or period_end + relativedelta(months=11),
        )
        db_session.add(balance)
        await db_session.commit()
        return balance

    return _make
