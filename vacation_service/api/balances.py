# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from vacation_service.api.deps import AdminDep, AsOfDep, AuthDep, validate_company_scope
from vacation_service.db import SessionDep
from vacation_service.schemas.balance import (
    AdjustEntitlementRequest,
    BalanceListResponse,
    BalanceResponse,
    SellDaysRequest,
)
from vacation_service.services import balance as balance_service

employee_balance_router = APIRouter(
    prefix="/companies/{company_id}/employees/{employee_id}/balances",
    tags=["balances"],
    dependencies=[Depends(validate_company_scope)],
)

balances_router = APIRouter(
    prefix="/companies/{company_id}/balances",
    tags=["balances"],
    dependencies=[Depends(validate_company_scope)],
)


@employee_balance_router.get("", response_model=BalanceListResponse)
async def list_employee_balances(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    as_of: AsOfDep,
) -> BalanceListResponse:
    """All balances of an employee with remaining days, status and alert tier."""
    return await balance_service.list_employee_balances(session, auth.company_id, employee_id, as_of)


@balances_router.get("/{balance_id}", response_model=BalanceResponse)
async def get_balance(
    balance_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    as_of: AsOfDep,
) -> BalanceResponse:
    """Get a single balance."""
    return await balance_service.get_balance(session, auth.company_id, balance_id, as_of)


@balances_router.post("/{balance_id}/sell", response_model=BalanceResponse)
async def sell_days(
    balance_id: uuid.UUID,
    payload: SellDaysRequest,
    session: SessionDep,
    auth: AdminDep,
    as_of: AsOfDep,
) -> BalanceResponse:
    """Sell vacation days of a period (admin only)."""
    return await balance_service.sell_days(session, auth, balance_id, payload.days, as_of)


@balances_router.put("/{balance_id}/entitlement", response_model=BalanceResponse)
async def adjust_entitlement(
    balance_id: uuid.UUID,
    payload: AdjustEntitlementRequest,
    session: SessionDep,
    auth: AdminDep,
    as_of: AsOfDep,
) -> BalanceResponse:
    """Override the days a period entitles (admin only)."""
    return await balance_service.adjust_entitlement(session, auth, balance_id, payload.days_entitled, as_of)
