# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from vacation_service.api.deps import AdminDep, AsOfDep, AuthDep, validate_company_scope
from vacation_service.db import SessionDep
from vacation_service.schemas.period import (
    EligibleEmployeeListResponse,
    MaterializePeriodsRequest,
    MaterializePeriodsResponse,
    MissingPeriodsResponse,
)
from vacation_service.services import periods as period_service

periods_router = APIRouter(
    prefix="/companies/{company_id}",
    tags=["periods"],
    dependencies=[Depends(validate_company_scope)],
)


@periods_router.get("/periods/eligible", response_model=EligibleEmployeeListResponse)
async def list_eligible_employees(
    session: SessionDep,
    auth: AuthDep,
    as_of: AsOfDep,
) -> EligibleEmployeeListResponse:
    """Active employees with at least one elapsed period lacking a balance."""
    return await period_service.list_eligible_employees(session, auth.company_id, as_of)


@periods_router.get("/employees/{employee_id}/periods/missing", response_model=MissingPeriodsResponse)
async def list_missing_periods(
    employee_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    as_of: AsOfDep,
) -> MissingPeriodsResponse:
    """Elapsed acquisition periods of one employee with no balance record."""
    return await period_service.list_missing_periods(session, auth.company_id, employee_id, as_of)


@periods_router.post("/periods/materialize", response_model=MaterializePeriodsResponse)
async def materialize_periods(
    payload: MaterializePeriodsRequest,
    session: SessionDep,
    auth: AdminDep,
    as_of: AsOfDep,
) -> MaterializePeriodsResponse:
    """Create balance records for every missing period of the given employees (admin only)."""
    result = await period_service.materialize_periods(session, auth, payload.employee_ids, as_of)
    return MaterializePeriodsResponse(
        created=result.created,
        processed=result.processed,
        skipped_employee_ids=result.skipped_employee_ids,
    )
