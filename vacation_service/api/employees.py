# ruff: noqa: TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from vacation_service.api.deps import AdminDep, AuthDep, validate_company_scope
from vacation_service.exceptions import NotFound
from vacation_service.schemas.employee import EmployeeListResponse, EmployeeResponse, UpsertEmployeeRequest
from vacation_service.services.employee import EmployeeInfo, get_employee_service

employees_router = APIRouter(
    prefix="/companies/{company_id}/employees",
    tags=["employees"],
    dependencies=[Depends(validate_company_scope)],
)


def _build_employee_response(employee: EmployeeInfo) -> EmployeeResponse:
    return EmployeeResponse(
        id=employee.id,
        company_id=employee.company_id,
        full_name=employee.full_name,
        code=employee.code,
        hire_date=employee.hire_date,
        status=employee.status,
        unit_id=employee.unit_id,
        department_id=employee.department_id,
    )


@employees_router.put(
    "/{employee_id}",
    response_model=EmployeeResponse,
)
async def upsert_employee(
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    payload: UpsertEmployeeRequest,
    auth: AdminDep,
) -> EmployeeResponse:
    """Create or update an employee in the stub directory (admin only)."""
    svc = get_employee_service()
    employee = EmployeeInfo(
        id=employee_id,
        company_id=company_id,
        full_name=payload.full_name,
        code=payload.code,
        hire_date=payload.hire_date,
        status=payload.status,
        unit_id=payload.unit_id,
        department_id=payload.department_id,
    )
    svc.seed(employee)  # ty: ignore[unresolved-attribute]
    return _build_employee_response(employee)


@employees_router.get(
    "/{employee_id}",
    response_model=EmployeeResponse,
)
async def get_employee(
    company_id: uuid.UUID,
    employee_id: uuid.UUID,
    auth: AuthDep,
) -> EmployeeResponse:
    """Get employee info from the directory."""
    employee = await get_employee_service().get_employee(company_id, employee_id)
    if employee is None:
        raise NotFound("Employee not found", context={"employee_id": str(employee_id)})
    return _build_employee_response(employee)


@employees_router.get(
    "",
    response_model=EmployeeListResponse,
)
async def list_employees(
    company_id: uuid.UUID,
    auth: AuthDep,
) -> EmployeeListResponse:
    """List all employees of a company, ordered by name."""
    employees = await get_employee_service().list_employees(company_id)
    items = [_build_employee_response(e) for e in employees]
    return EmployeeListResponse(items=items, total=len(items))
