"""Tests for the in-memory employee directory and scope filtering."""

from __future__ import annotations

import uuid

from vacation_service.models.enums import EmployeeStatus
from vacation_service.services.employee import (
    EmployeeInfo,
    EmployeeService,
    InMemoryEmployeeService,
    list_active_in_scope,
    set_employee_service,
)

COMPANY_A = uuid.uuid4()
COMPANY_B = uuid.uuid4()
UNIT = uuid.uuid4()
DEPARTMENT = uuid.uuid4()


def _make_employee(company_id: uuid.UUID, name: str = "Jane", **kwargs: object) -> EmployeeInfo:
    return EmployeeInfo(id=uuid.uuid4(), company_id=company_id, full_name=name, **kwargs)  # type: ignore[arg-type]


async def test_employee_service_get_not_found() -> None:
    svc = InMemoryEmployeeService()
    assert await svc.get_employee(COMPANY_A, uuid.uuid4()) is None


async def test_employee_service_seed_and_get() -> None:
    svc = InMemoryEmployeeService()
    emp = _make_employee(COMPANY_A)
    svc.seed(emp)
    result = await svc.get_employee(COMPANY_A, emp.id)
    assert result is not None
    assert result.id == emp.id


async def test_employee_service_is_company_scoped() -> None:
    svc = InMemoryEmployeeService()
    emp_a = _make_employee(COMPANY_A, "Alice")
    svc.seed(emp_a)
    svc.seed(_make_employee(COMPANY_B, "Bob"))
    assert await svc.get_employee(COMPANY_B, emp_a.id) is None
    assert [e.full_name for e in await svc.list_employees(COMPANY_A)] == ["Alice"]


def test_in_memory_service_satisfies_protocol() -> None:
    assert isinstance(InMemoryEmployeeService(), EmployeeService)


async def test_list_active_in_scope() -> None:
    svc = InMemoryEmployeeService()
    in_unit = _make_employee(COMPANY_A, "A", unit_id=UNIT, department_id=DEPARTMENT)
    in_unit_other_dept = _make_employee(COMPANY_A, "B", unit_id=UNIT)
    inactive = _make_employee(COMPANY_A, "C", unit_id=UNIT, status=EmployeeStatus.INACTIVE)
    elsewhere = _make_employee(COMPANY_A, "D")
    for employee in (in_unit, in_unit_other_dept, inactive, elsewhere):
        svc.seed(employee)
    set_employee_service(svc)

    everyone = await list_active_in_scope(COMPANY_A)
    assert [e.full_name for e in everyone] == ["A", "B", "D"]

    unit = await list_active_in_scope(COMPANY_A, unit_id=UNIT)
    assert [e.full_name for e in unit] == ["A", "B"]

    unit_and_dept = await list_active_in_scope(COMPANY_A, unit_id=UNIT, department_id=DEPARTMENT)
    assert [e.full_name for e in unit_and_dept] == ["A"]
