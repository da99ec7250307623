# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from vacation_service.models.enums import EmployeeStatus


class EmployeeInfo(BaseModel):
    """Employee record as exposed by the Employee Directory."""

    id: uuid.UUID
    company_id: uuid.UUID
    full_name: str
    code: str | None = None
    hire_date: date | None = None
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    unit_id: uuid.UUID | None = None
    department_id: uuid.UUID | None = None

    @property
    def is_active(self) -> bool:
        return self.status == EmployeeStatus.ACTIVE


@runtime_checkable
class EmployeeService(Protocol):
    """Interface for the Employee Directory."""

    async def get_employee(self, company_id: uuid.UUID, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch an employee. Returns None if not found."""
        ...

    async def list_employees(self, company_id: uuid.UUID) -> list[EmployeeInfo]:
        """List all employees for a company."""
        ...


class InMemoryEmployeeService:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._employees: dict[tuple[uuid.UUID, uuid.UUID], EmployeeInfo] = {}

    def seed(self, employee: EmployeeInfo) -> None:
        """Seed an employee for testing."""
        self._employees[(employee.company_id, employee.id)] = employee

    async def get_employee(self, company_id: uuid.UUID, employee_id: uuid.UUID) -> EmployeeInfo | None:
        """Fetch an employee. Returns None if not found."""
        return self._employees.get((company_id, employee_id))

    async def list_employees(self, company_id: uuid.UUID) -> list[EmployeeInfo]:
        """List all employees for a company, ordered by name."""
        employees = [e for e in self._employees.values() if e.company_id == company_id]
        return sorted(employees, key=lambda e: e.full_name)


_employee_service: EmployeeService = InMemoryEmployeeService()


def get_employee_service() -> EmployeeService:
    """FastAPI dependency for the Employee Directory."""
    return _employee_service


def set_employee_service(service: EmployeeService) -> None:
    """Override the service (for testing or production wiring)."""
    global _employee_service
    _employee_service = service


async def list_active_in_scope(
    company_id: uuid.UUID,
    unit_id: uuid.UUID | None = None,
    department_id: uuid.UUID | None = None,
) -> list[EmployeeInfo]:
    """Active employees matching an optional unit and/or department filter."""
    employees = await get_employee_service().list_employees(company_id)
    return [
        e
        for e in employees
        if e.is_active
        and (unit_id is None or e.unit_id == unit_id)
        and (department_id is None or e.department_id == department_id)
    ]
