from sqlmodel import SQLModel

from vacation_service.models.audit import AuditLog
from vacation_service.models.balance import VacationBalance
from vacation_service.models.base import CompanyScoped, TimestampMixin, UUIDBase
from vacation_service.models.booking import VacationBooking
from vacation_service.models.collective import CollectiveVacation
from vacation_service.models.enums import (
    AlertTier,
    AuditAction,
    AuditEntityType,
    BalanceStatus,
    BookingKind,
    BookingStatus,
    EmployeeStatus,
    ExpirationSituation,
)

__all__ = [
    "AlertTier",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "BalanceStatus",
    "BookingKind",
    "BookingStatus",
    "CollectiveVacation",
    "CompanyScoped",
    "EmployeeStatus",
    "ExpirationSituation",
    "SQLModel",
    "TimestampMixin",
    "UUIDBase",
    "VacationBalance",
    "VacationBooking",
]
