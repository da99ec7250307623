from __future__ import annotations

import enum


class BalanceStatus(enum.StrEnum):
    """Derived state of an acquisition-period balance."""

    AVAILABLE = "AVAILABLE"
    PARTIAL = "PARTIAL"
    TAKEN = "TAKEN"
    EXPIRED = "EXPIRED"


class BookingStatus(enum.StrEnum):
    """Derived state of a vacation booking.

    SCHEDULED -> IN_PROGRESS -> COMPLETED follows the calendar; CANCELLED is
    only reached through an explicit cancellation.
    """

    SCHEDULED = "SCHEDULED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class BookingKind(enum.StrEnum):
    """Whether a booking was made for one employee or fanned out from a collective vacation."""

    INDIVIDUAL = "INDIVIDUAL"
    COLLECTIVE = "COLLECTIVE"


class EmployeeStatus(enum.StrEnum):
    """Employment status as reported by the employee directory."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class AlertTier(enum.StrEnum):
    """How close a balance is to its legal deadline."""

    URGENT = "URGENT"
    WARNING = "WARNING"
    NONE = "NONE"


class ExpirationSituation(enum.StrEnum):
    """Classification used by the expiring-balances report."""

    OVERDUE = "OVERDUE"
    ALERT = "ALERT"
    OK = "OK"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    BALANCE = "BALANCE"
    BOOKING = "BOOKING"
    COLLECTIVE_VACATION = "COLLECTIVE_VACATION"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    CANCEL = "CANCEL"
    SELL = "SELL"
    RESCHEDULE = "RESCHEDULE"
