from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from vacation_service.models.audit import AuditLog
from vacation_service.models.balance import VacationBalance

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlmodel import SQLModel

    from vacation_service.models.enums import AuditAction, AuditEntityType


def _json_safe(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def model_to_audit_dict(model: SQLModel) -> dict[str, Any]:
    """Serialize a SQLModel row to a JSON-safe dict.

    Balance snapshots also carry ``days_remaining`` so an audit reader sees
    what was left after each change without recomputing it.
    """
    data = {key: _json_safe(value) for key, value in model.model_dump().items()}
    if isinstance(model, VacationBalance):
        data["days_remaining"] = max(model.days_entitled - model.days_taken - model.days_sold, 0)
    return data


def _snapshot(value: SQLModel | dict[str, Any] | None) -> dict[str, Any] | None:
    if value is None or isinstance(value, dict):
        return value
    return model_to_audit_dict(value)


def write_audit_log(
    session: AsyncSession,
    *,
    company_id: uuid.UUID,
    actor_id: uuid.UUID,
    entity_type: AuditEntityType,
    entity_id: uuid.UUID,
    action: AuditAction,
    before: SQLModel | dict[str, Any] | None = None,
    after: SQLModel | dict[str, Any] | None = None,
) -> AuditLog:
    """Stage an audit entry; the caller's commit persists it with the change it describes."""
    entry = AuditLog(
        company_id=company_id,
        actor_id=actor_id,
        entity_type=entity_type.value,
        entity_id=entity_id,
        action=action.value,
        before_json=_snapshot(before),
        after_json=_snapshot(after),
    )
    session.add(entry)
    return entry
