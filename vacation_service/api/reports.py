# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query

from vacation_service.api.deps import AdminDep, AsOfDep, AuthDep, validate_company_scope
from vacation_service.db import SessionDep
from vacation_service.models.enums import AuditAction, AuditEntityType, BalanceStatus
from vacation_service.schemas.report import (
    AlertSummaryResponse,
    AuditLogListResponse,
    BalanceReportResponse,
    ExpiringBalanceListResponse,
)
from vacation_service.services import report as report_service

reports_router = APIRouter(
    prefix="/companies/{company_id}",
    tags=["reports"],
    dependencies=[Depends(validate_company_scope)],
)


@reports_router.get(
    "/audit-log",
    response_model=AuditLogListResponse,
)
async def query_audit_log(
    company_id: uuid.UUID,
    session: SessionDep,
    auth: AdminDep,
    entity_type: AuditEntityType | None = Query(default=None),
    entity_id: uuid.UUID | None = Query(default=None),
    action: AuditAction | None = Query(default=None),
    actor_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> AuditLogListResponse:
    """Query audit log entries with optional filters (admin only)."""
    return await report_service.query_audit_log(
        session,
        company_id,
        entity_type=entity_type.value if entity_type else None,
        entity_id=entity_id,
        action=action.value if action else None,
        actor_id=actor_id,
        offset=offset,
        limit=limit,
    )


@reports_router.get(
    "/reports/balances",
    response_model=BalanceReportResponse,
)
async def get_balance_report(
    company_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    as_of: AsOfDep,
    unit_id: uuid.UUID | None = Query(default=None),
    department_id: uuid.UUID | None = Query(default=None),
    status_filter: BalanceStatus | None = Query(default=None, alias="status"),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> BalanceReportResponse:
    """Balances of the company with employee data, earliest deadline first."""
    return await report_service.get_balance_report(
        session,
        company_id,
        as_of,
        unit_id=unit_id,
        department_id=department_id,
        status=status_filter,
        offset=offset,
        limit=limit,
    )


@reports_router.get(
    "/reports/expiring",
    response_model=ExpiringBalanceListResponse,
)
async def list_expiring_balances(
    company_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    as_of: AsOfDep,
    within_days: int | None = Query(default=None, ge=0),
) -> ExpiringBalanceListResponse:
    """Balances with days left, classified as overdue, alert or ok."""
    return await report_service.list_expiring_balances(session, company_id, as_of, within_days)


@reports_router.get(
    "/reports/alerts",
    response_model=AlertSummaryResponse,
)
async def get_alert_summary(
    company_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    as_of: AsOfDep,
) -> AlertSummaryResponse:
    """Dashboard counters for expiring balances and bookings."""
    return await report_service.get_alert_summary(session, company_id, as_of)
