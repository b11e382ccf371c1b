# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query

from expense_approvals.api.deps import AdminDep
from expense_approvals.config import get_settings
from expense_approvals.db import SessionDep
from expense_approvals.repositories.expense import SqlExpenseRepository
from expense_approvals.schemas.report import AuditLogListResponse, ExpenseSummaryResponse
from expense_approvals.services import report as report_service
from expense_approvals.services.currency import get_currency_converter

reports_router = APIRouter(prefix="/reports", tags=["reports"])


@reports_router.get("/audit-log", response_model=AuditLogListResponse)
async def query_audit_log(
    session: SessionDep,
    auth: AdminDep,
    entity_type: str | None = Query(default=None),
    entity_id: uuid.UUID | None = Query(default=None),
    action: str | None = Query(default=None),
    actor_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> AuditLogListResponse:
    """Query audit log entries with optional filters (admin only)."""
    return await report_service.query_audit_log(
        session,
        entity_type=entity_type,
        entity_id=entity_id,
        action=action,
        actor_id=actor_id,
        offset=offset,
        limit=limit,
    )


@reports_router.get("/expense-summary", response_model=ExpenseSummaryResponse)
async def expense_summary(
    session: SessionDep,
    auth: AdminDep,
    employee_id: uuid.UUID | None = Query(default=None),
    currency: str | None = Query(default=None, min_length=3, max_length=3),
) -> ExpenseSummaryResponse:
    """Expense counts and totals per status in the company currency (admin only)."""
    target = (currency or get_settings().company_currency).upper()
    return await report_service.summarize_expenses(
        SqlExpenseRepository(session),
        get_currency_converter(),
        target,
        employee_id=employee_id,
    )
