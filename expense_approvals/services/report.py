"""Reporting service: audit log queries and expense summaries."""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlmodel import col

from expense_approvals.models.audit import AuditLog
from expense_approvals.models.enums import ExpenseStatus
from expense_approvals.schemas.report import (
    AuditLogEntryResponse,
    AuditLogListResponse,
    ExpenseSummaryResponse,
    StatusTotals,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from expense_approvals.repositories.expense import ExpenseRepository
    from expense_approvals.services.currency import CurrencyConverter


async def query_audit_log(
    session: AsyncSession,
    *,
    entity_type: str | None = None,
    entity_id: uuid.UUID | None = None,
    action: str | None = None,
    actor_id: uuid.UUID | None = None,
    offset: int = 0,
    limit: int = 50,
) -> AuditLogListResponse:
    """Query audit log entries with optional filters, newest first."""
    filters = []

    if entity_type is not None:
        filters.append(col(AuditLog.entity_type) == entity_type)
    if entity_id is not None:
        filters.append(col(AuditLog.entity_id) == entity_id)
    if action is not None:
        filters.append(col(AuditLog.action) == action)
    if actor_id is not None:
        filters.append(col(AuditLog.actor_id) == actor_id)

    count_result = await session.execute(select(func.count()).select_from(AuditLog).where(*filters))
    total = count_result.scalar_one()

    result = await session.execute(
        select(AuditLog).where(*filters).order_by(col(AuditLog.created_at).desc()).offset(offset).limit(limit)
    )
    entries = list(result.scalars().all())

    return AuditLogListResponse(
        items=[
            AuditLogEntryResponse(
                id=e.id,
                actor_id=e.actor_id,
                entity_type=e.entity_type,
                entity_id=e.entity_id,
                action=e.action,
                before_json=e.before_json,
                after_json=e.after_json,
                created_at=e.created_at,
            )
            for e in entries
        ],
        total=total,
    )


async def summarize_expenses(
    expenses: ExpenseRepository,
    converter: CurrencyConverter,
    currency: str,
    *,
    employee_id: uuid.UUID | None = None,
) -> ExpenseSummaryResponse:
    """Count expenses per status and total their amounts in ``currency``."""
    records, _ = await expenses.find(employee_id=employee_id)

    totals = {status: StatusTotals() for status in ExpenseStatus}
    for record in records:
        bucket = totals[record.status]
        bucket.count += 1
        bucket.amount += converter.convert(record.amount, record.currency, currency)

    return ExpenseSummaryResponse(
        currency=currency,
        total_count=len(records),
        total_amount=sum((t.amount for t in totals.values()), Decimal("0.00")),
        draft=totals[ExpenseStatus.DRAFT],
        submitted=totals[ExpenseStatus.SUBMITTED],
        approved=totals[ExpenseStatus.APPROVED],
        rejected=totals[ExpenseStatus.REJECTED],
    )
