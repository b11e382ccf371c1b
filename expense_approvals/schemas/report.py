# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any

from pydantic import BaseModel


class AuditLogEntryResponse(BaseModel):
    """Response schema for a single audit log entry."""

    id: uuid.UUID
    actor_id: uuid.UUID
    entity_type: str
    entity_id: uuid.UUID
    action: str
    before_json: dict[str, Any] | None
    after_json: dict[str, Any] | None
    created_at: datetime


class AuditLogListResponse(BaseModel):
    """Paginated list of audit log entries."""

    items: list[AuditLogEntryResponse]
    total: int


class StatusTotals(BaseModel):
    """Count and converted amount for one expense status."""

    count: int = 0
    amount: Decimal = Decimal("0.00")


class ExpenseSummaryResponse(BaseModel):
    """Expense totals converted into the company currency."""

    currency: str
    total_count: int
    total_amount: Decimal
    draft: StatusTotals
    submitted: StatusTotals
    approved: StatusTotals
    rejected: StatusTotals
