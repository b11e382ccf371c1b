# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from expense_approvals.models.base import TimestampMixin, UTCDateTime, UUIDBase
from expense_approvals.models.enums import ExpenseStatus, ThresholdPolicy


class Expense(UUIDBase, TimestampMixin, table=True):
    """An employee's expense claim with its approver roster snapshot."""

    __tablename__ = "expense"
    __table_args__ = (sa.Index("ix_expense_employee_status", "employee_id", "status"),)

    employee_id: uuid.UUID = Field(index=True)
    employee_name: str = Field(max_length=255)
    employee_email: str = Field(max_length=255)
    description: str
    category: str = Field(max_length=100)
    amount: Decimal = Field(max_digits=12, decimal_places=2)
    currency: str = Field(max_length=3)
    expense_date: date
    paid_by: str | None = Field(default=None, max_length=100)
    remarks: str | None = None
    status: str = Field(
        default=ExpenseStatus.DRAFT, max_length=50, index=True, sa_column_kwargs={"server_default": "draft"}
    )
    approvers: list[dict[str, Any]] = Field(default_factory=list, sa_type=sa.JSON)
    approval_history: list[dict[str, Any]] = Field(default_factory=list, sa_type=sa.JSON)
    rule_id: uuid.UUID | None = None
    is_sequential: bool = False
    minimum_approval_percentage: int = 0
    threshold_policy: str = Field(default=ThresholdPolicy.REQUIRED_AND_PERCENTAGE, max_length=50)
    submitted_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    approved_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    rejected_at: datetime | None = Field(default=None, sa_type=UTCDateTime)
    version: int = Field(default=1, sa_column_kwargs={"server_default": "1"})
