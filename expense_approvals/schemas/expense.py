# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from expense_approvals.models.enums import (
    ApprovalAction,
    ApproverStatus,
    ExpenseStatus,
    ThresholdPolicy,
    UserRole,
)

# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class ApproverEntry(BaseModel):
    """One approver on an expense's roster, materialized at submit time."""

    user_id: uuid.UUID
    name: str
    email: str
    role: UserRole = UserRole.EMPLOYEE
    required: bool = False
    status: ApproverStatus = ApproverStatus.PENDING
    decided_at: datetime | None = None


class HistoryEntry(BaseModel):
    """Append-only approval history item. ``approver_id`` is None for system entries."""

    approver_id: uuid.UUID | None
    approver: str
    action: ApprovalAction
    timestamp: datetime
    note: str | None = None


class ExpenseRecord(BaseModel):
    """Full expense state as persisted and returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    employee_id: uuid.UUID
    employee_name: str
    employee_email: str
    description: str
    category: str
    amount: Decimal
    currency: str
    expense_date: date
    paid_by: str | None = None
    remarks: str | None = None
    status: ExpenseStatus = ExpenseStatus.DRAFT
    approvers: list[ApproverEntry] = []
    approval_history: list[HistoryEntry] = []
    rule_id: uuid.UUID | None = None
    is_sequential: bool = False
    minimum_approval_percentage: int = 0
    threshold_policy: ThresholdPolicy = ThresholdPolicy.REQUIRED_AND_PERCENTAGE
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    rejected_at: datetime | None = None
    created_at: datetime
    updated_at: datetime | None = None
    version: int = 1


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


def _normalize_currency(value: str) -> str:
    code = value.strip().upper()
    if len(code) != 3 or not code.isalpha():
        msg = "currency must be a 3-letter ISO code"
        raise ValueError(msg)
    return code


class CreateExpenseRequest(BaseModel):
    """Request body for creating a draft expense."""

    description: str = Field(min_length=1, max_length=1000)
    category: str = Field(min_length=1, max_length=100)
    amount: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    currency: str = "USD"
    expense_date: date
    paid_by: str | None = Field(default=None, max_length=100)
    remarks: str | None = None

    @field_validator("description", "category")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "must not be blank"
            raise ValueError(msg)
        return value.strip()

    @field_validator("currency")
    @classmethod
    def _validate_currency(cls, value: str) -> str:
        return _normalize_currency(value)


class UpdateExpenseRequest(BaseModel):
    """Partial update of a draft expense. Only provided fields are changed."""

    description: str | None = Field(default=None, min_length=1, max_length=1000)
    category: str | None = Field(default=None, min_length=1, max_length=100)
    amount: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    currency: str | None = None
    expense_date: date | None = None
    paid_by: str | None = Field(default=None, max_length=100)
    remarks: str | None = None

    @field_validator("currency")
    @classmethod
    def _validate_currency(cls, value: str | None) -> str | None:
        return _normalize_currency(value) if value is not None else None


class DecisionPayload(BaseModel):
    """Request body for approve/reject actions."""

    note: str | None = Field(default=None, max_length=1000)
    expected_version: int | None = Field(default=None, ge=1)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ExpenseListResponse(BaseModel):
    """Paginated list of expenses."""

    items: list[ExpenseRecord]
    total: int
