from sqlmodel import SQLModel

from expense_approvals.models.approval_rule import ApprovalRule
from expense_approvals.models.audit import AuditLog
from expense_approvals.models.base import TimestampMixin, UTCDateTime, UUIDBase
from expense_approvals.models.enums import (
    ApprovalAction,
    ApproverStatus,
    AuditAction,
    AuditEntityType,
    ExpenseStatus,
    ThresholdPolicy,
    UserRole,
)
from expense_approvals.models.expense import Expense

__all__ = [
    "ApprovalAction",
    "ApprovalRule",
    "ApproverStatus",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "Expense",
    "ExpenseStatus",
    "SQLModel",
    "ThresholdPolicy",
    "TimestampMixin",
    "UTCDateTime",
    "UUIDBase",
    "UserRole",
]
