from __future__ import annotations

import enum


class UserRole(enum.StrEnum):
    """Role of a user in the directory."""

    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"


class ExpenseStatus(enum.StrEnum):
    """State machine for expenses. APPROVED and REJECTED are terminal."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApproverStatus(enum.StrEnum):
    """Decision state of a single approver on an expense's roster."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalAction(enum.StrEnum):
    """Action recorded in an expense's approval history."""

    APPROVED = "approved"
    REJECTED = "rejected"


class ThresholdPolicy(enum.StrEnum):
    """How required approvers and the minimum percentage combine."""

    REQUIRED_AND_PERCENTAGE = "required_and_percentage"
    REQUIRED_ONLY = "required_only"
    PERCENTAGE_ONLY = "percentage_only"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    EXPENSE = "EXPENSE"
    APPROVAL_RULE = "APPROVAL_RULE"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    SUBMIT = "SUBMIT"
    APPROVE = "APPROVE"
    REJECT = "REJECT"


TERMINAL_STATUSES = frozenset({ExpenseStatus.APPROVED, ExpenseStatus.REJECTED})
