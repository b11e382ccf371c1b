# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from expense_approvals.models.base import TimestampMixin, UUIDBase
from expense_approvals.models.enums import ThresholdPolicy


class ApprovalRule(UUIDBase, TimestampMixin, table=True):
    """Approval configuration governing one employee's expenses."""

    __tablename__ = "approval_rule"
    __table_args__ = (sa.Index("ix_approval_rule_user_active", "user_id", "is_active"),)

    user_id: uuid.UUID = Field(index=True)
    description: str | None = None
    manager_id: uuid.UUID | None = None
    is_manager_approver: bool = False
    approvers: list[dict[str, Any]] = Field(default_factory=list, sa_type=sa.JSON)
    is_sequential: bool = False
    minimum_approval_percentage: int = 0
    threshold_policy: str = Field(default=ThresholdPolicy.REQUIRED_AND_PERCENTAGE, max_length=50)
    is_active: bool = Field(default=True, sa_column_kwargs={"server_default": sa.true()})
