# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field, model_validator

from expense_approvals.models.enums import ThresholdPolicy


class ApproverAssignment(BaseModel):
    """An approver as requested by an admin. Identity is the user id alone."""

    user_id: uuid.UUID
    required: bool = False


class RuleApprover(ApproverAssignment):
    """A configured approver on a rule, with name and email from the user directory.

    Order matters only for sequential rules.
    """

    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=1, max_length=255)


def _check_unique_approvers(approvers: list[ApproverAssignment]) -> None:
    seen: set[uuid.UUID] = set()
    for approver in approvers:
        if approver.user_id in seen:
            msg = f"Approver {approver.user_id} is listed more than once"
            raise ValueError(msg)
        seen.add(approver.user_id)


class ApprovalRuleRecord(BaseModel):
    """Full approval rule state as persisted and returned to callers."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    user_id: uuid.UUID
    description: str | None = None
    manager_id: uuid.UUID | None = None
    is_manager_approver: bool = False
    approvers: list[RuleApprover] = []
    is_sequential: bool = False
    minimum_approval_percentage: int = Field(default=0, ge=0, le=100)
    threshold_policy: ThresholdPolicy = ThresholdPolicy.REQUIRED_AND_PERCENTAGE
    is_active: bool = True
    created_at: datetime
    updated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class CreateApprovalRuleRequest(BaseModel):
    """Request body for creating an approval rule."""

    user_id: uuid.UUID
    description: str | None = Field(default=None, max_length=1000)
    manager_id: uuid.UUID | None = None
    is_manager_approver: bool = False
    approvers: list[ApproverAssignment] = []
    is_sequential: bool = False
    minimum_approval_percentage: int = Field(default=0, ge=0, le=100)
    threshold_policy: ThresholdPolicy = ThresholdPolicy.REQUIRED_AND_PERCENTAGE
    is_active: bool = True

    @model_validator(mode="after")
    def _validate_approvers(self) -> Self:
        _check_unique_approvers(self.approvers)
        return self


class UpdateApprovalRuleRequest(BaseModel):
    """Partial update of an approval rule. The governed user cannot change."""

    description: str | None = Field(default=None, max_length=1000)
    manager_id: uuid.UUID | None = None
    is_manager_approver: bool | None = None
    approvers: list[ApproverAssignment] | None = None
    is_sequential: bool | None = None
    minimum_approval_percentage: int | None = Field(default=None, ge=0, le=100)
    threshold_policy: ThresholdPolicy | None = None
    is_active: bool | None = None

    @model_validator(mode="after")
    def _validate_approvers(self) -> Self:
        if self.approvers is not None:
            _check_unique_approvers(self.approvers)
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ApprovalRuleListResponse(BaseModel):
    """Paginated list of approval rules."""

    items: list[ApprovalRuleRecord]
    total: int
