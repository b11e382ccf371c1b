# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from expense_approvals.api.deps import AdminDep, AuthDep, WorkflowDep
from expense_approvals.schemas.approval_rule import (
    ApprovalRuleListResponse,
    ApprovalRuleRecord,
    CreateApprovalRuleRequest,
    UpdateApprovalRuleRequest,
)

approval_rules_router = APIRouter(prefix="/approval-rules", tags=["approval-rules"])


@approval_rules_router.post("", response_model=ApprovalRuleRecord, status_code=status.HTTP_201_CREATED)
async def create_approval_rule(
    payload: CreateApprovalRuleRequest,
    workflow: WorkflowDep,
    auth: AdminDep,
) -> ApprovalRuleRecord:
    """Create an approval rule for a user (admin only)."""
    return await workflow.create_rule(auth, payload)


@approval_rules_router.get("", response_model=ApprovalRuleListResponse)
async def list_approval_rules(
    workflow: WorkflowDep,
    auth: AuthDep,
    user_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> ApprovalRuleListResponse:
    """List approval rules."""
    return await workflow.list_rules(user_id=user_id, offset=offset, limit=limit)


@approval_rules_router.get("/by-user/{user_id}", response_model=ApprovalRuleRecord)
async def get_approval_rule_for_user(
    user_id: uuid.UUID,
    workflow: WorkflowDep,
    auth: AuthDep,
) -> ApprovalRuleRecord:
    """Get the active approval rule governing a user."""
    return await workflow.get_rule_for_user(user_id)


@approval_rules_router.get("/{rule_id}", response_model=ApprovalRuleRecord)
async def get_approval_rule(
    rule_id: uuid.UUID,
    workflow: WorkflowDep,
    auth: AuthDep,
) -> ApprovalRuleRecord:
    """Get a single approval rule."""
    return await workflow.get_rule(rule_id)


@approval_rules_router.patch("/{rule_id}", response_model=ApprovalRuleRecord)
async def update_approval_rule(
    rule_id: uuid.UUID,
    payload: UpdateApprovalRuleRequest,
    workflow: WorkflowDep,
    auth: AdminDep,
) -> ApprovalRuleRecord:
    """Update an approval rule (admin only). Submitted expenses keep their roster."""
    return await workflow.update_rule(auth, rule_id, payload)


@approval_rules_router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_approval_rule(
    rule_id: uuid.UUID,
    workflow: WorkflowDep,
    auth: AdminDep,
) -> None:
    """Delete an approval rule (admin only)."""
    await workflow.delete_rule(auth, rule_id)
