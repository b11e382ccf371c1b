# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid

from fastapi import APIRouter, Query, status

from expense_approvals.api.deps import AuthDep, WorkflowDep
from expense_approvals.models.enums import ExpenseStatus, UserRole
from expense_approvals.schemas.expense import (
    CreateExpenseRequest,
    DecisionPayload,
    ExpenseListResponse,
    ExpenseRecord,
    UpdateExpenseRequest,
)

expenses_router = APIRouter(prefix="/expenses", tags=["expenses"])


@expenses_router.post("", response_model=ExpenseRecord, status_code=status.HTTP_201_CREATED)
async def create_expense(
    payload: CreateExpenseRequest,
    workflow: WorkflowDep,
    auth: AuthDep,
) -> ExpenseRecord:
    """Create a draft expense owned by the caller."""
    return await workflow.create_expense(auth, payload)


@expenses_router.get("", response_model=ExpenseListResponse)
async def list_expenses(
    workflow: WorkflowDep,
    auth: AuthDep,
    status_filter: ExpenseStatus | None = Query(default=None, alias="status"),
    employee_id: uuid.UUID | None = Query(default=None),
    offset: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> ExpenseListResponse:
    """List expenses. Employees only ever see their own."""
    if auth.role == UserRole.EMPLOYEE:
        employee_id = auth.user_id
    return await workflow.list_expenses(employee_id=employee_id, status=status_filter, offset=offset, limit=limit)


@expenses_router.get("/pending", response_model=ExpenseListResponse)
async def list_pending_approvals(
    workflow: WorkflowDep,
    auth: AuthDep,
) -> ExpenseListResponse:
    """List submitted expenses awaiting the caller's decision."""
    return await workflow.list_pending_for(auth.user_id)


@expenses_router.get("/{expense_id}", response_model=ExpenseRecord)
async def get_expense(
    expense_id: uuid.UUID,
    workflow: WorkflowDep,
    auth: AuthDep,
) -> ExpenseRecord:
    """Get a single expense. Employees see their own and the ones they approve."""
    return await workflow.get_expense(expense_id, auth)


@expenses_router.patch("/{expense_id}", response_model=ExpenseRecord)
async def update_expense(
    expense_id: uuid.UUID,
    payload: UpdateExpenseRequest,
    workflow: WorkflowDep,
    auth: AuthDep,
) -> ExpenseRecord:
    """Edit a draft expense."""
    return await workflow.update_expense(auth, expense_id, payload)


@expenses_router.delete("/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(
    expense_id: uuid.UUID,
    workflow: WorkflowDep,
    auth: AuthDep,
) -> None:
    """Delete a draft expense."""
    await workflow.delete_expense(auth, expense_id)


@expenses_router.post("/{expense_id}/submit", response_model=ExpenseRecord)
async def submit_expense(
    expense_id: uuid.UUID,
    workflow: WorkflowDep,
    auth: AuthDep,
) -> ExpenseRecord:
    """Submit a draft for approval."""
    return await workflow.submit_expense(auth, expense_id)


@expenses_router.post("/{expense_id}/approve", response_model=ExpenseRecord)
async def approve_expense(
    expense_id: uuid.UUID,
    workflow: WorkflowDep,
    auth: AuthDep,
    payload: DecisionPayload | None = None,
) -> ExpenseRecord:
    """Approve an expense as one of its pending approvers."""
    return await workflow.approve_expense(auth, expense_id, payload)


@expenses_router.post("/{expense_id}/reject", response_model=ExpenseRecord)
async def reject_expense(
    expense_id: uuid.UUID,
    workflow: WorkflowDep,
    auth: AuthDep,
    payload: DecisionPayload | None = None,
) -> ExpenseRecord:
    """Reject an expense as one of its pending approvers."""
    return await workflow.reject_expense(auth, expense_id, payload)
