# ruff: noqa: B008, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from expense_approvals.db import SessionDep
from expense_approvals.exceptions import ForbiddenError
from expense_approvals.models.enums import UserRole
from expense_approvals.repositories.approval_rule import SqlRuleRepository
from expense_approvals.repositories.expense import SqlExpenseRepository
from expense_approvals.schemas.auth import AuthContext
from expense_approvals.services.audit import SqlAuditWriter
from expense_approvals.services.directory import get_user_directory
from expense_approvals.services.workflow import ExpenseWorkflow


async def get_auth_context(
    x_user_id: uuid.UUID = Header(),
    x_role: UserRole = Header(default=UserRole.EMPLOYEE),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    return AuthContext(user_id=x_user_id, role=x_role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_admin(
    auth: AuthDep,
) -> AuthContext:
    """Require admin role for the request."""
    if not auth.is_admin:
        raise ForbiddenError("Admin access required")
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]


async def get_workflow(session: SessionDep) -> ExpenseWorkflow:
    """Build the workflow over SQL repositories sharing the request session."""
    return ExpenseWorkflow(
        SqlExpenseRepository(session),
        SqlRuleRepository(session),
        get_user_directory(),
        SqlAuditWriter(session),
    )


WorkflowDep = Annotated[ExpenseWorkflow, Depends(get_workflow)]
