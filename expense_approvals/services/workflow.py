"""Expense workflow orchestration.

``ExpenseWorkflow`` is the single entry point for expense and approval rule
mutations. It loads records from the injected repositories, delegates every
approval decision to :mod:`expense_approvals.services.approval_engine`, then
saves, audits and commits.
"""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING, Any

from expense_approvals.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidTransitionError,
    NotFoundError,
    ValidationFailedError,
)
from expense_approvals.models.base import now_utc
from expense_approvals.models.enums import AuditAction, AuditEntityType, ExpenseStatus, UserRole
from expense_approvals.schemas.approval_rule import ApprovalRuleListResponse, ApprovalRuleRecord, RuleApprover
from expense_approvals.schemas.expense import ExpenseListResponse, ExpenseRecord
from expense_approvals.services import approval_engine
from expense_approvals.services.audit import record_to_audit_dict

if TYPE_CHECKING:
    from expense_approvals.repositories.approval_rule import RuleRepository
    from expense_approvals.repositories.expense import ExpenseRepository
    from expense_approvals.schemas.approval_rule import (
        ApproverAssignment,
        CreateApprovalRuleRequest,
        UpdateApprovalRuleRequest,
    )
    from expense_approvals.schemas.auth import AuthContext
    from expense_approvals.schemas.expense import CreateExpenseRequest, DecisionPayload, UpdateExpenseRequest
    from expense_approvals.services.audit import AuditWriter
    from expense_approvals.services.directory import UserDirectory, UserInfo

logger = logging.getLogger(__name__)

_NULLABLE_EXPENSE_FIELDS = frozenset({"paid_by", "remarks"})
_NULLABLE_RULE_FIELDS = frozenset({"description", "manager_id"})


def _drop_cleared(patch: dict[str, Any], *, nullable: frozenset[str]) -> dict[str, Any]:
    """Ignore explicit nulls for fields that cannot be cleared."""
    return {k: v for k, v in patch.items() if v is not None or k in nullable}


class ExpenseWorkflow:
    """Coordinates expense lifecycle actions over injected storage."""

    def __init__(
        self,
        expenses: ExpenseRepository,
        rules: RuleRepository,
        users: UserDirectory,
        audit: AuditWriter,
        *,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._expenses = expenses
        self._rules = rules
        self._users = users
        self._audit = audit
        self._clock = clock

    # -----------------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------------

    async def _get_expense_or_404(self, expense_id: uuid.UUID, *, for_update: bool = False) -> ExpenseRecord:
        expense = await self._expenses.get(expense_id, for_update=for_update)
        if expense is None:
            raise NotFoundError("Expense not found")
        return expense

    async def _get_rule_or_404(self, rule_id: uuid.UUID) -> ApprovalRuleRecord:
        rule = await self._rules.get(rule_id)
        if rule is None:
            raise NotFoundError("Approval rule not found")
        return rule

    @staticmethod
    def _require_owner(auth: AuthContext, expense: ExpenseRecord) -> None:
        if auth.user_id != expense.employee_id and not auth.is_admin:
            raise ForbiddenError("Only the expense owner or an admin can do this")

    @staticmethod
    def _require_viewer(auth: AuthContext, expense: ExpenseRecord) -> None:
        """Employees see their own expenses and the ones they sit on the roster of."""
        if auth.role != UserRole.EMPLOYEE or auth.user_id == expense.employee_id:
            return
        if any(a.user_id == auth.user_id for a in expense.approvers):
            return
        raise ForbiddenError("Employees can only view their own expenses or ones they approve")

    @staticmethod
    def _require_draft(expense: ExpenseRecord, action: str) -> None:
        if expense.status != ExpenseStatus.DRAFT:
            msg = f"Only draft expenses can be {action} (status is {expense.status.value})"
            raise InvalidTransitionError(msg)

    @staticmethod
    def _require_admin(auth: AuthContext) -> None:
        if not auth.is_admin:
            raise ForbiddenError("Admin access required")

    async def _ensure_single_active_rule(self, rule: ApprovalRuleRecord) -> None:
        if not rule.is_active:
            return
        existing = await self._rules.get_active_for_user(rule.user_id)
        if existing is not None and existing.id != rule.id:
            raise ConflictError("User already has an active approval rule")

    async def _require_active_user(self, user_id: uuid.UUID, label: str) -> UserInfo:
        user = await self._users.get_user(user_id)
        if user is None or not user.is_active:
            msg = f"{label} {user_id} is not an active user"
            raise ValidationFailedError(msg)
        return user

    async def _resolve_approvers(self, assignments: list[ApproverAssignment]) -> list[RuleApprover]:
        """Look up each requested approver; name and email always come from the directory."""
        approvers = []
        for assignment in assignments:
            user = await self._require_active_user(assignment.user_id, "Approver")
            approvers.append(
                RuleApprover(user_id=user.id, name=user.name, email=user.email, required=assignment.required)
            )
        return approvers

    async def _resolve_manager(self, employee_id: uuid.UUID, rule: ApprovalRuleRecord) -> UserInfo | None:
        """Find the employee's manager: rule override, then manager id, then manager name."""
        if rule.manager_id is not None:
            return await self._users.get_user(rule.manager_id)

        employee = await self._users.get_user(employee_id)
        if employee is None:
            return None
        if employee.manager_id is not None:
            return await self._users.get_user(employee.manager_id)
        if employee.manager_name:
            matches = await self._users.find_by_name(employee.manager_name)
            if len(matches) == 1:
                logger.warning("Resolved manager of %s by display name %r", employee_id, employee.manager_name)
                return matches[0]
            logger.warning(
                "Manager name %r for %s matched %d users; skipping", employee.manager_name, employee_id, len(matches)
            )
        return None

    async def _save_expense(
        self,
        auth: AuthContext,
        before: ExpenseRecord,
        after: ExpenseRecord,
        action: AuditAction,
    ) -> ExpenseRecord:
        saved = await self._expenses.save(after)
        await self._audit.write(
            actor_id=auth.user_id,
            entity_type=AuditEntityType.EXPENSE,
            entity_id=saved.id,
            action=action,
            before_json=record_to_audit_dict(before),
            after_json=record_to_audit_dict(saved),
        )
        await self._expenses.commit()
        return saved

    # -----------------------------------------------------------------------
    # Expenses
    # -----------------------------------------------------------------------

    async def create_expense(self, auth: AuthContext, payload: CreateExpenseRequest) -> ExpenseRecord:
        """Create a draft owned by the caller."""
        employee = await self._users.get_user(auth.user_id)
        if employee is None:
            raise NotFoundError("User not found")
        if not employee.is_active:
            raise ForbiddenError("Inactive users cannot create expenses")

        expense = ExpenseRecord(
            employee_id=employee.id,
            employee_name=employee.name,
            employee_email=employee.email,
            created_at=self._clock(),
            **payload.model_dump(),
        )
        await self._expenses.add(expense)
        await self._audit.write(
            actor_id=auth.user_id,
            entity_type=AuditEntityType.EXPENSE,
            entity_id=expense.id,
            action=AuditAction.CREATE,
            after_json=record_to_audit_dict(expense),
        )
        await self._expenses.commit()
        logger.info("Expense %s created by %s", expense.id, auth.user_id)
        return expense

    async def get_expense(self, expense_id: uuid.UUID, auth: AuthContext | None = None) -> ExpenseRecord:
        """Get a single expense, checking visibility when a caller is given."""
        expense = await self._get_expense_or_404(expense_id)
        if auth is not None:
            self._require_viewer(auth, expense)
        return expense

    async def list_expenses(
        self,
        *,
        employee_id: uuid.UUID | None = None,
        status: ExpenseStatus | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> ExpenseListResponse:
        """List expenses with optional filters, newest first."""
        items, total = await self._expenses.find(employee_id=employee_id, status=status, offset=offset, limit=limit)
        return ExpenseListResponse(items=items, total=total)

    async def list_pending_for(self, approver_id: uuid.UUID) -> ExpenseListResponse:
        """Submitted expenses awaiting a decision from ``approver_id``."""
        items = await self._expenses.list_pending_for(approver_id)
        return ExpenseListResponse(items=items, total=len(items))

    async def update_expense(
        self,
        auth: AuthContext,
        expense_id: uuid.UUID,
        payload: UpdateExpenseRequest,
    ) -> ExpenseRecord:
        """Edit a draft. Submitted expenses belong to their approvers and are read-only."""
        expense = await self._get_expense_or_404(expense_id, for_update=True)
        self._require_owner(auth, expense)
        self._require_draft(expense, "edited")

        patch = _drop_cleared(payload.model_dump(exclude_unset=True), nullable=_NULLABLE_EXPENSE_FIELDS)
        updated = ExpenseRecord.model_validate({**expense.model_dump(), **patch, "updated_at": self._clock()})
        return await self._save_expense(auth, expense, updated, AuditAction.UPDATE)

    async def delete_expense(self, auth: AuthContext, expense_id: uuid.UUID) -> None:
        """Delete a draft."""
        expense = await self._get_expense_or_404(expense_id, for_update=True)
        self._require_owner(auth, expense)
        self._require_draft(expense, "deleted")

        await self._expenses.delete(expense_id)
        await self._audit.write(
            actor_id=auth.user_id,
            entity_type=AuditEntityType.EXPENSE,
            entity_id=expense_id,
            action=AuditAction.DELETE,
            before_json=record_to_audit_dict(expense),
        )
        await self._expenses.commit()
        logger.info("Expense %s deleted by %s", expense_id, auth.user_id)

    async def submit_expense(self, auth: AuthContext, expense_id: uuid.UUID) -> ExpenseRecord:
        """Submit a draft for approval under the employee's active rule.

        Flow:
        1. Lock the expense and check ownership.
        2. Look up the active rule for the employee.
        3. Resolve the manager when the rule makes them an approver.
        4. Let the engine build the roster (or auto-approve without one).
        5. Save, audit, commit.
        """
        expense = await self._get_expense_or_404(expense_id, for_update=True)
        self._require_owner(auth, expense)

        rule = await self._rules.get_active_for_user(expense.employee_id)
        manager = None
        if rule is not None and rule.is_manager_approver:
            manager = await self._resolve_manager(expense.employee_id, rule)
            if manager is None:
                logger.warning("Rule %s makes the manager an approver but no manager was found", rule.id)

        submitted = approval_engine.submit_expense(expense, rule, manager, now=self._clock())
        saved = await self._save_expense(auth, expense, submitted, AuditAction.SUBMIT)

        if saved.status == ExpenseStatus.APPROVED:
            logger.info("Expense %s auto-approved on submit: no active rule with approvers", saved.id)
        else:
            logger.info("Expense %s submitted with %d approvers", saved.id, len(saved.approvers))
        return saved

    async def _decide(
        self,
        auth: AuthContext,
        expense_id: uuid.UUID,
        payload: DecisionPayload | None,
        *,
        approve: bool,
    ) -> ExpenseRecord:
        expense = await self._get_expense_or_404(expense_id, for_update=True)
        expected_version = payload.expected_version if payload is not None else None
        if expected_version is not None and expected_version != expense.version:
            raise ConflictError("Expense has changed since it was loaded; reload and retry")

        note = payload.note if payload is not None else None
        now = self._clock()
        if approve:
            decided = approval_engine.approve_expense(expense, auth.user_id, now=now, note=note)
            action = AuditAction.APPROVE
        else:
            decided = approval_engine.reject_expense(expense, auth.user_id, now=now, note=note)
            action = AuditAction.REJECT

        saved = await self._save_expense(auth, expense, decided, action)
        logger.info(
            "Expense %s %s by %s; status is now %s with %.0f%% of approvers in favour",
            saved.id,
            action.value.lower(),
            auth.user_id,
            saved.status.value,
            approval_engine.approval_percentage(saved.approvers),
        )
        return saved

    async def approve_expense(
        self,
        auth: AuthContext,
        expense_id: uuid.UUID,
        payload: DecisionPayload | None = None,
    ) -> ExpenseRecord:
        """Record the caller's approval; the expense is approved once its threshold is met."""
        return await self._decide(auth, expense_id, payload, approve=True)

    async def reject_expense(
        self,
        auth: AuthContext,
        expense_id: uuid.UUID,
        payload: DecisionPayload | None = None,
    ) -> ExpenseRecord:
        """Record the caller's rejection, which rejects the expense."""
        return await self._decide(auth, expense_id, payload, approve=False)

    # -----------------------------------------------------------------------
    # Approval rules
    # -----------------------------------------------------------------------

    async def create_rule(self, auth: AuthContext, payload: CreateApprovalRuleRequest) -> ApprovalRuleRecord:
        """Create an approval rule (admin only). One active rule per user."""
        self._require_admin(auth)
        if await self._users.get_user(payload.user_id) is None:
            raise NotFoundError("User not found")

        if payload.manager_id is not None:
            await self._require_active_user(payload.manager_id, "Manager")
        rule = ApprovalRuleRecord(
            created_at=self._clock(),
            approvers=await self._resolve_approvers(payload.approvers),
            **payload.model_dump(exclude={"approvers"}),
        )
        await self._ensure_single_active_rule(rule)

        await self._rules.add(rule)
        await self._audit.write(
            actor_id=auth.user_id,
            entity_type=AuditEntityType.APPROVAL_RULE,
            entity_id=rule.id,
            action=AuditAction.CREATE,
            after_json=record_to_audit_dict(rule),
        )
        await self._rules.commit()
        logger.info("Approval rule %s created for user %s", rule.id, rule.user_id)
        return rule

    async def update_rule(
        self,
        auth: AuthContext,
        rule_id: uuid.UUID,
        payload: UpdateApprovalRuleRequest,
    ) -> ApprovalRuleRecord:
        """Patch an approval rule (admin only). In-flight expenses keep their snapshot."""
        self._require_admin(auth)
        rule = await self._get_rule_or_404(rule_id)

        patch = _drop_cleared(payload.model_dump(exclude_unset=True), nullable=_NULLABLE_RULE_FIELDS)
        if patch.get("manager_id") is not None:
            await self._require_active_user(patch["manager_id"], "Manager")
        if payload.approvers is not None:
            patch["approvers"] = [a.model_dump() for a in await self._resolve_approvers(payload.approvers)]
        updated = ApprovalRuleRecord.model_validate({**rule.model_dump(), **patch, "updated_at": self._clock()})
        await self._ensure_single_active_rule(updated)

        await self._rules.save(updated)
        await self._audit.write(
            actor_id=auth.user_id,
            entity_type=AuditEntityType.APPROVAL_RULE,
            entity_id=updated.id,
            action=AuditAction.UPDATE,
            before_json=record_to_audit_dict(rule),
            after_json=record_to_audit_dict(updated),
        )
        await self._rules.commit()
        logger.info("Approval rule %s updated", rule_id)
        return updated

    async def delete_rule(self, auth: AuthContext, rule_id: uuid.UUID) -> None:
        """Delete an approval rule (admin only)."""
        self._require_admin(auth)
        rule = await self._get_rule_or_404(rule_id)

        await self._rules.delete(rule_id)
        await self._audit.write(
            actor_id=auth.user_id,
            entity_type=AuditEntityType.APPROVAL_RULE,
            entity_id=rule_id,
            action=AuditAction.DELETE,
            before_json=record_to_audit_dict(rule),
        )
        await self._rules.commit()
        logger.info("Approval rule %s deleted", rule_id)

    async def get_rule(self, rule_id: uuid.UUID) -> ApprovalRuleRecord:
        """Get a single approval rule."""
        return await self._get_rule_or_404(rule_id)

    async def get_rule_for_user(self, user_id: uuid.UUID) -> ApprovalRuleRecord:
        """Get the active approval rule governing ``user_id``."""
        rule = await self._rules.get_active_for_user(user_id)
        if rule is None:
            raise NotFoundError("No active approval rule for this user")
        return rule

    async def list_rules(
        self,
        *,
        user_id: uuid.UUID | None = None,
        offset: int = 0,
        limit: int = 50,
    ) -> ApprovalRuleListResponse:
        """List approval rules with an optional user filter."""
        items, total = await self._rules.find(user_id=user_id, offset=offset, limit=limit)
        return ApprovalRuleListResponse(items=items, total=total)
