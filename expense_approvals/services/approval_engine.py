"""Approval decision logic for expenses.

Every function here is pure: it takes records and a timestamp and returns a new
``ExpenseRecord`` without touching storage. Business outcomes such as an unmet
threshold are ordinary results; only disallowed actions raise.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from expense_approvals.exceptions import ApproverNotEligibleError, InvalidTransitionError, OutOfSequenceError
from expense_approvals.models.enums import (
    TERMINAL_STATUSES,
    ApprovalAction,
    ApproverStatus,
    ExpenseStatus,
    ThresholdPolicy,
    UserRole,
)
from expense_approvals.schemas.expense import ApproverEntry, ExpenseRecord, HistoryEntry

if TYPE_CHECKING:
    import uuid
    from collections.abc import Sequence
    from datetime import datetime

    from expense_approvals.schemas.approval_rule import ApprovalRuleRecord
    from expense_approvals.services.directory import UserInfo

SYSTEM_APPROVER = "system"
AUTO_APPROVAL_NOTE = "Auto-approved: no active approval rule with approvers"


# ---------------------------------------------------------------------------
# Roster and threshold math
# ---------------------------------------------------------------------------


def build_roster(rule: ApprovalRuleRecord, manager: UserInfo | None = None) -> list[ApproverEntry]:
    """Materialize the approver snapshot for a rule, all entries pending.

    When the rule makes the manager an approver, the manager is prepended as a
    required approver unless already listed.
    """
    roster = [
        ApproverEntry(
            user_id=approver.user_id,
            name=approver.name,
            email=approver.email,
            required=approver.required,
        )
        for approver in rule.approvers
    ]
    if rule.is_manager_approver and manager is not None:
        if all(entry.user_id != manager.id for entry in roster):
            roster.insert(
                0,
                ApproverEntry(
                    user_id=manager.id,
                    name=manager.name,
                    email=manager.email,
                    role=UserRole.MANAGER,
                    required=True,
                ),
            )
    return roster


def approval_percentage(approvers: Sequence[ApproverEntry]) -> float:
    """Share of the roster that has approved, as a percentage (0 for an empty roster).

    Threshold checks use integer arithmetic instead; this value is for reporting.
    """
    if not approvers:
        return 0.0
    approved = sum(1 for a in approvers if a.status == ApproverStatus.APPROVED)
    return approved / len(approvers) * 100


def _percentage_met(approvers: Sequence[ApproverEntry], minimum_percentage: int) -> bool:
    if minimum_percentage <= 0:
        return True
    approved = sum(1 for a in approvers if a.status == ApproverStatus.APPROVED)
    # Cross-multiplied so 57/100 compares exactly against 57.
    return approved * 100 >= minimum_percentage * len(approvers)


def is_threshold_met(
    approvers: Sequence[ApproverEntry],
    minimum_percentage: int,
    policy: ThresholdPolicy = ThresholdPolicy.REQUIRED_AND_PERCENTAGE,
) -> bool:
    """Decide whether the roster's decisions approve the expense.

    At least one approval must exist under every policy.
    """
    if not any(a.status == ApproverStatus.APPROVED for a in approvers):
        return False

    required_met = all(a.status == ApproverStatus.APPROVED for a in approvers if a.required)
    if policy == ThresholdPolicy.REQUIRED_ONLY:
        return required_met

    percentage_met = _percentage_met(approvers, minimum_percentage)
    if policy == ThresholdPolicy.PERCENTAGE_ONLY:
        return percentage_met
    return required_met and percentage_met


def next_pending_index(approvers: Sequence[ApproverEntry]) -> int | None:
    """Index of the first pending approver in list order."""
    return next((i for i, a in enumerate(approvers) if a.status == ApproverStatus.PENDING), None)


def _eligible_index(expense: ExpenseRecord, approver_id: uuid.UUID) -> int:
    """Validate that ``approver_id`` may decide now and return its roster index."""
    if expense.status in TERMINAL_STATUSES:
        msg = f"Expense is already {expense.status.value}; no further decisions are accepted"
        raise InvalidTransitionError(msg)
    if expense.status != ExpenseStatus.SUBMITTED:
        msg = "Only submitted expenses can be approved or rejected"
        raise InvalidTransitionError(msg)

    index = next((i for i, a in enumerate(expense.approvers) if a.user_id == approver_id), None)
    if index is None or expense.approvers[index].status != ApproverStatus.PENDING:
        msg = "Caller is not a pending approver for this expense"
        raise ApproverNotEligibleError(msg)

    if expense.is_sequential and index != next_pending_index(expense.approvers):
        msg = "Approvers ahead in the sequence have not acted yet"
        raise OutOfSequenceError(msg)
    return index


def _record_decision(
    expense: ExpenseRecord,
    index: int,
    decision: ApproverStatus,
    action: ApprovalAction,
    now: datetime,
    note: str | None,
) -> tuple[list[ApproverEntry], list[HistoryEntry]]:
    approvers = list(expense.approvers)
    approver = approvers[index]
    approvers[index] = approver.model_copy(update={"status": decision, "decided_at": now})
    history = [
        *expense.approval_history,
        HistoryEntry(
            approver_id=approver.user_id,
            approver=approver.name,
            action=action,
            timestamp=now,
            note=note,
        ),
    ]
    return approvers, history


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


def submit_expense(
    expense: ExpenseRecord,
    rule: ApprovalRuleRecord | None,
    manager: UserInfo | None,
    *,
    now: datetime,
) -> ExpenseRecord:
    """Move a draft to submitted with a roster snapshot.

    Without an active rule, or when the rule yields no approvers, the expense is
    approved immediately and a system entry is added to the history.
    """
    if expense.status != ExpenseStatus.DRAFT:
        msg = f"Only draft expenses can be submitted (status is {expense.status.value})"
        raise InvalidTransitionError(msg)

    active_rule = rule if rule is not None and rule.is_active else None
    roster = build_roster(active_rule, manager) if active_rule is not None else []

    if active_rule is None or not roster:
        return expense.model_copy(
            update={
                "status": ExpenseStatus.APPROVED,
                "approvers": [],
                "approval_history": [
                    *expense.approval_history,
                    HistoryEntry(
                        approver_id=None,
                        approver=SYSTEM_APPROVER,
                        action=ApprovalAction.APPROVED,
                        timestamp=now,
                        note=AUTO_APPROVAL_NOTE,
                    ),
                ],
                "rule_id": active_rule.id if active_rule is not None else None,
                "submitted_at": now,
                "approved_at": now,
                "updated_at": now,
            }
        )

    return expense.model_copy(
        update={
            "status": ExpenseStatus.SUBMITTED,
            "approvers": roster,
            "rule_id": active_rule.id,
            "is_sequential": active_rule.is_sequential,
            "minimum_approval_percentage": active_rule.minimum_approval_percentage,
            "threshold_policy": active_rule.threshold_policy,
            "submitted_at": now,
            "updated_at": now,
        }
    )


def approve_expense(
    expense: ExpenseRecord,
    approver_id: uuid.UUID,
    *,
    now: datetime,
    note: str | None = None,
) -> ExpenseRecord:
    """Record an approval and approve the expense once its threshold is met."""
    index = _eligible_index(expense, approver_id)
    approvers, history = _record_decision(
        expense, index, ApproverStatus.APPROVED, ApprovalAction.APPROVED, now, note
    )

    update: dict[str, object] = {"approvers": approvers, "approval_history": history, "updated_at": now}
    if is_threshold_met(approvers, expense.minimum_approval_percentage, expense.threshold_policy):
        update["status"] = ExpenseStatus.APPROVED
        update["approved_at"] = now
    return expense.model_copy(update=update)


def reject_expense(
    expense: ExpenseRecord,
    approver_id: uuid.UUID,
    *,
    now: datetime,
    note: str | None = None,
) -> ExpenseRecord:
    """Record a rejection. Any single rejection rejects the whole expense."""
    index = _eligible_index(expense, approver_id)
    approvers, history = _record_decision(
        expense, index, ApproverStatus.REJECTED, ApprovalAction.REJECTED, now, note
    )
    return expense.model_copy(
        update={
            "approvers": approvers,
            "approval_history": history,
            "status": ExpenseStatus.REJECTED,
            "rejected_at": now,
            "updated_at": now,
        }
    )
