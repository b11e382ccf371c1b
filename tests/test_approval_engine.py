"""Tests for the pure approval engine: rosters, thresholds, sequencing, and terminal states."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime, timedelta
from decimal import Decimal

import pytest

from expense_approvals.exceptions import ApproverNotEligibleError, InvalidTransitionError, OutOfSequenceError
from expense_approvals.models.enums import ApprovalAction, ApproverStatus, ExpenseStatus, ThresholdPolicy, UserRole
from expense_approvals.schemas.approval_rule import ApprovalRuleRecord, RuleApprover
from expense_approvals.schemas.expense import ApproverEntry, ExpenseRecord
from expense_approvals.services import approval_engine
from expense_approvals.services.directory import UserInfo

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=UTC)
EMPLOYEE_ID = uuid.uuid4()
MANAGER = UserInfo(id=uuid.uuid4(), name="Manager User", email="manager@example.com", role=UserRole.MANAGER)
A = RuleApprover(user_id=uuid.uuid4(), name="Jane Smith", email="jane@example.com")
B = RuleApprover(user_id=uuid.uuid4(), name="Bob Johnson", email="bob@example.com")
C = RuleApprover(user_id=uuid.uuid4(), name="Carol White", email="carol@example.com")


def _draft() -> ExpenseRecord:
    return ExpenseRecord(
        employee_id=EMPLOYEE_ID,
        employee_name="John Employee",
        employee_email="john@example.com",
        description="Taxi to airport",
        category="Travel",
        amount=Decimal("42.00"),
        currency="USD",
        expense_date=date(2026, 3, 1),
        created_at=T0,
    )


def _rule(*approvers: RuleApprover, **overrides: object) -> ApprovalRuleRecord:
    return ApprovalRuleRecord.model_validate(
        {"user_id": EMPLOYEE_ID, "approvers": list(approvers), "created_at": T0, **overrides}
    )


def _submitted(*approvers: RuleApprover, **overrides: object) -> ExpenseRecord:
    return approval_engine.submit_expense(_draft(), _rule(*approvers, **overrides), None, now=T0)


def _at(minutes: int) -> datetime:
    return T0 + timedelta(minutes=minutes)


def _required(approver: RuleApprover) -> RuleApprover:
    return approver.model_copy(update={"required": True})


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------


def test_submit_without_rule_auto_approves() -> None:
    result = approval_engine.submit_expense(_draft(), None, None, now=T0)

    assert result.status == ExpenseStatus.APPROVED
    assert result.approvers == []
    assert result.submitted_at == T0
    assert result.approved_at == T0
    assert len(result.approval_history) == 1
    entry = result.approval_history[0]
    assert entry.approver == approval_engine.SYSTEM_APPROVER
    assert entry.approver_id is None
    assert entry.action == ApprovalAction.APPROVED
    assert entry.note == approval_engine.AUTO_APPROVAL_NOTE


def test_submit_with_inactive_rule_auto_approves() -> None:
    result = approval_engine.submit_expense(_draft(), _rule(A, is_active=False), None, now=T0)
    assert result.status == ExpenseStatus.APPROVED
    assert result.rule_id is None


def test_submit_with_empty_roster_auto_approves() -> None:
    rule = _rule()
    result = approval_engine.submit_expense(_draft(), rule, None, now=T0)
    assert result.status == ExpenseStatus.APPROVED
    assert result.rule_id == rule.id


def test_submit_snapshots_rule_settings() -> None:
    rule = _rule(
        A,
        _required(B),
        is_sequential=True,
        minimum_approval_percentage=60,
        threshold_policy=ThresholdPolicy.REQUIRED_ONLY,
    )
    result = approval_engine.submit_expense(_draft(), rule, None, now=T0)

    assert result.status == ExpenseStatus.SUBMITTED
    assert result.rule_id == rule.id
    assert result.is_sequential is True
    assert result.minimum_approval_percentage == 60
    assert result.threshold_policy == ThresholdPolicy.REQUIRED_ONLY
    assert [a.user_id for a in result.approvers] == [A.user_id, B.user_id]
    assert [a.required for a in result.approvers] == [False, True]
    assert all(a.status == ApproverStatus.PENDING for a in result.approvers)
    assert result.approval_history == []
    assert result.approved_at is None


def test_submit_prepends_manager_as_required() -> None:
    rule = _rule(A, is_manager_approver=True)
    result = approval_engine.submit_expense(_draft(), rule, MANAGER, now=T0)

    assert [a.user_id for a in result.approvers] == [MANAGER.id, A.user_id]
    assert result.approvers[0].required is True
    assert result.approvers[0].role == UserRole.MANAGER


def test_submit_does_not_duplicate_listed_manager() -> None:
    listed = RuleApprover(user_id=MANAGER.id, name=MANAGER.name, email=MANAGER.email)
    rule = _rule(A, listed, is_manager_approver=True)
    result = approval_engine.submit_expense(_draft(), rule, MANAGER, now=T0)
    assert [a.user_id for a in result.approvers] == [A.user_id, MANAGER.id]


def test_submit_ignores_manager_when_rule_does_not_ask() -> None:
    result = approval_engine.submit_expense(_draft(), _rule(A), MANAGER, now=T0)
    assert [a.user_id for a in result.approvers] == [A.user_id]


def test_manager_only_rule_routes_to_manager() -> None:
    result = approval_engine.submit_expense(_draft(), _rule(is_manager_approver=True), MANAGER, now=T0)
    assert result.status == ExpenseStatus.SUBMITTED
    assert [a.user_id for a in result.approvers] == [MANAGER.id]


def test_submit_twice_is_invalid() -> None:
    submitted = _submitted(A)
    with pytest.raises(InvalidTransitionError):
        approval_engine.submit_expense(submitted, _rule(A), None, now=_at(1))


# ---------------------------------------------------------------------------
# Required approvers and percentage
# ---------------------------------------------------------------------------


def test_required_approvers_both_needed() -> None:
    expense = _submitted(_required(A), _required(B))

    after_a = approval_engine.approve_expense(expense, A.user_id, now=_at(1))
    assert after_a.status == ExpenseStatus.SUBMITTED
    assert after_a.approved_at is None

    after_b = approval_engine.approve_expense(after_a, B.user_id, now=_at(2))
    assert after_b.status == ExpenseStatus.APPROVED
    assert after_b.approved_at == _at(2)


def test_required_approvers_either_order() -> None:
    expense = _submitted(_required(A), _required(B))
    after_b = approval_engine.approve_expense(expense, B.user_id, now=_at(1))
    after_a = approval_engine.approve_expense(after_b, A.user_id, now=_at(2))
    assert after_a.status == ExpenseStatus.APPROVED


def test_half_of_three_needs_two() -> None:
    expense = _submitted(A, B, C, minimum_approval_percentage=50)

    after_one = approval_engine.approve_expense(expense, A.user_id, now=_at(1))
    assert after_one.status == ExpenseStatus.SUBMITTED

    after_two = approval_engine.approve_expense(after_one, C.user_id, now=_at(2))
    assert after_two.status == ExpenseStatus.APPROVED
    assert after_two.approvers[1].status == ApproverStatus.PENDING


def test_zero_percent_without_required_approves_on_first_approval() -> None:
    expense = _submitted(A, B, C)
    result = approval_engine.approve_expense(expense, B.user_id, now=_at(1))
    assert result.status == ExpenseStatus.APPROVED


def test_required_and_percentage_both_enforced() -> None:
    expense = _submitted(_required(A), B, C, minimum_approval_percentage=60)

    after_b = approval_engine.approve_expense(expense, B.user_id, now=_at(1))
    after_c = approval_engine.approve_expense(after_b, C.user_id, now=_at(2))
    # 2 of 3 meets 60% but the required approver has not acted.
    assert after_c.status == ExpenseStatus.SUBMITTED

    after_a = approval_engine.approve_expense(after_c, A.user_id, now=_at(3))
    assert after_a.status == ExpenseStatus.APPROVED


def test_required_only_policy_ignores_percentage() -> None:
    expense = _submitted(
        _required(A), B, C, minimum_approval_percentage=100, threshold_policy=ThresholdPolicy.REQUIRED_ONLY
    )
    result = approval_engine.approve_expense(expense, A.user_id, now=_at(1))
    assert result.status == ExpenseStatus.APPROVED


def test_percentage_only_policy_ignores_required() -> None:
    expense = _submitted(
        _required(A), B, C, minimum_approval_percentage=60, threshold_policy=ThresholdPolicy.PERCENTAGE_ONLY
    )
    after_b = approval_engine.approve_expense(expense, B.user_id, now=_at(1))
    after_c = approval_engine.approve_expense(after_b, C.user_id, now=_at(2))
    assert after_c.status == ExpenseStatus.APPROVED
    assert after_c.approvers[0].status == ApproverStatus.PENDING


def test_percentage_comparison_is_exact() -> None:
    approvers = [
        ApproverEntry(
            user_id=uuid.uuid4(),
            name=f"Approver {i}",
            email=f"a{i}@example.com",
            status=ApproverStatus.APPROVED if i < 57 else ApproverStatus.PENDING,
        )
        for i in range(100)
    ]
    assert approval_engine.is_threshold_met(approvers, 57)
    assert not approval_engine.is_threshold_met(approvers, 58)
    assert approval_engine.approval_percentage(approvers) == pytest.approx(57.0)


def test_threshold_needs_at_least_one_approval() -> None:
    approvers = [ApproverEntry(user_id=uuid.uuid4(), name="Jane", email="jane@example.com")]
    for policy in ThresholdPolicy:
        assert not approval_engine.is_threshold_met(approvers, 0, policy)


def test_approval_percentage_of_empty_roster_is_zero() -> None:
    assert approval_engine.approval_percentage([]) == 0.0


# ---------------------------------------------------------------------------
# Sequential rules
# ---------------------------------------------------------------------------


def test_sequential_rejects_out_of_order() -> None:
    expense = _submitted(A, B, C, is_sequential=True, minimum_approval_percentage=100)

    with pytest.raises(OutOfSequenceError):
        approval_engine.approve_expense(expense, B.user_id, now=_at(1))

    after_a = approval_engine.approve_expense(expense, A.user_id, now=_at(1))
    assert approval_engine.next_pending_index(after_a.approvers) == 1
    after_b = approval_engine.approve_expense(after_a, B.user_id, now=_at(2))
    after_c = approval_engine.approve_expense(after_b, C.user_id, now=_at(3))
    assert after_c.status == ExpenseStatus.APPROVED


def test_sequential_reject_out_of_order_is_also_refused() -> None:
    expense = _submitted(A, B, is_sequential=True)
    with pytest.raises(OutOfSequenceError):
        approval_engine.reject_expense(expense, B.user_id, now=_at(1))


def test_parallel_allows_any_order() -> None:
    expense = _submitted(A, B, C, minimum_approval_percentage=100)
    after_c = approval_engine.approve_expense(expense, C.user_id, now=_at(1))
    after_a = approval_engine.approve_expense(after_c, A.user_id, now=_at(2))
    after_b = approval_engine.approve_expense(after_a, B.user_id, now=_at(3))
    assert after_b.status == ExpenseStatus.APPROVED


# ---------------------------------------------------------------------------
# Rejection veto and terminal states
# ---------------------------------------------------------------------------


def test_non_required_reject_vetoes() -> None:
    expense = _submitted(_required(A), B, minimum_approval_percentage=50)
    after_a = approval_engine.approve_expense(expense, A.user_id, now=_at(1))
    # A alone already meets 50% of 2, so the expense is approved before B acts.
    assert after_a.status == ExpenseStatus.APPROVED

    expense = _submitted(_required(A), B, minimum_approval_percentage=100)
    rejected = approval_engine.reject_expense(expense, B.user_id, now=_at(1), note="Missing receipt")
    assert rejected.status == ExpenseStatus.REJECTED
    assert rejected.rejected_at == _at(1)
    assert rejected.approved_at is None
    assert rejected.approvers[1].status == ApproverStatus.REJECTED
    assert rejected.approval_history[-1].note == "Missing receipt"


def test_reject_after_partial_approval() -> None:
    expense = _submitted(A, B, minimum_approval_percentage=100)
    after_a = approval_engine.approve_expense(expense, A.user_id, now=_at(1))
    rejected = approval_engine.reject_expense(after_a, B.user_id, now=_at(2))
    assert rejected.status == ExpenseStatus.REJECTED
    assert [h.action for h in rejected.approval_history] == [ApprovalAction.APPROVED, ApprovalAction.REJECTED]


@pytest.mark.parametrize("status", [ExpenseStatus.APPROVED, ExpenseStatus.REJECTED])
def test_terminal_expenses_refuse_decisions(status: ExpenseStatus) -> None:
    expense = _submitted(A, B, minimum_approval_percentage=100)
    if status == ExpenseStatus.APPROVED:
        terminal = approval_engine.approve_expense(
            approval_engine.approve_expense(expense, A.user_id, now=_at(1)), B.user_id, now=_at(2)
        )
    else:
        terminal = approval_engine.reject_expense(expense, A.user_id, now=_at(1))
    assert terminal.status == status

    for decide in (approval_engine.approve_expense, approval_engine.reject_expense):
        for approver in (A, B):
            with pytest.raises(InvalidTransitionError):
                decide(terminal, approver.user_id, now=_at(5))


def test_draft_refuses_decisions() -> None:
    with pytest.raises(InvalidTransitionError):
        approval_engine.approve_expense(_draft(), A.user_id, now=T0)


def test_stranger_is_not_eligible() -> None:
    expense = _submitted(A, B)
    with pytest.raises(ApproverNotEligibleError):
        approval_engine.approve_expense(expense, uuid.uuid4(), now=_at(1))


def test_approver_cannot_decide_twice() -> None:
    expense = _submitted(A, B, minimum_approval_percentage=100)
    after_a = approval_engine.approve_expense(expense, A.user_id, now=_at(1))
    with pytest.raises(ApproverNotEligibleError):
        approval_engine.approve_expense(after_a, A.user_id, now=_at(2))
    with pytest.raises(ApproverNotEligibleError):
        approval_engine.reject_expense(after_a, A.user_id, now=_at(2))


def test_terminal_check_precedes_eligibility_and_sequence() -> None:
    expense = _submitted(A, B, is_sequential=True)
    rejected = approval_engine.reject_expense(expense, A.user_id, now=_at(1))
    with pytest.raises(InvalidTransitionError):
        approval_engine.approve_expense(rejected, uuid.uuid4(), now=_at(2))


# ---------------------------------------------------------------------------
# History and inputs
# ---------------------------------------------------------------------------


def test_history_is_append_only_and_ordered() -> None:
    expense = _submitted(A, B, C, minimum_approval_percentage=100)
    first = approval_engine.approve_expense(expense, B.user_id, now=_at(1), note="ok")
    second = approval_engine.approve_expense(first, A.user_id, now=_at(2))
    third = approval_engine.approve_expense(second, C.user_id, now=_at(3))

    assert third.approval_history[:2] == second.approval_history
    assert second.approval_history[:1] == first.approval_history
    timestamps = [h.timestamp for h in third.approval_history]
    assert timestamps == sorted(timestamps)
    assert [h.approver_id for h in third.approval_history] == [B.user_id, A.user_id, C.user_id]
    assert third.approvers[1].decided_at == _at(1)


def test_transitions_do_not_mutate_inputs() -> None:
    expense = _submitted(A, B, minimum_approval_percentage=100)
    snapshot = expense.model_copy(deep=True)
    approval_engine.approve_expense(expense, A.user_id, now=_at(1))
    approval_engine.reject_expense(expense, B.user_id, now=_at(1))
    assert expense == snapshot
