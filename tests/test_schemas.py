"""Unit tests for expense and approval rule schemas."""

from __future__ import annotations

import uuid
from datetime import UTC, date, datetime
from decimal import Decimal

import pytest
from pydantic import ValidationError

from expense_approvals.models.enums import ApproverStatus, ExpenseStatus, ThresholdPolicy
from expense_approvals.schemas.approval_rule import (
    ApprovalRuleRecord,
    CreateApprovalRuleRequest,
    RuleApprover,
    UpdateApprovalRuleRequest,
)
from expense_approvals.schemas.expense import (
    ApproverEntry,
    CreateExpenseRequest,
    DecisionPayload,
    ExpenseRecord,
    UpdateExpenseRequest,
)

_EXPENSE = {
    "description": "Conference ticket",
    "category": "Training",
    "amount": "299.00",
    "expense_date": "2026-04-10",
}

# ---------------------------------------------------------------------------
# CreateExpenseRequest
# ---------------------------------------------------------------------------


def test_create_expense_defaults_to_usd() -> None:
    payload = CreateExpenseRequest.model_validate(_EXPENSE)
    assert payload.currency == "USD"
    assert payload.amount == Decimal("299.00")
    assert payload.expense_date == date(2026, 4, 10)


def test_create_expense_normalizes_currency() -> None:
    payload = CreateExpenseRequest.model_validate({**_EXPENSE, "currency": " inr "})
    assert payload.currency == "INR"


@pytest.mark.parametrize("currency", ["US", "USDX", "U$D", ""])
def test_create_expense_rejects_bad_currency(currency: str) -> None:
    with pytest.raises(ValidationError):
        CreateExpenseRequest.model_validate({**_EXPENSE, "currency": currency})


@pytest.mark.parametrize("amount", ["0", "-5.00", "1.234"])
def test_create_expense_rejects_bad_amount(amount: str) -> None:
    with pytest.raises(ValidationError):
        CreateExpenseRequest.model_validate({**_EXPENSE, "amount": amount})


def test_create_expense_strips_text() -> None:
    payload = CreateExpenseRequest.model_validate({**_EXPENSE, "description": "  Ticket  ", "category": " Training"})
    assert payload.description == "Ticket"
    assert payload.category == "Training"


def test_update_expense_tracks_only_set_fields() -> None:
    payload = UpdateExpenseRequest.model_validate({"remarks": None, "currency": "eur"})
    assert payload.model_dump(exclude_unset=True) == {"remarks": None, "currency": "EUR"}


def test_decision_payload_version_must_be_positive() -> None:
    assert DecisionPayload().expected_version is None
    with pytest.raises(ValidationError):
        DecisionPayload(expected_version=0)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def test_expense_record_json_round_trip() -> None:
    now = datetime(2026, 4, 11, 8, 30, tzinfo=UTC)
    record = ExpenseRecord(
        employee_id=uuid.uuid4(),
        employee_name="John Employee",
        employee_email="john@example.com",
        description="Conference ticket",
        category="Training",
        amount=Decimal("299.00"),
        currency="USD",
        expense_date=date(2026, 4, 10),
        status=ExpenseStatus.SUBMITTED,
        approvers=[
            ApproverEntry(
                user_id=uuid.uuid4(),
                name="Jane Smith",
                email="jane@example.com",
                status=ApproverStatus.APPROVED,
                decided_at=now,
            )
        ],
        created_at=now,
    )
    restored = ExpenseRecord.model_validate_json(record.model_dump_json())
    assert restored == record


def test_expense_record_defaults() -> None:
    record = ExpenseRecord.model_validate(
        {
            **_EXPENSE,
            "employee_id": uuid.uuid4(),
            "employee_name": "John Employee",
            "employee_email": "john@example.com",
            "currency": "USD",
            "created_at": datetime(2026, 4, 11, tzinfo=UTC),
        }
    )
    assert record.status == ExpenseStatus.DRAFT
    assert record.threshold_policy == ThresholdPolicy.REQUIRED_AND_PERCENTAGE
    assert record.version == 1


# ---------------------------------------------------------------------------
# Approval rules
# ---------------------------------------------------------------------------


def _approver(**overrides: object) -> dict[str, object]:
    return {"user_id": str(uuid.uuid4()), "name": "Jane Smith", "email": "jane@example.com", **overrides}


def test_create_rule_defaults() -> None:
    payload = CreateApprovalRuleRequest(user_id=uuid.uuid4())
    assert payload.approvers == []
    assert payload.minimum_approval_percentage == 0
    assert payload.threshold_policy == ThresholdPolicy.REQUIRED_AND_PERCENTAGE
    assert payload.is_active is True


def test_rule_approver_required_defaults_false() -> None:
    assert RuleApprover.model_validate(_approver()).required is False


@pytest.mark.parametrize("percentage", [-1, 101])
def test_rule_percentage_bounds(percentage: int) -> None:
    with pytest.raises(ValidationError):
        CreateApprovalRuleRequest(user_id=uuid.uuid4(), minimum_approval_percentage=percentage)
    with pytest.raises(ValidationError):
        UpdateApprovalRuleRequest(minimum_approval_percentage=percentage)


def test_rule_rejects_duplicate_approvers() -> None:
    approver = _approver()
    with pytest.raises(ValidationError, match="more than once"):
        CreateApprovalRuleRequest.model_validate({"user_id": str(uuid.uuid4()), "approvers": [approver, approver]})
    with pytest.raises(ValidationError, match="more than once"):
        UpdateApprovalRuleRequest.model_validate({"approvers": [approver, approver]})


def test_rule_request_keeps_only_approver_ids() -> None:
    payload = CreateApprovalRuleRequest.model_validate(
        {"user_id": str(uuid.uuid4()), "approvers": [_approver(required=True)], "is_sequential": True}
    )
    assert payload.model_dump()["approvers"] == [{"user_id": payload.approvers[0].user_id, "required": True}]


def test_rule_record_requires_approver_details() -> None:
    approver = {"user_id": str(uuid.uuid4()), "required": True}
    with pytest.raises(ValidationError):
        ApprovalRuleRecord.model_validate(
            {"user_id": str(uuid.uuid4()), "approvers": [approver], "created_at": datetime(2026, 1, 1, tzinfo=UTC)}
        )
    record = ApprovalRuleRecord.model_validate(
        {
            "user_id": str(uuid.uuid4()),
            "approvers": [_approver(required=True)],
            "created_at": datetime(2026, 1, 1, tzinfo=UTC),
        }
    )
    assert record.approvers[0].required is True
    assert record.approvers[0].name == "Jane Smith"
    assert record.id is not None
