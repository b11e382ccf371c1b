# ruff: noqa: TC003
"""Expense storage behind a repository interface.

``save`` is a compare-and-set on ``version``: it succeeds only if the stored
version still equals the record's version, and returns the record with the
version incremented.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sqlalchemy import delete, func, select, update
from sqlmodel import col

from expense_approvals.exceptions import ConflictError
from expense_approvals.models.enums import ApproverStatus, ExpenseStatus
from expense_approvals.models.expense import Expense
from expense_approvals.schemas.expense import ExpenseRecord

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

_STALE_MESSAGE = "Expense was modified by another request; reload and retry"


def is_pending_for(expense: ExpenseRecord, approver_id: uuid.UUID) -> bool:
    """True when the expense awaits a decision from ``approver_id``."""
    return expense.status == ExpenseStatus.SUBMITTED and any(
        a.user_id == approver_id and a.status == ApproverStatus.PENDING for a in expense.approvers
    )


def _row_values(record: ExpenseRecord) -> dict[str, Any]:
    """Column values for an expense row. JSON columns hold ISO-8601 timestamps."""
    values = record.model_dump(exclude={"approvers", "approval_history"})
    values["approvers"] = [a.model_dump(mode="json") for a in record.approvers]
    values["approval_history"] = [h.model_dump(mode="json") for h in record.approval_history]
    return values


@runtime_checkable
class ExpenseRepository(Protocol):
    """Interface for expense persistence."""

    async def get(self, expense_id: uuid.UUID, *, for_update: bool = False) -> ExpenseRecord | None:
        """Fetch an expense. ``for_update`` locks the row until commit where supported."""
        ...

    async def add(self, record: ExpenseRecord) -> ExpenseRecord:
        """Insert a new expense."""
        ...

    async def save(self, record: ExpenseRecord) -> ExpenseRecord:
        """Overwrite an expense if its version is current. Raises ConflictError otherwise."""
        ...

    async def delete(self, expense_id: uuid.UUID) -> None:
        """Remove an expense."""
        ...

    async def find(
        self,
        *,
        employee_id: uuid.UUID | None = None,
        status: ExpenseStatus | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[ExpenseRecord], int]:
        """List expenses newest first with the unpaginated total."""
        ...

    async def list_pending_for(self, approver_id: uuid.UUID) -> list[ExpenseRecord]:
        """Submitted expenses where ``approver_id`` holds a pending roster entry."""
        ...

    async def commit(self) -> None:
        """Make pending writes durable."""
        ...


class SqlExpenseRepository:
    """Expense repository backed by an async SQLModel session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, expense_id: uuid.UUID, *, for_update: bool = False) -> ExpenseRecord | None:
        query = select(Expense).where(col(Expense.id) == expense_id).execution_options(populate_existing=True)
        if for_update:
            query = query.with_for_update()
        result = await self._session.execute(query)
        row = result.scalar_one_or_none()
        return ExpenseRecord.model_validate(row) if row is not None else None

    async def add(self, record: ExpenseRecord) -> ExpenseRecord:
        self._session.add(Expense(**_row_values(record)))
        await self._session.flush()
        return record

    async def save(self, record: ExpenseRecord) -> ExpenseRecord:
        values = _row_values(record)
        del values["id"]
        values["version"] = record.version + 1
        result = await self._session.execute(
            update(Expense)
            .where(col(Expense.id) == record.id, col(Expense.version) == record.version)
            .values(**values)
        )
        if result.rowcount == 0:  # type: ignore[attr-defined]
            raise ConflictError(_STALE_MESSAGE)
        return record.model_copy(update={"version": record.version + 1})

    async def delete(self, expense_id: uuid.UUID) -> None:
        await self._session.execute(delete(Expense).where(col(Expense.id) == expense_id))

    async def find(
        self,
        *,
        employee_id: uuid.UUID | None = None,
        status: ExpenseStatus | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[ExpenseRecord], int]:
        filters = []
        if employee_id is not None:
            filters.append(col(Expense.employee_id) == employee_id)
        if status is not None:
            filters.append(col(Expense.status) == status.value)

        count_result = await self._session.execute(select(func.count()).select_from(Expense).where(*filters))
        total = count_result.scalar_one()

        query = select(Expense).where(*filters).order_by(col(Expense.created_at).desc()).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        result = await self._session.execute(query)
        return [ExpenseRecord.model_validate(row) for row in result.scalars().all()], total

    async def list_pending_for(self, approver_id: uuid.UUID) -> list[ExpenseRecord]:
        # Rosters live in a JSON column, so the approver match happens here.
        records, _ = await self.find(status=ExpenseStatus.SUBMITTED)
        return [r for r in records if is_pending_for(r, approver_id)]

    async def commit(self) -> None:
        await self._session.commit()


class InMemoryExpenseRepository:
    """In-memory implementation for development and tests."""

    def __init__(self) -> None:
        self._expenses: dict[uuid.UUID, ExpenseRecord] = {}

    async def get(self, expense_id: uuid.UUID, *, for_update: bool = False) -> ExpenseRecord | None:
        return self._expenses.get(expense_id)

    async def add(self, record: ExpenseRecord) -> ExpenseRecord:
        if record.id in self._expenses:
            msg = f"Expense {record.id} already exists"
            raise ConflictError(msg)
        self._expenses[record.id] = record
        return record

    async def save(self, record: ExpenseRecord) -> ExpenseRecord:
        current = self._expenses.get(record.id)
        if current is None or current.version != record.version:
            raise ConflictError(_STALE_MESSAGE)
        saved = record.model_copy(update={"version": record.version + 1})
        self._expenses[record.id] = saved
        return saved

    async def delete(self, expense_id: uuid.UUID) -> None:
        self._expenses.pop(expense_id, None)

    async def find(
        self,
        *,
        employee_id: uuid.UUID | None = None,
        status: ExpenseStatus | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[ExpenseRecord], int]:
        matches = [
            e
            for e in self._expenses.values()
            if (employee_id is None or e.employee_id == employee_id) and (status is None or e.status == status)
        ]
        matches.sort(key=lambda e: e.created_at, reverse=True)
        end = offset + limit if limit is not None else None
        return matches[offset:end], len(matches)

    async def list_pending_for(self, approver_id: uuid.UUID) -> list[ExpenseRecord]:
        records, _ = await self.find(status=ExpenseStatus.SUBMITTED)
        return [r for r in records if is_pending_for(r, approver_id)]

    async def commit(self) -> None:
        return None
