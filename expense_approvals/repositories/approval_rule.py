# ruff: noqa: TC003
from __future__ import annotations

import uuid
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from sqlalchemy import delete, func, select
from sqlmodel import col

from expense_approvals.exceptions import ConflictError
from expense_approvals.models.approval_rule import ApprovalRule
from expense_approvals.schemas.approval_rule import ApprovalRuleRecord

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


def _row_values(record: ApprovalRuleRecord) -> dict[str, Any]:
    values = record.model_dump(exclude={"approvers"})
    values["approvers"] = [a.model_dump(mode="json") for a in record.approvers]
    return values


@runtime_checkable
class RuleRepository(Protocol):
    """Interface for approval rule persistence."""

    async def get(self, rule_id: uuid.UUID) -> ApprovalRuleRecord | None:
        """Fetch a rule by id."""
        ...

    async def get_active_for_user(self, user_id: uuid.UUID) -> ApprovalRuleRecord | None:
        """Fetch the active rule governing ``user_id``, if any."""
        ...

    async def add(self, record: ApprovalRuleRecord) -> ApprovalRuleRecord:
        """Insert a new rule."""
        ...

    async def save(self, record: ApprovalRuleRecord) -> ApprovalRuleRecord:
        """Overwrite an existing rule."""
        ...

    async def delete(self, rule_id: uuid.UUID) -> None:
        """Remove a rule."""
        ...

    async def find(
        self,
        *,
        user_id: uuid.UUID | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[ApprovalRuleRecord], int]:
        """List rules oldest first with the unpaginated total."""
        ...

    async def commit(self) -> None:
        """Make pending writes durable."""
        ...


class SqlRuleRepository:
    """Rule repository backed by an async SQLModel session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def _get_row(self, rule_id: uuid.UUID) -> ApprovalRule | None:
        result = await self._session.execute(select(ApprovalRule).where(col(ApprovalRule.id) == rule_id))
        return result.scalar_one_or_none()

    async def get(self, rule_id: uuid.UUID) -> ApprovalRuleRecord | None:
        row = await self._get_row(rule_id)
        return ApprovalRuleRecord.model_validate(row) if row is not None else None

    async def get_active_for_user(self, user_id: uuid.UUID) -> ApprovalRuleRecord | None:
        result = await self._session.execute(
            select(ApprovalRule)
            .where(col(ApprovalRule.user_id) == user_id, col(ApprovalRule.is_active).is_(True))
            .order_by(col(ApprovalRule.created_at).desc())
        )
        row = result.scalars().first()
        return ApprovalRuleRecord.model_validate(row) if row is not None else None

    async def add(self, record: ApprovalRuleRecord) -> ApprovalRuleRecord:
        self._session.add(ApprovalRule(**_row_values(record)))
        await self._session.flush()
        return record

    async def save(self, record: ApprovalRuleRecord) -> ApprovalRuleRecord:
        row = await self._get_row(record.id)
        if row is None:
            msg = f"Approval rule {record.id} no longer exists"
            raise ConflictError(msg)
        for key, value in _row_values(record).items():
            setattr(row, key, value)
        await self._session.flush()
        return record

    async def delete(self, rule_id: uuid.UUID) -> None:
        await self._session.execute(delete(ApprovalRule).where(col(ApprovalRule.id) == rule_id))

    async def find(
        self,
        *,
        user_id: uuid.UUID | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[ApprovalRuleRecord], int]:
        filters = []
        if user_id is not None:
            filters.append(col(ApprovalRule.user_id) == user_id)

        count_result = await self._session.execute(
            select(func.count()).select_from(ApprovalRule).where(*filters)
        )
        total = count_result.scalar_one()

        query = select(ApprovalRule).where(*filters).order_by(col(ApprovalRule.created_at)).offset(offset)
        if limit is not None:
            query = query.limit(limit)
        result = await self._session.execute(query)
        return [ApprovalRuleRecord.model_validate(row) for row in result.scalars().all()], total

    async def commit(self) -> None:
        await self._session.commit()


class InMemoryRuleRepository:
    """In-memory implementation for development and tests."""

    def __init__(self) -> None:
        self._rules: dict[uuid.UUID, ApprovalRuleRecord] = {}

    async def get(self, rule_id: uuid.UUID) -> ApprovalRuleRecord | None:
        return self._rules.get(rule_id)

    async def get_active_for_user(self, user_id: uuid.UUID) -> ApprovalRuleRecord | None:
        active = [r for r in self._rules.values() if r.user_id == user_id and r.is_active]
        return max(active, key=lambda r: r.created_at, default=None)

    async def add(self, record: ApprovalRuleRecord) -> ApprovalRuleRecord:
        self._rules[record.id] = record
        return record

    async def save(self, record: ApprovalRuleRecord) -> ApprovalRuleRecord:
        if record.id not in self._rules:
            msg = f"Approval rule {record.id} no longer exists"
            raise ConflictError(msg)
        self._rules[record.id] = record
        return record

    async def delete(self, rule_id: uuid.UUID) -> None:
        self._rules.pop(rule_id, None)

    async def find(
        self,
        *,
        user_id: uuid.UUID | None = None,
        offset: int = 0,
        limit: int | None = None,
    ) -> tuple[list[ApprovalRuleRecord], int]:
        matches = sorted(
            (r for r in self._rules.values() if user_id is None or r.user_id == user_id),
            key=lambda r: r.created_at,
        )
        end = offset + limit if limit is not None else None
        return matches[offset:end], len(matches)

    async def commit(self) -> None:
        return None
