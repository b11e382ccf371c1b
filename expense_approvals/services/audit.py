from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from expense_approvals.models.audit import AuditLog

if TYPE_CHECKING:
    import uuid

    from pydantic import BaseModel
    from sqlalchemy.ext.asyncio import AsyncSession

    from expense_approvals.models.enums import AuditAction, AuditEntityType


def record_to_audit_dict(record: BaseModel) -> dict[str, Any]:
    """Serialize a record to a JSON-safe dict for audit logging."""
    data: dict[str, Any] = record.model_dump(mode="json")
    return data


@runtime_checkable
class AuditWriter(Protocol):
    """Interface for recording mutations."""

    async def write(
        self,
        *,
        actor_id: uuid.UUID,
        entity_type: AuditEntityType,
        entity_id: uuid.UUID,
        action: AuditAction,
        before_json: dict[str, Any] | None = None,
        after_json: dict[str, Any] | None = None,
    ) -> None:
        """Record one mutation."""
        ...


class SqlAuditWriter:
    """Adds audit rows to the caller's session; they commit with the mutation."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def write(
        self,
        *,
        actor_id: uuid.UUID,
        entity_type: AuditEntityType,
        entity_id: uuid.UUID,
        action: AuditAction,
        before_json: dict[str, Any] | None = None,
        after_json: dict[str, Any] | None = None,
    ) -> None:
        self._session.add(
            AuditLog(
                actor_id=actor_id,
                entity_type=entity_type.value,
                entity_id=entity_id,
                action=action.value,
                before_json=before_json,
                after_json=after_json,
            )
        )


class InMemoryAuditWriter:
    """Keeps audit entries in a list."""

    def __init__(self) -> None:
        self.entries: list[AuditLog] = []

    async def write(
        self,
        *,
        actor_id: uuid.UUID,
        entity_type: AuditEntityType,
        entity_id: uuid.UUID,
        action: AuditAction,
        before_json: dict[str, Any] | None = None,
        after_json: dict[str, Any] | None = None,
    ) -> None:
        self.entries.append(
            AuditLog(
                actor_id=actor_id,
                entity_type=entity_type.value,
                entity_id=entity_id,
                action=action.value,
                before_json=before_json,
                after_json=after_json,
            )
        )
