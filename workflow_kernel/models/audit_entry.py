"""
Module: workflow_kernel.models.audit_entry
Responsibility: ORM persistence for the administrative audit trail.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Audit entries are append-only; no UPDATE or DELETE (store guard +
      ORM listeners in db/immutability.py).
    - Exactly one entry per committed workflow transition, written in the
      same transaction as the status change (WorkflowEngine).

Audit relevance:
    AuditEntry IS the compliance trail.  Severity and resource type are not
    stored; the audit trail reader derives them from ``action`` and
    ``related_request_id``.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from workflow_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from workflow_kernel.domain.records import AuditEntry


class AuditEntryModel(Base):
    """One administrative action.  Append-only."""

    __tablename__ = "audit_entries"

    __table_args__ = (
        Index("ix_audit_entries_created", "created_at"),
        Index("ix_audit_entries_action", "action"),
        Index("ix_audit_entries_related", "related_request_id"),
        Index("ix_audit_entries_subject", "subject_id"),
    )

    append_only = True

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    subject_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    related_request_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    workflow: Mapped[str | None] = mapped_column(String(100), nullable=True)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEntry {self.action} by {self.actor_id}>"

    def to_dto(self) -> AuditEntry:
        from workflow_kernel.domain.records import AuditEntry

        return AuditEntry(
            id=self.id,
            actor_id=self.actor_id,
            subject_id=self.subject_id,
            action=self.action,
            created_at=self.created_at,
            related_request_id=self.related_request_id,
            workflow=self.workflow,
            note=self.note,
        )
