"""
Module: workflow_kernel.models.request
Responsibility: ORM persistence for financial deposit/withdrawal requests.

Architecture position: Kernel > Models.  May import from db/base.py only
(domain DTOs are imported lazily inside ``to_dto``).

Invariants enforced:
    - Valid status and kind values (check constraints).
    - ``amount > 0`` (check constraint).
    - Rows are retained for audit: the store refuses deletes.
    - Status is mutated only by WorkflowEngine compare-and-set updates.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from workflow_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from workflow_kernel.domain.records import FinancialRequest


class FinancialRequestModel(Base):
    """Persistent financial request."""

    __tablename__ = "requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'completed', 'rejected')",
            name="ck_requests_valid_status",
        ),
        CheckConstraint(
            "kind IN ('deposit', 'withdrawal')",
            name="ck_requests_valid_kind",
        ),
        CheckConstraint("amount > 0", name="ck_requests_positive_amount"),
        Index("ix_requests_status_created", "status", "created_at"),
        Index("ix_requests_folder", "folder_id"),
    )

    retain_rows = True

    submitter_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    admin_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    folder_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("folders.id"), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<FinancialRequest {self.id} {self.kind} status={self.status}>"

    def to_dto(self) -> FinancialRequest:
        """Convert ORM model to frozen domain DTO."""
        from workflow_kernel.domain.records import (
            FinancialRequest,
            RequestKind,
            RequestStatus,
        )

        return FinancialRequest(
            id=self.id,
            submitter_id=self.submitter_id,
            kind=RequestKind(self.kind),
            amount=Decimal(self.amount),
            currency=self.currency,
            status=RequestStatus(self.status),
            created_at=self.created_at,
            updated_at=self.updated_at,
            admin_note=self.admin_note,
            folder_id=self.folder_id,
        )
