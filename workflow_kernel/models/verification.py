"""
Module: workflow_kernel.models.verification
Responsibility: ORM persistence for identity-verification requests.

Architecture position: Kernel > Models.  May import from db/base.py only.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from workflow_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from workflow_kernel.domain.records import VerificationRequest


class VerificationRequestModel(Base):
    """Persistent verification request."""

    __tablename__ = "verification_requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'requested_more_info', 'approved', 'rejected')",
            name="ck_verification_requests_valid_status",
        ),
        Index("ix_verification_requests_status", "status", "created_at"),
        Index("ix_verification_requests_folder", "folder_id"),
    )

    retain_rows = True

    submitter_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    document_type: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(30), nullable=False, default="pending")
    admin_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    reviewed_by: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    folder_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("folders.id"), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<VerificationRequest {self.id} status={self.status}>"

    def to_dto(self) -> VerificationRequest:
        from workflow_kernel.domain.records import (
            VerificationRequest,
            VerificationStatus,
        )

        return VerificationRequest(
            id=self.id,
            submitter_id=self.submitter_id,
            document_type=self.document_type,
            status=VerificationStatus(self.status),
            created_at=self.created_at,
            updated_at=self.updated_at,
            admin_note=self.admin_note,
            reviewed_by=self.reviewed_by,
            reviewed_at=self.reviewed_at,
            folder_id=self.folder_id,
        )
