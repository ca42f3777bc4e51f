"""
Module: workflow_kernel.models.company
Responsibility: ORM persistence for overseas-company registration requests
    and the registered companies they produce.

Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Registration request status limited to the five lifecycle values.
    - ``selected_name`` present iff status is name_selected/completed
      (check constraint; membership in candidate_names is validated by the
      DTO and the workflow adapter).
    - RegisteredCompany.registration_number is unique.
    - RegisteredCompany.source_request_id is unique -- one company per
      registration request.
    - Registration facts are immutable after insert (db/immutability.py).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from workflow_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from workflow_kernel.domain.records import (
        CompanyRegistrationRequest,
        RegisteredCompany,
    )


class CompanyRegistrationRequestModel(Base):
    """Persistent overseas-company registration request."""

    __tablename__ = "company_registration_requests"

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'name_selected', 'completed', 'rejected')",
            name="ck_company_requests_valid_status",
        ),
        CheckConstraint(
            "(status IN ('name_selected', 'completed')) = (selected_name IS NOT NULL)",
            name="ck_company_requests_selected_name",
        ),
        Index("ix_company_requests_status_created", "status", "created_at"),
        Index("ix_company_requests_folder", "folder_id"),
    )

    retain_rows = True

    submitter_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    candidate_names: Mapped[list] = mapped_column(JSON, nullable=False)
    jurisdiction: Mapped[str] = mapped_column(String(100), nullable=False)
    business_type: Mapped[str] = mapped_column(String(100), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(320), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    selected_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    admin_note: Mapped[str | None] = mapped_column(Text, nullable=True)
    folder_id: Mapped[UUID | None] = mapped_column(
        UUIDString(), ForeignKey("folders.id"), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)
    updated_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<CompanyRegistrationRequest {self.id} status={self.status}>"

    def to_dto(self) -> CompanyRegistrationRequest:
        """Convert ORM model to frozen domain DTO."""
        from workflow_kernel.domain.records import (
            CompanyRegistrationRequest,
            RegistrationStatus,
        )

        return CompanyRegistrationRequest(
            id=self.id,
            submitter_id=self.submitter_id,
            candidate_names=tuple(self.candidate_names),
            jurisdiction=self.jurisdiction,
            business_type=self.business_type,
            contact_email=self.contact_email,
            status=RegistrationStatus(self.status),
            created_at=self.created_at,
            updated_at=self.updated_at,
            selected_name=self.selected_name,
            admin_note=self.admin_note,
            folder_id=self.folder_id,
        )


class RegisteredCompanyModel(Base):
    """Persistent registered company.  Created only by the approve transition."""

    __tablename__ = "registered_companies"

    __table_args__ = (
        CheckConstraint(
            "status IN ('active', 'inactive', 'suspended')",
            name="ck_registered_companies_valid_status",
        ),
        Index("ix_registered_companies_owner", "owner_id"),
    )

    retain_rows = True

    owner_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    company_name: Mapped[str] = mapped_column(String(200), nullable=False)
    registration_number: Mapped[str] = mapped_column(
        String(100), nullable=False, unique=True,
    )
    incorporation_date: Mapped[date] = mapped_column(Date, nullable=False)
    jurisdiction: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="active")
    contact_email: Mapped[str] = mapped_column(String(320), nullable=False)
    contact_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    source_request_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("company_registration_requests.id"),
        nullable=False,
        unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<RegisteredCompany {self.registration_number} {self.company_name!r}>"

    def to_dto(self) -> RegisteredCompany:
        """Convert ORM model to frozen domain DTO."""
        from workflow_kernel.domain.records import CompanyStatus, RegisteredCompany

        return RegisteredCompany(
            id=self.id,
            owner_id=self.owner_id,
            company_name=self.company_name,
            registration_number=self.registration_number,
            incorporation_date=self.incorporation_date,
            jurisdiction=self.jurisdiction,
            status=CompanyStatus(self.status),
            contact_email=self.contact_email,
            source_request_id=self.source_request_id,
            created_at=self.created_at,
            contact_phone=self.contact_phone,
        )
