"""
Record DTOs (``workflow_kernel.domain.records``).

Responsibility
--------------
Frozen domain views of every persisted entity.  ORM models convert to
these via ``to_dto()``; the record store only ever hands DTOs to callers.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* FinancialRequest: ``amount > 0``, 3-letter currency code,
  ``updated_at >= created_at``.
* CompanyRegistrationRequest: 1..N non-empty candidate names;
  ``selected_name`` is set iff status is ``name_selected`` or
  ``completed`` and is then one of the candidate names.
* Every DTO raises ``InvalidRecordError`` on construction when violated.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from workflow_kernel.exceptions import InvalidRecordError


class RequestKind(str, Enum):
    """Financial request kinds."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"


class RequestStatus(str, Enum):
    """Financial request lifecycle states."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"


class RegistrationStatus(str, Enum):
    """Company registration request lifecycle states."""

    PENDING = "pending"
    PROCESSING = "processing"
    NAME_SELECTED = "name_selected"
    COMPLETED = "completed"
    REJECTED = "rejected"


class CompanyStatus(str, Enum):
    """Registered company standing."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class VerificationStatus(str, Enum):
    """Identity verification request lifecycle states."""

    PENDING = "pending"
    REQUESTED_MORE_INFO = "requested_more_info"
    APPROVED = "approved"
    REJECTED = "rejected"


SELECTED_NAME_STATUSES: frozenset[RegistrationStatus] = frozenset({
    RegistrationStatus.NAME_SELECTED,
    RegistrationStatus.COMPLETED,
})


def _check_timestamps(entity_type: str, created_at: datetime, updated_at: datetime) -> None:
    if updated_at < created_at:
        raise InvalidRecordError(entity_type, "updated_at precedes created_at")


@dataclass(frozen=True)
class FinancialRequest:
    """A user-submitted deposit or withdrawal awaiting review."""

    id: UUID
    submitter_id: UUID
    kind: RequestKind
    amount: Decimal
    currency: str
    status: RequestStatus
    created_at: datetime
    updated_at: datetime
    admin_note: str | None = None
    folder_id: UUID | None = None

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise InvalidRecordError("FinancialRequest", "amount must be positive")
        if len(self.currency) != 3 or not self.currency.isalpha():
            raise InvalidRecordError(
                "FinancialRequest", f"invalid currency code {self.currency!r}"
            )
        _check_timestamps("FinancialRequest", self.created_at, self.updated_at)


@dataclass(frozen=True)
class CompanyRegistrationRequest:
    """An overseas-company registration request with candidate names."""

    id: UUID
    submitter_id: UUID
    candidate_names: tuple[str, ...]
    jurisdiction: str
    business_type: str
    contact_email: str
    status: RegistrationStatus
    created_at: datetime
    updated_at: datetime
    selected_name: str | None = None
    admin_note: str | None = None
    folder_id: UUID | None = None

    def __post_init__(self) -> None:
        if not self.candidate_names:
            raise InvalidRecordError(
                "CompanyRegistrationRequest", "at least one candidate name is required"
            )
        if any(not name.strip() for name in self.candidate_names):
            raise InvalidRecordError(
                "CompanyRegistrationRequest", "candidate names must be non-empty"
            )
        needs_name = self.status in SELECTED_NAME_STATUSES
        if needs_name and self.selected_name is None:
            raise InvalidRecordError(
                "CompanyRegistrationRequest",
                f"status {self.status.value} requires a selected name",
            )
        if not needs_name and self.selected_name is not None:
            raise InvalidRecordError(
                "CompanyRegistrationRequest",
                f"status {self.status.value} must not carry a selected name",
            )
        if self.selected_name is not None and self.selected_name not in self.candidate_names:
            raise InvalidRecordError(
                "CompanyRegistrationRequest",
                f"selected name {self.selected_name!r} is not a candidate",
            )
        _check_timestamps("CompanyRegistrationRequest", self.created_at, self.updated_at)


@dataclass(frozen=True)
class RegisteredCompany:
    """Immutable registration facts for a company incorporated via a request."""

    id: UUID
    owner_id: UUID
    company_name: str
    registration_number: str
    incorporation_date: date
    jurisdiction: str
    status: CompanyStatus
    contact_email: str
    source_request_id: UUID
    created_at: datetime
    contact_phone: str | None = None


@dataclass(frozen=True)
class VerificationRequest:
    """An identity-verification submission awaiting review."""

    id: UUID
    submitter_id: UUID
    document_type: str
    status: VerificationStatus
    created_at: datetime
    updated_at: datetime
    admin_note: str | None = None
    reviewed_by: UUID | None = None
    reviewed_at: datetime | None = None
    folder_id: UUID | None = None

    def __post_init__(self) -> None:
        _check_timestamps("VerificationRequest", self.created_at, self.updated_at)


@dataclass(frozen=True)
class AuditEntry:
    """One administrative action. Append-only."""

    id: UUID
    actor_id: UUID
    subject_id: UUID
    action: str
    created_at: datetime
    related_request_id: UUID | None = None
    workflow: str | None = None
    note: str | None = None


@dataclass(frozen=True)
class FolderNode:
    """A triage folder; ``parent_id`` links form a tree."""

    id: UUID
    name: str
    parent_id: UUID | None = None
