"""
Module: workflow_kernel.db.immutability
Responsibility: ORM-level enforcement of append-only and write-once records.

Architecture position: Kernel > DB.  Imports models (listener targets) and
    exceptions.

    Entity              | Protection
    --------------------|-------------------------------------------------
    AuditEntry          | No UPDATE, no DELETE
    RegisteredCompany   | Registration facts write-once; no DELETE
    Financial/Company/  | No DELETE (rows retained for audit)
    Verification request|

The record store issues Core statements that bypass ORM events, so it
enforces the same rules from the model flags (``append_only`` and
``retain_rows``).  These listeners cover code that mutates through a
Session directly.
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from workflow_kernel.exceptions import ImmutabilityViolationError
from workflow_kernel.models import (
    AuditEntryModel,
    CompanyRegistrationRequestModel,
    FinancialRequestModel,
    RegisteredCompanyModel,
    VerificationRequestModel,
)

REGISTRATION_FACTS = (
    "owner_id",
    "company_name",
    "registration_number",
    "incorporation_date",
    "jurisdiction",
    "source_request_id",
)


def _prevent_audit_update(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="AuditEntry",
        entity_id=str(target.id),
        reason="Audit entries are append-only -- cannot modify",
    )


def _prevent_audit_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type="AuditEntry",
        entity_id=str(target.id),
        reason="Audit entries are append-only -- cannot delete",
    )


def _check_registration_facts(mapper, connection, target):
    for field in REGISTRATION_FACTS:
        if get_history(target, field).has_changes():
            raise ImmutabilityViolationError(
                entity_type="RegisteredCompany",
                entity_id=str(target.id),
                reason=f"Registration fact '{field}' is write-once",
            )


def _prevent_retained_delete(mapper, connection, target):
    raise ImmutabilityViolationError(
        entity_type=type(target).__name__.removesuffix("Model"),
        entity_id=str(target.id),
        reason="Rows are retained for audit -- cannot delete",
    )


_LISTENERS = (
    (AuditEntryModel, "before_update", _prevent_audit_update),
    (AuditEntryModel, "before_delete", _prevent_audit_delete),
    (RegisteredCompanyModel, "before_update", _check_registration_facts),
    (RegisteredCompanyModel, "before_delete", _prevent_retained_delete),
    (FinancialRequestModel, "before_delete", _prevent_retained_delete),
    (CompanyRegistrationRequestModel, "before_delete", _prevent_retained_delete),
    (VerificationRequestModel, "before_delete", _prevent_retained_delete),
)


def register_immutability_listeners() -> None:
    """Install the ORM listeners.  Idempotent."""
    for model, identifier, fn in _LISTENERS:
        if not event.contains(model, identifier, fn):
            event.listen(model, identifier, fn)


def unregister_immutability_listeners() -> None:
    """Remove the ORM listeners.  FOR TESTING ONLY."""
    for model, identifier, fn in _LISTENERS:
        if event.contains(model, identifier, fn):
            event.remove(model, identifier, fn)
