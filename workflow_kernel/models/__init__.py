"""
ORM models for the workflow kernel.

``TABLES`` maps the table names used by the record store and the workflow
adapters to their model classes.
"""

from workflow_kernel.models.audit_entry import AuditEntryModel
from workflow_kernel.models.company import (
    CompanyRegistrationRequestModel,
    RegisteredCompanyModel,
)
from workflow_kernel.models.folder import FolderModel
from workflow_kernel.models.request import FinancialRequestModel
from workflow_kernel.models.verification import VerificationRequestModel

TABLES = {
    model.__tablename__: model
    for model in (
        FolderModel,
        FinancialRequestModel,
        CompanyRegistrationRequestModel,
        RegisteredCompanyModel,
        VerificationRequestModel,
        AuditEntryModel,
    )
}

__all__ = [
    "TABLES",
    "AuditEntryModel",
    "CompanyRegistrationRequestModel",
    "FinancialRequestModel",
    "FolderModel",
    "RegisteredCompanyModel",
    "VerificationRequestModel",
]
