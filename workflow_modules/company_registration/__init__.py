"""Overseas company registration requests."""

from workflow_modules.company_registration.adapter import CompanyRegistrationAdapter
from workflow_modules.company_registration.workflows import COMPANY_REGISTRATION_WORKFLOW

__all__ = ["COMPANY_REGISTRATION_WORKFLOW", "CompanyRegistrationAdapter"]
