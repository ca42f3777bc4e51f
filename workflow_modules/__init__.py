"""
Workflow modules: one adapter per reviewable request type.

``default_adapters()`` returns a fresh instance of every built-in adapter,
in the order they are registered by ``workflow_config.bootstrap``.
"""

from workflow_modules.company_registration import CompanyRegistrationAdapter
from workflow_modules.financial_requests import FinancialRequestAdapter
from workflow_modules.verification import VerificationAdapter


def default_adapters():
    return (
        FinancialRequestAdapter(),
        CompanyRegistrationAdapter(),
        VerificationAdapter(),
    )


__all__ = [
    "CompanyRegistrationAdapter",
    "FinancialRequestAdapter",
    "VerificationAdapter",
    "default_adapters",
]
