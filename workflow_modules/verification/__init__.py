"""Identity verification requests."""

from workflow_modules.verification.adapter import VerificationAdapter
from workflow_modules.verification.workflows import VERIFICATION_WORKFLOW

__all__ = ["VERIFICATION_WORKFLOW", "VerificationAdapter"]
