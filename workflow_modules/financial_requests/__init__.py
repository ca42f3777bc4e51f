"""Deposit and withdrawal requests."""

from workflow_modules.financial_requests.adapter import FinancialRequestAdapter
from workflow_modules.financial_requests.workflows import FINANCIAL_REQUEST_WORKFLOW

__all__ = ["FINANCIAL_REQUEST_WORKFLOW", "FinancialRequestAdapter"]
