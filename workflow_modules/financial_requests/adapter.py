"""
Financial request adapter (``workflow_modules.financial_requests.adapter``).

Approve and reject carry no payload beyond the optional admin note.  The
submitter is notified at their profile email with the request summary.
"""

from __future__ import annotations

from typing import Any

from workflow_kernel.domain.adapter import WorkflowAdapter
from workflow_kernel.domain.ports import ProfileDirectory
from workflow_kernel.domain.records import FinancialRequest
from workflow_kernel.domain.workflow import Transition
from workflow_modules.financial_requests.workflows import FINANCIAL_REQUEST_WORKFLOW


class FinancialRequestAdapter(WorkflowAdapter):
    workflow = FINANCIAL_REQUEST_WORKFLOW
    table = "requests"

    def notify_variables(
        self,
        entity: FinancialRequest,
        transition: Transition,
        profiles: ProfileDirectory,
    ) -> dict[str, Any]:
        return {
            "user_name": profiles.resolve_display_name(entity.submitter_id) or "Customer",
            "request_id": str(entity.id),
            "request_type": entity.kind.value,
            "amount": f"{entity.amount:.2f}",
            "currency": entity.currency,
            "status": entity.status.value,
            "admin_notes": entity.admin_note or "",
        }
