"""Verification adapter: every review stamps the reviewer and review time."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Mapping
from uuid import UUID

from workflow_kernel.domain.adapter import WorkflowAdapter
from workflow_kernel.domain.records import VerificationRequest
from workflow_kernel.domain.workflow import Transition
from workflow_modules.verification.workflows import VERIFICATION_WORKFLOW


class VerificationAdapter(WorkflowAdapter):
    workflow = VERIFICATION_WORKFLOW
    table = "verification_requests"

    def build_patch(
        self,
        entity: VerificationRequest,
        transition: Transition,
        payload: Mapping[str, Any],
        actor_id: UUID,
        now: datetime,
    ) -> dict[str, Any]:
        return {"reviewed_by": actor_id, "reviewed_at": now}
