"""
Identity Verification Workflow (``workflow_modules.verification.workflows``).

Responsibility
--------------
Declares the state machine for identity-verification submissions.  An
administrator approves, rejects, or asks the submitter for more
information; a submission awaiting more information can still be approved
or rejected once the documents arrive.

Architecture position
---------------------
**Modules layer** -- declarative workflow definition.

Audit relevance
---------------
``request_more_info`` is recorded as ``requested_more_info``, a
medium-severity action in the audit trail.
"""

from workflow_kernel.domain.records import VerificationStatus
from workflow_kernel.domain.workflow import Transition, Workflow
from workflow_kernel.logging_config import get_logger

logger = get_logger("modules.verification.workflows")

VERIFICATION_WORKFLOW = Workflow(
    name="verification",
    description="Identity verification review",
    initial_state=VerificationStatus.PENDING.value,
    states=tuple(s.value for s in VerificationStatus),
    transitions=(
        Transition("pending", "approved", "approve", "approved"),
        Transition("pending", "rejected", "reject", "rejected"),
        Transition(
            "pending", "requested_more_info", "request_more_info", "requested_more_info",
        ),
        Transition("requested_more_info", "approved", "approve", "approved"),
        Transition("requested_more_info", "rejected", "reject", "rejected"),
    ),
    terminal_states=("approved", "rejected"),
)

logger.info(
    "verification_workflow_defined",
    extra={
        "workflow": VERIFICATION_WORKFLOW.name,
        "state_count": len(VERIFICATION_WORKFLOW.states),
        "transition_count": len(VERIFICATION_WORKFLOW.transitions),
    },
)
