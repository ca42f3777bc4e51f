"""
Financial Request Workflow (``workflow_modules.financial_requests.workflows``).

Responsibility
--------------
Declares the state machine for user-submitted deposit and withdrawal
requests.  An administrator either approves a pending request (it moves to
processing and the submitter is told it is being processed) or rejects it.
Completion happens outside the admin review and has no admin transition.

Architecture position
---------------------
**Modules layer** -- declarative workflow definition.  Imports canonical
Transition and Workflow from ``workflow_kernel.domain.workflow``.

Audit relevance
---------------
Workflow definition logged at module-load time with state and transition
counts for configuration audit.
"""

from workflow_kernel.domain.records import RequestStatus
from workflow_kernel.domain.workflow import Transition, Workflow
from workflow_kernel.logging_config import get_logger

logger = get_logger("modules.financial_requests.workflows")

TEMPLATE_PROCESSING = "processing"
TEMPLATE_REJECTED = "rejected"

FINANCIAL_REQUEST_WORKFLOW = Workflow(
    name="financial_request",
    description="Deposit/withdrawal review",
    initial_state=RequestStatus.PENDING.value,
    states=tuple(s.value for s in RequestStatus),
    transitions=(
        Transition(
            from_state="pending",
            to_state="processing",
            action="approve",
            audit_action="approved",
            notify_template=TEMPLATE_PROCESSING,
        ),
        Transition(
            from_state="pending",
            to_state="rejected",
            action="reject",
            audit_action="rejected",
            notify_template=TEMPLATE_REJECTED,
        ),
    ),
    terminal_states=("completed", "rejected"),
)

logger.info(
    "financial_request_workflow_defined",
    extra={
        "workflow": FINANCIAL_REQUEST_WORKFLOW.name,
        "state_count": len(FINANCIAL_REQUEST_WORKFLOW.states),
        "transition_count": len(FINANCIAL_REQUEST_WORKFLOW.transitions),
    },
)
