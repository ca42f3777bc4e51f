"""
Company Registration Workflow (``workflow_modules.company_registration.workflows``).

Responsibility
--------------
Declares the state machine for overseas-company registration requests.
An administrator picks one of the submitter's candidate names, then
approves the request with the registration facts (creating the
RegisteredCompany record) or rejects it at either step.

Architecture position
---------------------
**Modules layer** -- declarative workflow definition.  Imports canonical
Transition and Workflow from ``workflow_kernel.domain.workflow``.

Invariants enforced
-------------------
* ``processing`` is a declared status with no admin transitions in or out.
* ``completed`` is reached only through ``approve``, the one transition
  with a record-creating side effect (see adapter.py).

Audit relevance
---------------
Workflow definition logged at module-load time with state and transition
counts for configuration audit.
"""

from workflow_kernel.domain.records import RegistrationStatus
from workflow_kernel.domain.workflow import Transition, Workflow
from workflow_kernel.logging_config import get_logger

logger = get_logger("modules.company_registration.workflows")

COMPANY_REGISTRATION_WORKFLOW = Workflow(
    name="company_registration",
    description="Overseas company registration review",
    initial_state=RegistrationStatus.PENDING.value,
    states=tuple(s.value for s in RegistrationStatus),
    transitions=(
        Transition(
            from_state="pending",
            to_state="name_selected",
            action="select_name",
            audit_action="name_selected",
        ),
        Transition(
            from_state="pending",
            to_state="rejected",
            action="reject",
            audit_action="rejected",
        ),
        Transition(
            from_state="name_selected",
            to_state="completed",
            action="approve",
            audit_action="approved",
        ),
        Transition(
            from_state="name_selected",
            to_state="rejected",
            action="reject",
            audit_action="rejected",
        ),
    ),
    terminal_states=("completed", "rejected"),
)

logger.info(
    "company_registration_workflow_defined",
    extra={
        "workflow": COMPANY_REGISTRATION_WORKFLOW.name,
        "state_count": len(COMPANY_REGISTRATION_WORKFLOW.states),
        "transition_count": len(COMPANY_REGISTRATION_WORKFLOW.transitions),
    },
)
