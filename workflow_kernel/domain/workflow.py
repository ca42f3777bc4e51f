"""
Canonical workflow types (``workflow_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for approval state machines.  Every workflow module
(financial requests, company registration, verification) declares its
transition table with these types so that Transition and Workflow are
defined once.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``initial_state`` is a member of ``states``.
* ``(from_state, action)`` pairs are unique -- the table is a function.
* Terminal states have no outgoing transitions.
* No transition re-enters ``initial_state``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Transition:
    """A legal state change: ``from_state --action--> to_state``.

    ``audit_action`` is the verb written to the audit trail (``approved``,
    ``rejected``, ``name_selected`` ...).  ``notify_template`` names the
    notification template sent after commit; None means no notification.
    """

    from_state: str
    to_state: str
    action: str
    audit_action: str
    notify_template: str | None = None


@dataclass(frozen=True)
class Workflow:
    """A state machine definition for a reviewable request type."""

    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.initial_state not in self.states:
            raise ValueError(
                f"Workflow {self.name}: initial state '{self.initial_state}' "
                "is not a declared state"
            )
        seen: set[tuple[str, str]] = set()
        for t in self.transitions:
            for state in (t.from_state, t.to_state):
                if state not in self.states:
                    raise ValueError(
                        f"Workflow {self.name}: transition '{t.action}' "
                        f"references unknown state '{state}'"
                    )
            if t.to_state == self.initial_state:
                raise ValueError(
                    f"Workflow {self.name}: transition '{t.action}' "
                    f"re-enters initial state '{self.initial_state}'"
                )
            if t.from_state in self.terminal_states:
                raise ValueError(
                    f"Workflow {self.name}: terminal state '{t.from_state}' "
                    f"has outgoing transition '{t.action}'"
                )
            key = (t.from_state, t.action)
            if key in seen:
                raise ValueError(
                    f"Workflow {self.name}: duplicate transition {key}"
                )
            seen.add(key)

    def find_transition(self, from_state: str, action: str) -> Transition | None:
        """Return the transition for ``(from_state, action)`` or None."""
        for t in self.transitions:
            if t.from_state == from_state and t.action == action:
                return t
        return None

    def actions_from(self, state: str) -> tuple[str, ...]:
        """Actions available from ``state``, in declaration order."""
        return tuple(t.action for t in self.transitions if t.from_state == state)

    def is_terminal(self, state: str) -> bool:
        return not self.actions_from(state)
