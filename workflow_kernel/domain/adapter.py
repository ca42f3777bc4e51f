"""
Workflow adapter contract (``workflow_kernel.domain.adapter``).

Responsibility
--------------
Everything the engine needs to know about one reviewable request type:
its Workflow definition, the table it lives in, how to validate an
action's payload, which columns a transition patches, which side-effect
records it creates, and who is notified with which variables.

New request types are supported by subclassing ``WorkflowAdapter`` and
registering an instance with the engine; the engine itself is not edited.

Architecture position
---------------------
**Kernel domain layer** -- adapters are pure: they read DTOs and return
plain mappings or store operations.  ZERO I/O except the profile lookups
passed in explicitly for notification.
"""

from __future__ import annotations

from abc import ABC
from datetime import datetime
from typing import Any, Mapping, Sequence
from uuid import UUID

from workflow_kernel.domain.ports import Insert, ProfileDirectory
from workflow_kernel.domain.workflow import Transition, Workflow


class WorkflowAdapter(ABC):
    """
    Base adapter.  Subclasses set ``workflow`` and ``table`` and override
    the hooks their transitions need.

    Hook defaults:
        - payload: accepted unchanged
        - patch: no columns beyond status/updated_at/admin_note
        - side effects: none
        - recipient: the submitter's profile email
    """

    workflow: Workflow
    table: str

    @property
    def name(self) -> str:
        return self.workflow.name

    def status_of(self, entity: Any) -> str:
        status = entity.status
        return getattr(status, "value", status)

    def subject_id(self, entity: Any) -> UUID:
        return entity.submitter_id

    def validate_payload(
        self,
        entity: Any,
        transition: Transition,
        payload: Mapping[str, Any],
    ) -> Mapping[str, Any]:
        """Return the normalized payload or raise IncompletePayloadError."""
        return dict(payload)

    def build_patch(
        self,
        entity: Any,
        transition: Transition,
        payload: Mapping[str, Any],
        actor_id: UUID,
        now: datetime,
    ) -> dict[str, Any]:
        return {}

    def side_effects(
        self,
        entity: Any,
        transition: Transition,
        payload: Mapping[str, Any],
        actor_id: UUID,
        now: datetime,
    ) -> Sequence[Insert]:
        return ()

    def recipient(self, entity: Any, profiles: ProfileDirectory) -> str | None:
        return profiles.resolve_email(self.subject_id(entity))

    def notify_variables(
        self,
        entity: Any,
        transition: Transition,
        profiles: ProfileDirectory,
    ) -> dict[str, Any]:
        return {"status": self.status_of(entity)}
