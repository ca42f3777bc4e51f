"""
workflow_kernel.services.workflow_engine -- Administrative transition execution.

Responsibility:
    Validates and executes one administrative action against one reviewable
    entity: authorization, existence, transition legality, payload
    completeness, then a single atomic unit (compare-and-set status update +
    audit entry + adapter side effects), then best-effort notification.

Architecture position:
    Kernel > Services.  Thin coordinator: transition tables and payload rules
    live in WorkflowAdapter subclasses (workflow_modules/); persistence goes
    through the RecordStore port; delivery through NotificationDispatcher.

Invariants enforced:
    - Validation order: authorization, existence, legality, payload.  The
      first failure aborts with nothing persisted.
    - Exactly one audit entry per committed transition, in the same atomic
      unit as the status change.  Rejected or rolled-back attempts write none.
    - Per-entity serialization: the status update only applies while the
      entity still holds the status that was validated.  The loser of a
      race gets InvalidTransitionError(concurrent=True).
    - ``updated_at`` and the audit entry timestamp are never earlier than
      the entity's ``created_at``.
    - A notification failure never undoes a committed transition.

Failure modes:
    - UnauthorizedActorError, UnknownWorkflowError, EntityNotFoundError,
      InvalidTransitionError, IncompletePayloadError,
      PersistenceFailureError (storage error text is kept in ``reason`` and
      the chained cause, never in ``user_message``).

Audit relevance:
    Every committed transition logs ``workflow_transition_committed`` with
    from/to state and the audit entry id; every rejected attempt logs
    ``workflow_transition_rejected`` with the error code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError

from workflow_kernel.domain.adapter import WorkflowAdapter
from workflow_kernel.domain.clock import Clock, SystemClock
from workflow_kernel.domain.ports import (
    AuthProvider,
    Insert,
    ProfileDirectory,
    RecordStore,
    Update,
)
from workflow_kernel.domain.workflow import Transition, Workflow
from workflow_kernel.exceptions import (
    EntityNotFoundError,
    InvalidTransitionError,
    PersistenceFailureError,
    StaleStateError,
    UnauthorizedActorError,
    UnknownWorkflowError,
    WorkflowError,
)
from workflow_kernel.logging_config import LogContext, get_logger
from workflow_kernel.services.notification_dispatcher import (
    NotificationDispatcher,
    NotificationResult,
    NotificationStatus,
)

logger = get_logger("services.workflow_engine")

AUDIT_TABLE = "audit_entries"


@dataclass(frozen=True)
class TransitionOutcome:
    """Result of a committed transition.

    ``entity`` is the record as re-read after commit.  ``created_records``
    holds the ids of side-effect records (e.g. the RegisteredCompany).
    """

    workflow: str
    entity: Any
    from_state: str
    to_state: str
    action: str
    audit_entry_id: UUID
    created_records: tuple[UUID, ...] = ()
    notification: NotificationResult | None = None

    @property
    def transitioned(self) -> bool:
        return True

    @property
    def notified(self) -> bool:
        return self.notification is not None and self.notification.delivered

    @property
    def notify_error(self) -> str | None:
        if self.notification is None:
            return None
        return self.notification.error


class WorkflowEngine:
    """Executes administrative transitions for registered workflow adapters."""

    def __init__(
        self,
        store: RecordStore,
        auth: AuthProvider,
        dispatcher: NotificationDispatcher,
        profiles: ProfileDirectory,
        clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._auth = auth
        self._dispatcher = dispatcher
        self._profiles = profiles
        self._clock = clock or SystemClock()
        self._adapters: dict[str, WorkflowAdapter] = {}

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register(self, adapter: WorkflowAdapter) -> None:
        if adapter.name in self._adapters:
            raise ValueError(f"Workflow '{adapter.name}' is already registered")
        self._adapters[adapter.name] = adapter
        logger.info(
            "workflow_registered",
            extra={
                "workflow": adapter.name,
                "table": adapter.table,
                "transition_count": len(adapter.workflow.transitions),
            },
        )

    def workflows(self) -> tuple[Workflow, ...]:
        return tuple(a.workflow for a in self._adapters.values())

    def adapter(self, workflow: str) -> WorkflowAdapter:
        try:
            return self._adapters[workflow]
        except KeyError:
            raise UnknownWorkflowError(workflow) from None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def load(self, workflow: str, entity_id: UUID) -> Any:
        """Return the entity DTO.  Raises EntityNotFoundError."""
        adapter = self.adapter(workflow)
        try:
            entity = self._store.get(adapter.table, entity_id)
        except SQLAlchemyError as exc:
            raise PersistenceFailureError(
                workflow, str(entity_id), type(exc).__name__,
            ) from exc
        if entity is None:
            raise EntityNotFoundError(workflow, str(entity_id))
        return entity

    def available_actions(self, workflow: str, entity_id: UUID) -> tuple[str, ...]:
        """Actions an administrator may take on the entity in its current state."""
        adapter = self.adapter(workflow)
        entity = self.load(workflow, entity_id)
        return adapter.workflow.actions_from(adapter.status_of(entity))

    # ------------------------------------------------------------------
    # Transition
    # ------------------------------------------------------------------

    def transition(
        self,
        workflow: str,
        entity_id: UUID,
        actor_id: UUID,
        action: str,
        payload: Mapping[str, Any] | None = None,
        note: str | None = None,
    ) -> TransitionOutcome:
        """
        Apply ``action`` to the entity on behalf of ``actor_id``.

        Preconditions: none; every precondition is validated and reported
            as a typed WorkflowError.
        Postconditions: on return the status change, its audit entry and
            any side-effect records are committed together.
        """
        with LogContext.bind(
            actor_id=str(actor_id),
            workflow=workflow,
            entity_id=str(entity_id),
        ):
            try:
                return self._transition(workflow, entity_id, actor_id, action, payload, note)
            except WorkflowError as exc:
                logger.info(
                    "workflow_transition_rejected",
                    extra={"action": action, "error_code": exc.code, "reason": str(exc)},
                )
                raise

    def _transition(
        self,
        workflow: str,
        entity_id: UUID,
        actor_id: UUID,
        action: str,
        payload: Mapping[str, Any] | None,
        note: str | None,
    ) -> TransitionOutcome:
        if not self._auth.is_admin(actor_id):
            raise UnauthorizedActorError(str(actor_id))

        adapter = self.adapter(workflow)
        entity = self.load(workflow, entity_id)

        current = adapter.status_of(entity)
        transition = adapter.workflow.find_transition(current, action)
        if transition is None:
            raise InvalidTransitionError(workflow, str(entity_id), current, action)

        clean = adapter.validate_payload(entity, transition, payload or {})

        # Clamped so neither the entity nor its audit entry predates creation.
        now = max(self._clock.now(), entity.created_at)
        values: dict[str, Any] = dict(
            adapter.build_patch(entity, transition, clean, actor_id, now)
        )
        values["status"] = transition.to_state
        values["updated_at"] = now
        if note:
            values["admin_note"] = note

        audit_id = uuid4()
        operations = [
            Update(adapter.table, entity.id, values, expect={"status": current}),
            Insert(AUDIT_TABLE, {
                "id": audit_id,
                "actor_id": actor_id,
                "subject_id": adapter.subject_id(entity),
                "related_request_id": entity.id,
                "workflow": workflow,
                "action": transition.audit_action,
                "note": note or None,
                "created_at": now,
            }),
            *adapter.side_effects(entity, transition, clean, actor_id, now),
        ]

        try:
            result = self._store.transact(operations)
        except StaleStateError as exc:
            raise InvalidTransitionError(
                workflow, str(entity_id), current, action, concurrent=True,
            ) from exc
        except SQLAlchemyError as exc:
            logger.error(
                "workflow_transition_persistence_failed",
                extra={"action": action},
                exc_info=True,
            )
            raise PersistenceFailureError(
                workflow, str(entity_id), type(exc).__name__,
            ) from exc

        created = tuple(i for i in result.inserted_ids if i != audit_id)
        refreshed = self._store.get(adapter.table, entity.id) or entity

        logger.info(
            "workflow_transition_committed",
            extra={
                "action": action,
                "from_state": current,
                "to_state": transition.to_state,
                "audit_entry_id": str(audit_id),
                "created_records": [str(i) for i in created],
            },
        )

        notification = None
        if transition.notify_template:
            notification = self._notify(adapter, refreshed, transition)

        return TransitionOutcome(
            workflow=workflow,
            entity=refreshed,
            from_state=current,
            to_state=transition.to_state,
            action=action,
            audit_entry_id=audit_id,
            created_records=created,
            notification=notification,
        )

    def _notify(
        self,
        adapter: WorkflowAdapter,
        entity: Any,
        transition: Transition,
    ) -> NotificationResult:
        template = transition.notify_template
        try:
            to_address = adapter.recipient(entity, self._profiles)
            variables = adapter.notify_variables(entity, transition, self._profiles)
        except Exception as exc:
            logger.warning(
                "notification_recipient_lookup_failed",
                extra={"template_key": template},
                exc_info=True,
            )
            return NotificationResult(
                template, None, NotificationStatus.FAILED,
                f"recipient lookup failed: {type(exc).__name__}",
            )
        return self._dispatcher.dispatch(template, to_address, variables)
