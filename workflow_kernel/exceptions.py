"""
Typed exception hierarchy for the workflow kernel.

Every error is a typed class with a machine-readable ``code`` class
attribute and structured attributes, so callers catch by type and never
parse message strings.  Errors that can reach an end user also carry a
``user_message``: a short, actionable sentence that never includes
storage-driver internals.

    WorkflowKernelError (base)
    |
    +-- WorkflowError
    |   +-- UnauthorizedActorError      UNAUTHORIZED
    |   +-- EntityNotFoundError         NOT_FOUND
    |   +-- UnknownWorkflowError        UNKNOWN_WORKFLOW
    |   +-- InvalidTransitionError      INVALID_TRANSITION
    |   +-- IncompletePayloadError      INCOMPLETE_PAYLOAD
    |   +-- PersistenceFailureError     PERSISTENCE_FAILURE
    |
    +-- NotificationError
    |   +-- NotificationDeliveryError   NOTIFY_FAILURE (soft)
    |
    +-- StoreError
    |   +-- StaleStateError             STALE_STATE
    |   +-- UnknownTableError           UNKNOWN_TABLE
    |   +-- UnknownColumnError          UNKNOWN_COLUMN
    |
    +-- ImmutabilityViolationError      IMMUTABILITY_VIOLATION
    |
    +-- InvalidRecordError              INVALID_RECORD
    |
    +-- FolderError
        +-- FolderNotFoundError         FOLDER_NOT_FOUND
        +-- FolderCycleError            FOLDER_CYCLE
        +-- FolderConflictError         FOLDER_CONFLICT

Hard workflow errors abort ``WorkflowEngine.transition`` before anything is
persisted.  ``NotificationDeliveryError`` is soft: it is raised by notifier
implementations, caught by the dispatcher and reported on the transition
outcome, never propagated to the caller.
"""

from __future__ import annotations


class WorkflowKernelError(Exception):
    """Base exception for all workflow kernel errors."""

    code: str = "WORKFLOW_KERNEL_ERROR"
    user_message: str = "Something went wrong. Please try again."


# Workflow errors


class WorkflowError(WorkflowKernelError):
    """Base exception for errors raised by a workflow transition."""

    code: str = "WORKFLOW_ERROR"


class UnauthorizedActorError(WorkflowError):
    """Actor does not hold the admin capability."""

    code: str = "UNAUTHORIZED"
    user_message = "You do not have permission to review this request."

    def __init__(self, actor_id: str):
        self.actor_id = actor_id
        super().__init__(f"Actor {actor_id} is not an administrator")


class EntityNotFoundError(WorkflowError):
    """Workflow entity with given ID was not found."""

    code: str = "NOT_FOUND"
    user_message = "This request no longer exists. Refresh the list and try again."

    def __init__(self, workflow: str, entity_id: str):
        self.workflow = workflow
        self.entity_id = entity_id
        super().__init__(f"{workflow} entity not found: {entity_id}")


class UnknownWorkflowError(WorkflowError):
    """No adapter is registered under the requested workflow name."""

    code: str = "UNKNOWN_WORKFLOW"

    def __init__(self, workflow: str):
        self.workflow = workflow
        super().__init__(f"No workflow registered under '{workflow}'")


class InvalidTransitionError(WorkflowError):
    """(current status, action) is not in the workflow's transition table.

    ``concurrent`` is True when the transition was legal against the status
    that was read, but another transaction moved the entity before this one
    could persist.
    """

    code: str = "INVALID_TRANSITION"

    def __init__(
        self,
        workflow: str,
        entity_id: str,
        current_status: str,
        action: str,
        concurrent: bool = False,
    ):
        self.workflow = workflow
        self.entity_id = entity_id
        self.current_status = current_status
        self.action = action
        self.concurrent = concurrent
        if concurrent:
            message = (
                f"{workflow} {entity_id}: '{action}' lost a race; "
                f"status moved away from '{current_status}'"
            )
        else:
            message = (
                f"{workflow} {entity_id}: no transition from "
                f"'{current_status}' via '{action}'"
            )
        super().__init__(message)

    @property
    def user_message(self) -> str:  # type: ignore[override]
        if self.concurrent:
            return "This request has already been processed by another administrator."
        return (
            f"This request is {self.current_status.replace('_', ' ')}; "
            f"'{self.action.replace('_', ' ')}' is not available. "
            "Refresh to see its current state."
        )


class IncompletePayloadError(WorkflowError):
    """Action-specific payload is missing or has invalid fields."""

    code: str = "INCOMPLETE_PAYLOAD"

    def __init__(self, workflow: str, action: str, fields: list[str], reason: str = ""):
        self.workflow = workflow
        self.action = action
        self.fields = fields
        self.reason = reason
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"{workflow} '{action}' payload incomplete "
            f"({', '.join(fields)}){detail}"
        )

    @property
    def user_message(self) -> str:  # type: ignore[override]
        readable = ", ".join(f.replace("_", " ") for f in self.fields)
        return f"Please provide a valid {readable}."


class PersistenceFailureError(WorkflowError):
    """The atomic unit failed and was rolled back in full."""

    code: str = "PERSISTENCE_FAILURE"
    user_message = "The change could not be saved and nothing was recorded. Please try again."

    def __init__(self, workflow: str, entity_id: str, reason: str):
        self.workflow = workflow
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(f"{workflow} {entity_id}: persistence failed: {reason}")


# Notification errors


class NotificationError(WorkflowKernelError):
    """Base exception for notification delivery errors."""

    code: str = "NOTIFICATION_ERROR"


class NotificationDeliveryError(NotificationError):
    """Notifier could not deliver a message.  Soft failure."""

    code: str = "NOTIFY_FAILURE"
    user_message = (
        "The change was saved, but the email failed to send. "
        "Check the recipient address and retry the notification separately."
    )

    def __init__(self, template_key: str, reason: str):
        self.template_key = template_key
        self.reason = reason
        super().__init__(f"Notification '{template_key}' failed: {reason}")


# Store errors


class StoreError(WorkflowKernelError):
    """Base exception for record store errors."""

    code: str = "STORE_ERROR"


class StaleStateError(StoreError):
    """Compare-and-set update matched no row."""

    code: str = "STALE_STATE"

    def __init__(self, table: str, record_id: str, expected: dict):
        self.table = table
        self.record_id = record_id
        self.expected = expected
        super().__init__(
            f"{table} {record_id} no longer matches {expected}"
        )


class UnknownTableError(StoreError):
    """Table name is not registered with the record store."""

    code: str = "UNKNOWN_TABLE"

    def __init__(self, table: str):
        self.table = table
        super().__init__(f"Unknown table: {table}")


class UnknownColumnError(StoreError):
    """Column name does not exist on the table."""

    code: str = "UNKNOWN_COLUMN"

    def __init__(self, table: str, column: str):
        self.table = table
        self.column = column
        super().__init__(f"Unknown column: {table}.{column}")


# Immutability


class ImmutabilityViolationError(WorkflowKernelError):
    """Attempted to modify or delete an append-only or retained record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


# Record invariants


class InvalidRecordError(WorkflowKernelError):
    """A record violates a data-model invariant."""

    code: str = "INVALID_RECORD"

    def __init__(self, entity_type: str, reason: str):
        self.entity_type = entity_type
        self.reason = reason
        super().__init__(f"Invalid {entity_type}: {reason}")


# Folder errors


class FolderError(WorkflowKernelError):
    """Base exception for folder hierarchy errors."""

    code: str = "FOLDER_ERROR"


class FolderNotFoundError(FolderError):
    """Folder with given ID was not found."""

    code: str = "FOLDER_NOT_FOUND"
    user_message = "This folder no longer exists."

    def __init__(self, folder_id: str):
        self.folder_id = folder_id
        super().__init__(f"Folder not found: {folder_id}")


class FolderCycleError(FolderError):
    """Re-parenting would make a folder its own ancestor."""

    code: str = "FOLDER_CYCLE"
    user_message = "A folder cannot be moved inside itself or one of its subfolders."

    def __init__(self, folder_id: str, parent_id: str):
        self.folder_id = folder_id
        self.parent_id = parent_id
        super().__init__(
            f"Moving folder {folder_id} under {parent_id} would create a cycle"
        )


class FolderConflictError(FolderError):
    """The hierarchy kept changing underneath a move; nothing was written."""

    code: str = "FOLDER_CONFLICT"
    user_message = "The folder tree changed while you were editing it. Refresh and try again."

    def __init__(self, folder_id: str, attempts: int):
        self.folder_id = folder_id
        self.attempts = attempts
        super().__init__(
            f"Folder {folder_id}: move abandoned after {attempts} concurrent updates"
        )


def describe_error(exc: BaseException) -> str:
    """Return the user-facing message for an error raised by the kernel."""
    if isinstance(exc, WorkflowKernelError):
        return exc.user_message
    return WorkflowKernelError.user_message
