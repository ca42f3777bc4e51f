"""
Collaborator ports (``workflow_kernel.domain.ports``).

Responsibility
--------------
Structural interfaces for everything the kernel consumes but does not own:
the record store, the admin-role check, outbound notification delivery and
profile lookup.  Also the store operation and change-event value types so
that the engine can describe an atomic unit without touching SQLAlchemy.

Architecture position
---------------------
**Kernel domain layer** -- protocols and frozen value objects.  ZERO I/O.
Concrete implementations live in ``db/store.py`` (record store) and
``services/collaborators.py`` (static/in-process defaults).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Mapping, Protocol, Sequence
from uuid import UUID


# =========================================================================
# Store operations (one atomic unit = a list of these)
# =========================================================================


@dataclass(frozen=True)
class Insert:
    """Insert one row.  ``values`` may omit ``id``; one is generated."""

    table: str
    values: Mapping[str, Any]


@dataclass(frozen=True)
class Update:
    """Update one row by id.

    When ``expect`` is non-empty the update is a compare-and-set: it only
    applies if every ``expect`` column still holds the given value, and the
    whole unit fails with ``StaleStateError`` otherwise.
    """

    table: str
    record_id: UUID
    values: Mapping[str, Any]
    expect: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class UpdateWhere:
    """Bulk update every row whose columns equal ``where``."""

    table: str
    where: Mapping[str, Any]
    values: Mapping[str, Any]


@dataclass(frozen=True)
class Delete:
    """Delete one row by id.  Fails if the row does not exist."""

    table: str
    record_id: UUID


StoreOperation = Insert | Update | UpdateWhere | Delete


@dataclass(frozen=True)
class TransactResult:
    """Outcome of a committed atomic unit."""

    inserted_ids: tuple[UUID, ...] = ()
    rows_affected: int = 0


# =========================================================================
# Change notification
# =========================================================================


class ChangeKind(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


@dataclass(frozen=True)
class ChangeEvent:
    """A committed change.  ``record_id`` is None for bulk updates."""

    table: str
    kind: ChangeKind
    record_id: UUID | None = None


ChangeCallback = Callable[[ChangeEvent], None]


class Subscription(Protocol):
    def unsubscribe(self) -> None: ...


# =========================================================================
# Collaborators
# =========================================================================


class RecordStore(Protocol):
    """Generic persistence collaborator."""

    def create(self, table: str, values: Mapping[str, Any]) -> UUID: ...

    def get(self, table: str, record_id: UUID) -> Any | None: ...

    def update(self, table: str, record_id: UUID, values: Mapping[str, Any]) -> None: ...

    def query(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
        order: Sequence[tuple[str, str]] = (),
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Any]: ...

    def count(self, table: str, filters: Mapping[str, Any] | None = None) -> int: ...

    def count_by(
        self,
        table: str,
        column: str,
        filters: Mapping[str, Any] | None = None,
    ) -> dict[Any, int]: ...

    def transact(self, operations: Sequence[StoreOperation]) -> TransactResult: ...

    def subscribe(
        self,
        table: str,
        event_types: Sequence[ChangeKind],
        callback: ChangeCallback,
    ) -> Subscription: ...


class AuthProvider(Protocol):
    """Role lookup collaborator."""

    def is_admin(self, actor_id: UUID) -> bool: ...


class Notifier(Protocol):
    """Outbound message collaborator.

    Returns True on delivery, False on a refusal; may raise
    ``NotificationDeliveryError``.
    """

    def send(self, template_key: str, to_address: str, variables: Mapping[str, Any]) -> bool: ...


class ProfileDirectory(Protocol):
    """Profile lookup collaborator.  Returns None when not found."""

    def resolve_display_name(self, user_id: UUID) -> str | None: ...

    def resolve_email(self, user_id: UUID) -> str | None: ...
