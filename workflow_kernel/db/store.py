"""
Module: workflow_kernel.db.store
Responsibility: SQLAlchemy implementation of the RecordStore port -- generic
    create / get / update / query / group-by count, multi-operation atomic
    units, and change subscriptions.
Architecture position: Kernel > DB.  May import from db/, models/,
    domain/ports.py and exceptions.  Services depend on the RecordStore
    protocol, never on this class directly.

Invariants enforced:
    - An atomic unit (``transact``) runs in ONE transaction: every operation
      applies or none does.
    - Compare-and-set: an ``Update`` with ``expect`` that matches no row
      raises StaleStateError and rolls back the whole unit.
    - ``append_only`` tables accept INSERT only; ``retain_rows`` tables
      refuse DELETE.  Checked before any SQL is issued because Core
      statements bypass ORM listeners.
    - Change callbacks fire only after commit, outside the transaction.

Failure modes:
    - UnknownTableError for a table name not in the registry.
    - UnknownColumnError for a filter/order/group column the table lacks.
    - StaleStateError on a compare-and-set miss or a missing delete target.
    - ImmutabilityViolationError on a forbidden mutation.
    - sqlalchemy.exc.SQLAlchemyError propagates unchanged (callers wrap it).

Audit relevance:
    The workflow engine relies on ``transact`` to write the status change and
    its audit entry together; there is no path that commits one without the
    other.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from typing import Any, Mapping, Sequence
from uuid import UUID, uuid4

from sqlalchemy import Table, delete, func, insert, select, update
from sqlalchemy.orm import Session, sessionmaker

from workflow_kernel.db.base import Base
from workflow_kernel.db.engine import session_scope
from workflow_kernel.domain.ports import (
    ChangeCallback,
    ChangeEvent,
    ChangeKind,
    Delete,
    Insert,
    StoreOperation,
    TransactResult,
    Update,
    UpdateWhere,
)
from workflow_kernel.exceptions import (
    ImmutabilityViolationError,
    StaleStateError,
    UnknownColumnError,
    UnknownTableError,
)
from workflow_kernel.logging_config import get_logger

logger = get_logger("db.store")


class _Subscription:
    """Handle returned by ``subscribe``; ``unsubscribe`` is idempotent."""

    def __init__(self, store: SqlAlchemyRecordStore, table: str, key: int):
        self._store = store
        self._table = table
        self._key = key

    def unsubscribe(self) -> None:
        self._store._remove_subscriber(self._table, self._key)


class SqlAlchemyRecordStore:
    """
    Record store backed by a SQLAlchemy session factory.

    Contract:
        Reads return frozen DTOs (``model.to_dto()``).  Writes take plain
        column/value mappings.  Every write goes through ``transact`` so
        that change events are published uniformly.

    Non-goals:
        - Does not validate domain invariants; DTO construction on read and
          database constraints on write cover them.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        tables: Mapping[str, type[Base]] | None = None,
    ):
        if tables is None:
            from workflow_kernel.models import TABLES

            tables = TABLES
        self._factory = session_factory
        self._tables = dict(tables)
        self._subscribers: dict[str, dict[int, tuple[frozenset[ChangeKind], ChangeCallback]]] = (
            defaultdict(dict)
        )
        self._next_key = 0
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registry helpers
    # ------------------------------------------------------------------

    def _model(self, table: str) -> type[Base]:
        try:
            return self._tables[table]
        except KeyError:
            raise UnknownTableError(table) from None

    def _column(self, table: str, name: str):
        columns = self._model(table).__table__.c
        if name not in columns:
            raise UnknownColumnError(table, name)
        return columns[name]

    def _criteria(self, table: str, filters: Mapping[str, Any] | None) -> list:
        criteria = []
        for name, value in (filters or {}).items():
            column = self._column(table, name)
            if value is None:
                criteria.append(column.is_(None))
            elif isinstance(value, (list, tuple, set, frozenset)):
                criteria.append(column.in_(list(value)))
            else:
                criteria.append(column == value)
        return criteria

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, table: str, record_id: UUID) -> Any | None:
        """Return the DTO for ``record_id`` or None."""
        model = self._model(table)
        with self._factory() as session:
            row = session.get(model, record_id)
            return row.to_dto() if row is not None else None

    def query(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
        order: Sequence[tuple[str, str]] = (),
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Any]:
        """
        Return DTOs matching ``filters``.

        A filter value of None matches NULL; a list/tuple/set matches any of
        its members.  ``order`` is a sequence of ``(column, "asc"|"desc")``.
        """
        model = self._model(table)
        stmt = select(model).where(*self._criteria(table, filters))
        for name, direction in order:
            column = self._column(table, name)
            stmt = stmt.order_by(column.desc() if direction == "desc" else column.asc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._factory() as session:
            return [row.to_dto() for row in session.scalars(stmt)]

    def count(self, table: str, filters: Mapping[str, Any] | None = None) -> int:
        """Return the number of rows matching ``filters``."""
        model = self._model(table)
        stmt = select(func.count()).select_from(model).where(*self._criteria(table, filters))
        with self._factory() as session:
            return session.scalar(stmt) or 0

    def count_by(
        self,
        table: str,
        column: str,
        filters: Mapping[str, Any] | None = None,
    ) -> dict[Any, int]:
        """Return ``{value: row count}`` grouped by ``column``."""
        group_col = self._column(table, column)
        stmt = (
            select(group_col, func.count())
            .where(*self._criteria(table, filters))
            .group_by(group_col)
        )
        with self._factory() as session:
            return {value: count for value, count in session.execute(stmt)}

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def create(self, table: str, values: Mapping[str, Any]) -> UUID:
        """Insert one row and return its id."""
        result = self.transact([Insert(table, values)])
        return result.inserted_ids[0]

    def update(self, table: str, record_id: UUID, values: Mapping[str, Any]) -> None:
        """Unconditional update by id.  Raises StaleStateError if absent."""
        self.transact([Update(table, record_id, values)])

    def _guard(self, op: StoreOperation) -> None:
        model = self._model(op.table)
        if isinstance(op, Insert):
            return
        entity_type = model.__name__.removesuffix("Model")
        record_id = str(getattr(op, "record_id", "*"))
        if model.append_only:
            raise ImmutabilityViolationError(
                entity_type=entity_type,
                entity_id=record_id,
                reason=f"{op.table} is append-only -- cannot modify or delete",
            )
        if isinstance(op, Delete) and model.retain_rows:
            raise ImmutabilityViolationError(
                entity_type=entity_type,
                entity_id=record_id,
                reason=f"{op.table} rows are retained for audit -- cannot delete",
            )

    def _apply(self, session: Session, op: StoreOperation, table: Table) -> tuple[int, ChangeEvent, UUID | None]:
        if isinstance(op, Insert):
            values = dict(op.values)
            record_id = values.setdefault("id", uuid4())
            session.execute(insert(table).values(**values))
            return 1, ChangeEvent(op.table, ChangeKind.INSERT, record_id), record_id

        if isinstance(op, Update):
            stmt = update(table).where(table.c.id == op.record_id)
            for name, value in op.expect.items():
                stmt = stmt.where(self._column(op.table, name) == value)
            result = session.execute(stmt.values(**op.values))
            if result.rowcount == 0:
                raise StaleStateError(op.table, str(op.record_id), dict(op.expect))
            return result.rowcount, ChangeEvent(op.table, ChangeKind.UPDATE, op.record_id), None

        if isinstance(op, UpdateWhere):
            stmt = update(table).where(*self._criteria(op.table, op.where))
            result = session.execute(stmt.values(**op.values))
            return result.rowcount, ChangeEvent(op.table, ChangeKind.UPDATE), None

        if isinstance(op, Delete):
            result = session.execute(delete(table).where(table.c.id == op.record_id))
            if result.rowcount == 0:
                raise StaleStateError(op.table, str(op.record_id), {"id": str(op.record_id)})
            return result.rowcount, ChangeEvent(op.table, ChangeKind.DELETE, op.record_id), None

        raise TypeError(f"Unsupported store operation: {op!r}")

    def transact(self, operations: Sequence[StoreOperation]) -> TransactResult:
        """
        Apply ``operations`` in order as one atomic unit.

        Postconditions:
            On success every operation is committed and change events are
            published.  On any exception nothing is committed, nothing is
            published, and the exception propagates.
        """
        for op in operations:
            self._guard(op)

        inserted: list[UUID] = []
        changes: list[ChangeEvent] = []
        rows = 0
        with session_scope(self._factory) as session:
            for op in operations:
                table = self._model(op.table).__table__
                affected, change, new_id = self._apply(session, op, table)
                rows += affected
                changes.append(change)
                if new_id is not None:
                    inserted.append(new_id)

        logger.debug(
            "store_transaction_committed",
            extra={"operations": len(operations), "rows_affected": rows},
        )
        self._publish(changes)
        return TransactResult(inserted_ids=tuple(inserted), rows_affected=rows)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(
        self,
        table: str,
        event_types: Sequence[ChangeKind],
        callback: ChangeCallback,
    ) -> _Subscription:
        """Register ``callback`` for committed changes of ``event_types`` on ``table``."""
        self._model(table)
        with self._lock:
            key = self._next_key
            self._next_key += 1
            self._subscribers[table][key] = (frozenset(ChangeKind(k) for k in event_types), callback)
        logger.debug("store_subscription_added", extra={"table": table})
        return _Subscription(self, table, key)

    def _remove_subscriber(self, table: str, key: int) -> None:
        with self._lock:
            self._subscribers[table].pop(key, None)

    def _publish(self, changes: Sequence[ChangeEvent]) -> None:
        for change in changes:
            with self._lock:
                targets = [
                    callback
                    for kinds, callback in self._subscribers.get(change.table, {}).values()
                    if change.kind in kinds
                ]
            for callback in targets:
                try:
                    callback(change)
                except Exception:
                    logger.warning(
                        "store_change_callback_failed",
                        extra={"table": change.table, "kind": change.kind.value},
                        exc_info=True,
                    )
