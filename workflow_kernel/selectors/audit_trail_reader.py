"""
Module: workflow_kernel.selectors.audit_trail_reader
Responsibility: Paginated, filterable, display-ready view of the audit
    trail, refreshed live from store change notifications.
Architecture position: Kernel > Selectors.  Read-only.

Derived fields (never stored):
    - severity: approved/rejected are high; requested_more_info and
      name_selected are medium; every other action is low.
    - resource type: "Verification Request" when the entry references a
      request, otherwise "User Action".
    - display names: the profile's display name, or the first eight
      characters of the id followed by "..." when none is available.

Invariants enforced:
    - Pages are ordered newest first (created_at desc, id desc).
    - Severity, resource type and fallback names are pure functions of
      their inputs; the same entry always renders the same way.
    - The page cache is only used while the change subscription is live.
      Without a subscription every call re-queries.

Failure modes:
    - Subscription failure is not an error: the reader logs
      ``audit_subscription_unavailable`` and runs with ``live = False``.
    - Profile lookup errors fall back to the abbreviated id.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable
from uuid import UUID

from workflow_kernel.domain.ports import ChangeEvent, ChangeKind, ProfileDirectory, RecordStore
from workflow_kernel.domain.records import AuditEntry
from workflow_kernel.logging_config import get_logger
from workflow_kernel.selectors.base import BaseSelector

logger = get_logger("selectors.audit_trail_reader")

AUDIT_TABLE = "audit_entries"
NEWEST_FIRST = (("created_at", "desc"), ("id", "desc"))
OLDEST_FIRST = (("created_at", "asc"), ("id", "asc"))


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


_HIGH_ACTIONS = frozenset({"approved", "rejected"})
_MEDIUM_ACTIONS = frozenset({"requested_more_info", "name_selected"})


def severity(action: str) -> Severity:
    if action in _HIGH_ACTIONS:
        return Severity.HIGH
    if action in _MEDIUM_ACTIONS:
        return Severity.MEDIUM
    return Severity.LOW


def resource_type(entry: AuditEntry) -> str:
    return "Verification Request" if entry.related_request_id is not None else "User Action"


def abbreviated_id(user_id: UUID) -> str:
    return f"{str(user_id)[:8]}..."


def display_name(user_id: UUID, profiles: ProfileDirectory) -> str:
    """Resolved display name, or the abbreviated id."""
    try:
        name = profiles.resolve_display_name(user_id)
    except Exception:
        logger.warning(
            "display_name_lookup_failed",
            extra={"user_id": str(user_id)},
            exc_info=True,
        )
        name = None
    return name if name else abbreviated_id(user_id)


@dataclass(frozen=True)
class AuditFilter:
    """Criteria for ``AuditTrailReader.list``.  Empty values match everything."""

    text_search: str = ""
    severity: Severity | None = None
    action: str | None = None


@dataclass(frozen=True)
class AuditEntryView:
    """An audit entry with its derived display fields."""

    entry: AuditEntry
    actor_name: str
    subject_name: str
    severity: Severity
    resource_type: str

    @property
    def id(self) -> UUID:
        return self.entry.id

    @property
    def action(self) -> str:
        return self.entry.action

    @property
    def created_at(self) -> datetime:
        return self.entry.created_at

    @property
    def note(self) -> str | None:
        return self.entry.note

    def matches(self, text: str) -> bool:
        needle = text.lower()
        haystack = (self.action, self.note or "", self.actor_name, self.subject_name)
        return any(needle in field.lower() for field in haystack)


@dataclass(frozen=True)
class AuditPage:
    entries: tuple[AuditEntryView, ...]
    page: int
    page_size: int
    total: int

    @property
    def has_next(self) -> bool:
        return self.page * self.page_size < self.total


class AuditTrailReader(BaseSelector):
    """Reads the audit trail for the compliance review screen."""

    def __init__(
        self,
        store: RecordStore,
        profiles: ProfileDirectory,
        page_size: int = 25,
    ):
        super().__init__(store)
        if page_size < 1:
            raise ValueError("page_size must be at least 1")
        self.profiles = profiles
        self.page_size = page_size
        self._cache: dict[tuple[AuditFilter, int], AuditPage] = {}
        self._generation = 0
        self._listeners: list[Callable[[], None]] = []
        self._lock = threading.Lock()
        self._subscription = None
        try:
            self._subscription = store.subscribe(AUDIT_TABLE, [ChangeKind.INSERT], self._on_change)
        except Exception:
            logger.warning("audit_subscription_unavailable", exc_info=True)

    @property
    def live(self) -> bool:
        return self._subscription is not None

    def add_listener(self, listener: Callable[[], None]) -> None:
        """Call ``listener`` after each audit insert (only while live)."""
        with self._lock:
            self._listeners.append(listener)

    def refresh(self) -> None:
        with self._lock:
            self._cache.clear()
            self._generation += 1

    def close(self) -> None:
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        self.refresh()

    def _on_change(self, event: ChangeEvent) -> None:
        with self._lock:
            self._cache.clear()
            self._generation += 1
            listeners = list(self._listeners)
        logger.debug("audit_cache_invalidated", extra={"record_id": event.record_id})
        for listener in listeners:
            listener()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def _views(self, entries: list[AuditEntry]) -> list[AuditEntryView]:
        names: dict[UUID, str] = {}

        def name(user_id: UUID) -> str:
            if user_id not in names:
                names[user_id] = display_name(user_id, self.profiles)
            return names[user_id]

        return [
            AuditEntryView(
                entry=e,
                actor_name=name(e.actor_id),
                subject_name=name(e.subject_id),
                severity=severity(e.action),
                resource_type=resource_type(e),
            )
            for e in entries
        ]

    def list(self, filter: AuditFilter | None = None, page: int = 1) -> AuditPage:
        """Return one page of entries matching ``filter``, newest first."""
        if page < 1:
            raise ValueError("page must be at least 1")
        criteria = filter or AuditFilter()
        key = (criteria, page)
        if self.live:
            with self._lock:
                cached = self._cache.get(key)
            if cached is not None:
                return cached
        generation = self._generation

        db_filters = {"action": criteria.action} if criteria.action else None
        offset = (page - 1) * self.page_size

        if not criteria.text_search and criteria.severity is None:
            # No derived-field filters: paginate in the store.
            total = self.store.count(AUDIT_TABLE, db_filters)
            entries = self.store.query(
                AUDIT_TABLE, db_filters, order=NEWEST_FIRST,
                limit=self.page_size, offset=offset,
            )
            views = self._views(entries)
        else:
            views = self._views(self.store.query(AUDIT_TABLE, db_filters, order=NEWEST_FIRST))
            if criteria.severity is not None:
                views = [v for v in views if v.severity == criteria.severity]
            if criteria.text_search:
                views = [v for v in views if v.matches(criteria.text_search)]
            total = len(views)
            views = views[offset:offset + self.page_size]

        result = AuditPage(
            entries=tuple(views),
            page=page,
            page_size=self.page_size,
            total=total,
        )
        if self.live:
            with self._lock:
                if generation == self._generation:
                    self._cache[key] = result
        return result

    def entries_for_request(self, request_id: UUID) -> list[AuditEntryView]:
        """Audit history of one request, oldest first."""
        entries = self.store.query(
            AUDIT_TABLE, {"related_request_id": request_id}, order=OLDEST_FIRST,
        )
        return self._views(entries)
