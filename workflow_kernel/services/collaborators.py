"""
workflow_kernel.services.collaborators -- In-process collaborator defaults.

Responsibility:
    Static implementations of the AuthProvider, ProfileDirectory and
    Notifier ports, used by ``workflow_config.bootstrap`` when no real
    identity or mail service is wired in, and by the test suite.

Architecture position:
    Kernel > Services.  May import from domain/ports.py and logging_config.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, Iterable, Mapping
from uuid import UUID

from workflow_kernel.logging_config import get_logger

logger = get_logger("services.collaborators")


class StaticAdminDirectory:
    """AuthProvider backed by a fixed set of administrator ids."""

    def __init__(self, admin_ids: Iterable[UUID] = ()):
        self._admins = frozenset(admin_ids)

    def is_admin(self, actor_id: UUID) -> bool:
        return actor_id in self._admins


@dataclass(frozen=True)
class Profile:
    display_name: str | None = None
    email: str | None = None


class StaticProfileDirectory:
    """ProfileDirectory backed by an in-memory mapping."""

    def __init__(self, profiles: Mapping[UUID, Profile] | None = None):
        self._profiles = dict(profiles or {})

    def add(self, user_id: UUID, display_name: str | None = None, email: str | None = None) -> None:
        self._profiles[user_id] = Profile(display_name=display_name, email=email)

    def resolve_display_name(self, user_id: UUID) -> str | None:
        profile = self._profiles.get(user_id)
        return profile.display_name if profile else None

    def resolve_email(self, user_id: UUID) -> str | None:
        profile = self._profiles.get(user_id)
        return profile.email if profile else None


@dataclass(frozen=True)
class SentMessage:
    template_key: str
    to_address: str
    variables: Mapping[str, Any]


class LoggingNotifier:
    """
    Notifier that records messages instead of delivering them.

    Every call is logged as ``notification_recorded`` and kept in ``sent``
    so callers (and tests) can inspect what would have been delivered.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.sent: list[SentMessage] = []

    def send(self, template_key: str, to_address: str, variables: Mapping[str, Any]) -> bool:
        with self._lock:
            self.sent.append(SentMessage(template_key, to_address, dict(variables)))
        logger.info(
            "notification_recorded",
            extra={"template_key": template_key, "to_address": to_address},
        )
        return True
