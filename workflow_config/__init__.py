"""
workflow_config -- single public entrypoint for runtime settings.

Responsibility:
    ``get_active_settings()`` is the only way components obtain settings;
    no other module reads environment variables or settings files.
    ``bootstrap()`` turns settings into a fully wired runtime: database
    engine, record store, notification dispatcher, workflow engine with
    every built-in adapter registered, audit trail reader and folder
    aggregator.

Architecture position:
    Configuration -- sits above ``workflow_kernel`` and
    ``workflow_modules``.  The kernel MUST NEVER import from
    ``workflow_config``; collaborators reach the kernel by constructor
    injection only.

Failure modes:
    - ``ConfigurationError`` -- unknown key or invalid value.
    - ``FileNotFoundError`` / ``yaml.YAMLError`` -- unreadable override file.

Audit relevance:
    Every ``get_active_settings()`` call emits a ``WORKFLOW_CONFIG_TRACE``
    log entry with the effective settings (database credentials masked).
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Mapping

from sqlalchemy.engine import Engine, make_url

from workflow_config.loader import load_settings
from workflow_config.schema import ConfigurationError, WorkflowSettings
from workflow_kernel.db.engine import build_engine, build_session_factory, create_tables
from workflow_kernel.db.store import SqlAlchemyRecordStore
from workflow_kernel.domain.clock import Clock
from workflow_kernel.domain.ports import AuthProvider, Notifier, ProfileDirectory
from workflow_kernel.logging_config import configure_logging
from workflow_kernel.selectors.audit_trail_reader import AuditTrailReader
from workflow_kernel.services.collaborators import (
    LoggingNotifier,
    StaticAdminDirectory,
    StaticProfileDirectory,
)
from workflow_kernel.services.folder_aggregator import FolderAggregator
from workflow_kernel.services.notification_dispatcher import NotificationDispatcher
from workflow_kernel.services.workflow_engine import WorkflowEngine
from workflow_modules import default_adapters

_logger = logging.getLogger("workflow_kernel.config")

__all__ = [
    "ConfigurationError",
    "WorkflowRuntime",
    "WorkflowSettings",
    "bootstrap",
    "get_active_settings",
]


def get_active_settings(
    config_file: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> WorkflowSettings:
    """The ONLY public settings entrypoint.

    ``environ`` defaults to ``os.environ``.
    """
    settings = load_settings(
        config_file=config_file,
        environ=os.environ if environ is None else environ,
    )
    trace = asdict(settings)
    trace["database_url"] = make_url(settings.database_url).render_as_string(hide_password=True)
    _logger.info("WORKFLOW_CONFIG_TRACE", extra={"settings": trace})
    return settings


@dataclass
class WorkflowRuntime:
    """Everything ``bootstrap`` wired together."""

    settings: WorkflowSettings
    db_engine: Engine
    store: SqlAlchemyRecordStore
    dispatcher: NotificationDispatcher
    engine: WorkflowEngine
    audit_reader: AuditTrailReader
    folders: FolderAggregator

    def close(self) -> None:
        self.audit_reader.close()
        self.dispatcher.shutdown()
        self.db_engine.dispose()


def bootstrap(
    settings: WorkflowSettings | None = None,
    *,
    auth: AuthProvider | None = None,
    notifier: Notifier | None = None,
    profiles: ProfileDirectory | None = None,
    clock: Clock | None = None,
    create_schema: bool = False,
) -> WorkflowRuntime:
    """
    Wire a runtime from ``settings`` (default: ``get_active_settings()``).

    Collaborators default to the in-process implementations: no
    administrators, no profiles, and a notifier that only logs.
    """
    settings = settings or get_active_settings()
    configure_logging(level=settings.log_level.upper())

    db_engine = build_engine(
        settings.database_url,
        echo=settings.echo_sql,
        pool_size=settings.pool_size,
    )
    if create_schema:
        create_tables(db_engine)
    store = SqlAlchemyRecordStore(build_session_factory(db_engine))

    profiles = profiles or StaticProfileDirectory()
    dispatcher = NotificationDispatcher(
        notifier or LoggingNotifier(),
        timeout_seconds=settings.notify_timeout_seconds,
        max_workers=settings.notify_max_workers,
    )
    engine = WorkflowEngine(
        store=store,
        auth=auth or StaticAdminDirectory(),
        dispatcher=dispatcher,
        profiles=profiles,
        clock=clock,
    )
    for adapter in default_adapters():
        engine.register(adapter)

    return WorkflowRuntime(
        settings=settings,
        db_engine=db_engine,
        store=store,
        dispatcher=dispatcher,
        engine=engine,
        audit_reader=AuditTrailReader(store, profiles, page_size=settings.audit_page_size),
        folders=FolderAggregator(store),
    )
