"""Database layer - engine, declarative base, types, and record store."""

from workflow_kernel.db.base import UUID, Base, UTCDateTime, UUIDString
from workflow_kernel.db.engine import (
    build_engine,
    build_session_factory,
    create_tables,
    drop_tables,
    session_scope,
)
from workflow_kernel.db.store import SqlAlchemyRecordStore

__all__ = [
    "Base",
    "SqlAlchemyRecordStore",
    "UTCDateTime",
    "UUID",
    "UUIDString",
    "build_engine",
    "build_session_factory",
    "create_tables",
    "drop_tables",
    "session_scope",
]
