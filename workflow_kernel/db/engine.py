"""
Module: workflow_kernel.db.engine
Responsibility: SQLAlchemy engine construction, session factories and
    transactional scope utilities.
Architecture position: Kernel > DB.  May import from db/base.py, models/ and
    db/immutability.py.

Engines and session factories are returned to the caller and injected into
the record store; there is no module-level engine.

Invariants enforced:
    - PostgreSQL sessions run at READ COMMITTED; per-entity serialization is
      achieved with compare-and-set updates, not isolation level.
    - SQLite (tests, local tooling) runs with foreign keys enabled.

Failure modes:
    - OperationalError when the database is unreachable.
    - Connection pool exhaustion if pool_size + max_overflow is exceeded.

Audit relevance:
    session_scope() ensures atomic commit-or-rollback semantics, which is
    the foundation of the workflow engine's atomic unit.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from workflow_kernel.logging_config import get_logger

logger = get_logger("db.engine")


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Build a SQLAlchemy engine for ``database_url``.

    PostgreSQL gets a pre-pinged QueuePool at READ COMMITTED.  SQLite
    in-memory URLs share one connection across threads (StaticPool) so every
    session sees the same database; file URLs wait on locks instead of
    failing immediately.
    """
    url = make_url(database_url)
    backend = url.get_backend_name()

    if backend == "sqlite":
        connect_args = {"check_same_thread": False, "timeout": 30}
        if url.database in (None, "", ":memory:"):
            engine = create_engine(
                url,
                echo=echo,
                connect_args=connect_args,
                poolclass=StaticPool,
            )
        else:
            engine = create_engine(url, echo=echo, connect_args=connect_args)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    else:
        engine = create_engine(
            url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=pool_pre_ping,
            pool_timeout=pool_timeout,
            pool_recycle=pool_recycle,
            isolation_level="READ COMMITTED",
        )

    logger.info(
        "engine_initialized",
        extra={"dialect": backend, "echo": echo},
    )
    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Return a session factory bound to ``engine``.

    Also installs the ORM immutability listeners (idempotent).
    """
    from workflow_kernel.db.immutability import register_immutability_listeners

    register_immutability_listeners()
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed.  The exception
        is re-raised to the caller.

    Usage:
        with session_scope(factory) as session:
            session.add(entity)
    """
    session = factory()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(engine: Engine) -> None:
    """Create all tables defined in workflow_kernel.models."""
    from workflow_kernel.db.base import Base
    import workflow_kernel.models  # noqa: F401

    Base.metadata.create_all(engine)


def drop_tables(engine: Engine) -> None:
    """Drop all tables. Use with caution - primarily for testing."""
    from workflow_kernel.db.base import Base
    import workflow_kernel.models  # noqa: F401

    Base.metadata.drop_all(engine)
