"""Engine and session construction.

On SQLite a writing transaction starts with ``BEGIN IMMEDIATE`` so concurrent
writers queue on the database lock (bounded by the busy timeout) instead of
deadlocking on a SHARED → RESERVED lock upgrade. Read-only units of work
start with a plain deferred ``BEGIN`` and never take the write lock, so
status queries and health checks do not queue behind writers. Other
backends rely on the row locks taken with ``SELECT ... FOR UPDATE``.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

SQLITE_BUSY_TIMEOUT = 30

# Connection execution option naming the SQLite BEGIN mode
SQLITE_BEGIN_OPTION = "sqlite_begin"


def build_engine(database_url: str) -> Engine:
    """Create an engine for the given URL."""
    if not database_url.startswith("sqlite"):
        return create_engine(database_url, pool_pre_ping=True)

    engine = create_engine(
        database_url,
        connect_args={"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT},
    )

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        # pysqlite emits its own deferred BEGIN; take over transaction control
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        mode = conn.get_execution_options().get(SQLITE_BEGIN_OPTION, "IMMEDIATE")
        conn.exec_driver_sql(f"BEGIN {mode}")

    return engine


def build_session_factory(engine: Engine) -> sessionmaker:
    """Session factory whose objects stay readable after commit."""
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def mark_read_only(db: Session) -> Session:
    """Open the session's transaction without the SQLite write lock.

    Must be called before the session runs its first statement. No effect on
    other backends.
    """
    db.connection(execution_options={SQLITE_BEGIN_OPTION: "DEFERRED"})
    return db


@contextmanager
def session_scope(session_factory: sessionmaker, *, read_only: bool = False) -> Iterator[Session]:
    """Unit of work: commit on success, roll back on error, always close."""
    db = session_factory()
    try:
        if read_only:
            mark_read_only(db)
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
