"""
Engine and session management for the SQL-backed planner stores.

One process-wide engine, configured from a URL:

- ``sqlite://`` (in-memory) shares a single connection through StaticPool,
  so every session sees the same schema. File-backed SQLite uses the
  default pool.
- Anything else (``postgresql+psycopg://...``) gets a pre-pinged QueuePool
  running at READ COMMITTED, which is what the funding ledger's
  unique-constraint idempotency assumes.

Calling a session accessor before ``init_engine_from_url`` raises
RuntimeError.
"""

import atexit
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from cashplan_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Database engine not initialized; call init_engine_from_url() first."


def _build_engine(database_url: str, *, echo: bool, pool_size: int, max_overflow: int) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(
            url,
            echo=echo,
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            isolation_level="READ COMMITTED",
        )
    options: dict = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    engine = create_engine(url, echo=echo, **options)
    _emit_sqlite_begin(engine)
    return engine


def _emit_sqlite_begin(engine: Engine) -> None:
    """
    Let SQLAlchemy own BEGIN on pysqlite.

    The driver otherwise defers BEGIN to the first DML statement, so a
    SAVEPOINT opened before any write starts (and its RELEASE commits) the
    whole transaction.
    """

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(conn):
        conn.exec_driver_sql("BEGIN")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 10,
) -> Engine:
    """
    (Re)initialize the engine and session factory.

    A previously initialized engine is disposed first. ``pool_size`` and
    ``max_overflow`` only apply to pooled (non-SQLite) backends.
    """
    global _engine, _SessionFactory

    reset_engine()
    _engine = _build_engine(
        database_url, echo=echo, pool_size=pool_size, max_overflow=max_overflow
    )
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    """A new, unmanaged session. The caller commits and closes it."""
    return get_session_factory()()


@contextmanager
def session_scope() -> Iterator[Session]:
    """
    Unit of work around one planner run or batch of writes.

    Commits when the block exits normally; on any exception the session is
    rolled back and the exception re-raised. The session is always closed.
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def _metadata():
    from cashplan_kernel.db.base import Base
    import cashplan_kernel.models  # noqa: F401  (registers tables)

    return Base.metadata


def create_tables() -> None:
    _metadata().create_all(get_engine())


def drop_tables() -> None:
    _metadata().drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)
