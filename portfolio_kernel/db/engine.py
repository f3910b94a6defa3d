"""
Module: portfolio_kernel.db.engine
Responsibility: SQLAlchemy engine initialization, session factory management,
    and transactional scope utilities.  This is the single point of database
    connection configuration for the reporting system.
Architecture position: Kernel > DB.  May import from db/base.py.
    MUST NOT import from domain/ or outer layers (create_tables/drop_tables
    import the ORM models so metadata is populated).

Invariants enforced:
    - Any SQLAlchemy URL is accepted: PostgreSQL or SQL Server in
      deployment, SQLite for tests and local demos.
    - Table creation is idempotent (``checkfirst``): re-running setup
      against an existing schema is a no-op.

Failure modes:
    - DatabaseNotInitializedError if get_engine/get_session/get_session_factory
      is called before init_engine_from_url().
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from portfolio_kernel.exceptions import DatabaseNotInitializedError
from portfolio_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_pre_ping: bool = True,
) -> Engine:
    """
    Initialize the SQLAlchemy engine from a database URL.

    Postconditions: Module-level _engine and _SessionFactory are initialized.
        A second call replaces the first.

    Args:
        database_url: SQLAlchemy URL (e.g., sqlite:///portfolio.db)
        echo: If True, log all SQL statements.
        pool_pre_ping: If True, test connections before use.

    Returns:
        SQLAlchemy Engine instance.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()

    _engine = create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=pool_pre_ping,
    )

    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={
            "dialect": _engine.dialect.name,
            "echo": echo,
        },
    )

    return _engine


def get_engine() -> Engine:
    """
    Get the current engine instance.

    Raises:
        DatabaseNotInitializedError: If engine has not been initialized.
    """
    if _engine is None:
        raise DatabaseNotInitializedError()
    return _engine


def get_session() -> Session:
    """
    Get a new session instance.

    Raises:
        DatabaseNotInitializedError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise DatabaseNotInitializedError()
    return _SessionFactory()


def get_session_factory() -> sessionmaker[Session]:
    """
    Get the session factory for creating sessions.

    Raises:
        DatabaseNotInitializedError: If engine has not been initialized.
    """
    if _SessionFactory is None:
        raise DatabaseNotInitializedError()
    return _SessionFactory


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed.  The exception
        is re-raised to the caller.

    Usage:
        with session_scope() as session:
            seed_database(session, build_demo_store())
    """
    session = get_session()
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


def create_tables() -> None:
    """
    Create every reporting table that does not exist yet.

    Postconditions: All tables exist.  Existing tables and rows are untouched.
    """
    from portfolio_kernel.db.base import Base
    import portfolio_kernel.models  # noqa: F401  (registers tables)

    engine = get_engine()
    Base.metadata.create_all(engine, checkfirst=True)
    logger.info(
        "tables_created",
        extra={"tables": sorted(Base.metadata.tables)},
    )


def drop_tables() -> None:
    """
    Drop all tables. Use with caution - primarily for testing.
    """
    from portfolio_kernel.db.base import Base
    import portfolio_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())
    logger.info("tables_dropped")


def reset_engine() -> None:
    """
    Reset the engine and session factory.

    Useful for test cleanup.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
        _engine = None

    _SessionFactory = None


def _atexit_dispose():
    """Dispose the engine on process exit to release all pooled connections."""
    if _engine is not None:
        _engine.dispose()


atexit.register(_atexit_dispose)
