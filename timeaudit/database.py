# TimeAudit - Database Setup
# SQLAlchemy engine and session factory for the local cache

from typing import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from timeaudit.config import get_settings
from timeaudit.models.base import Base


def set_sqlite_options(dbapi_connection, connection_record):
    """
    Set connection-level options for SQLite.

    Runs once when a new connection is created.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def create_cache_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create the engine backing the local cache.

    SQLite is the default. An in-memory URL ("sqlite://") is shared
    across threads through a single static connection so the FastAPI
    test client and the app see the same data.
    """
    kwargs = {"echo": echo, "pool_pre_ping": True}

    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool

    cache_engine = create_engine(database_url, **kwargs)

    if database_url.startswith("sqlite"):
        event.listen(cache_engine, "connect", set_sqlite_options)

    return cache_engine


def create_session_factory(bind: Engine) -> sessionmaker:
    """Session factory bound to a cache engine."""
    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,  # Snapshots are read after commit
    )


settings = get_settings()

# Default engine and session factory built from settings
engine = create_cache_engine(settings.database_url, echo=settings.debug)
SessionLocal = create_session_factory(engine)


@contextmanager
def get_db_context(factory: sessionmaker = SessionLocal) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage in scripts, CLI commands, or the local cache:

        with get_db_context() as db:
            buckets = db.query(CacheBucket).all()
            # Session automatically closed when exiting the block
    """
    db = factory()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = engine) -> None:
    """
    Initialize the database schema.

    Creates the cache tables if they do not exist yet. Alembic
    migrations produce the same schema for managed deployments.
    """
    Base.metadata.create_all(bind=bind)


def drop_db(bind: Engine = engine) -> None:
    """
    Drop all tables.

    WARNING: Destroys the local cache. Only for development/testing.
    """
    Base.metadata.drop_all(bind=bind)


def check_connection(bind: Engine = engine) -> bool:
    """
    Test the database connection.

    Returns True if connection succeeds, raises exception otherwise.
    """
    with bind.connect() as conn:
        conn.execute(text("SELECT 1"))
    return True
