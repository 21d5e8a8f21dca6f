"""Database engine and session management for the Newsroom API."""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from newsroom_api.config import DatabaseSettings

# Base class for all ORM models
Base = declarative_base()


def create_db_engine(settings: DatabaseSettings) -> Engine:
    """
    Create a SQLAlchemy engine with connection pooling.

    PostgreSQL gets a bounded QueuePool and a per-connection statement
    timeout. SQLite (used by tests and local runs) shares one connection so
    an in-memory database survives across sessions.

    Args:
        settings: Database settings

    Returns:
        Configured SQLAlchemy engine
    """
    if settings.url.startswith("sqlite"):
        return create_engine(
            settings.url,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
            echo=settings.echo,
        )

    engine = create_engine(
        settings.url,
        poolclass=QueuePool,
        pool_size=settings.pool_size,
        max_overflow=settings.max_overflow,
        pool_timeout=settings.pool_timeout_seconds,
        pool_pre_ping=True,  # Verify connections before using
        pool_recycle=3600,  # Recycle connections after 1 hour
        echo=settings.echo,
    )

    statement_timeout = int(settings.statement_timeout_ms)

    @event.listens_for(engine, "connect")
    def set_postgresql_session(dbapi_conn, connection_record):  # type: ignore
        cursor = dbapi_conn.cursor()
        cursor.execute("SET timezone='UTC'")
        cursor.execute(f"SET statement_timeout='{statement_timeout}'")
        cursor.close()

    return engine


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


@contextmanager
def get_db_session(session_factory: sessionmaker[Session]) -> Generator[Session, None, None]:
    """
    Context manager for database sessions.

    Usage:
        with get_db_session(app.state.session_factory) as session:
            DonationRepository(session, DonationKind.PRIME).find_by_id(1)

    Automatically commits on success, rolls back on exception.
    """
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(engine: Engine) -> None:
    """
    Create all tables that do not exist yet.

    Args:
        engine: Engine to create the schema on
    """
    # Register the models on Base.metadata
    from newsroom_api.infrastructure import models  # noqa: F401

    Base.metadata.create_all(bind=engine)

