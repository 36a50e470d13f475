"""Database connection and session management.

This module provides engine creation, the session factory used by the
transaction coordinator, and small inspection helpers.
"""

from typing import Any

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from kingdoms.config import Settings, get_settings
from kingdoms.models import Base


def _configure_sqlite(dbapi_connection: Any, connection_record: Any) -> None:  # noqa: ARG001
    """Enable WAL mode and foreign keys on every new SQLite connection.

    Args:
        dbapi_connection: The DBAPI connection
        connection_record: Connection record (required by SQLAlchemy event API)
    """
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA synchronous=NORMAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(settings: Settings | None = None) -> Engine:
    """Create and configure the database engine.

    Returns:
        Engine: Configured SQLAlchemy engine

    Note:
        For SQLite databases, automatically configures WAL mode and foreign keys.
    """
    settings = settings or get_settings()

    if settings.database_url.startswith("sqlite"):
        engine = create_engine(
            settings.database_url,
            echo=settings.database_echo,
            pool_pre_ping=True,
        )
        event.listen(engine, "connect", _configure_sqlite)
    else:
        # Non-SQLite (e.g., PostgreSQL): honor pool settings for production use
        engine = create_engine(
            settings.database_url,
            echo=settings.database_echo,
            pool_pre_ping=True,
            pool_size=settings.database_pool_size,
            max_overflow=settings.database_max_overflow,
            pool_recycle=settings.database_pool_recycle,
            pool_timeout=settings.database_pool_timeout,
        )

    return engine


def build_session_factory(engine: Engine) -> sessionmaker[Session]:
    """Session factory whose objects stay readable after commit."""
    return sessionmaker(
        bind=engine,
        autoflush=False,
        expire_on_commit=False,
    )


# Global engine
_engine: Engine | None = None


def get_engine() -> Engine:
    """Get or create the global database engine."""
    global _engine  # noqa: PLW0603
    if _engine is None:
        _engine = create_db_engine()
    return _engine


def init_db(engine: Engine | None = None) -> None:
    """Create all tables directly from the ORM metadata.

    Note:
        For production, use alembic migrations instead.
    """
    Base.metadata.create_all(bind=engine or get_engine())


def check_database_health(engine: Engine | None = None) -> bool:
    """Return True when the database answers a trivial query."""
    try:
        with (engine or get_engine()).connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False


def get_table_names(engine: Engine | None = None) -> list[str]:
    """Get list of all table names in the database."""
    inspector = inspect(engine or get_engine())
    return inspector.get_table_names()
