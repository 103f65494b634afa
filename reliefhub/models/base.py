"""
SQLAlchemy base configuration and session management.

Uses SQLAlchemy 2.0 style with type hints and declarative base.
Designed to be portable between SQLite (dev) and PostgreSQL (prod).
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker
from sqlalchemy.pool import StaticPool

from reliefhub.config import config


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the storage convention for all columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _set_sqlite_pragma(dbapi_connection, connection_record):
    """
    Configure SQLite connections.

    WAL mode allows concurrent reads during writes, and foreign keys
    must be switched on per connection for resource cascades to work.
    """
    cursor = dbapi_connection.cursor()
    cursor.execute('PRAGMA journal_mode=WAL')
    cursor.execute('PRAGMA synchronous=NORMAL')
    cursor.execute('PRAGMA foreign_keys=ON')
    cursor.close()


def build_engine(
    url: str,
    query_timeout_seconds: Optional[float] = None,
    echo: bool = False,
) -> Engine:
    """
    Create an engine with a bounded query time.

    PostgreSQL gets a server-side statement_timeout; SQLite gets a
    busy timeout. Either way a slow call surfaces as an OperationalError.
    """
    timeout = query_timeout_seconds or config.database.query_timeout_seconds
    engine_kwargs = {'echo': echo}

    if url.startswith('sqlite'):
        engine_kwargs['connect_args'] = {
            'check_same_thread': False,
            'timeout': timeout,
        }
        # In-memory databases live per connection, so share one
        if url in ('sqlite://', 'sqlite:///:memory:'):
            engine_kwargs['poolclass'] = StaticPool
    elif url.startswith('postgresql'):
        engine_kwargs['connect_args'] = {
            'options': f'-c statement_timeout={int(timeout * 1000)}',
        }

    engine = create_engine(url, **engine_kwargs)

    if url.startswith('sqlite'):
        event.listen(engine, 'connect', _set_sqlite_pragma)

    return engine


def make_session_factory(bind: Engine) -> sessionmaker:
    """Session factory with the settings every component expects."""
    return sessionmaker(
        bind=bind,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,  # Records are serialized after commit
    )


engine = build_engine(config.database.url, echo=config.debug)

SessionLocal = make_session_factory(engine)


def init_db(bind: Optional[Engine] = None) -> None:
    """
    Initialize database schema.

    Creates all tables if they don't exist. For production,
    use Alembic migrations instead.
    """
    Base.metadata.create_all(bind=bind or engine)
