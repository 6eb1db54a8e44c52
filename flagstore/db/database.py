"""
Database engine and session management for the database feature store.
"""
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from flagstore.config import settings

# Base class for ORM models
Base = declarative_base()


def build_engine(database_url: str = None, pool_pre_ping: bool = None) -> Engine:
    """
    Create a database engine for a feature store.

    In-memory SQLite URLs get a StaticPool so every session sees the same
    database.

    Args:
        database_url: SQLAlchemy URL. Defaults to settings.database_url.
        pool_pre_ping: Check connections before use. Defaults to
            settings.database_pool_pre_ping.
    """
    url = database_url or settings.database_url
    if url.startswith("sqlite") and ":memory:" in url:
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if pool_pre_ping is None:
        pool_pre_ping = settings.database_pool_pre_ping
    return create_engine(url, pool_pre_ping=pool_pre_ping)


def build_session_factory(engine: Engine) -> sessionmaker:
    """Create the session factory used by DatabaseDriver."""
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine):
    """Create all tables in the database."""
    Base.metadata.create_all(bind=engine)


def drop_tables(engine: Engine):
    """Drop all tables in the database. Use with caution!"""
    Base.metadata.drop_all(bind=engine)
