"""
Shared pytest fixtures for flagstore tests.

This module provides common fixtures for:
- Database engines and session factories (in-memory SQLite)
- Storage drivers (memory and database) and spies around them
- Resolver registries, engines and scoped interactions
- Scope objects used across tests
"""
import os
import pytest

from unittest.mock import MagicMock

# Set test environment variables BEFORE importing library modules
os.environ.setdefault("FLAGSTORE_DEFAULT_STORE", "memory")
os.environ.setdefault("FLAGSTORE_DATABASE_URL", "sqlite:///:memory:")

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from flagstore.config import get_settings
from flagstore.db.database import create_tables, drop_tables
from flagstore.features.drivers.database import DatabaseDriver
from flagstore.features.drivers.memory import InMemoryDriver, InMemoryState
from flagstore.features.engine import ResolutionEngine
from flagstore.features.interaction import ScopedFeatureInteraction
from flagstore.features.manager import FeatureManager, set_feature_manager
from flagstore.features.registry import ResolverRegistry
from flagstore.tests.helpers import User


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database for testing.

    Each test function gets a fresh database.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_tables(engine)
    yield engine
    drop_tables(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


# ============================================================================
# Driver Fixtures
# ============================================================================

@pytest.fixture(autouse=True)
def reset_global_state():
    """Isolate the process-wide in-memory state and global manager."""
    InMemoryState.reset_shared()
    set_feature_manager(None)
    yield
    InMemoryState.reset_shared()
    set_feature_manager(None)


@pytest.fixture
def memory_driver() -> InMemoryDriver:
    return InMemoryDriver(InMemoryState())


@pytest.fixture
def database_driver(session_factory) -> DatabaseDriver:
    return DatabaseDriver(session_factory)


@pytest.fixture(params=["memory", "database"])
def driver(request):
    """Run a test against both storage drivers."""
    return request.getfixturevalue(f"{request.param}_driver")


@pytest.fixture
def spy_driver(driver) -> MagicMock:
    """A driver spy delegating to the real driver while counting calls."""
    return MagicMock(wraps=driver)


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def registry() -> ResolverRegistry:
    return ResolverRegistry()


@pytest.fixture
def engine(spy_driver, registry) -> ResolutionEngine:
    return ResolutionEngine(spy_driver, registry)


@pytest.fixture
def interaction(engine):
    """Factory for fresh scoped interactions on the test engine."""

    def make(*scopes) -> ScopedFeatureInteraction:
        built = ScopedFeatureInteraction(engine)
        for scope in scopes:
            built.for_scope(scope)
        return built

    return make


# ============================================================================
# Manager Fixtures
# ============================================================================

@pytest.fixture
def manager_settings():
    return get_settings(
        default_store="memory",
        subscribe={"user": "flag_user", "null": "flag_everyone"},
    )


@pytest.fixture
def manager(manager_settings, session_factory) -> FeatureManager:
    """A manager using the memory store by default and the test database for 'database'."""
    built = FeatureManager(
        settings=manager_settings,
        session_factories={"database": session_factory},
        user_type=User,
    )
    set_feature_manager(built)
    return built
