"""
Feature manager.

Entry point tying configuration, storage drivers, the resolver registry and
scoped interactions together. One ResolutionEngine is built lazily per
configured store; every store shares the manager's resolver registry.

Usage:
    features = get_feature_manager()
    features.define("new-api", lambda user: user.is_beta_tester)

    if features.for_scope(user).active("new-api"):
        ...
"""

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import sessionmaker

from flagstore.config import Settings, StoreConfig, settings as default_settings
from flagstore.db.database import build_engine, build_session_factory
from flagstore.errors import UnknownStoreError
from flagstore.features.drivers.base import FeatureDriver
from flagstore.features.drivers.database import DatabaseDriver
from flagstore.features.drivers.memory import InMemoryDriver, InMemoryState
from flagstore.features.engine import ResolutionEngine
from flagstore.features.gate import Gate
from flagstore.features.interaction import FeatureArg, ScopedFeatureInteraction
from flagstore.features.registry import ResolverRegistry
from flagstore.features.scope import ScopeNormalizer

logger = logging.getLogger(__name__)


class FeatureManager:
    """
    Manages feature definitions and the stores holding their values.

    Attributes:
        settings: Library settings (stores, subscribe table, strictness)
        registry: Resolvers shared by every store
        gate: Authorization gate used by can()
        user_type: Class treated as the user by can(), any non-null scope when None
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        session_factories: Optional[Dict[str, sessionmaker]] = None,
        gate: Optional[Gate] = None,
        user_type: Optional[type] = None,
    ):
        """
        Initialize the manager.

        Args:
            settings: Settings instance. Uses the global settings if not provided.
            session_factories: Store name -> session factory, overriding the
                connection configured for database stores.
            gate: Authorization gate. A fresh Gate is used if not provided.
            user_type: Class whose instances can() authorizes.
        """
        self.settings = settings or default_settings
        self.registry = ResolverRegistry()
        self.normalizer = ScopeNormalizer()
        self.gate = gate or Gate()
        self.user_type = user_type
        self._session_factories = dict(session_factories or {})
        self._engines: Dict[str, ResolutionEngine] = {}
        self._default_scope: Optional[Callable[[], Any]] = None
        self._lock = threading.Lock()

    # Definitions

    def define(self, feature: str, resolver: Any) -> None:
        """Define a feature with a resolver callable or a constant value."""
        self.registry.register(feature, resolver)

    def define_class(self, feature_class: type) -> str:
        """Define a class based feature, returning its name."""
        return self.registry.register_class(feature_class, feature_class(self.settings.subscribe))

    def resolve_scope_using(self, resolver: Optional[Callable[[], Any]]) -> None:
        """Set the callable providing the default scope (e.g. the current user)."""
        self._default_scope = resolver

    # Stores

    def store(self, name: Optional[str] = None) -> ResolutionEngine:
        """
        Get the resolution engine of a store.

        Raises:
            UnknownStoreError: If the store is not configured
        """
        name = name or self.settings.default_store
        engine = self._engines.get(name)
        if engine is not None:
            return engine

        config = self.settings.stores.get(name)
        if config is None:
            raise UnknownStoreError(name)

        with self._lock:
            if name not in self._engines:
                self._engines[name] = ResolutionEngine(
                    self._create_driver(name, config),
                    self.registry,
                    normalizer=self.normalizer,
                    strict=self.settings.strict_undefined_features,
                )
                logger.info(f"Created feature store '{name}' using the {config.driver} driver")
            return self._engines[name]

    def _create_driver(self, name: str, config: StoreConfig) -> FeatureDriver:
        if config.driver == "memory":
            return InMemoryDriver(InMemoryState.shared())

        session_factory = self._session_factories.get(name)
        if session_factory is None:
            session_factory = build_session_factory(
                build_engine(
                    config.connection or self.settings.database_url,
                    pool_pre_ping=self.settings.database_pool_pre_ping,
                )
            )
        return DatabaseDriver(session_factory, table=config.table)

    # Interactions

    def for_scope(self, scope: Any, store: Optional[str] = None) -> ScopedFeatureInteraction:
        """Start an interaction for the given scope(s), ignoring the default scope."""
        return self.without_default_scope(store).for_scope(scope)

    def without_default_scope(self, store: Optional[str] = None) -> ScopedFeatureInteraction:
        return ScopedFeatureInteraction(
            self.store(store),
            gate=self.gate,
            subscribe=self.settings.subscribe,
            user_type=self.user_type,
        )

    def interaction(self, store: Optional[str] = None) -> ScopedFeatureInteraction:
        """Start an interaction carrying the default scope, when one is configured."""
        interaction = self.without_default_scope(store)
        if self._default_scope is not None:
            interaction.for_scope(self._default_scope())
        return interaction

    # Forwarded to an interaction with the default scope

    def active(self, feature: Any) -> bool:
        return self.interaction().active(feature)

    def inactive(self, feature: Any) -> bool:
        return self.interaction().inactive(feature)

    def all_are_active(self, features: FeatureArg) -> bool:
        return self.interaction().all_are_active(features)

    def some_are_active(self, features: FeatureArg) -> bool:
        return self.interaction().some_are_active(features)

    def all_are_inactive(self, features: FeatureArg) -> bool:
        return self.interaction().all_are_inactive(features)

    def some_are_inactive(self, features: FeatureArg) -> bool:
        return self.interaction().some_are_inactive(features)

    def value(self, feature: Any) -> Any:
        return self.interaction().value(feature)

    def values(self, features: FeatureArg) -> Dict[str, Any]:
        return self.interaction().values(features)

    def all(self) -> Dict[str, Any]:
        return self.interaction().all()

    def when(self, feature: Any, when_active: Callable, when_inactive: Optional[Callable] = None) -> Any:
        return self.interaction().when(feature, when_active, when_inactive)

    def unless(self, feature: Any, when_inactive: Callable, when_active: Optional[Callable] = None) -> Any:
        return self.interaction().unless(feature, when_inactive, when_active)

    def activate(self, features: FeatureArg, value: Any = True) -> None:
        self.interaction().activate(features, value)

    def deactivate(self, features: FeatureArg) -> None:
        self.interaction().deactivate(features)

    def forget(self, features: FeatureArg) -> None:
        self.interaction().forget(features)

    def load(self, features: FeatureArg) -> Dict[str, List[Any]]:
        return self.interaction().load(features)

    def load_missing(self, features: FeatureArg) -> Dict[str, List[Any]]:
        return self.interaction().load_missing(features)

    def can(self, features: FeatureArg, params: Any = None) -> bool:
        return self.interaction().can(features, params)

    def can_any(self, features: FeatureArg, params: Any = None) -> bool:
        return self.interaction().can_any(features, params)

    def cant(self, features: FeatureArg, params: Any = None) -> bool:
        return self.interaction().cant(features, params)

    def cannot(self, features: FeatureArg, params: Any = None) -> bool:
        return self.interaction().cannot(features, params)

    # Store wide operations

    def activate_for_everyone(self, features: FeatureArg, value: Any = True, store: Optional[str] = None) -> None:
        self.without_default_scope(store).activate_for_everyone(features, value)

    def deactivate_for_everyone(self, features: FeatureArg, store: Optional[str] = None) -> None:
        self.without_default_scope(store).deactivate_for_everyone(features)

    def purge(self, features: Optional[FeatureArg] = None, store: Optional[str] = None) -> None:
        self.without_default_scope(store).purge(features)

    def stored(self, store: Optional[str] = None) -> List[str]:
        return self.store(store).stored()

    def defined(self, store: Optional[str] = None) -> List[str]:
        return self.store(store).defined()


# Global manager instance
_feature_manager: Optional[FeatureManager] = None


def get_feature_manager() -> FeatureManager:
    """
    Get or create the global feature manager.

    Also usable as a FastAPI dependency.

    Returns:
        The global FeatureManager instance
    """
    global _feature_manager
    if _feature_manager is None:
        _feature_manager = FeatureManager()
    return _feature_manager


def set_feature_manager(manager: Optional[FeatureManager]) -> None:
    """Replace the global feature manager. Passing None resets it."""
    global _feature_manager
    _feature_manager = manager
