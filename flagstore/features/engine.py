"""
Feature resolution engine.

Sits between callers and a storage driver. For a batch of features crossed
with scopes it reads every stored value in one driver call, resolves the pairs
that were never stored, writes them back, and returns the merged result.

Requests are mappings of feature name -> list of scopes, for example
{"new-api": [user, None], "beta": [user, None]}.

A stored value is never re-resolved. Concurrent first access from several
threads or processes may run a resolver more than once; drivers with
insert_many() keep the first stored value so every caller observes the same
result.
"""

import logging
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional

from flagstore.errors import UndefinedFeatureError
from flagstore.features.drivers.base import MISSING, FeatureDriver, Pair
from flagstore.features.registry import ResolverRegistry
from flagstore.features.scope import ScopeNormalizer

logger = logging.getLogger(__name__)

Requests = Mapping[str, Iterable[Any]]


class ResolutionEngine:
    """
    Resolves and stores feature values for one store.

    Attributes:
        driver: Storage driver owning the values
        registry: Resolver registry used for pairs that are not stored yet
        normalizer: Scope key builder
        strict: Raise UndefinedFeatureError for unknown features when True,
            treat them as inactive (without storing anything) when False
    """

    def __init__(
        self,
        driver: FeatureDriver,
        registry: ResolverRegistry,
        normalizer: Optional[ScopeNormalizer] = None,
        strict: bool = True,
    ):
        self.driver = driver
        self.registry = registry
        self.normalizer = normalizer or ScopeNormalizer()
        self.strict = strict

    def scope_key(self, scope: Any) -> str:
        return self.normalizer.normalize(scope)

    def get_all(
        self, requests: Requests, loaded: Optional[Dict[Pair, Any]] = None
    ) -> Dict[str, List[Any]]:
        """
        Get the values of every requested (feature, scope) pair.

        Args:
            requests: Feature name -> scopes to evaluate it for
            loaded: Optional mapping refreshed with every value read

        Returns:
            Feature name -> values, in the order the scopes were given
        """
        keyed = self._keyed(requests)
        values = self._load(keyed, skip={})
        if loaded is not None:
            loaded.update(values)
        return {
            feature: [values[(feature, key)] for key, _ in scopes]
            for feature, scopes in keyed.items()
        }

    def get_all_missing(
        self,
        requests: Requests,
        loaded: Optional[Dict[Pair, Any]] = None,
        inactive_if_undefined: Iterable[str] = (),
    ) -> Dict[str, List[Any]]:
        """
        Load only the pairs that are not in ``loaded`` yet.

        Newly loaded values are added to ``loaded`` so later reads within the
        same logical request do not pay for them again.

        Features named in ``inactive_if_undefined`` are inactive for scopes
        without a stored value when no resolver is registered, whatever the
        engine's strictness.

        Returns:
            Feature name -> values of the scopes that were missing. Features
            with nothing missing are omitted.
        """
        loaded = {} if loaded is None else loaded
        keyed = self._keyed(requests)
        values = self._load(keyed, loaded, frozenset(inactive_if_undefined))
        loaded.update(values)

        missing: Dict[str, List[Any]] = {}
        for feature, scopes in keyed.items():
            for key, _ in scopes:
                if (feature, key) in values:
                    missing.setdefault(feature, []).append(values[(feature, key)])
        return missing

    def get(self, feature: str, scope: Any, loaded: Optional[Mapping[Pair, Any]] = None) -> Any:
        """Get the value of a single pair, reusing ``loaded`` when it has it."""
        if loaded is not None:
            value = loaded.get((feature, self.scope_key(scope)), MISSING)
            if value is not MISSING:
                return value
        return self.get_all({feature: [scope]})[feature][0]

    def set(self, feature: str, scope: Any, value: Any) -> None:
        key = self.scope_key(scope)
        self.driver.set(feature, key, value)
        logger.info(f"Set feature '{feature}' for scope '{key}'")

    def set_for_all_scopes(self, feature: str, value: Any) -> None:
        self.driver.set_for_all_scopes(feature, value)
        logger.info(f"Set feature '{feature}' for every stored scope")

    def delete(self, feature: str, scope: Any) -> None:
        key = self.scope_key(scope)
        self.driver.delete(feature, key)
        logger.info(f"Forgot feature '{feature}' for scope '{key}'")

    def purge(self, features: Optional[List[str]] = None) -> None:
        self.driver.purge(features)
        logger.info(f"Purged features: {', '.join(features) if features else 'all'}")

    def stored(self) -> List[str]:
        """Names of features with at least one stored value."""
        return self.driver.defined()

    def defined(self) -> List[str]:
        """Registered feature names, followed by stored names nobody registered."""
        names = self.registry.names()
        known = set(names)
        return names + [name for name in self.driver.defined() if name not in known]

    def _keyed(self, requests: Requests) -> Dict[str, List[tuple]]:
        """Attach scope keys to every requested scope, features outer, scopes inner."""
        keyed: Dict[str, List[tuple]] = {}
        for feature, scopes in requests.items():
            entries = keyed.setdefault(feature, [])
            for scope in scopes:
                entries.append((self.scope_key(scope), scope))
        return keyed

    def _load(
        self,
        keyed: Dict[str, List[tuple]],
        skip: Mapping[Pair, Any],
        inactive_if_undefined: FrozenSet[str] = frozenset(),
    ) -> Dict[Pair, Any]:
        pending: Dict[Pair, Any] = {}
        for feature, scopes in keyed.items():
            for key, scope in scopes:
                pair = (feature, key)
                if pair not in skip:
                    pending.setdefault(pair, scope)

        if not pending:
            return {}

        values = dict(self.driver.get_all(list(pending)))

        resolved: Dict[Pair, Any] = {}
        for pair, scope in pending.items():
            if values.get(pair, MISSING) is not MISSING:
                continue
            feature, key = pair
            if not self.registry.has(feature):
                if self.strict and feature not in inactive_if_undefined:
                    raise UndefinedFeatureError(feature)
                logger.debug(f"Unknown feature '{feature}' treated as inactive")
                values[pair] = False
                continue
            resolved[pair] = self.registry.resolve(feature, scope)
            logger.debug(f"Resolved feature '{feature}' for scope '{key}'")

        if resolved:
            values.update(self._store_resolved(resolved))

        return {pair: values[pair] for pair in pending}

    def _store_resolved(self, resolved: Dict[Pair, Any]) -> Dict[Pair, Any]:
        insert_many = getattr(self.driver, "insert_many", None)
        if callable(insert_many):
            stored = insert_many(resolved)
            for pair, value in stored.items():
                if value != resolved[pair]:
                    logger.info(
                        f"Feature '{pair[0]}' for scope '{pair[1]}' was stored concurrently, keeping stored value"
                    )
            return stored

        for (feature, key), value in resolved.items():
            self.driver.set(feature, key, value)
        return resolved
