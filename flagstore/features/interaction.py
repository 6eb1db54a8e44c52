"""
Scoped feature interaction.

A short-lived builder collecting the scopes a feature check applies to, then
answering questions about features for all of them. Every query crosses the
requested features (outer) with the collected scopes (inner) and loads the
pairs it has not seen yet with one bulk storage read. Loaded values are kept
for the lifetime of the interaction, so it should not outlive a request.

Usage:
    interaction = ScopedFeatureInteraction(engine).for_scope(user)
    if interaction.active("new-api"):
        ...
"""

from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple, Union

from flagstore.errors import MultipleScopeError
from flagstore.features.class_feature import ClassFeature
from flagstore.features.drivers.base import Pair
from flagstore.features.engine import ResolutionEngine
from flagstore.features.gate import Gate, gated_features


FeatureArg = Union[str, type, Iterable[Union[str, type]]]


def _wrap(features: FeatureArg) -> List[Any]:
    if isinstance(features, (str, type, Enum)):
        return [features]
    return list(features)


class ScopedFeatureInteraction:
    """
    Feature queries and mutations for a set of scopes.

    Attributes:
        engine: Resolution engine of the store being used
        gate: Authorization gate used by can()
        subscribe: Scope type tag -> handler name for class based features
        user_type: Class whose instances are treated as the user by can()
    """

    def __init__(
        self,
        engine: ResolutionEngine,
        gate: Optional[Gate] = None,
        subscribe: Optional[Dict[str, str]] = None,
        user_type: Optional[type] = None,
    ):
        self.engine = engine
        self.gate = gate or Gate()
        self.subscribe = subscribe or {}
        self.user_type = user_type
        self._scopes: List[Any] = []
        # Values read or written through this interaction, by (feature, scope key)
        self._loaded: Dict[Pair, Any] = {}

    def for_scope(self, scope: Any) -> "ScopedFeatureInteraction":
        """Add scope(s) to the interaction. Lists, tuples and sets are spread."""
        if isinstance(scope, (list, tuple, set)):
            self._scopes.extend(scope)
        else:
            self._scopes.append(scope)
        return self

    @property
    def scopes(self) -> List[Any]:
        """The collected scopes, or the global scope when none were added."""
        return list(self._scopes) or [None]

    # Authorization

    def can(self, features: FeatureArg, params: Any = None) -> bool:
        """Determine if the scoped user has the ability for the given flagged features."""
        names = self._names(features)
        user = self._find_scoped_user()
        feature_classes = [
            self.engine.registry.feature_class(name)
            for name in names
            if self.engine.registry.feature_class(name) is not None
        ]

        return self.all_are_active(names) and self.gate.for_user(user).check(
            gated_features(self.gate, feature_classes, user, self.subscribe), params
        )

    def can_any(self, features: FeatureArg, params: Any = None) -> bool:
        return any(self.can(feature, params) for feature in _wrap(features))

    def cant(self, features: FeatureArg, params: Any = None) -> bool:
        return not self.can(features, params)

    def cannot(self, features: FeatureArg, params: Any = None) -> bool:
        return self.cant(features, params)

    # Loading

    def load(self, features: FeatureArg) -> Dict[str, List[Any]]:
        """Load the features for every scope, returning feature -> values per scope."""
        return self.engine.get_all(self._requests(self._names(features)), self._loaded)

    def load_missing(self, features: FeatureArg) -> Dict[str, List[Any]]:
        """Load only the pairs this interaction has not loaded yet."""
        return self.engine.get_all_missing(self._requests(self._names(features)), self._loaded)

    # Values

    def value(self, feature: Union[str, type]) -> Any:
        name = self._names(feature)[0]
        return self.values([name])[name]

    def values(self, features: FeatureArg) -> Dict[str, Any]:
        """
        Get the values of the features for the single scope.

        Raises:
            MultipleScopeError: If more than one scope was added
        """
        scopes = self.scopes
        if len(scopes) > 1:
            raise MultipleScopeError(len(scopes))

        names = self._names(features)
        loaded = self._load(names)
        return {name: self.engine.get(name, scopes[0], loaded) for name in names}

    def all(self) -> Dict[str, Any]:
        """
        Get the values of every defined feature.

        Features that are only stored, with no resolver registered, are
        inactive for scopes that have no stored value of their own.

        Raises:
            MultipleScopeError: If more than one scope was added
        """
        scopes = self.scopes
        if len(scopes) > 1:
            raise MultipleScopeError(len(scopes))

        names = self.engine.defined()
        stored_only = [name for name in names if not self.engine.registry.has(name)]
        self.engine.get_all_missing(self._requests(names), self._loaded, stored_only)
        return {name: self.engine.get(name, scopes[0], self._loaded) for name in names}

    # Checks

    def active(self, feature: Union[str, type]) -> bool:
        return self.all_are_active([feature])

    def all_are_active(self, features: FeatureArg) -> bool:
        names = self._names(features)
        loaded = self._load(names)
        return all(
            self.engine.get(feature, scope, loaded) is not False
            for feature, scope in self._cross_join(names)
        )

    def some_are_active(self, features: FeatureArg) -> bool:
        """Determine if, for every scope, at least one of the features is active."""
        names = self._names(features)
        loaded = self._load(names)
        return all(
            any(self.engine.get(feature, scope, loaded) is not False for feature in names)
            for scope in self.scopes
        )

    def inactive(self, feature: Union[str, type]) -> bool:
        return self.all_are_inactive([feature])

    def all_are_inactive(self, features: FeatureArg) -> bool:
        names = self._names(features)
        loaded = self._load(names)
        return all(
            self.engine.get(feature, scope, loaded) is False
            for feature, scope in self._cross_join(names)
        )

    def some_are_inactive(self, features: FeatureArg) -> bool:
        """Determine if, for every scope, at least one of the features is inactive."""
        names = self._names(features)
        loaded = self._load(names)
        return all(
            any(self.engine.get(feature, scope, loaded) is False for feature in names)
            for scope in self.scopes
        )

    # Branching

    def when(
        self,
        feature: Union[str, type],
        when_active: Callable[[Any, "ScopedFeatureInteraction"], Any],
        when_inactive: Optional[Callable[["ScopedFeatureInteraction"], Any]] = None,
    ) -> Any:
        """
        Apply a callback depending on whether the feature is active.

        when_active receives the feature value and this interaction,
        when_inactive receives this interaction.
        """
        if self.active(feature):
            return when_active(self.value(feature), self)
        if when_inactive is None:
            return None
        return when_inactive(self)

    def unless(
        self,
        feature: Union[str, type],
        when_inactive: Callable[["ScopedFeatureInteraction"], Any],
        when_active: Optional[Callable[[Any, "ScopedFeatureInteraction"], Any]] = None,
    ) -> Any:
        return self.when(feature, when_active or (lambda value, interaction: None), when_inactive)

    # Mutations

    def activate(self, features: FeatureArg, value: Any = True) -> None:
        for feature, scope in self._cross_join(self._names(features)):
            self.engine.set(feature, scope, value)
            self._loaded[(feature, self.engine.scope_key(scope))] = value

    def deactivate(self, features: FeatureArg) -> None:
        self.activate(features, False)

    def forget(self, features: FeatureArg) -> None:
        for feature, scope in self._cross_join(self._names(features)):
            self.engine.delete(feature, scope)
            self._loaded.pop((feature, self.engine.scope_key(scope)), None)

    def activate_for_everyone(self, features: FeatureArg, value: Any = True) -> None:
        """Overwrite the stored value of every scope, ignoring this interaction's scopes."""
        for feature in self._names(features):
            self.engine.set_for_all_scopes(feature, value)
            for pair in self._loaded:
                if pair[0] == feature:
                    self._loaded[pair] = value

    def deactivate_for_everyone(self, features: FeatureArg) -> None:
        self.activate_for_everyone(features, False)

    def purge(self, features: Optional[FeatureArg] = None) -> None:
        """Forget every stored value of the features, or of all features."""
        names = None if features is None else self._names(features)
        self.engine.purge(names)
        if names is None:
            self._loaded.clear()
        else:
            for pair in [pair for pair in self._loaded if pair[0] in names]:
                del self._loaded[pair]

    # Helpers

    def _names(self, features: FeatureArg) -> List[str]:
        """Turn feature arguments into names, binding class based features on first use."""
        names = []
        for feature in _wrap(features):
            if isinstance(feature, type) and issubclass(feature, ClassFeature):
                name = feature.feature_name()
                if self.engine.registry.feature_class(name) is None:
                    self.engine.registry.register_class(feature, feature(self.subscribe))
                names.append(name)
            elif isinstance(feature, Enum):
                names.append(str(feature.value))
            else:
                names.append(feature)
        return names

    def _requests(self, names: List[str]) -> Dict[str, List[Any]]:
        scopes = self.scopes
        return {name: scopes for name in names}

    def _cross_join(self, names: List[str]) -> Iterator[Tuple[str, Any]]:
        scopes = self.scopes
        for feature in names:
            for scope in scopes:
                yield feature, scope

    def _load(self, names: List[str]) -> Dict[Pair, Any]:
        self.engine.get_all_missing(self._requests(names), self._loaded)
        return self._loaded

    def _find_scoped_user(self) -> Any:
        for scope in self.scopes:
            if scope is None:
                continue
            if self.user_type is None or isinstance(scope, self.user_type):
                return scope
        return None
