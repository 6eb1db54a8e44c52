"""
Resolver registry.

Maps feature names to the callables computing their initial value. The
registry only stores and dispatches; the resolution engine decides when a
resolver may run.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Type

from flagstore.errors import UndefinedFeatureError

logger = logging.getLogger(__name__)

Resolver = Callable[[Any], Any]


def _constant(value: Any) -> Resolver:
    def resolve(scope: Any) -> Any:
        return value

    return resolve


class ResolverRegistry:
    """Name -> resolver lookup for defined features."""

    def __init__(self):
        self._resolvers: Dict[str, Resolver] = {}
        self._classes: Dict[str, type] = {}

    def register(self, feature: str, resolver: Any) -> None:
        """
        Define a feature.

        Args:
            feature: Feature name
            resolver: Callable receiving the scope, or a constant value used
                for every scope
        """
        self._resolvers[feature] = resolver if callable(resolver) else _constant(resolver)
        self._classes.pop(feature, None)
        logger.debug(f"Registered resolver for feature '{feature}'")

    def register_class(self, feature_class: Type, instance: Any) -> str:
        """
        Define a class based feature.

        Args:
            feature_class: The ClassFeature subclass
            instance: Bound instance whose resolve() computes values

        Returns:
            The feature name the class was registered under
        """
        name = feature_class.feature_name()
        self._resolvers[name] = instance.resolve
        self._classes[name] = feature_class
        logger.debug(f"Registered class feature '{name}'")
        return name

    def has(self, feature: str) -> bool:
        return feature in self._resolvers

    def names(self) -> List[str]:
        return list(self._resolvers)

    def feature_class(self, feature: str) -> Optional[type]:
        """Return the class registered for a feature, if it is class based."""
        return self._classes.get(feature)

    def resolve(self, feature: str, scope: Any) -> Any:
        """
        Compute the initial value of a feature for a scope.

        Raises:
            UndefinedFeatureError: If no resolver is registered for the feature
        """
        resolver = self._resolvers.get(feature)
        if resolver is None:
            raise UndefinedFeatureError(feature)
        return resolver(scope)
