"""
Authorization gate for class based features.

A Gate maps ability names to callbacks receiving the user followed by any
parameters. Feature checks use it through ScopedFeatureInteraction.can(): a
feature passes when it is active AND every gated feature allows the user.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from flagstore.features.scope import scope_type

logger = logging.getLogger(__name__)


def _wrap_params(params: Any) -> List[Any]:
    if params is None:
        return []
    if isinstance(params, (list, tuple)):
        return list(params)
    return [params]


class Gate:
    """Ability name -> authorization callback."""

    def __init__(self):
        self._abilities: Dict[str, Callable[..., Any]] = {}

    def define(self, ability: str, callback: Callable[..., Any]) -> bool:
        """Define an ability. Returns True so it can be used as a filter."""
        self._abilities[ability] = callback
        return True

    def has(self, ability: str) -> bool:
        return ability in self._abilities

    def for_user(self, user: Any) -> "UserGate":
        return UserGate(self, user)


class UserGate:
    """A Gate bound to one user."""

    def __init__(self, gate: Gate, user: Any):
        self.gate = gate
        self.user = user

    def check(self, abilities: Iterable[str], params: Any = None) -> bool:
        """
        Determine if every ability allows the user.

        No abilities allows. An undefined ability or a missing user denies.
        """
        arguments = _wrap_params(params)
        for ability in abilities:
            callback = self.gate._abilities.get(ability)
            if callback is None or self.user is None:
                logger.debug(f"Ability '{ability}' denied: undefined ability or no user")
                return False
            if not callback(self.user, *arguments):
                return False
        return True


def gated_features(
    gate: Gate,
    feature_classes: Iterable[type],
    user: Any,
    subscribe: Optional[Dict[str, str]] = None,
) -> List[str]:
    """
    Define abilities for class based features and return their names.

    A class with a ``gate`` method is authorized through it. Otherwise the
    handler subscribed for the user's scope type is used when the class
    defines it. Classes with neither are left out of the check.
    """
    subscribe = subscribe or {}
    handler_name = subscribe.get(scope_type(user)) if user is not None else None

    gated = []
    for feature_class in feature_classes:
        instance = feature_class(subscribe)
        name = feature_class.feature_name()
        if callable(getattr(instance, "gate", None)):
            gate.define(name, instance.gate)
        elif handler_name and callable(getattr(instance, handler_name, None)):
            gate.define(name, getattr(instance, handler_name))
        else:
            continue
        gated.append(name)
    return gated
