"""
Scope key normalization.

Turns an arbitrary scope value into the string stored next to a feature value.
Each Python type is classified once into a ScopeKind and every kind has a
single key builder:

    None                          -> "__null__"
    str / int / float / UUID      -> str(value)
    to_feature_identifier()       -> the returned identifier
    any other object with an id   -> "<type tag>|<id>"
"""

import threading
import uuid
from enum import Enum
from typing import Any, Callable, Dict

from flagstore.errors import UnresolvableScopeError


NULL_SCOPE_KEY = "__null__"
NULL_SCOPE_TYPE = "null"

_PRIMITIVE_TYPES = (str, int, float, uuid.UUID)


class ScopeKind(str, Enum):
    """The finite set of scope shapes the normalizer understands."""

    NULL = "null"
    PRIMITIVE = "primitive"
    IDENTIFIABLE = "identifiable"
    ENTITY = "entity"


def scope_type(scope: Any) -> str:
    """
    Return the type tag of a scope.

    Classes may set ``__scope_type__`` to pin a short, stable tag. Otherwise the
    dotted class path is used.
    """
    if scope is None:
        return NULL_SCOPE_TYPE
    cls = type(scope)
    return getattr(cls, "__scope_type__", None) or f"{cls.__module__}.{cls.__qualname__}"


def _null_key(scope: Any) -> str:
    return NULL_SCOPE_KEY


def _primitive_key(scope: Any) -> str:
    key = str(scope)
    if key == NULL_SCOPE_KEY:
        raise UnresolvableScopeError(scope, f"'{NULL_SCOPE_KEY}' is reserved for the global scope")
    return key


def _identifiable_key(scope: Any) -> str:
    identifier = scope.to_feature_identifier()
    if not isinstance(identifier, str) or not identifier:
        raise UnresolvableScopeError(scope, "to_feature_identifier() must return a non-empty string")
    if identifier == NULL_SCOPE_KEY:
        raise UnresolvableScopeError(scope, f"'{NULL_SCOPE_KEY}' is reserved for the global scope")
    return identifier


def _entity_key(scope: Any) -> str:
    identifier = getattr(scope, "id", None)
    if identifier is None:
        raise UnresolvableScopeError(scope, "scope has no stable 'id'")
    return f"{scope_type(scope)}|{identifier}"


_KEY_BUILDERS: Dict[ScopeKind, Callable[[Any], str]] = {
    ScopeKind.NULL: _null_key,
    ScopeKind.PRIMITIVE: _primitive_key,
    ScopeKind.IDENTIFIABLE: _identifiable_key,
    ScopeKind.ENTITY: _entity_key,
}


class ScopeNormalizer:
    """
    Builds storage keys for scopes.

    The ScopeKind of each Python type is computed on first sight and cached,
    so repeated normalization of the same type is a dictionary lookup.
    """

    def __init__(self):
        self._kinds: Dict[type, ScopeKind] = {}
        self._lock = threading.Lock()

    def kind_of(self, scope: Any) -> ScopeKind:
        """Return the ScopeKind for the type of the given scope."""
        cls = type(scope)
        kind = self._kinds.get(cls)
        if kind is None:
            kind = self._classify(cls)
            with self._lock:
                self._kinds[cls] = kind
        return kind

    def normalize(self, scope: Any) -> str:
        """
        Convert a scope into its storage key.

        Raises:
            UnresolvableScopeError: If the scope has no stable identity
        """
        return _KEY_BUILDERS[self.kind_of(scope)](scope)

    @staticmethod
    def _classify(cls: type) -> ScopeKind:
        if cls is type(None):
            return ScopeKind.NULL
        if issubclass(cls, _PRIMITIVE_TYPES):
            return ScopeKind.PRIMITIVE
        if callable(getattr(cls, "to_feature_identifier", None)):
            return ScopeKind.IDENTIFIABLE
        return ScopeKind.ENTITY


_default_normalizer = ScopeNormalizer()


def normalize_scope(scope: Any) -> str:
    """Normalize a scope with the shared normalizer."""
    return _default_normalizer.normalize(scope)
