"""
Protocol definition for feature storage drivers.

Defines the interface that every storage backend must implement. All
operations are keyed by (feature name, scope key) pairs where the scope key
has already been produced by the ScopeNormalizer.
"""

from typing import Any, Dict, Iterable, List, Optional, Protocol, Tuple, runtime_checkable

Pair = Tuple[str, str]


class _Missing:
    """Marker for a pair that has never been resolved or stored."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


@runtime_checkable
class FeatureDriver(Protocol):
    """
    Protocol for feature storage implementations.

    Both InMemoryDriver and DatabaseDriver implement this protocol, allowing
    the resolution engine to use either without knowing the implementation.

    Drivers may also provide insert_many(values) -> values: a batched
    insert-if-absent returning the value actually stored for each pair. The
    engine uses it for newly resolved values and falls back to set() per pair.
    """

    def get(self, feature: str, scope_key: str) -> Any:
        """
        Retrieve a stored value.

        Returns:
            The stored value, or MISSING if the pair was never stored.
        """
        ...

    def get_all(self, pairs: Iterable[Pair]) -> Dict[Pair, Any]:
        """
        Retrieve stored values for many pairs in a single backend round trip.

        Returns:
            Mapping containing every requested pair, MISSING for absent ones.
        """
        ...

    def set(self, feature: str, scope_key: str, value: Any) -> None:
        """Store a value, overwriting any previous one."""
        ...

    def set_for_all_scopes(self, feature: str, value: Any) -> None:
        """Overwrite the value of every stored scope of a feature."""
        ...

    def delete(self, feature: str, scope_key: str) -> None:
        """Remove a stored value. Deleting an absent pair is a no-op."""
        ...

    def purge(self, features: Optional[List[str]] = None) -> None:
        """Remove every stored value of the given features, or of all features."""
        ...

    def defined(self) -> List[str]:
        """Return the names of features with at least one stored value."""
        ...

