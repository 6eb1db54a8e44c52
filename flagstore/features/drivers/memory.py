"""
In-memory feature storage.

Values live in an InMemoryState object. InMemoryState.shared() is the single
process-wide instance used by memory stores unless a state is passed in.

Note: This is only safe for single-process, test-like use. Each process has
its own state, so it is NOT a substitute for the database driver when several
workers serve the same application.
"""

import logging
import threading
from typing import Any, Dict, Iterable, List, Optional

from flagstore.features.drivers.base import MISSING, Pair

logger = logging.getLogger(__name__)


class InMemoryState:
    """Feature values keyed by feature name, then scope key."""

    _shared: Optional["InMemoryState"] = None
    _shared_lock = threading.Lock()

    def __init__(self):
        self.values: Dict[str, Dict[str, Any]] = {}
        self.lock = threading.RLock()

    @classmethod
    def shared(cls) -> "InMemoryState":
        """Get or create the process-wide state."""
        with cls._shared_lock:
            if cls._shared is None:
                cls._shared = cls()
            return cls._shared

    @classmethod
    def reset_shared(cls) -> None:
        """Drop the process-wide state. Intended for tests."""
        with cls._shared_lock:
            cls._shared = None


class InMemoryDriver:
    """Storage driver backed by a dictionary."""

    def __init__(self, state: Optional[InMemoryState] = None):
        """
        Initialize the driver.

        Args:
            state: State to store values in. Defaults to the process-wide state.
        """
        self.state = state or InMemoryState.shared()

    def get(self, feature: str, scope_key: str) -> Any:
        with self.state.lock:
            return self.state.values.get(feature, {}).get(scope_key, MISSING)

    def get_all(self, pairs: Iterable[Pair]) -> Dict[Pair, Any]:
        with self.state.lock:
            return {
                (feature, scope_key): self.state.values.get(feature, {}).get(scope_key, MISSING)
                for feature, scope_key in pairs
            }

    def set(self, feature: str, scope_key: str, value: Any) -> None:
        with self.state.lock:
            self.state.values.setdefault(feature, {})[scope_key] = value

    def insert_many(self, values: Dict[Pair, Any]) -> Dict[Pair, Any]:
        stored = {}
        with self.state.lock:
            for (feature, scope_key), value in values.items():
                scopes = self.state.values.setdefault(feature, {})
                stored[(feature, scope_key)] = scopes.setdefault(scope_key, value)
        return stored

    def set_for_all_scopes(self, feature: str, value: Any) -> None:
        with self.state.lock:
            scopes = self.state.values.get(feature, {})
            for scope_key in scopes:
                scopes[scope_key] = value

    def delete(self, feature: str, scope_key: str) -> None:
        with self.state.lock:
            scopes = self.state.values.get(feature)
            if scopes is None:
                return
            scopes.pop(scope_key, None)
            if not scopes:
                del self.state.values[feature]

    def purge(self, features: Optional[List[str]] = None) -> None:
        with self.state.lock:
            if features is None:
                self.state.values.clear()
            else:
                for feature in features:
                    self.state.values.pop(feature, None)
        logger.debug(f"Purged in-memory features: {features or 'all'}")

    def defined(self) -> List[str]:
        with self.state.lock:
            return list(self.state.values)
