"""
Scope objects and resolver helpers shared by the tests.
"""
from typing import Any, List


class User:
    """A user-like scope with a stable id."""
    __scope_type__ = "user"

    def __init__(self, id: Any, is_beta: bool = False, is_admin: bool = False):
        self.id = id
        self.is_beta = is_beta
        self.is_admin = is_admin


class Team:
    """A team-like scope sharing id values with users."""
    __scope_type__ = "team"

    def __init__(self, id: Any):
        self.id = id


class Tenant:
    """A scope providing its own feature identifier."""

    def __init__(self, slug: str):
        self.slug = slug

    def to_feature_identifier(self) -> str:
        return f"tenant:{self.slug}"


class CallCounter:
    """Resolver recording every scope it was called with."""

    def __init__(self, result: Any = True):
        self.result = result
        self.calls: List[Any] = []

    def __call__(self, scope: Any) -> Any:
        self.calls.append(scope)
        return self.result(scope) if callable(self.result) else self.result

    @property
    def count(self) -> int:
        return len(self.calls)
