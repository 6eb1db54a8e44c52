"""
Class based features.

A ClassFeature subclass is a feature whose name is the class and whose initial
value comes from handler methods. Handlers are picked per scope type from the
``subscribe`` setting (scope type tag -> method name, "null" for the global
scope), e.g.

    class NewApi(ClassFeature):
        name = "new-api"

        def flag_user(self, user):
            return user.is_beta_tester

    # FLAGSTORE_SUBSCRIBE='{"myapp.models.User": "flag_user"}'
    NewApi.active()

The class methods below forward to the global FeatureManager with the class
itself as the feature argument.
"""

from typing import Any, Callable, Dict, Optional

from flagstore.features.scope import scope_type


class ClassFeature:
    """Base class for class based features."""

    # Feature name, defaults to the dotted class path
    name: Optional[str] = None

    # Skip the manager's default scope when interacting through the class
    without_default_scope: bool = False

    def __init__(self, subscribe: Optional[Dict[str, str]] = None):
        """
        Bind the handler table.

        Args:
            subscribe: Scope type tag -> handler method name
        """
        self._handlers: Dict[str, Callable[[Any], Any]] = {}
        for tag, method_name in (subscribe or {}).items():
            handler = getattr(self, method_name, None)
            if callable(handler):
                self._handlers[tag] = handler

    @classmethod
    def feature_name(cls) -> str:
        return cls.name or f"{cls.__module__}.{cls.__qualname__}"

    def resolve(self, scope: Any) -> bool:
        """
        Resolve the initial value for a scope.

        Features without a handler for the scope's type are active.
        """
        handler = self._handlers.get(scope_type(scope))
        if handler is None:
            return True
        return bool(handler(scope))

    @classmethod
    def _interaction(cls):
        from flagstore.features.manager import get_feature_manager

        manager = get_feature_manager()
        if cls.without_default_scope:
            return manager.without_default_scope()
        return manager.interaction()

    @classmethod
    def activate(cls, value: Any = True) -> None:
        cls._interaction().activate(cls, value)

    @classmethod
    def deactivate(cls) -> None:
        cls._interaction().deactivate(cls)

    @classmethod
    def forget(cls) -> None:
        cls._interaction().forget(cls)

    @classmethod
    def active(cls) -> bool:
        return cls._interaction().active(cls)

    @classmethod
    def inactive(cls) -> bool:
        return cls._interaction().inactive(cls)

    @classmethod
    def all_are_active(cls) -> bool:
        return cls._interaction().all_are_active(cls)

    @classmethod
    def all_are_inactive(cls) -> bool:
        return cls._interaction().all_are_inactive(cls)

    @classmethod
    def some_are_active(cls) -> bool:
        return cls._interaction().some_are_active(cls)

    @classmethod
    def some_are_inactive(cls) -> bool:
        return cls._interaction().some_are_inactive(cls)

    @classmethod
    def value(cls) -> Any:
        return cls._interaction().value(cls)

    @classmethod
    def values(cls) -> Dict[str, Any]:
        return cls._interaction().values(cls)

    @classmethod
    def load(cls):
        return cls._interaction().load(cls)

    @classmethod
    def load_missing(cls):
        return cls._interaction().load_missing(cls)

    @classmethod
    def when(cls, when_active: Callable, when_inactive: Optional[Callable] = None) -> Any:
        return cls._interaction().when(cls, when_active, when_inactive)

    @classmethod
    def unless(cls, when_inactive: Callable, when_active: Optional[Callable] = None) -> Any:
        return cls._interaction().unless(cls, when_inactive, when_active)

    @classmethod
    def can(cls, params: Any = None) -> bool:
        return cls._interaction().can(cls, params)

    @classmethod
    def can_any(cls, params: Any = None) -> bool:
        return cls._interaction().can_any(cls, params)

    @classmethod
    def cant(cls, params: Any = None) -> bool:
        return cls._interaction().cant(cls, params)

    @classmethod
    def cannot(cls, params: Any = None) -> bool:
        return cls._interaction().cannot(cls, params)
