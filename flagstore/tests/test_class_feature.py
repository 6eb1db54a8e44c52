"""
Tests for class based features and their class-level shortcuts.
"""
from flagstore.features.class_feature import ClassFeature
from flagstore.tests.helpers import Team, User


class NewApi(ClassFeature):
    name = "new-api"

    def flag_user(self, user):
        return user.is_beta

    def flag_everyone(self, scope):
        return False


class Checkout(ClassFeature):
    """Feature named after its class path."""

    def flag_user(self, user):
        return {"variant": "b"}


class Maintenance(ClassFeature):
    name = "maintenance"
    without_default_scope = True


class TestResolve:
    """Tests for handler dispatch."""

    def test_handler_is_picked_by_scope_type(self):
        feature = NewApi({"user": "flag_user", "null": "flag_everyone"})

        assert feature.resolve(User(1, is_beta=True)) is True
        assert feature.resolve(User(2)) is False
        assert feature.resolve(None) is False

    def test_missing_handler_resolves_active(self):
        feature = NewApi({"user": "flag_user"})

        assert feature.resolve(Team(1)) is True
        assert feature.resolve(None) is True

    def test_handler_result_is_boolean(self):
        feature = Checkout({"user": "flag_user"})

        assert feature.resolve(User(1)) is True

    def test_unknown_method_names_are_ignored(self):
        feature = NewApi({"user": "does_not_exist"})

        assert feature.resolve(User(1)) is True

    def test_feature_name(self):
        assert NewApi.feature_name() == "new-api"
        assert Checkout.feature_name() == f"{__name__}.Checkout"


class TestClassShortcuts:
    """Tests for the class methods forwarding to the global manager."""

    def test_active_uses_default_scope(self, manager):
        current = User(1, is_beta=True)
        manager.resolve_scope_using(lambda: current)

        assert NewApi.active() is True
        assert manager.for_scope(current).value(NewApi) is True
        assert NewApi.inactive() is False

    def test_without_default_scope_checks_global_scope(self, manager):
        manager.resolve_scope_using(lambda: User(1))

        Maintenance.deactivate()

        assert manager.for_scope(None).inactive(Maintenance) is True
        assert manager.for_scope(User(1)).active(Maintenance) is True

    def test_activate_and_value(self, manager):
        manager.resolve_scope_using(lambda: User(7))

        NewApi.activate("v2")

        assert NewApi.value() == "v2"
        assert NewApi.values() == {"new-api": "v2"}

    def test_forget_re_resolves(self, manager):
        manager.resolve_scope_using(lambda: User(7))
        NewApi.activate()

        NewApi.forget()

        assert NewApi.value() is False

    def test_predicates(self, manager):
        manager.resolve_scope_using(lambda: User(3, is_beta=True))

        assert NewApi.all_are_active() is True
        assert NewApi.some_are_active() is True
        assert NewApi.all_are_inactive() is False
        assert NewApi.some_are_inactive() is False

    def test_when_and_unless(self, manager):
        manager.resolve_scope_using(lambda: User(3))

        assert NewApi.when(lambda value, i: "on", lambda i: "off") == "off"
        assert NewApi.unless(lambda i: "fallback") == "fallback"

    def test_load(self, manager):
        manager.resolve_scope_using(lambda: User(3, is_beta=True))

        assert NewApi.load() == {"new-api": [True]}
        assert NewApi.load_missing() == {"new-api": [True]}

    def test_can_shortcuts(self, manager):
        manager.resolve_scope_using(lambda: User(3, is_beta=True))

        assert NewApi.can() is True
        assert NewApi.can_any() is True
        assert NewApi.cant() is False
        assert NewApi.cannot() is False

    def test_global_scope_handler(self, manager):
        assert NewApi.active() is False
