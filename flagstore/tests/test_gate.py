"""
Tests for the authorization gate and can() checks.
"""
from flagstore.features.class_feature import ClassFeature
from flagstore.features.gate import Gate, gated_features
from flagstore.tests.helpers import Team, User


class BetaDashboard(ClassFeature):
    name = "beta-dashboard"

    def flag_user(self, user, *params):
        return user.is_beta


class AdminReports(ClassFeature):
    name = "admin-reports"

    def flag_user(self, user):
        return True

    def gate(self, user, report=None):
        return user.is_admin and report != "payroll"


class Unhandled(ClassFeature):
    name = "unhandled"


SUBSCRIBE = {"user": "flag_user"}


class TestGate:
    """Tests for ability checks."""

    def test_define_returns_true(self):
        assert Gate().define("edit", lambda user: True) is True

    def test_no_abilities_allows(self):
        assert Gate().for_user(User(1)).check([]) is True

    def test_all_abilities_must_allow(self):
        gate = Gate()
        gate.define("read", lambda user: True)
        gate.define("write", lambda user: user.is_admin)

        assert gate.for_user(User(1, is_admin=True)).check(["read", "write"]) is True
        assert gate.for_user(User(2)).check(["read", "write"]) is False

    def test_undefined_ability_denies(self):
        assert Gate().for_user(User(1)).check(["missing"]) is False

    def test_missing_user_denies(self):
        gate = Gate()
        gate.define("read", lambda user: True)

        assert gate.for_user(None).check(["read"]) is False

    def test_params_are_passed_after_user(self):
        gate = Gate()
        received = []
        gate.define("view", lambda user, *params: received.append(params) or True)

        gate.for_user(User(1)).check(["view"], ["a", "b"])
        gate.for_user(User(1)).check(["view"], "c")

        assert received == [("a", "b"), ("c",)]


class TestGatedFeatures:
    """Tests for selecting the abilities of class based features."""

    def test_gate_method_is_preferred(self):
        gate = Gate()

        names = gated_features(gate, [AdminReports], User(1), SUBSCRIBE)

        assert names == ["admin-reports"]
        assert gate.for_user(User(1, is_admin=True)).check(names) is True
        assert gate.for_user(User(1)).check(names) is False

    def test_subscribed_handler_is_used(self):
        gate = Gate()

        names = gated_features(gate, [BetaDashboard], User(1), SUBSCRIBE)

        assert names == ["beta-dashboard"]
        assert gate.for_user(User(1, is_beta=True)).check(names) is True

    def test_classes_without_handler_are_excluded(self):
        gate = Gate()

        assert gated_features(gate, [Unhandled], User(1), SUBSCRIBE) == []
        assert gated_features(gate, [BetaDashboard], Team(1), SUBSCRIBE) == []
        assert not gate.has("unhandled")


class TestCan:
    """Tests for can() on interactions built by the manager."""

    def test_active_and_allowed(self, manager):
        assert manager.for_scope(User(1, is_beta=True)).can(BetaDashboard) is True

    def test_inactive_feature_cannot(self, manager):
        user = User(1, is_beta=True)
        manager.for_scope(user).deactivate(BetaDashboard)

        assert manager.for_scope(user).can(BetaDashboard) is False
        assert manager.for_scope(user).cant(BetaDashboard) is True
        assert manager.for_scope(user).cannot(BetaDashboard) is True

    def test_gate_denies_active_feature(self, manager):
        user = User(1)
        manager.for_scope(user).activate(AdminReports)

        assert manager.for_scope(user).active(AdminReports) is True
        assert manager.for_scope(user).can(AdminReports) is False

    def test_params_reach_gate(self, manager):
        admin = User(1, is_admin=True)

        assert manager.for_scope(admin).can(AdminReports, "sales") is True
        assert manager.for_scope(admin).can(AdminReports, "payroll") is False

    def test_plain_features_only_need_to_be_active(self, manager):
        manager.define("search", True)

        assert manager.for_scope(User(1)).can("search") is True

    def test_without_user_scope_gated_feature_is_denied(self, manager):
        assert manager.for_scope(None).can(AdminReports) is False

    def test_can_any(self, manager):
        user = User(1, is_beta=True)

        assert manager.for_scope(user).can_any([AdminReports, BetaDashboard]) is True
        assert manager.for_scope(User(2)).can_any([AdminReports, BetaDashboard]) is False

    def test_user_is_found_among_other_scopes(self, manager):
        user = User(1, is_beta=True)

        assert manager.for_scope([Team(3), user]).can(BetaDashboard) is True
