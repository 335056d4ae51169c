import threading

import pytest

from shopgate.logger import StructuredLogger
from shopgate.models.enums import AccountRole, AccountStatus, GuardState, RouteFamily
from shopgate.models.guard_models import GuardDecision
from shopgate.models.identity import Identity
from shopgate.models.permissions import PermissionSet
from shopgate.models.session_models import ResolvedSession, SessionResolution
from shopgate.routes import build_default_routes
from shopgate.services.route_guard import RouteGuard, evaluate


def _resolution(role, status=AccountStatus.APPROVED, permissions=None) -> SessionResolution:
    if permissions is None:
        permissions = PermissionSet.guest() if role == AccountRole.GUEST else PermissionSet.full()
    return SessionResolution.resolved(
        ResolvedSession(
            identity=Identity(id="u1", email="u1@shop.test"),
            role=role,
            status=status,
            permissions=permissions,
            shop_id=None if role == AccountRole.ADMIN else "shop-1",
        )
    )


@pytest.fixture
def guard(services) -> RouteGuard:
    return services["route_guard"]


def _assert_redirect(decision: GuardDecision, target: str, reason: str) -> None:
    assert decision.state == GuardState.REDIRECT
    assert decision.target == target
    assert decision.reason == reason


class TestUnauthenticated:
    def test_no_resolution_yet_is_loading(self, guard):
        assert guard.check("/dashboard", None).state == GuardState.LOADING

    def test_shop_route_sends_to_shop_login(self, guard):
        _assert_redirect(
            guard.check("/dashboard", SessionResolution.unresolved()), "/login", "unauthenticated",
        )

    def test_admin_route_sends_to_admin_login(self, guard):
        _assert_redirect(
            guard.check("/admin/users", SessionResolution.unresolved()),
            "/admin/login",
            "unauthenticated",
        )

    def test_failed_resolution_is_treated_as_unauthenticated(self, guard):
        _assert_redirect(
            guard.check("/stock", SessionResolution.failed("store down")),
            "/login",
            "unauthenticated",
        )

    def test_unknown_path_still_requires_a_session(self, guard):
        _assert_redirect(
            guard.check("/reports", SessionResolution.unresolved()), "/login", "unauthenticated",
        )
        assert guard.check("/reports", _resolution(AccountRole.OWNER)).is_allowed


class TestAdminRoutes:
    @pytest.mark.parametrize("role", [AccountRole.OWNER, AccountRole.STAFF, AccountRole.GUEST])
    def test_non_admins_are_sent_to_admin_login(self, guard, role):
        _assert_redirect(
            guard.check("/admin/dashboard", _resolution(role)), "/admin/login", "not_admin",
        )

    def test_admin_is_allowed(self, guard):
        assert guard.check("/admin/pending-users", _resolution(AccountRole.ADMIN, AccountStatus.ACTIVE)).is_allowed

    def test_admin_may_open_shop_routes(self, guard):
        admin = _resolution(AccountRole.ADMIN, AccountStatus.ACTIVE)
        assert guard.check("/dashboard", admin).is_allowed
        assert guard.check("/stock", admin).is_allowed


class TestAccountStatus:
    @pytest.mark.parametrize(
        "status", [AccountStatus.PENDING, AccountStatus.FROZEN, AccountStatus.REJECTED],
    )
    def test_inactive_owner_goes_to_status_page(self, guard, status):
        _assert_redirect(
            guard.check("/dashboard", _resolution(AccountRole.OWNER, status)),
            "/account-status",
            str(status),
        )

    def test_staff_of_frozen_shop(self, guard):
        _assert_redirect(
            guard.check("/settings", _resolution(AccountRole.STAFF, AccountStatus.FROZEN)),
            "/account-status",
            "frozen",
        )

    def test_status_is_checked_before_guest_rule(self, guard):
        _assert_redirect(
            guard.check("/guest-dashboard", _resolution(AccountRole.GUEST, AccountStatus.PENDING)),
            "/account-status",
            "pending",
        )


class TestGuestRoutes:
    def test_guest_allowed_on_guest_routes(self, guard):
        guest = _resolution(AccountRole.GUEST)
        assert guard.check("/guest-dashboard", guest).is_allowed
        assert guard.check("/guest-new-receipt", guest).is_allowed

    @pytest.mark.parametrize("path", ["/dashboard", "/new-receipt", "/settings"])
    def test_guest_confined_to_guest_area(self, guard, path):
        _assert_redirect(
            guard.check(path, _resolution(AccountRole.GUEST)), "/guest-dashboard", "guest_only",
        )

    @pytest.mark.parametrize("role", [AccountRole.OWNER, AccountRole.STAFF])
    def test_non_guests_sent_home(self, guard, role):
        _assert_redirect(
            guard.check("/guest-dashboard", _resolution(role)), "/dashboard", "not_guest",
        )


class TestPermissionRoutes:
    def test_staff_without_permission(self, guard):
        staff = _resolution(AccountRole.STAFF, permissions=PermissionSet.none())
        _assert_redirect(guard.check("/stock", staff), "/dashboard", "missing:canViewStock")

    def test_staff_with_permission(self, guard):
        staff = _resolution(
            AccountRole.STAFF, permissions=PermissionSet.from_mapping({"canViewStock": True}),
        )
        assert guard.check("/stock", staff).is_allowed
        assert guard.check("/purchase-management", staff).is_allowed
        assert not guard.check("/receipts", staff).is_allowed

    def test_staff_on_plain_authenticated_route(self, guard):
        staff = _resolution(AccountRole.STAFF, permissions=PermissionSet.none())
        assert guard.check("/settings", staff).is_allowed

    def test_owner_needs_no_flags(self, guard):
        owner = _resolution(AccountRole.OWNER, permissions=PermissionSet.none())
        assert guard.check("/expenses", owner).is_allowed


class TestEvaluateIsPure:
    def test_same_inputs_same_decision(self, services):
        rule = services["route_registry"].rule_for("/stock")
        staff = _resolution(AccountRole.STAFF, permissions=PermissionSet.none())
        assert evaluate(rule, staff) == evaluate(rule, staff)


_SHOP_STATUSES = [
    AccountStatus.PENDING, AccountStatus.APPROVED, AccountStatus.FROZEN, AccountStatus.REJECTED,
]

_ALL_RESOLUTIONS = [
    SessionResolution.unresolved(),
    SessionResolution.failed("store unavailable"),
    _resolution(AccountRole.ADMIN, AccountStatus.ACTIVE),
    *[
        _resolution(role, status)
        for role in (AccountRole.OWNER, AccountRole.STAFF, AccountRole.GUEST)
        for status in _SHOP_STATUSES
    ],
    _resolution(AccountRole.STAFF, permissions=PermissionSet.none()),
]


class TestLoginAndStatusPages:
    @pytest.mark.parametrize("path", ["/login", "/admin/login"])
    def test_login_pages_are_public(self, guard, path):
        assert guard.check(path, SessionResolution.unresolved()).is_allowed
        assert guard.check(path, SessionResolution.failed("offline")).is_allowed

    def test_login_page_waits_for_resolution(self, guard):
        assert guard.check("/login", None).state == GuardState.LOADING

    @pytest.mark.parametrize("status", _SHOP_STATUSES)
    @pytest.mark.parametrize("role", [AccountRole.OWNER, AccountRole.STAFF, AccountRole.GUEST])
    def test_status_page_open_to_any_session(self, guard, role, status):
        assert guard.check("/account-status", _resolution(role, status)).is_allowed

    def test_status_page_requires_a_session(self, guard):
        _assert_redirect(
            guard.check("/account-status", SessionResolution.unresolved()),
            "/login",
            "unauthenticated",
        )

    def test_frozen_owner_lands_on_status_page(self, guard):
        frozen = _resolution(AccountRole.OWNER, AccountStatus.FROZEN)
        target = guard.check("/dashboard", frozen).target
        assert target == "/account-status"
        assert guard.check(target, frozen).is_allowed

    @pytest.mark.parametrize("resolution", _ALL_RESOLUTIONS)
    def test_every_redirect_target_admits_the_session(self, guard, resolution):
        paths = [rule.path for rule in guard.routes.rules()] + ["/reports"]
        for path in paths:
            decision = guard.check(path, resolution)
            if decision.target is None:
                continue
            assert decision.target in guard.routes
            assert guard.check(decision.target, resolution).is_allowed, (path, decision)


class TestNavigation:
    def test_staff_menu_follows_permissions(self, guard):
        staff = _resolution(
            AccountRole.STAFF, permissions=PermissionSet.from_mapping({"canCreateReceipts": True}),
        )
        paths = [rule.path for rule in guard.navigation_for(staff)]
        assert "/dashboard" in paths
        assert "/new-receipt" in paths
        assert "/stock" not in paths
        assert "/guest-dashboard" not in paths
        assert paths.index("/dashboard") < paths.index("/new-receipt")

    def test_guest_menu(self, guard):
        paths = [rule.path for rule in guard.navigation_for(_resolution(AccountRole.GUEST))]
        assert paths == ["/guest-dashboard", "/guest-new-receipt"]

    def test_admin_menu(self, guard):
        admin = _resolution(AccountRole.ADMIN, AccountStatus.ACTIVE)
        paths = [rule.path for rule in guard.navigation_for(admin, RouteFamily.ADMIN)]
        assert paths == ["/admin/dashboard", "/admin/users", "/admin/pending-users"]

    def test_signed_out_menu_is_empty(self, guard):
        assert guard.navigation_for(None) == []
        assert guard.navigation_for(SessionResolution.unresolved()) == []


class _BlockingResolver:
    """Resolver stand-in that waits until released."""

    def __init__(self, resolution: SessionResolution) -> None:
        self.release = threading.Event()
        self.started = threading.Event()
        self._resolution = resolution

    def resolve(self, identity):
        self.started.set()
        self.release.wait(5)
        return self._resolution


class _ExplodingResolver:
    def resolve(self, identity):
        raise RuntimeError("resolver bug")


class TestAsyncEvaluation:
    IDENTITY = Identity(id="u1", email="u1@shop.test")

    def _guard(self, resolver) -> RouteGuard:
        logger = StructuredLogger(name="shopgate.tests.guard")
        return RouteGuard(build_default_routes(logger), resolver, logger)

    def test_loading_then_final_decision(self, guard, seed):
        owner = seed.shop()
        seen: list[GuardDecision] = []

        evaluation = guard.begin("/dashboard", Identity(id=owner.id, email=owner.email), seen.append)
        decision = evaluation.wait(timeout=5)

        assert decision is not None and decision.is_allowed
        assert [d.state for d in seen] == [GuardState.LOADING, GuardState.ALLOWED]

    def test_loading_is_delivered_before_begin_returns(self):
        resolver = _BlockingResolver(_resolution(AccountRole.OWNER))
        seen: list[GuardDecision] = []

        evaluation = self._guard(resolver).begin("/dashboard", self.IDENTITY, seen.append)
        assert [d.state for d in seen] == [GuardState.LOADING]
        assert evaluation.decision is None

        resolver.release.set()
        assert evaluation.wait(timeout=5).is_allowed

    def test_cancelled_evaluation_never_delivers(self):
        resolver = _BlockingResolver(_resolution(AccountRole.OWNER))
        seen: list[GuardDecision] = []

        evaluation = self._guard(resolver).begin("/dashboard", self.IDENTITY, seen.append)
        assert resolver.started.wait(5)
        evaluation.cancel()
        resolver.release.set()

        assert evaluation.wait(timeout=5) is None
        assert evaluation.cancelled
        assert [d.state for d in seen] == [GuardState.LOADING]

    def test_missing_identity_redirects_to_login(self, guard):
        evaluation = guard.begin("/admin/users", None, lambda decision: None)
        decision = evaluation.wait(timeout=5)
        assert decision.target == "/admin/login"

    def test_resolver_crash_becomes_redirect(self):
        seen: list[GuardDecision] = []
        evaluation = self._guard(_ExplodingResolver()).begin("/stock", self.IDENTITY, seen.append)
        decision = evaluation.wait(timeout=5)
        assert decision.target == "/login"
        assert decision.reason == "unauthenticated"
