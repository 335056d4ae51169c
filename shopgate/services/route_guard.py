"""
Route Guard.

A single parameterised evaluator decides whether a resolved session may
view a route.  Every navigation passes through three named states::

    LOADING  -> resolution still in flight; render nothing
    REDIRECT -> send the visitor elsewhere (``target``)
    ALLOWED  -> render the route

Rules are applied in a fixed priority order (first match wins):

1. no resolution yet                                -> LOADING
   public route (login views)                       -> ALLOWED
2. unresolved / failed, or admin route for a non-admin
                                                    -> family login
   signed-in-only route (account status)            -> ALLOWED
3. shop route, non-admin, account not active        -> /account-status
4. guest on a non-guest route                       -> /guest-dashboard
   non-guest on a guest-only route                  -> /dashboard
5. permission route, staff without the flag         -> /dashboard
6. otherwise                                        -> ALLOWED

Resolution runs on a daemon thread; the caller receives ``LOADING``
synchronously and the final decision through a callback.  A cancelled
evaluation (the view was unmounted) never delivers its decision.
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from shopgate.logger import StructuredLogger
from shopgate.models.enums import AccountRole, RouteAccess, RouteFamily
from shopgate.models.guard_models import GuardDecision, RouteRule
from shopgate.models.identity import Identity
from shopgate.models.session_models import SessionResolution
from shopgate.routes import (
    ACCOUNT_STATUS_PATH,
    ADMIN_LOGIN_PATH,
    GUEST_HOME_PATH,
    HOME_PATH,
    LOGIN_PATH,
    RouteRegistry,
)
from shopgate.services.base_service import BaseService
from shopgate.services.role_resolver import SessionRoleResolver

DecisionCallback = Callable[[GuardDecision], None]
NON_MENU_ACCESS = frozenset({RouteAccess.PUBLIC, RouteAccess.SIGNED_IN})


def evaluate(
    rule: RouteRule,
    resolution: Optional[SessionResolution],
) -> GuardDecision:
    """Apply the guard rules to one route and one resolution."""
    if resolution is None:
        return GuardDecision.loading()
    if rule.access == RouteAccess.PUBLIC:
        return GuardDecision.allowed()

    session = resolution.session if resolution.is_resolved else None
    login_path = ADMIN_LOGIN_PATH if rule.family == RouteFamily.ADMIN else LOGIN_PATH

    if session is None:
        return GuardDecision.redirect(login_path, "unauthenticated")
    if rule.family == RouteFamily.ADMIN and session.role != AccountRole.ADMIN:
        return GuardDecision.redirect(login_path, "not_admin")
    if rule.access == RouteAccess.SIGNED_IN:
        return GuardDecision.allowed()

    if (
        rule.family == RouteFamily.SHOP
        and session.role != AccountRole.ADMIN
        and not session.is_active
    ):
        return GuardDecision.redirect(ACCOUNT_STATUS_PATH, str(session.status))

    is_guest = session.role == AccountRole.GUEST
    if is_guest and rule.access != RouteAccess.GUEST_ONLY:
        return GuardDecision.redirect(GUEST_HOME_PATH, "guest_only")
    if not is_guest and rule.access == RouteAccess.GUEST_ONLY:
        return GuardDecision.redirect(HOME_PATH, "not_guest")

    if (
        rule.access == RouteAccess.PERMISSION
        and rule.permission is not None
        and session.role == AccountRole.STAFF
        and not session.allows(rule.permission)
    ):
        return GuardDecision.redirect(HOME_PATH, f"missing:{rule.permission}")

    return GuardDecision.allowed()


class GuardEvaluation:
    """Handle on one in-flight guard evaluation.

    The decision callback fires at most once after construction, and
    never once :meth:`cancel` has returned.
    """

    def __init__(self, path: str, on_decision: DecisionCallback) -> None:
        self.path = path
        self._on_decision = on_decision
        self._lock = threading.RLock()
        self._cancelled = threading.Event()
        self._done = threading.Event()
        self._decision: Optional[GuardDecision] = None

    def cancel(self) -> None:
        with self._lock:
            self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def decision(self) -> Optional[GuardDecision]:
        """The final decision, or ``None`` while in flight or when cancelled."""
        with self._lock:
            return self._decision

    def wait(self, timeout: Optional[float] = None) -> Optional[GuardDecision]:
        """Block until the worker finishes; return the delivered decision."""
        self._done.wait(timeout)
        return self.decision

    def _deliver(self, decision: GuardDecision) -> bool:
        try:
            with self._lock:
                if self._cancelled.is_set():
                    return False
                self._decision = decision
                self._on_decision(decision)
                return True
        finally:
            self._done.set()


class RouteGuard(BaseService):
    """Looks up route rules and evaluates them for sessions.

    Parameters
    ----------
    routes:
        The route table.
    resolver:
        Resolves identities for :meth:`begin`.
    logger:
        Structured logger.
    """

    def __init__(
        self,
        routes: RouteRegistry,
        resolver: SessionRoleResolver,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._routes = routes
        self._resolver = resolver

    @property
    def routes(self) -> RouteRegistry:
        return self._routes

    def check(
        self,
        path: str,
        resolution: Optional[SessionResolution],
    ) -> GuardDecision:
        decision = evaluate(self._routes.rule_for(path), resolution)
        if decision.target is not None:
            self._logger.info(
                "Guard redirect %s -> %s (%s)", path, decision.target, decision.reason,
                extra={"event": "GUARD_REDIRECT"},
            )
        return decision

    def begin(
        self,
        path: str,
        identity: Optional[Identity],
        on_decision: DecisionCallback,
    ) -> GuardEvaluation:
        """Start evaluating *path* for *identity* on a background thread.

        *on_decision* receives ``LOADING`` before this method returns and
        the final decision later, unless the returned evaluation is
        cancelled first.
        """
        evaluation = GuardEvaluation(path, on_decision)
        on_decision(GuardDecision.loading())

        def _worker() -> None:
            try:
                if identity is None:
                    resolution = SessionResolution.unresolved()
                else:
                    resolution = self._resolver.resolve(identity)
            except Exception as exc:
                self._logger.error(
                    "Guard evaluation for %s crashed.", path, exc_info=True,
                )
                resolution = SessionResolution.failed(str(exc))

            decision = self.check(path, resolution)
            if not evaluation._deliver(decision):
                self._logger.debug("Guard evaluation for %s cancelled.", path)

        thread = threading.Thread(target=_worker, name=f"guard-{path}", daemon=True)
        thread.start()
        return evaluation

    def navigation_for(
        self,
        resolution: Optional[SessionResolution],
        family: RouteFamily = RouteFamily.SHOP,
    ) -> list[RouteRule]:
        """Menu routes of *family* the session may open, in registration order.

        Login and account-status views are reached by redirect only.
        """
        return [
            rule
            for rule in self._routes.rules(family)
            if rule.access not in NON_MENU_ACCESS and evaluate(rule, resolution).is_allowed
        ]
