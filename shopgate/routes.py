"""Route Registry.

Central registry of navigable paths and the access rule each one
carries.  The route guard queries this registry on every navigation and
the shell uses it to build the navigation menu.

Adding a route = one ``register()`` call.  Zero guard modifications
required.
"""

from __future__ import annotations

from shopgate.logger import StructuredLogger
from shopgate.models.enums import Permission, RouteAccess, RouteFamily
from shopgate.models.guard_models import RouteRule

# Redirect targets used by the guard.
LOGIN_PATH: str = "/login"
ADMIN_LOGIN_PATH: str = "/admin/login"
ACCOUNT_STATUS_PATH: str = "/account-status"
HOME_PATH: str = "/dashboard"
GUEST_HOME_PATH: str = "/guest-dashboard"
ADMIN_HOME_PATH: str = "/admin/dashboard"


class RouteRegistry:
    """Manages the collection of registered routes.

    Parameters
    ----------
    logger:
        Structured logger for registration events.
    """

    def __init__(self, logger: StructuredLogger) -> None:
        self._rules: dict[str, RouteRule] = {}
        self._logger = logger

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def register(
        self,
        path: str,
        access: RouteAccess = RouteAccess.AUTHENTICATED,
        permission: Permission | None = None,
        *,
        family: RouteFamily | None = None,
        label: str = "",
    ) -> RouteRule:
        """Register *path* with its access rule.

        ``family`` defaults to ``ADMIN`` for admin-only routes and
        ``SHOP`` otherwise.

        Raises
        ------
        pydantic.ValidationError
            If the rule is inconsistent (e.g. a permission route without
            a permission).
        """
        if family is None:
            family = RouteFamily.ADMIN if access == RouteAccess.ADMIN_ONLY else RouteFamily.SHOP
        rule = RouteRule(
            path=path,
            family=family,
            access=access,
            permission=permission,
            label=label or path,
        )
        if path in self._rules:
            self._logger.warning("Route '%s' already registered; overwriting.", path)
        self._rules[path] = rule
        self._logger.debug("Route registered: %s (%s)", path, access)
        return rule

    def get(self, path: str) -> RouteRule | None:
        return self._rules.get(path)

    def rule_for(self, path: str) -> RouteRule:
        """Return the rule for *path*.

        Unregistered paths are treated as plain authenticated shop routes,
        so a typo in the table can never expose a page without a session.
        """
        rule = self._rules.get(path)
        if rule is None:
            return RouteRule(path=path, label=path)
        return rule

    def rules(self, family: RouteFamily | None = None) -> list[RouteRule]:
        """Registered rules in registration order, optionally by family."""
        return [
            rule
            for rule in self._rules.values()
            if family is None or rule.family == family
        ]

    def __contains__(self, path: object) -> bool:
        return path in self._rules

    def __len__(self) -> int:
        return len(self._rules)


def build_default_routes(logger: StructuredLogger) -> RouteRegistry:
    """Registry populated with the shop-billing application's routes."""
    registry = RouteRegistry(logger)

    # Reachable without a session
    registry.register(LOGIN_PATH, RouteAccess.PUBLIC, label="Login")
    registry.register(
        ADMIN_LOGIN_PATH, RouteAccess.PUBLIC, family=RouteFamily.ADMIN, label="Admin Login",
    )

    # Any session, whatever the account status
    registry.register(ACCOUNT_STATUS_PATH, RouteAccess.SIGNED_IN, label="Account Status")

    # Any signed-in shop session
    registry.register(HOME_PATH, label="Dashboard")
    registry.register("/settings", label="Settings")
    registry.register("/add-employee", label="Add Employee")
    registry.register("/add-expense", label="Add Expense")
    registry.register("/expense-categories", label="Expense Categories")
    registry.register("/attendance-report", label="Attendance Report")

    # Staff need the named capability
    perm = RouteAccess.PERMISSION
    registry.register("/new-receipt", perm, Permission.CREATE_RECEIPTS, label="New Receipt")
    registry.register("/receipts", perm, Permission.VIEW_RECEIPTS, label="Receipts")
    registry.register("/sales-analytics", perm, Permission.VIEW_ANALYTICS, label="Sales Analytics")
    registry.register("/stock", perm, Permission.VIEW_STOCK, label="Stock")
    registry.register(
        "/purchase-management", perm, Permission.VIEW_STOCK, label="Purchase Management",
    )
    registry.register("/employees", perm, Permission.VIEW_EMPLOYEES, label="Employees")
    registry.register("/expenses", perm, Permission.MANAGE_EXPENSES, label="Expenses")
    registry.register("/attendance", perm, Permission.MARK_ATTENDANCE, label="Attendance")
    registry.register(
        "/mark-attendance", perm, Permission.MARK_ATTENDANCE, label="Mark Attendance",
    )

    # Guest accounts only
    registry.register(GUEST_HOME_PATH, RouteAccess.GUEST_ONLY, label="Guest Dashboard")
    registry.register("/guest-new-receipt", RouteAccess.GUEST_ONLY, label="New Receipt")

    # Platform administration
    registry.register(ADMIN_HOME_PATH, RouteAccess.ADMIN_ONLY, label="Admin Dashboard")
    registry.register("/admin/users", RouteAccess.ADMIN_ONLY, label="Users")
    registry.register("/admin/pending-users", RouteAccess.ADMIN_ONLY, label="Pending Users")

    logger.info("Route table loaded: %d routes", len(registry))
    return registry
