"""
Shared Enumerations for ShopGate Models.

All string enumerations for type-safe field constraints.
StrEnum values compare equal to their string equivalents,
so stored values like ``"approved"`` round-trip unchanged.
"""

from __future__ import annotations
from enum import StrEnum


class AccountRole(StrEnum):
    """Role classification of an authenticated identity."""

    OWNER = "owner"
    STAFF = "staff"
    GUEST = "guest"
    ADMIN = "admin"


class AccountStatus(StrEnum):
    """Lifecycle status of a shop or admin account.

    Shops are created ``PENDING`` and moved by a platform administrator.
    ``ACTIVE`` is reserved for platform administrators, who have no
    approval workflow.  Records are never hard-deleted.
    """

    PENDING = "pending"
    APPROVED = "approved"
    FROZEN = "frozen"
    REJECTED = "rejected"
    ACTIVE = "active"


class Permission(StrEnum):
    """Closed vocabulary of staff capability flags.

    Values are the keys stored on staff records.
    """

    CREATE_RECEIPTS = "canCreateReceipts"
    VIEW_RECEIPTS = "canViewReceipts"
    VIEW_ANALYTICS = "canViewAnalytics"
    VIEW_STOCK = "canViewStock"
    VIEW_EMPLOYEES = "canViewEmployees"
    MANAGE_EXPENSES = "canManageExpenses"
    MARK_ATTENDANCE = "canMarkAttendance"


class RouteFamily(StrEnum):
    """Which login view an unauthenticated visitor is sent to."""

    SHOP = "shop"
    ADMIN = "admin"


class RouteAccess(StrEnum):
    """Guard variant applied to a route."""

    PUBLIC = "public"
    SIGNED_IN = "signed_in"
    AUTHENTICATED = "authenticated"
    PERMISSION = "permission"
    GUEST_ONLY = "guest_only"
    ADMIN_ONLY = "admin_only"


class ResolutionState(StrEnum):
    """Outcome of a session/role resolution."""

    RESOLVED = "resolved"
    UNRESOLVED = "unresolved"
    FAILED = "failed"


class GuardState(StrEnum):
    """States of the per-route guard state machine."""

    LOADING = "loading"
    ALLOWED = "allowed"
    REDIRECT = "redirect"
