from __future__ import annotations

"""
Data Models Package.

Re-exports all Pydantic models for short imports:
    from shopgate.models import AccountRecord, StaffRecord, PermissionSet
    from shopgate.models import AccountRole, AccountStatus, Permission
"""

from shopgate.models.enums import (
    AccountRole,
    AccountStatus,
    GuardState,
    Permission,
    ResolutionState,
    RouteAccess,
    RouteFamily,
)
from shopgate.models.identity import AuthTokens, Identity, SignInResult
from shopgate.models.permissions import PermissionSet
from shopgate.models.account import AccountRecord, GuestRecord, StaffRecord
from shopgate.models.session_models import ResolvedSession, SessionResolution
from shopgate.models.guard_models import GuardDecision, RouteRule
from shopgate.models.service_models import ServiceResult
from shopgate.models.auth_models import (
    AuthErrorCode,
    AuthResult,
    LoginAttempt,
    ShopDetails,
    StrengthLabel,
    ValidationResult,
)

__all__ = [
    "AccountRole",
    "AccountStatus",
    "GuardState",
    "Permission",
    "ResolutionState",
    "RouteAccess",
    "RouteFamily",
    "AuthTokens",
    "Identity",
    "SignInResult",
    "PermissionSet",
    "AccountRecord",
    "GuestRecord",
    "StaffRecord",
    "ResolvedSession",
    "SessionResolution",
    "GuardDecision",
    "RouteRule",
    "ServiceResult",
    "AuthErrorCode",
    "AuthResult",
    "LoginAttempt",
    "ShopDetails",
    "StrengthLabel",
    "ValidationResult",
]
