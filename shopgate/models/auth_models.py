"""
Authentication Pipeline Models.

Pydantic models and enumerations for the auth request/response
contracts between the auth services and their callers.

Every auth operation returns a structured, inspectable result rather
than raw strings or exception side-channels.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Optional

from pydantic import BaseModel

from shopgate.models.enums import AccountRole, AccountStatus
from shopgate.models.identity import AuthTokens, Identity


# ---------------------------------------------------------------------------
# Error classification
# ---------------------------------------------------------------------------

class AuthErrorCode(StrEnum):
    """Exhaustive enumeration of authentication error categories.

    ``INVALID_CREDENTIALS`` never distinguishes a wrong password from an
    unknown account.
    """

    INVALID_CREDENTIALS = "invalid_credentials"
    ACCOUNT_LOCKED = "account_locked"
    ACCOUNT_NOT_APPROVED = "account_not_approved"
    ACCOUNT_FROZEN = "account_frozen"
    ACCOUNT_REJECTED = "account_rejected"
    EMAIL_ALREADY_EXISTS = "email_already_exists"
    NETWORK_ERROR = "network_error"
    VALIDATION_ERROR = "validation_error"
    SESSION_EXPIRED = "session_expired"
    UNKNOWN_ERROR = "unknown_error"


GENERIC_INVALID_CREDENTIALS: str = "Invalid email or password."

STATUS_ERRORS: dict[AccountStatus, tuple[AuthErrorCode, str]] = {
    AccountStatus.PENDING: (
        AuthErrorCode.ACCOUNT_NOT_APPROVED,
        "Your account is awaiting administrator approval.",
    ),
    AccountStatus.FROZEN: (
        AuthErrorCode.ACCOUNT_FROZEN,
        "Your account has been frozen. Contact the administrator.",
    ),
    AccountStatus.REJECTED: (
        AuthErrorCode.ACCOUNT_REJECTED,
        "Your registration was rejected.",
    ),
}


# ---------------------------------------------------------------------------
# Validation result
# ---------------------------------------------------------------------------

class ValidationResult(BaseModel):
    """Result of a single client-side field validation check.

    Attributes
    ----------
    is_valid:
        ``True`` when the value passes the validation rule.
    message:
        Human-readable outcome.  On failure it names the first rule
        violated; on success it may carry a confirmation text.
    """

    is_valid: bool
    message: Optional[str] = None

    model_config = {"from_attributes": True}


class StrengthLabel(BaseModel):
    """Display band for a password strength score."""

    label: str
    color: str


# ---------------------------------------------------------------------------
# Lockout tracker outcome
# ---------------------------------------------------------------------------

class LoginAttempt(BaseModel):
    """Outcome of one credential check routed through the lockout tracker.

    Attributes
    ----------
    success:
        ``True`` when the credential store accepted the credentials.
    identity / tokens:
        Populated on success.
    error_code / error_message:
        Populated on failure.
    remaining_attempts:
        Attempts left before the lock engages (known accounts only).
    locked_minutes:
        Minutes until the lock expires, when the failure is a lock.
    """

    success: bool
    identity: Optional[Identity] = None
    tokens: Optional[AuthTokens] = None
    error_code: Optional[AuthErrorCode] = None
    error_message: Optional[str] = None
    remaining_attempts: Optional[int] = None
    locked_minutes: Optional[int] = None


# ---------------------------------------------------------------------------
# Unified auth response
# ---------------------------------------------------------------------------

class AuthResult(BaseModel):
    """Unified response for login, registration, and account operations.

    Callers inspect ``success`` to decide the happy-path vs. error-path
    rendering, and use ``error_code`` to pick a redirect or inline text.

    Attributes
    ----------
    success:
        ``True`` when the operation completed without error.
    error_code:
        Structured error category (``None`` on success).
    error_message:
        Human-readable error description (``None`` on success).
    user_id:
        Credential-service id of the authenticated / registered identity.
    email:
        The normalised email address.
    role:
        Resolved role, on successful login.
    status:
        Account lifecycle status, when known.
    shop_id:
        Shop the session operates on (owners, staff and guests).
    remaining_attempts / locked_minutes:
        Lockout details forwarded from :class:`LoginAttempt`.
    """

    success: bool
    error_code: Optional[AuthErrorCode] = None
    error_message: Optional[str] = None
    user_id: Optional[str] = None
    email: Optional[str] = None
    role: Optional[AccountRole] = None
    status: Optional[AccountStatus] = None
    shop_id: Optional[str] = None
    remaining_attempts: Optional[int] = None
    locked_minutes: Optional[int] = None

    model_config = {"from_attributes": True}

    @classmethod
    def failure(cls, code: AuthErrorCode, message: str, **fields: object) -> "AuthResult":
        return cls(success=False, error_code=code, error_message=message, **fields)


# ---------------------------------------------------------------------------
# Registration payload
# ---------------------------------------------------------------------------

class ShopDetails(BaseModel):
    """Profile fields entered on the shop registration form."""

    shop_name: str
    owner_name: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None

    model_config = {"str_strip_whitespace": True}
