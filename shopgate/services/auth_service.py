"""
Authentication Service.

Single orchestrator for every authentication concern of the access core:
shop login, admin login, shop registration, logout, token refresh and
password change.

Sits between the view layer and the lockout tracker / role resolver so
that login forms remain thin form handlers.

All methods return typed ``AuthResult`` or ``ValidationResult``
models; callers never inspect raw exceptions.
"""

from __future__ import annotations

import re
from typing import Optional

from shopgate.adapters.credential_store import (
    CredentialNetworkError,
    CredentialStore,
    CredentialStoreError,
    EmailAlreadyRegisteredError,
)
from shopgate.auth import SessionManager
from shopgate.logger import StructuredLogger
from shopgate.models.account import AccountRecord
from shopgate.models.auth_models import (
    AuthErrorCode,
    AuthResult,
    GENERIC_INVALID_CREDENTIALS,
    LoginAttempt,
    STATUS_ERRORS,
    ShopDetails,
    ValidationResult,
)
from shopgate.models.enums import AccountRole, AccountStatus, ResolutionState
from shopgate.models.identity import normalize_email
from shopgate.models.session_models import ResolvedSession, SessionResolution
from shopgate.repositories.account_repository import AccountRepository
from shopgate.services.password_policy import passwords_match, validate_password
from shopgate.services.base_service import BaseService
from shopgate.services.lockout import Clock, LockoutTracker, utcnow
from shopgate.services.role_resolver import SessionRoleResolver


# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_EMAIL_RE: re.Pattern[str] = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)

# Matches C0 controls (U+0000-U+001F), DEL (U+007F), and C1 controls (U+0080-U+009F).
_CONTROL_CHAR_RE: re.Pattern[str] = re.compile(r"[\x00-\x1f\x7f-\x9f]")

_NETWORK_MESSAGE: str = "Cannot reach the server. Check your internet connection."


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class AuthService(BaseService):
    """Centralised authentication service.

    Receives all infrastructure dependencies via ``__init__`` and
    exposes pure request -> result methods for every auth flow.

    Parameters
    ----------
    credentials:
        Hosted credential service.
    session:
        Injectable session holder shared with the rest of the app.
    resolver:
        Derives role / status / permissions after sign-in.
    shop_lockout / admin_lockout:
        Lockout trackers over the ``shops`` and ``admins`` collections.
    shop_repo:
        Where registration writes the pending shop record.
    logger:
        Structured JSON logger for audit-grade logging.
    clock:
        Source of the current UTC time.
    """

    def __init__(
        self,
        credentials: CredentialStore,
        session: SessionManager,
        resolver: SessionRoleResolver,
        shop_lockout: LockoutTracker,
        admin_lockout: LockoutTracker,
        shop_repo: AccountRepository,
        logger: StructuredLogger,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(logger)
        self._credentials = credentials
        self._session = session
        self._resolver = resolver
        self._shop_lockout = shop_lockout
        self._admin_lockout = admin_lockout
        self._shop_repo = shop_repo
        self._clock = clock

    # ==================================================================
    # Validation helpers
    # ==================================================================

    @staticmethod
    def validate_email(email: str) -> ValidationResult:
        """Validate an email address against a simplified RFC 5322 regex.

        Returns
        -------
        ValidationResult
            ``is_valid=True`` if the email matches, otherwise a
            human-readable ``message``.
        """
        if not email or not email.strip():
            return ValidationResult(is_valid=False, message="Email address is required.")
        if not _EMAIL_RE.match(email.strip()):
            return ValidationResult(
                is_valid=False,
                message="Please enter a valid email address.",
            )
        return ValidationResult(is_valid=True)

    @staticmethod
    def validate_name(name: str, field_label: str) -> ValidationResult:
        """Validate a free-text name field (shop name, owner name).

        Rejects control characters, including newlines and tabs, to
        prevent log injection and display corruption.
        """
        stripped = (name or "").strip()
        if not stripped:
            return ValidationResult(is_valid=False, message=f"{field_label} is required.")
        if len(stripped) < 2:
            return ValidationResult(
                is_valid=False,
                message=f"{field_label} must be at least 2 characters.",
            )
        if _CONTROL_CHAR_RE.search(stripped):
            return ValidationResult(
                is_valid=False,
                message=(
                    f"{field_label} contains invalid characters. "
                    "Only printable characters are allowed."
                ),
            )
        return ValidationResult(is_valid=True)

    # ==================================================================
    # Login
    # ==================================================================

    def login(self, email: str, password: str) -> AuthResult:
        """Authenticate a shop owner, staff member or guest.

        Parameters
        ----------
        email:
            The raw email entered by the user.
        password:
            The raw password entered by the user.

        Returns
        -------
        AuthResult
            ``success=True`` with the resolved role, or a structured
            error.  Accounts that are pending, frozen or rejected are
            signed back out and reported with the matching error code.
        """
        invalid = self._check_login_form(email, password)
        if invalid is not None:
            return invalid

        email = normalize_email(email)
        attempt = self._shop_lockout.attempt(email, password)
        if not attempt.success:
            return self._attempt_failure(attempt, email)

        session = self._resolve_or_fail(attempt, email)
        if isinstance(session, AuthResult):
            return session

        if session.role != AccountRole.ADMIN and session.status in STATUS_ERRORS:
            code, message = STATUS_ERRORS[session.status]
            self._sign_out_quietly()
            self._logger.info(
                "Login refused for %s: account %s.", email, session.status,
                extra={"event": "LOGIN_REFUSED", "email": email, "status": str(session.status)},
            )
            return AuthResult.failure(
                code, message, email=email, status=session.status, shop_id=session.shop_id,
            )

        return self._open_session(session, attempt)

    def admin_login(self, email: str, password: str) -> AuthResult:
        """Authenticate a platform administrator.

        Uses the stricter admin lockout policy.  A successful sign-in by
        an identity that does not resolve to ADMIN is signed out and
        reported as invalid credentials.
        """
        invalid = self._check_login_form(email, password)
        if invalid is not None:
            return invalid

        email = normalize_email(email)
        attempt = self._admin_lockout.attempt(email, password)
        if not attempt.success:
            return self._attempt_failure(attempt, email)

        session = self._resolve_or_fail(attempt, email)
        if isinstance(session, AuthResult):
            return session

        if session.role != AccountRole.ADMIN:
            self._sign_out_quietly()
            self._logger.warning(
                "Non-admin identity %s attempted admin login.", email,
                extra={"event": "ADMIN_LOGIN_DENIED", "email": email},
            )
            return AuthResult.failure(
                AuthErrorCode.INVALID_CREDENTIALS, GENERIC_INVALID_CREDENTIALS, email=email,
            )

        return self._open_session(session, attempt)

    # ==================================================================
    # Registration
    # ==================================================================

    def register_shop(
        self,
        email: str,
        password: str,
        confirmation: str,
        details: ShopDetails,
    ) -> AuthResult:
        """Create an identity and a ``pending`` shop record.

        Validates all fields before calling the credential service.  The
        new account cannot sign in until an administrator approves it.
        """
        email_check = self.validate_email(email)
        if not email_check.is_valid:
            return self._validation_failure(email_check)

        name_check = self.validate_name(details.shop_name, "Shop name")
        if not name_check.is_valid:
            return self._validation_failure(name_check)

        match_check = passwords_match(password, confirmation)
        if not match_check.is_valid:
            return self._validation_failure(match_check)

        pw_check = validate_password(password)
        if not pw_check.is_valid:
            return self._validation_failure(pw_check)

        email = normalize_email(email)

        try:
            identity = self._credentials.sign_up(
                email, password, metadata={"shop_name": details.shop_name},
            )
        except EmailAlreadyRegisteredError:
            return AuthResult.failure(
                AuthErrorCode.EMAIL_ALREADY_EXISTS,
                "An account with this email already exists.",
                email=email,
            )
        except CredentialNetworkError:
            return AuthResult.failure(
                AuthErrorCode.NETWORK_ERROR,
                "Cannot reach the server. "
                "An internet connection is required to create an account.",
            )
        except CredentialStoreError as exc:
            self._logger.warning(
                "Unknown registration error: %s", exc,
                extra={"event": "REGISTER_FAILED", "error_code": "unknown"},
            )
            return AuthResult.failure(
                AuthErrorCode.UNKNOWN_ERROR,
                "Registration could not be completed. Please try again later.",
            )

        record = AccountRecord(
            id=identity.id,
            email=email,
            role=AccountRole.OWNER,
            status=AccountStatus.PENDING,
            created_at=self._clock(),
            shop_name=details.shop_name,
            owner_name=details.owner_name,
            address=details.address,
            phone_number=details.phone_number,
        )
        created = self._shop_repo.create(record)
        if not created.success:
            self._logger.error(
                "Identity %s created but shop record failed: %s",
                identity.id,
                created.error,
                extra={"event": "REGISTER_FAILED", "user_id": identity.id},
            )
            self._sign_out_quietly()
            return AuthResult.failure(
                AuthErrorCode.UNKNOWN_ERROR,
                "Registration could not be completed. Please try again later.",
                email=email,
            )

        # Pending accounts hold no session.
        self._sign_out_quietly()

        self._logger.info(
            "Shop registered: %s (%s).",
            details.shop_name,
            email,
            extra={"event": "REGISTER", "email": email, "user_id": identity.id},
        )
        return AuthResult(
            success=True,
            user_id=identity.id,
            email=email,
            role=AccountRole.OWNER,
            status=AccountStatus.PENDING,
            shop_id=identity.id,
        )

    # ==================================================================
    # Logout
    # ==================================================================

    def logout(self) -> None:
        """Server-side sign-out, then tear down the session context.

        The server call is wrapped so that a network failure never
        leaves the local session open.
        """
        current = self._session.current_session
        user_email = current.identity.email if current else "unknown"
        user_id = current.identity.id if current else "unknown"

        try:
            self._credentials.sign_out()
        except CredentialNetworkError:
            self._logger.debug("Offline; skipping server-side sign_out for %s.", user_email)
        except CredentialStoreError as exc:
            self._logger.warning("Server-side sign_out failed for %s: %s", user_email, exc)

        self._session.clear()

        self._logger.info(
            "User logged out: %s",
            user_email,
            extra={"event": "LOGOUT", "email": user_email, "user_id": user_id},
        )

    # ==================================================================
    # Token refresh
    # ==================================================================

    def refresh_session_token(self) -> AuthResult:
        """Attempt to refresh the access token.

        Distinguishes auth errors (expired/revoked refresh token ->
        ``SESSION_EXPIRED``) from transient network errors (silently
        skip, retry next cycle).

        Returns
        -------
        AuthResult
            ``success=True`` when no action was needed or the refresh
            succeeded.  ``success=False`` with
            ``error_code=SESSION_EXPIRED`` when the refresh token is
            permanently invalid; the session is cleared in that case.
        """
        if not self._session.is_authenticated:
            return AuthResult(success=True)

        if not self._session.is_token_expired:
            return AuthResult(success=True)

        refresh_token: Optional[str] = self._session.refresh_token
        if not refresh_token:
            return AuthResult(success=True)

        try:
            tokens = self._credentials.refresh(refresh_token)
        except CredentialNetworkError:
            self._logger.debug("Network error during token refresh; will retry.")
            return AuthResult(success=True)
        except CredentialStoreError as exc:
            self._logger.warning(
                "Token refresh failed (auth error): %s. Forcing logout.", exc,
                extra={"event": "SESSION_EXPIRED"},
            )
            self._session.clear()
            return AuthResult.failure(
                AuthErrorCode.SESSION_EXPIRED,
                "Your session has expired. Please sign in again.",
            )

        self._session.set_tokens(tokens)
        self._logger.info("Session token refreshed.")
        return AuthResult(success=True)

    # ==================================================================
    # Password change
    # ==================================================================

    def change_password(self, current_password: str, new_password: str) -> AuthResult:
        """Re-authenticate with *current_password*, then set *new_password*.

        The re-authentication runs through the lockout tracker of the
        session's account family, so it counts toward the same lock as
        a login.
        """
        current = self._session.current_session
        if current is None:
            return AuthResult.failure(
                AuthErrorCode.SESSION_EXPIRED,
                "Your session has expired. Please sign in again.",
            )

        pw_check = validate_password(new_password)
        if not pw_check.is_valid:
            return self._validation_failure(pw_check)
        if new_password == current_password:
            return AuthResult.failure(
                AuthErrorCode.VALIDATION_ERROR,
                "New password must be different from the current password.",
            )

        email = current.identity.email
        tracker = (
            self._admin_lockout if current.role == AccountRole.ADMIN else self._shop_lockout
        )
        attempt = tracker.attempt(email, current_password)
        if not attempt.success:
            return self._attempt_failure(attempt, email)
        if attempt.tokens is not None:
            self._session.set_tokens(attempt.tokens)

        try:
            self._credentials.update_password(new_password)
        except CredentialNetworkError:
            return AuthResult.failure(AuthErrorCode.NETWORK_ERROR, _NETWORK_MESSAGE)
        except CredentialStoreError as exc:
            self._logger.warning("Password change failed for %s: %s", email, exc)
            return AuthResult.failure(
                AuthErrorCode.UNKNOWN_ERROR,
                "Password could not be changed. Please try again later.",
            )

        self._logger.info(
            "Password changed for %s.", email,
            extra={"event": "PASSWORD_CHANGED", "email": email, "user_id": current.identity.id},
        )
        return AuthResult(
            success=True,
            user_id=current.identity.id,
            email=email,
            role=current.role,
            status=current.status,
            shop_id=current.shop_id,
        )

    # ==================================================================
    # Private helpers
    # ==================================================================

    def _check_login_form(self, email: str, password: str) -> Optional[AuthResult]:
        email_check = self.validate_email(email)
        if not email_check.is_valid:
            return self._validation_failure(email_check)
        if not password:
            return AuthResult.failure(AuthErrorCode.VALIDATION_ERROR, "Password is required.")
        return None

    def _resolve_or_fail(
        self,
        attempt: LoginAttempt,
        email: str,
    ) -> ResolvedSession | AuthResult:
        """Resolve the freshly signed-in identity, signing out on failure."""
        if attempt.identity is None:
            resolution = SessionResolution.failed("sign-in returned no identity")
        else:
            resolution = self._resolver.resolve(attempt.identity)
        if resolution.is_resolved and resolution.session is not None:
            return resolution.session

        self._sign_out_quietly()
        if resolution.state == ResolutionState.FAILED:
            return AuthResult.failure(
                AuthErrorCode.UNKNOWN_ERROR,
                "Failed to load your account. Please try again later.",
                email=email,
            )
        self._logger.warning(
            "Authenticated identity %s has no account record.", email,
            extra={"event": "LOGIN_UNRESOLVED", "email": email},
        )
        return AuthResult.failure(
            AuthErrorCode.INVALID_CREDENTIALS, GENERIC_INVALID_CREDENTIALS, email=email,
        )

    def _open_session(self, session: ResolvedSession, attempt: LoginAttempt) -> AuthResult:
        self._session.start(session, attempt.tokens)
        self._logger.info(
            "User authenticated: %s (role: %s)",
            session.identity.email,
            session.role,
            extra={
                "event": "LOGIN",
                "email": session.identity.email,
                "user_id": session.identity.id,
            },
        )
        return AuthResult(
            success=True,
            user_id=session.identity.id,
            email=session.identity.email,
            role=session.role,
            status=session.status,
            shop_id=session.shop_id,
        )

    def _sign_out_quietly(self) -> None:
        try:
            self._credentials.sign_out()
        except CredentialStoreError as exc:
            self._logger.warning("Sign-out after refused login failed: %s", exc)

    @staticmethod
    def _attempt_failure(attempt: LoginAttempt, email: str) -> AuthResult:
        return AuthResult.failure(
            attempt.error_code or AuthErrorCode.UNKNOWN_ERROR,
            attempt.error_message or GENERIC_INVALID_CREDENTIALS,
            email=email,
            remaining_attempts=attempt.remaining_attempts,
            locked_minutes=attempt.locked_minutes,
        )

    @staticmethod
    def _validation_failure(check: ValidationResult) -> AuthResult:
        return AuthResult.failure(
            AuthErrorCode.VALIDATION_ERROR,
            check.message or "Invalid input.",
        )
