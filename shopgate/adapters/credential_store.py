"""
Credential Store Adapter.

Contract for the hosted authentication service and its Supabase (GoTrue)
implementation.

Supabase errors are classified into a small exception hierarchy:

- :class:`InvalidCredentialError` for a wrong password **or** an unknown
  account (the two are never distinguished),
- :class:`EmailAlreadyRegisteredError` on sign-up collisions,
- :class:`CredentialNetworkError` when the service cannot be reached,
- :class:`CredentialStoreError` for everything else.
"""

from __future__ import annotations

from typing import Optional, Protocol

import httpx

from shopgate.database import DatabaseManager
from shopgate.logger import StructuredLogger
from shopgate.models.identity import AuthTokens, Identity, SignInResult


class CredentialStoreError(Exception):
    """Base class for credential service failures."""

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        self.message: str = message
        self.original_error: Optional[Exception] = original_error
        super().__init__(self.message)


class InvalidCredentialError(CredentialStoreError):
    """Wrong password or unknown user."""


class EmailAlreadyRegisteredError(CredentialStoreError):
    """Sign-up attempted for an email that already has an identity."""


class CredentialNetworkError(CredentialStoreError):
    """The credential service could not be reached."""


# Substrings of GoTrue error codes / messages, lower-cased.
_INVALID_CREDENTIAL_MARKERS: tuple[str, ...] = (
    "invalid_credentials",
    "invalid login credentials",
    "invalid_grant",
    "user_not_found",
)
_ALREADY_REGISTERED_MARKERS: tuple[str, ...] = (
    "user_already_exists",
    "email_exists",
    "already registered",
)


class CredentialStore(Protocol):
    """Sign-in, sign-up and session token operations."""

    def sign_in(self, email: str, password: str) -> SignInResult: ...

    def sign_up(
        self,
        email: str,
        password: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> Identity: ...

    def sign_out(self) -> None: ...

    def current_identity(self) -> Optional[Identity]: ...

    def refresh(self, refresh_token: str) -> AuthTokens: ...

    def update_password(self, new_password: str) -> None: ...


class SupabaseCredentialStore:
    """GoTrue-backed :class:`CredentialStore`.

    Parameters
    ----------
    db:
        Connection holder; offline mode surfaces as
        :class:`CredentialNetworkError`.
    logger:
        Structured logger for classification diagnostics.
    """

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    def sign_in(self, email: str, password: str) -> SignInResult:
        try:
            response = self._db.supabase.auth.sign_in_with_password({
                "email": email,
                "password": password,
            })
        except Exception as exc:
            raise self._classify(exc, "sign_in") from exc

        user = response.user
        if user is None:
            raise InvalidCredentialError("Sign-in returned no user.")

        tokens: Optional[AuthTokens] = None
        if response.session is not None:
            tokens = self._tokens_from(response.session)
        return SignInResult(
            identity=Identity(id=user.id, email=user.email or email),
            tokens=tokens,
        )

    def sign_up(
        self,
        email: str,
        password: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> Identity:
        try:
            response = self._db.supabase.auth.sign_up({
                "email": email,
                "password": password,
                "options": {"data": metadata or {}},
            })
        except Exception as exc:
            raise self._classify(exc, "sign_up") from exc

        if response.user is None:
            raise CredentialStoreError("Sign-up returned no user.")
        return Identity(id=response.user.id, email=response.user.email or email)

    def sign_out(self) -> None:
        try:
            self._db.supabase.auth.sign_out()
        except Exception as exc:
            raise self._classify(exc, "sign_out") from exc

    def current_identity(self) -> Optional[Identity]:
        try:
            response = self._db.supabase.auth.get_user()
        except Exception as exc:
            raise self._classify(exc, "current_identity") from exc

        if response is None or response.user is None:
            return None
        return Identity(id=response.user.id, email=response.user.email or "")

    def refresh(self, refresh_token: str) -> AuthTokens:
        try:
            response = self._db.supabase.auth.refresh_session(refresh_token)
        except Exception as exc:
            raise self._classify(exc, "refresh") from exc

        if response.session is None:
            raise InvalidCredentialError("Refresh returned no session.")
        return self._tokens_from(response.session)

    def update_password(self, new_password: str) -> None:
        try:
            self._db.supabase.auth.update_user({"password": new_password})
        except Exception as exc:
            raise self._classify(exc, "update_password") from exc

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _tokens_from(session: object) -> AuthTokens:
        return AuthTokens(
            access_token=getattr(session, "access_token"),
            refresh_token=getattr(session, "refresh_token"),
            expires_at=getattr(session, "expires_at", None),
        )

    def _classify(self, exc: Exception, operation: str) -> CredentialStoreError:
        """Map a Supabase / transport exception onto the adapter hierarchy."""
        # RuntimeError: the client was never initialised (offline).
        if isinstance(exc, (RuntimeError, ConnectionError, TimeoutError, httpx.TransportError)):
            self._logger.warning(
                "Credential service unreachable during %s: %s", operation, exc,
                extra={"event": "AUTH_NETWORK_ERROR"},
            )
            return CredentialNetworkError(
                "Cannot reach the authentication service.", original_error=exc,
            )

        code = str(getattr(exc, "code", "") or "").lower()
        text = f"{code} {exc}".lower()

        if any(marker in text for marker in _INVALID_CREDENTIAL_MARKERS):
            return InvalidCredentialError("Invalid credentials.", original_error=exc)

        if any(marker in text for marker in _ALREADY_REGISTERED_MARKERS):
            return EmailAlreadyRegisteredError(
                "An account with this email already exists.", original_error=exc,
            )

        self._logger.warning(
            "Unclassified credential service error during %s: %s", operation, exc,
            extra={"event": "AUTH_UNKNOWN_ERROR"},
        )
        return CredentialStoreError(
            f"Credential service error during {operation}.", original_error=exc,
        )
