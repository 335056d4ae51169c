"""
Login Lockout Tracker.

Prevents unlimited password guessing by counting failed sign-ins on the
account record and locking the account once a threshold is reached.

The lock is stored as ``locked_until`` (moment the lock engaged) plus
``lock_duration`` (minutes).  While ``locked_until + lock_duration`` lies
in the future, attempts are refused without contacting the credential
service.

Failures for emails with no account record are reported with the same
generic message as a wrong password and mutate nothing, so the response
never reveals whether an account exists.

The counter update is a read-then-write and not transactional: two
concurrent failures for the same email may record one attempt instead of
two.  A lock can be delayed by one attempt at most, never bypassed.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from pydantic import BaseModel, Field

from shopgate.adapters.credential_store import (
    CredentialNetworkError,
    CredentialStore,
    CredentialStoreError,
    InvalidCredentialError,
)
from shopgate.logger import StructuredLogger
from shopgate.models.account import AccountRecord
from shopgate.models.auth_models import AuthErrorCode, GENERIC_INVALID_CREDENTIALS, LoginAttempt
from shopgate.models.identity import normalize_email
from shopgate.models.service_models import ServiceResult
from shopgate.repositories.account_repository import AccountRepository
from shopgate.services.base_service import BaseService
from shopgate.utils.audit import log_audit_event

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LockoutPolicy(BaseModel):
    """Threshold and lock length for one family of accounts."""

    max_attempts: int = Field(ge=1)
    lock_minutes: int = Field(ge=1)

    model_config = {"frozen": True}


class LockoutTracker(BaseService):
    """Wraps credential checks with failed-attempt bookkeeping.

    Parameters
    ----------
    repo:
        Account repository for the collection this tracker guards
        (``admins`` or ``shops``).
    credentials:
        Hosted credential service.
    policy:
        Threshold and lock duration.
    logger:
        Structured logger.
    clock:
        Source of the current UTC time; injectable for tests.
    """

    def __init__(
        self,
        repo: AccountRepository,
        credentials: CredentialStore,
        policy: LockoutPolicy,
        logger: StructuredLogger,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(logger)
        self._repo = repo
        self._credentials = credentials
        self._policy = policy
        self._clock = clock

    @property
    def policy(self) -> LockoutPolicy:
        return self._policy

    def check_lock(self, email: str) -> ServiceResult[int]:
        """Remaining lock minutes for *email* (``0`` when not locked)."""
        lookup = self._repo.get_by_email(email)
        if not lookup.success:
            return ServiceResult.fail(lookup.error or "Lookup failed.", lookup.status_code)
        record = lookup.data
        if record is None:
            return ServiceResult.ok(0)
        return ServiceResult.ok(record.remaining_lock_minutes(self._clock()))

    def attempt(self, email: str, password: str) -> LoginAttempt:
        """Check the lock, authenticate, and update the counters.

        Returns
        -------
        LoginAttempt
            ``success=True`` with identity and tokens, or a failure
            classified as ``ACCOUNT_LOCKED``, ``INVALID_CREDENTIALS``,
            ``NETWORK_ERROR`` or ``UNKNOWN_ERROR``.
        """
        email = normalize_email(email)

        lookup = self._repo.get_by_email(email)
        if not lookup.success:
            # Without the record the lock cannot be checked; refuse.
            return self._service_failure(lookup.status_code)
        record: Optional[AccountRecord] = lookup.data

        now = self._clock()
        if record is not None and record.is_locked(now):
            minutes = record.remaining_lock_minutes(now)
            self._logger.warning(
                "Login refused for locked account %s (%d min remaining).",
                email,
                minutes,
                extra={"event": "LOGIN_BLOCKED", "email": email},
            )
            return LoginAttempt(
                success=False,
                error_code=AuthErrorCode.ACCOUNT_LOCKED,
                error_message=(
                    "Account is temporarily locked. "
                    f"Please try again in {minutes} minute(s)."
                ),
                locked_minutes=minutes,
                remaining_attempts=0,
            )

        try:
            result = self._credentials.sign_in(email, password)
        except InvalidCredentialError:
            return self._record_failure(record, email, now)
        except CredentialNetworkError as exc:
            self._logger.warning(
                "Network error during login for %s: %s", email, exc,
                extra={"event": "LOGIN_NETWORK_ERROR"},
            )
            return LoginAttempt(
                success=False,
                error_code=AuthErrorCode.NETWORK_ERROR,
                error_message="Cannot reach the server. Check your internet connection.",
            )
        except CredentialStoreError as exc:
            self._logger.warning(
                "Unknown login error for %s: %s", email, exc,
                extra={"event": "LOGIN_FAILED", "error_code": "unknown"},
            )
            return LoginAttempt(
                success=False,
                error_code=AuthErrorCode.UNKNOWN_ERROR,
                error_message="Failed to sign in. Please try again later.",
            )

        if record is not None:
            self._record_success(record, now)

        return LoginAttempt(success=True, identity=result.identity, tokens=result.tokens)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _record_success(self, record: AccountRecord, now: datetime) -> None:
        outcome = self._repo.update_fields(record.id, {
            "failed_login_attempts": 0,
            "locked_until": None,
            "lock_duration": None,
            "last_login_at": now.isoformat(),
        })
        if not outcome.success:
            self._logger.warning(
                "Could not reset failed-login counter for %s: %s",
                record.email,
                outcome.error,
            )

    def _record_failure(
        self,
        record: Optional[AccountRecord],
        email: str,
        now: datetime,
    ) -> LoginAttempt:
        if record is None:
            self._logger.info(
                "Failed login for unknown email.",
                extra={"event": "LOGIN_FAILED", "email": email},
            )
            return self._generic_invalid()

        attempts = record.failed_login_attempts + 1
        engage_lock = attempts >= self._policy.max_attempts

        fields: dict[str, object] = {
            "failed_login_attempts": attempts,
            "last_failed_login_at": now.isoformat(),
        }
        if engage_lock:
            fields["locked_until"] = now.isoformat()
            fields["lock_duration"] = self._policy.lock_minutes

        outcome = self._repo.update_fields(record.id, fields)
        if not outcome.success:
            self._logger.error(
                "Could not record failed login for %s: %s", email, outcome.error,
            )
            return self._generic_invalid()

        if engage_lock:
            log_audit_event(
                logger=self._logger,
                action="ACCOUNT_LOCKED",
                entity_type="Account",
                entity_id=record.id,
                user_id=record.id,
                details={
                    "failed_attempts": attempts,
                    "lock_minutes": self._policy.lock_minutes,
                },
            )
            return LoginAttempt(
                success=False,
                error_code=AuthErrorCode.ACCOUNT_LOCKED,
                error_message=(
                    "Too many failed login attempts. Your account has been "
                    f"locked for {self._policy.lock_minutes} minutes."
                ),
                locked_minutes=self._policy.lock_minutes,
                remaining_attempts=0,
            )

        remaining = self._policy.max_attempts - attempts
        self._logger.warning(
            "Failed login for %s (%d/%d).",
            email,
            attempts,
            self._policy.max_attempts,
            extra={"event": "LOGIN_FAILED", "email": email},
        )
        return LoginAttempt(
            success=False,
            error_code=AuthErrorCode.INVALID_CREDENTIALS,
            error_message=(
                f"Invalid email or password. {remaining} attempts remaining "
                "before account is locked."
            ),
            remaining_attempts=remaining,
        )

    @staticmethod
    def _generic_invalid() -> LoginAttempt:
        return LoginAttempt(
            success=False,
            error_code=AuthErrorCode.INVALID_CREDENTIALS,
            error_message=GENERIC_INVALID_CREDENTIALS,
        )

    @staticmethod
    def _service_failure(status_code: int) -> LoginAttempt:
        if status_code == 503:
            return LoginAttempt(
                success=False,
                error_code=AuthErrorCode.NETWORK_ERROR,
                error_message="Cannot reach the server. Check your internet connection.",
            )
        return LoginAttempt(
            success=False,
            error_code=AuthErrorCode.UNKNOWN_ERROR,
            error_message="Failed to sign in. Please try again later.",
        )
