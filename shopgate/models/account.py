"""
Account Models.

Pydantic models for the persisted shop, admin, staff and guest records.
Timestamps are stored as ISO-8601 strings on the document store; naive
values read back from the store are interpreted as UTC.
"""

from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from shopgate.models.enums import AccountRole, AccountStatus
from shopgate.models.identity import normalize_email
from shopgate.models.permissions import PermissionSet


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class AccountRecord(BaseModel):
    """Profile, lifecycle and lockout state for a shop or admin identity.

    Keyed by the identity id.  Shop rows carry the profile fields entered
    at registration; admin rows leave them empty.

    ``locked_until`` is the moment the lock was engaged and
    ``lock_duration`` its length in minutes; the lock expires at their sum.
    Both are only meaningful while ``failed_login_attempts`` is at or
    above the policy threshold.
    """

    id: str
    email: str
    role: AccountRole = AccountRole.OWNER
    status: AccountStatus = AccountStatus.PENDING
    failed_login_attempts: int = Field(default=0, ge=0)
    locked_until: Optional[datetime] = None
    lock_duration: Optional[int] = Field(default=None, ge=0)
    last_login_at: Optional[datetime] = None
    last_failed_login_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    # Shop profile (empty for admins)
    shop_name: Optional[str] = None
    owner_name: Optional[str] = None
    address: Optional[str] = None
    phone_number: Optional[str] = None

    model_config = {"from_attributes": True, "extra": "ignore"}

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)

    @field_validator(
        "locked_until", "last_login_at", "last_failed_login_at", "created_at",
    )
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)

    # ------------------------------------------------------------------
    # Lock arithmetic
    # ------------------------------------------------------------------

    @property
    def lock_expires_at(self) -> Optional[datetime]:
        """When the current lock ends, or ``None`` when no lock is recorded."""
        if self.locked_until is None or not self.lock_duration:
            return None
        return self.locked_until + timedelta(minutes=self.lock_duration)

    def is_locked(self, now: datetime) -> bool:
        expires = self.lock_expires_at
        return expires is not None and expires > now

    def remaining_lock_minutes(self, now: datetime) -> int:
        """Whole minutes left on the lock, rounded up (``0`` when unlocked)."""
        expires = self.lock_expires_at
        if expires is None or expires <= now:
            return 0
        return max(1, math.ceil((expires - now).total_seconds() / 60))

    @property
    def is_active(self) -> bool:
        return self.status in (AccountStatus.APPROVED, AccountStatus.ACTIVE)


class StaffRecord(BaseModel):
    """A staff member under a shop.

    ``user_id`` links the record to a sign-in identity; staff entries
    without one are roster-only (attendance, salary) and never resolve
    to a session.
    """

    id: str
    shop_id: str
    user_id: Optional[str] = None
    email: Optional[str] = None
    name: str
    role_label: str = "Staff Member"
    permissions: PermissionSet = Field(default_factory=PermissionSet.none)
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "extra": "ignore"}

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(value)


class GuestRecord(BaseModel):
    """Marker that an identity is a guest of a shop (receipt creation only)."""

    id: str  # identity id
    shop_id: str
    email: str
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True, "extra": "ignore"}

    @field_validator("email")
    @classmethod
    def _normalize_email(cls, value: str) -> str:
        return normalize_email(value)
