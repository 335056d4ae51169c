"""
Identity Models.

Principals and tokens issued by the hosted credential service.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, field_validator


def normalize_email(email: str) -> str:
    """Normalise an email address: strip whitespace and lowercase."""
    return email.strip().lower()


class Identity(BaseModel):
    """An authenticated principal.

    ``id`` is the credential service's user id; every account, staff and
    guest record references it.
    """

    id: str
    email: str

    model_config = {"from_attributes": True, "frozen": True}

    @field_validator("email")
    @classmethod
    def _normalize(cls, value: str) -> str:
        return normalize_email(value)


class AuthTokens(BaseModel):
    """Session tokens returned by sign-in and refresh."""

    access_token: str
    refresh_token: str
    expires_at: Optional[int] = None  # Unix seconds

    @property
    def expires_at_datetime(self) -> Optional[datetime]:
        if self.expires_at is None:
            return None
        return datetime.fromtimestamp(self.expires_at, tz=timezone.utc)


class SignInResult(BaseModel):
    """Successful sign-in: the identity plus its session tokens."""

    identity: Identity
    tokens: Optional[AuthTokens] = None
