"""
Session Resolution Models.

A session is never persisted: it is derived from the identity and the
account/staff/guest records on each navigation and discarded afterwards.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field

from shopgate.models.enums import AccountRole, AccountStatus, Permission, ResolutionState
from shopgate.models.identity import Identity
from shopgate.models.permissions import PermissionSet


class ResolvedSession(BaseModel):
    """Role, status and capabilities held by an authenticated identity."""

    identity: Identity
    role: AccountRole
    status: AccountStatus
    permissions: PermissionSet = Field(default_factory=PermissionSet.none)
    shop_id: Optional[str] = None
    display_name: Optional[str] = None

    model_config = {"frozen": True}

    @property
    def is_active(self) -> bool:
        return self.status in (AccountStatus.APPROVED, AccountStatus.ACTIVE)

    def allows(self, permission: Permission) -> bool:
        return self.permissions.allows(permission)


class SessionResolution(BaseModel):
    """Explicit result of resolving an identity.

    ``FAILED`` carries the lookup error for logging only; callers must
    treat it exactly like ``UNRESOLVED``.
    """

    state: ResolutionState
    session: Optional[ResolvedSession] = None
    error: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def resolved(cls, session: ResolvedSession) -> "SessionResolution":
        return cls(state=ResolutionState.RESOLVED, session=session)

    @classmethod
    def unresolved(cls) -> "SessionResolution":
        return cls(state=ResolutionState.UNRESOLVED)

    @classmethod
    def failed(cls, error: str) -> "SessionResolution":
        return cls(state=ResolutionState.FAILED, error=error)

    @property
    def is_resolved(self) -> bool:
        return self.state == ResolutionState.RESOLVED and self.session is not None
