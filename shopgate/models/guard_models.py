"""
Route Guard Models.

Routes are described declaratively and evaluated into one of three named
states, so guard behaviour is unit-testable without any view layer.
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, model_validator

from shopgate.models.enums import GuardState, Permission, RouteAccess, RouteFamily


class RouteRule(BaseModel):
    """Access requirements for one navigable path.

    Attributes
    ----------
    path:
        The route path, e.g. ``"/stock"``.
    family:
        Decides which login view an unauthenticated visitor is sent to.
    access:
        Guard variant applied to the route.
    permission:
        Capability a staff member needs; required when ``access`` is
        ``PERMISSION`` and forbidden otherwise.
    label:
        Human-readable name for navigation menus.
    """

    path: str
    family: RouteFamily = RouteFamily.SHOP
    access: RouteAccess = RouteAccess.AUTHENTICATED
    permission: Optional[Permission] = None
    label: str = ""

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_permission(self) -> "RouteRule":
        if self.access == RouteAccess.PERMISSION and self.permission is None:
            raise ValueError(f"Route '{self.path}' requires a permission.")
        if self.access != RouteAccess.PERMISSION and self.permission is not None:
            raise ValueError(
                f"Route '{self.path}' declares a permission but access is "
                f"'{self.access}'."
            )
        if self.access == RouteAccess.ADMIN_ONLY and self.family != RouteFamily.ADMIN:
            raise ValueError(f"Admin-only route '{self.path}' must use the admin family.")
        return self


class GuardDecision(BaseModel):
    """One state of the guard state machine.

    ``target`` is set only for ``REDIRECT``; ``reason`` names the rule
    that produced the redirect (e.g. ``"unauthenticated"``, ``"frozen"``).
    """

    state: GuardState
    target: Optional[str] = None
    reason: Optional[str] = None

    model_config = {"frozen": True}

    @classmethod
    def loading(cls) -> "GuardDecision":
        return cls(state=GuardState.LOADING)

    @classmethod
    def allowed(cls) -> "GuardDecision":
        return cls(state=GuardState.ALLOWED)

    @classmethod
    def redirect(cls, target: str, reason: str) -> "GuardDecision":
        return cls(state=GuardState.REDIRECT, target=target, reason=reason)

    @property
    def is_allowed(self) -> bool:
        return self.state == GuardState.ALLOWED
