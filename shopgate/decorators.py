"""
Role Guard Decorator.

Gates service-layer methods behind an active session holding one of the
given roles.  The decorated method's owner must expose the shared
``SessionManager`` as ``self._session`` and return a ``ServiceResult``;
a refused call returns a failed result instead of raising.

Usage::

    class AccountAdminService(BaseService):
        @requires_role(AccountRole.ADMIN)
        def approve(self, shop_id: str) -> ServiceResult[None]:
            ...
"""

from __future__ import annotations

from functools import wraps
from typing import Callable, Concatenate, ParamSpec, Protocol, TypeVar

from shopgate.auth import SessionManager
from shopgate.models.enums import AccountRole
from shopgate.models.service_models import ServiceResult

P = ParamSpec("P")
R = TypeVar("R")


class _HasSession(Protocol):
    _session: SessionManager


S = TypeVar("S", bound=_HasSession)


def requires_role(
    *roles: AccountRole,
) -> Callable[
    [Callable[Concatenate[S, P], ServiceResult[R]]],
    Callable[Concatenate[S, P], ServiceResult[R]],
]:
    """Return a decorator admitting only active sessions whose role is in *roles*.

    Refusals:
        - no session: ``status_code=401``
        - wrong role or inactive account: ``status_code=403``
    """
    allowed = frozenset(roles)

    def decorator(
        func: Callable[Concatenate[S, P], ServiceResult[R]],
    ) -> Callable[Concatenate[S, P], ServiceResult[R]]:
        @wraps(func)
        def wrapper(self: S, *args: P.args, **kwargs: P.kwargs) -> ServiceResult[R]:
            current = self._session.current_session
            if current is None:
                return ServiceResult(
                    success=False,
                    error="Authentication required. Please log in first.",
                    status_code=401,
                )
            if current.role not in allowed or not current.is_active:
                return ServiceResult(
                    success=False,
                    error=f"Only {', '.join(sorted(allowed))} accounts may perform this action.",
                    status_code=403,
                )
            return func(self, *args, **kwargs)

        return wrapper

    return decorator
