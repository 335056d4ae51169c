"""
Session Role Resolver.

Derives the role, status and permission set of an authenticated identity
from the account, staff and guest records.  The first matching rule wins:

1. super-admin email, or an ``admins`` record  -> ADMIN / ACTIVE
2. ``shops`` record keyed by the identity id    -> OWNER / record status
3. ``staff`` record linked by ``user_id``       -> STAFF / shop status
4. ``guests`` record keyed by the identity id   -> GUEST / shop status
5. nothing                                      -> UNRESOLVED

A repository failure at any step produces a ``FAILED`` resolution.  The
resolver never falls through to a later, weaker rule on failure, and
never grants access because a lookup errored.
"""

from __future__ import annotations

from typing import Optional, TypeVar

from shopgate.adapters.credential_store import CredentialStore, CredentialStoreError
from shopgate.config import AppConfig
from shopgate.logger import StructuredLogger
from shopgate.models.account import AccountRecord
from shopgate.models.enums import AccountRole, AccountStatus
from shopgate.models.identity import Identity
from shopgate.models.permissions import PermissionSet
from shopgate.models.service_models import ServiceResult
from shopgate.models.session_models import ResolvedSession, SessionResolution
from shopgate.repositories.account_repository import AccountRepository
from shopgate.repositories.guest_repository import GuestRepository
from shopgate.repositories.staff_repository import StaffRepository
from shopgate.services.base_service import BaseService

T = TypeVar("T")


class _LookupFailed(Exception):
    """Internal signal: a repository call failed; resolution is FAILED."""


class SessionRoleResolver(BaseService):
    """Resolves identities into :class:`SessionResolution` values.

    Parameters
    ----------
    admin_repo / shop_repo:
        Account repositories over the ``admins`` and ``shops`` collections.
    staff_repo / guest_repo:
        Staff and guest repositories.
    credentials:
        Used by :meth:`resolve_current` to read the signed-in identity.
    config:
        Supplies the super-admin email.
    logger:
        Structured logger.
    """

    def __init__(
        self,
        admin_repo: AccountRepository,
        shop_repo: AccountRepository,
        staff_repo: StaffRepository,
        guest_repo: GuestRepository,
        credentials: CredentialStore,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        super().__init__(logger)
        self._admins = admin_repo
        self._shops = shop_repo
        self._staff = staff_repo
        self._guests = guest_repo
        self._credentials = credentials
        self._config = config

    def resolve(self, identity: Identity) -> SessionResolution:
        try:
            session = self._resolve(identity)
        except _LookupFailed as exc:
            self._logger.error(
                "Session resolution failed for %s: %s", identity.email, exc,
                extra={"event": "RESOLUTION_FAILED", "user_id": identity.id},
            )
            return SessionResolution.failed(str(exc))

        if session is None:
            self._logger.info(
                "No role found for identity %s.", identity.email,
                extra={"event": "RESOLUTION_UNRESOLVED", "user_id": identity.id},
            )
            return SessionResolution.unresolved()

        self._logger.debug(
            "Resolved %s as %s (%s).", identity.email, session.role, session.status,
        )
        return SessionResolution.resolved(session)

    def resolve_current(self) -> SessionResolution:
        """Resolve whoever is signed in at the credential service."""
        try:
            identity = self._credentials.current_identity()
        except CredentialStoreError as exc:
            self._logger.warning("Could not read current identity: %s", exc)
            return SessionResolution.failed(exc.message)
        if identity is None:
            return SessionResolution.unresolved()
        return self.resolve(identity)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _resolve(self, identity: Identity) -> Optional[ResolvedSession]:
        if self._is_admin(identity):
            return ResolvedSession(
                identity=identity,
                role=AccountRole.ADMIN,
                status=AccountStatus.ACTIVE,
                permissions=PermissionSet.full(),
            )

        shop = self._unwrap(self._shops.get_by_id(identity.id))
        if shop is not None:
            return ResolvedSession(
                identity=identity,
                role=AccountRole.OWNER,
                status=shop.status,
                permissions=PermissionSet.full(),
                shop_id=shop.id,
                display_name=shop.shop_name,
            )

        staff = self._unwrap(self._staff.get_by_user_id(identity.id))
        if staff is not None:
            return ResolvedSession(
                identity=identity,
                role=AccountRole.STAFF,
                status=self._shop_status(staff.shop_id),
                permissions=staff.permissions,
                shop_id=staff.shop_id,
                display_name=staff.name,
            )

        guest = self._unwrap(self._guests.get_by_id(identity.id))
        if guest is not None:
            return ResolvedSession(
                identity=identity,
                role=AccountRole.GUEST,
                status=self._shop_status(guest.shop_id),
                permissions=PermissionSet.guest(),
                shop_id=guest.shop_id,
            )

        return None

    def _is_admin(self, identity: Identity) -> bool:
        super_admin = self._config.super_admin_email
        if super_admin and identity.email == super_admin:
            return True
        return self._unwrap(self._admins.get_by_id(identity.id)) is not None

    def _shop_status(self, shop_id: str) -> AccountStatus:
        """Status inherited from the owning shop; a missing shop rejects."""
        shop: Optional[AccountRecord] = self._unwrap(self._shops.get_by_id(shop_id))
        if shop is None:
            self._logger.warning("Owning shop %s not found.", shop_id)
            return AccountStatus.REJECTED
        return shop.status

    @staticmethod
    def _unwrap(result: ServiceResult[T]) -> Optional[T]:
        if not result.success:
            raise _LookupFailed(result.error or "lookup failed")
        return result.data
