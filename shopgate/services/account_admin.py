"""
Account Administration Service.

Handles platform-administrator operations on shop accounts: listing,
approval, rejection, freezing, and clearing login lockouts.

Architectural notes:
    - Every public method is gated by ``@requires_role(ADMIN)``.
    - Status changes follow a fixed transition table; anything else is
      refused with ``status_code=409`` and leaves the record untouched.
    - Each change emits an audit event.
"""

from __future__ import annotations

from typing import Optional

from shopgate.adapters.document_store import DocumentStore
from shopgate.auth import SessionManager
from shopgate.decorators import requires_role
from shopgate.logger import StructuredLogger
from shopgate.models.account import AccountRecord
from shopgate.models.enums import AccountRole, AccountStatus
from shopgate.models.service_models import ServiceResult
from shopgate.repositories.account_repository import AccountRepository
from shopgate.services.base_service import BaseService
from shopgate.utils.audit import log_audit_event

# (current status, action) -> new status
_TRANSITIONS: dict[tuple[AccountStatus, str], AccountStatus] = {
    (AccountStatus.PENDING, "approve"): AccountStatus.APPROVED,
    (AccountStatus.PENDING, "reject"): AccountStatus.REJECTED,
    (AccountStatus.APPROVED, "freeze"): AccountStatus.FROZEN,
    (AccountStatus.FROZEN, "unfreeze"): AccountStatus.APPROVED,
}


class AccountAdminService(BaseService):
    """Service layer for admin account management operations.

    Parameters
    ----------
    shop_repo:
        Repository over the ``shops`` collection.
    admin_repo:
        Repository over the ``admins`` collection.
    session:
        Shared session holder; the acting admin is read from it.
    logger:
        Structured logger.
    audit_store:
        When given, audit events are also persisted to
        ``audit_collection``.
    """

    def __init__(
        self,
        shop_repo: AccountRepository,
        admin_repo: AccountRepository,
        session: SessionManager,
        logger: StructuredLogger,
        audit_store: Optional[DocumentStore] = None,
        audit_collection: str = "audit_log",
    ) -> None:
        super().__init__(logger)
        self._shops = shop_repo
        self._admins = admin_repo
        self._session = session
        self._audit_store = audit_store
        self._audit_collection = audit_collection

    @requires_role(AccountRole.ADMIN)
    def list_accounts(
        self,
        status: Optional[AccountStatus] = None,
    ) -> ServiceResult[list[AccountRecord]]:
        """Shop accounts for the admin dashboard, newest first."""
        return self._shops.list_accounts(status)

    @requires_role(AccountRole.ADMIN)
    def approve(self, shop_id: str) -> ServiceResult[AccountStatus]:
        return self._transition(shop_id, "approve")

    @requires_role(AccountRole.ADMIN)
    def reject(self, shop_id: str) -> ServiceResult[AccountStatus]:
        return self._transition(shop_id, "reject")

    @requires_role(AccountRole.ADMIN)
    def set_frozen(self, shop_id: str, frozen: bool) -> ServiceResult[AccountStatus]:
        """Freeze an approved shop, or unfreeze a frozen one.

        Freezing revokes access for the owner and every staff member and
        guest of the shop, since their status is inherited.
        """
        return self._transition(shop_id, "freeze" if frozen else "unfreeze")

    @requires_role(AccountRole.ADMIN)
    def unlock_admin(self, email: str) -> ServiceResult[None]:
        """Clear the failed-login counter and lock of an admin account."""
        return self._unlock(self._admins, email)

    @requires_role(AccountRole.ADMIN)
    def unlock_shop(self, email: str) -> ServiceResult[None]:
        """Clear the failed-login counter and lock of a shop account."""
        return self._unlock(self._shops, email)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _transition(self, shop_id: str, action: str) -> ServiceResult[AccountStatus]:
        lookup = self._shops.get_by_id(shop_id)
        if not lookup.success:
            return ServiceResult.fail(lookup.error or "Lookup failed.", lookup.status_code)
        shop = lookup.data
        if shop is None:
            return ServiceResult.fail("Shop not found.", 404)

        new_status = _TRANSITIONS.get((shop.status, action))
        if new_status is None:
            return ServiceResult.fail(
                f"Cannot {action} a shop whose status is '{shop.status}'.", 409,
            )

        outcome = self._shops.update_status(shop_id, new_status)
        if not outcome.success:
            return ServiceResult.fail(outcome.error or "Update failed.", outcome.status_code)

        self._audit(
            action=f"SHOP_{action.upper()}",
            entity_id=shop_id,
            details={"old_status": str(shop.status), "new_status": str(new_status)},
        )
        return ServiceResult.ok(new_status)

    def _unlock(self, repo: AccountRepository, email: str) -> ServiceResult[None]:
        lookup = repo.get_by_email(email)
        if not lookup.success:
            return ServiceResult.fail(lookup.error or "Lookup failed.", lookup.status_code)
        account = lookup.data
        if account is None:
            return ServiceResult.fail("Account not found.", 404)

        outcome = repo.update_fields(account.id, {
            "failed_login_attempts": 0,
            "locked_until": None,
            "lock_duration": None,
        })
        if not outcome.success:
            return outcome

        self._audit(
            action="ACCOUNT_UNLOCKED",
            entity_id=account.id,
            details={"collection": repo.collection, "email": account.email},
        )
        return ServiceResult.ok()

    def _audit(self, action: str, entity_id: str, details: dict[str, object]) -> None:
        actor = self._session.get_current_session()
        log_audit_event(
            logger=self._logger,
            action=action,
            entity_type="Account",
            entity_id=entity_id,
            user_id=actor.identity.id,
            details=details,
            store=self._audit_store,
            collection=self._audit_collection,
        )
