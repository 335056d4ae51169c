"""
Staff & Guest Management Service.

Lets a shop owner manage the people operating under the shop: staff
members with a per-person permission set, and guest accounts that can
only create receipts.

Every public method is owner-only and scoped to the owner's shop; a
record belonging to another shop is reported as not found.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Optional, Union

from pydantic import ValidationError

from shopgate.adapters.credential_store import (
    CredentialNetworkError,
    CredentialStore,
    CredentialStoreError,
    EmailAlreadyRegisteredError,
)
from shopgate.adapters.document_store import DocumentStore
from shopgate.auth import SessionManager
from shopgate.config import AppConfig
from shopgate.decorators import requires_role
from shopgate.logger import StructuredLogger
from shopgate.models.account import GuestRecord, StaffRecord
from shopgate.models.enums import AccountRole
from shopgate.models.identity import Identity, normalize_email
from shopgate.models.permissions import PermissionSet
from shopgate.models.service_models import ServiceResult
from shopgate.repositories.guest_repository import GuestRepository
from shopgate.repositories.staff_repository import StaffRepository
from shopgate.services.base_service import BaseService
from shopgate.services.lockout import Clock, utcnow
from shopgate.services.password_policy import validate_password
from shopgate.utils.audit import log_audit_event

PermissionInput = Union[PermissionSet, Mapping[str, bool]]


class StaffService(BaseService):
    """Owner-facing staff and guest management.

    Parameters
    ----------
    staff_repo / guest_repo:
        Staff and guest repositories.
    credentials:
        Creates sign-in identities for staff logins and guests.
    session:
        Shared session holder; the acting owner and shop come from it.
    config:
        Supplies the guest password minimum.
    logger:
        Structured logger.
    audit_store:
        Optional persistence for audit events.
    clock:
        Source of ``created_at`` timestamps.
    """

    def __init__(
        self,
        staff_repo: StaffRepository,
        guest_repo: GuestRepository,
        credentials: CredentialStore,
        session: SessionManager,
        config: AppConfig,
        logger: StructuredLogger,
        audit_store: Optional[DocumentStore] = None,
        clock: Clock = utcnow,
    ) -> None:
        super().__init__(logger)
        self._staff = staff_repo
        self._guests = guest_repo
        self._credentials = credentials
        self._session = session
        self._config = config
        self._audit_store = audit_store
        self._clock = clock

    # ==================================================================
    # Staff
    # ==================================================================

    @requires_role(AccountRole.OWNER)
    def list_staff(self) -> ServiceResult[list[StaffRecord]]:
        """Staff of the owner's shop, sorted by name."""
        return self._staff.list_for_shop(self._shop_id())

    @requires_role(AccountRole.OWNER)
    def add_staff(
        self,
        name: str,
        permissions: PermissionInput,
        role_label: str = "Staff Member",
        email: Optional[str] = None,
        password: Optional[str] = None,
    ) -> ServiceResult[StaffRecord]:
        """Add a staff member to the owner's shop.

        When *email* and *password* are both given, a sign-in identity is
        created and linked; otherwise the entry is roster-only.

        Returns
        -------
        ServiceResult[StaffRecord]
            ``status_code=400`` for invalid input (including unknown
            permission keys), ``409`` when the email is taken.
        """
        name = (name or "").strip()
        if not name:
            return ServiceResult.fail("Staff name is required.", 400)

        parsed = self._parse_permissions(permissions)
        if isinstance(parsed, str):
            return ServiceResult.fail(parsed, 400)

        if bool(email) != bool(password):
            return ServiceResult.fail(
                "Provide both email and password to create a staff login.", 400,
            )

        user_id: Optional[str] = None
        if email and password:
            check = validate_password(password)
            if not check.is_valid:
                return ServiceResult.fail(check.message or "Invalid password.", 400)
            created = self._create_identity(email, password)
            if not created.success or created.data is None:
                return ServiceResult.fail(created.error or "Sign-up failed.", created.status_code)
            user_id = created.data.id
            email = created.data.email

        record = StaffRecord(
            id=str(uuid.uuid4()),
            shop_id=self._shop_id(),
            user_id=user_id,
            email=email,
            name=name,
            role_label=role_label,
            permissions=parsed,
            created_at=self._clock(),
        )
        result = self._staff.create(record)
        if result.success:
            self._audit("STAFF_ADDED", record.id, {"name": name, "has_login": user_id is not None})
        elif user_id is not None:
            self._log_orphaned_identity(user_id, "staff", result.error)
        return result

    @requires_role(AccountRole.OWNER)
    def update_permissions(
        self,
        staff_id: str,
        permissions: PermissionInput,
    ) -> ServiceResult[PermissionSet]:
        parsed = self._parse_permissions(permissions)
        if isinstance(parsed, str):
            return ServiceResult.fail(parsed, 400)

        owned = self._owned_staff(staff_id)
        if not owned.success or owned.data is None:
            return ServiceResult.fail(owned.error or "Staff member not found.", owned.status_code)

        outcome = self._staff.update_permissions(staff_id, parsed)
        if not outcome.success:
            return ServiceResult.fail(outcome.error or "Update failed.", outcome.status_code)

        self._audit(
            "STAFF_PERMISSIONS_UPDATED",
            staff_id,
            {
                "old": ",".join(sorted(owned.data.permissions.granted())),
                "new": ",".join(sorted(parsed.granted())),
            },
        )
        return ServiceResult.ok(parsed)

    @requires_role(AccountRole.OWNER)
    def remove_staff(self, staff_id: str) -> ServiceResult[None]:
        """Delete a staff record.

        The linked sign-in identity, if any, stays at the credential
        service but no longer resolves to a role.
        """
        owned = self._owned_staff(staff_id)
        if not owned.success or owned.data is None:
            return ServiceResult.fail(owned.error or "Staff member not found.", owned.status_code)

        outcome = self._staff.delete(staff_id)
        if outcome.success:
            self._audit("STAFF_REMOVED", staff_id, {"name": owned.data.name})
        return outcome

    # ==================================================================
    # Guests
    # ==================================================================

    @requires_role(AccountRole.OWNER)
    def list_guests(self) -> ServiceResult[list[GuestRecord]]:
        return self._guests.list_for_shop(self._shop_id())

    @requires_role(AccountRole.OWNER)
    def create_guest_account(self, email: str, password: str) -> ServiceResult[GuestRecord]:
        """Create a receipt-only guest login for the owner's shop."""
        if not (email or "").strip() or not (password or "").strip():
            return ServiceResult.fail(
                "Please enter both email and password for the guest account", 400,
            )
        min_length = self._config.GUEST_MIN_PASSWORD_LENGTH
        if len(password) < min_length:
            return ServiceResult.fail(
                f"Password must be at least {min_length} characters long", 400,
            )

        created = self._create_identity(email, password)
        if not created.success or created.data is None:
            return ServiceResult.fail(created.error or "Sign-up failed.", created.status_code)
        identity = created.data

        record = GuestRecord(
            id=identity.id,
            shop_id=self._shop_id(),
            email=identity.email,
            created_at=self._clock(),
        )
        result = self._guests.create(record)
        if result.success:
            self._audit("GUEST_CREATED", identity.id, {"email": identity.email})
        else:
            self._log_orphaned_identity(identity.id, "guest", result.error)
        return result

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _shop_id(self) -> str:
        current = self._session.get_current_session()
        return current.shop_id or current.identity.id

    def _log_orphaned_identity(self, user_id: str, kind: str, error: Optional[str]) -> None:
        # The identity stays registered; its email cannot be signed up again.
        self._logger.error(
            "Identity %s created but %s record failed: %s",
            user_id,
            kind,
            error,
            extra={"event": "SIGN_UP_ORPHANED", "user_id": user_id, "record": kind},
        )

    def _owned_staff(self, staff_id: str) -> ServiceResult[StaffRecord]:
        lookup = self._staff.get_by_id(staff_id)
        if not lookup.success:
            return lookup
        if lookup.data is None or lookup.data.shop_id != self._shop_id():
            return ServiceResult.fail("Staff member not found.", 404)
        return lookup

    @staticmethod
    def _parse_permissions(permissions: PermissionInput) -> PermissionSet | str:
        if isinstance(permissions, PermissionSet):
            return permissions
        try:
            return PermissionSet.from_mapping(permissions)
        except ValidationError as exc:
            return f"Invalid permissions: {exc.error_count()} error(s)."

    def _create_identity(self, email: str, password: str) -> ServiceResult[Identity]:
        email = normalize_email(email)
        try:
            identity = self._credentials.sign_up(email, password)
        except EmailAlreadyRegisteredError:
            return ServiceResult.fail("An account with this email already exists.", 409)
        except CredentialNetworkError:
            return ServiceResult.fail(
                "Cannot reach the server. Check your internet connection.", 503,
            )
        except CredentialStoreError as exc:
            self._logger.warning("Identity creation failed for %s: %s", email, exc)
            return ServiceResult.fail("Account could not be created.", 500)
        return ServiceResult.ok(identity)

    def _audit(self, action: str, entity_id: str, details: dict[str, object]) -> None:
        actor = self._session.get_current_session()
        log_audit_event(
            logger=self._logger,
            action=action,
            entity_type="Staff" if action.startswith("STAFF") else "Guest",
            entity_id=entity_id,
            user_id=actor.identity.id,
            details=details,
            store=self._audit_store,
            collection=self._config.collection("audit_log"),
        )
