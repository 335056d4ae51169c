from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from shopgate.models.account import AccountRecord, StaffRecord
from shopgate.models.enums import AccountStatus, Permission, RouteAccess, RouteFamily
from shopgate.models.guard_models import RouteRule
from shopgate.models.identity import AuthTokens, Identity
from shopgate.models.permissions import PermissionSet

NOW = datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)


class TestPermissionSet:
    def test_defaults_grant_nothing(self):
        assert PermissionSet.none().granted() == frozenset()

    def test_full_grants_every_permission(self):
        assert PermissionSet.full().granted() == frozenset(Permission)

    def test_guest_only_creates_receipts(self):
        guest = PermissionSet.guest()
        assert guest.granted() == {Permission.CREATE_RECEIPTS}

    def test_from_mapping_accepts_camel_case_keys(self):
        perms = PermissionSet.from_mapping({"canViewStock": True, "canMarkAttendance": False})
        assert perms.allows(Permission.VIEW_STOCK)
        assert not perms.allows(Permission.MARK_ATTENDANCE)

    def test_unknown_key_is_rejected(self):
        with pytest.raises(ValidationError):
            PermissionSet.from_mapping({"canViewStock": True, "canFlyPlanes": True})

    def test_non_boolean_value_is_rejected(self):
        with pytest.raises(ValidationError):
            PermissionSet.from_mapping({"canViewStock": "sometimes"})

    def test_to_mapping_uses_wire_names(self):
        mapping = PermissionSet.guest().to_mapping()
        assert set(mapping) == {p.value for p in Permission}
        assert mapping["canCreateReceipts"] is True

    def test_is_immutable(self):
        perms = PermissionSet.none()
        with pytest.raises(ValidationError):
            perms.can_view_stock = True

    def test_staff_record_round_trips_permissions(self):
        staff = StaffRecord(
            id="s1",
            shop_id="shop",
            name="Clerk",
            permissions=PermissionSet.from_mapping({"canViewReceipts": True}),
        )
        restored = StaffRecord.model_validate(staff.model_dump(mode="json", by_alias=True))
        assert restored.permissions.granted() == {Permission.VIEW_RECEIPTS}


class TestAccountLockArithmetic:
    def _locked(self, minutes: int = 15) -> AccountRecord:
        return AccountRecord(
            id="a1",
            email="Owner@Shop.test ",
            failed_login_attempts=5,
            locked_until=NOW,
            lock_duration=minutes,
        )

    def test_email_is_normalised(self):
        assert self._locked().email == "owner@shop.test"

    def test_locked_until_plus_duration_is_expiry(self):
        record = self._locked()
        assert record.lock_expires_at == NOW + timedelta(minutes=15)
        assert record.is_locked(NOW + timedelta(minutes=14, seconds=59))
        assert not record.is_locked(NOW + timedelta(minutes=15))

    def test_remaining_minutes_round_up(self):
        record = self._locked()
        assert record.remaining_lock_minutes(NOW) == 15
        assert record.remaining_lock_minutes(NOW + timedelta(minutes=4, seconds=1)) == 11
        assert record.remaining_lock_minutes(NOW + timedelta(minutes=14, seconds=59)) == 1
        assert record.remaining_lock_minutes(NOW + timedelta(hours=1)) == 0

    def test_no_lock_recorded(self):
        record = AccountRecord(id="a1", email="a@b.test")
        assert record.lock_expires_at is None
        assert record.remaining_lock_minutes(NOW) == 0

    def test_naive_timestamps_are_read_as_utc(self):
        record = AccountRecord.model_validate(
            {"id": "a1", "email": "a@b.test", "locked_until": "2026-01-15T09:00:00", "lock_duration": 5}
        )
        assert record.locked_until == NOW

    def test_is_active(self):
        assert AccountRecord(id="a", email="a@b.test", status=AccountStatus.APPROVED).is_active
        assert AccountRecord(id="a", email="a@b.test", status=AccountStatus.ACTIVE).is_active
        assert not AccountRecord(id="a", email="a@b.test", status=AccountStatus.FROZEN).is_active


class TestRouteRule:
    def test_permission_route_requires_permission(self):
        with pytest.raises(ValidationError):
            RouteRule(path="/stock", access=RouteAccess.PERMISSION)

    def test_permission_only_on_permission_routes(self):
        with pytest.raises(ValidationError):
            RouteRule(path="/settings", permission=Permission.VIEW_STOCK)

    def test_admin_only_route_must_use_admin_family(self):
        with pytest.raises(ValidationError):
            RouteRule(path="/admin/x", access=RouteAccess.ADMIN_ONLY, family=RouteFamily.SHOP)


class TestIdentity:
    def test_email_is_normalised(self):
        assert Identity(id="u1", email="  Mixed@Case.TEST ").email == "mixed@case.test"

    def test_token_expiry_conversion(self):
        tokens = AuthTokens(access_token="a", refresh_token="r", expires_at=0)
        assert tokens.expires_at_datetime == datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert AuthTokens(access_token="a", refresh_token="r").expires_at_datetime is None
