from shopgate.models.enums import AccountRole, AccountStatus, Permission, ResolutionState
from shopgate.models.identity import Identity
from shopgate.models.permissions import PermissionSet

from conftest import OWNER_PASSWORD, SUPER_ADMIN_EMAIL


def _identity(record) -> Identity:
    return Identity(id=record.id, email=record.email)


class TestResolutionOrder:
    def test_super_admin_email_resolves_without_record(self, services):
        resolution = services["role_resolver"].resolve(
            Identity(id="root-id", email=SUPER_ADMIN_EMAIL.upper()),
        )
        assert resolution.is_resolved
        assert resolution.session.role == AccountRole.ADMIN
        assert resolution.session.status == AccountStatus.ACTIVE
        assert resolution.session.permissions == PermissionSet.full()

    def test_admin_record(self, services, seed):
        admin = seed.admin()
        session = services["role_resolver"].resolve(_identity(admin)).session
        assert session.role == AccountRole.ADMIN
        assert session.shop_id is None

    def test_owner_carries_shop_status(self, services, seed):
        owner = seed.shop(status=AccountStatus.PENDING, shop_name="Bakery")
        session = services["role_resolver"].resolve(_identity(owner)).session
        assert session.role == AccountRole.OWNER
        assert session.status == AccountStatus.PENDING
        assert session.shop_id == owner.id
        assert session.display_name == "Bakery"
        assert session.permissions == PermissionSet.full()

    def test_staff_inherits_shop_status_and_own_permissions(self, services, seed):
        owner = seed.shop(status=AccountStatus.FROZEN)
        staff = seed.staff(owner.id, permissions={"canViewStock": True})

        session = services["role_resolver"].resolve(
            Identity(id=staff.user_id, email=staff.email),
        ).session
        assert session.role == AccountRole.STAFF
        assert session.status == AccountStatus.FROZEN
        assert session.shop_id == owner.id
        assert session.allows(Permission.VIEW_STOCK)
        assert not session.allows(Permission.CREATE_RECEIPTS)
        assert session.display_name == "Clerk"

    def test_staff_of_missing_shop_is_rejected(self, services, seed):
        staff = seed.staff("vanished-shop")
        session = services["role_resolver"].resolve(
            Identity(id=staff.user_id, email=staff.email),
        ).session
        assert session.status == AccountStatus.REJECTED

    def test_guest(self, services, seed):
        owner = seed.shop()
        guest = seed.guest(owner.id)
        session = services["role_resolver"].resolve(_identity(guest)).session
        assert session.role == AccountRole.GUEST
        assert session.status == AccountStatus.APPROVED
        assert session.permissions.granted() == {Permission.CREATE_RECEIPTS}

    def test_first_matching_rule_wins(self, services, seed, store):
        owner = seed.shop()
        # Same identity also listed as staff of another shop.
        store.set("staff", "dup", {
            "id": "dup", "shop_id": "other", "user_id": owner.id, "name": "Dup",
        })
        session = services["role_resolver"].resolve(_identity(owner)).session
        assert session.role == AccountRole.OWNER

    def test_no_records_is_unresolved(self, services, seed):
        identity = seed.identity_only("drifter@shop.test", OWNER_PASSWORD)
        resolution = services["role_resolver"].resolve(identity)
        assert resolution.state == ResolutionState.UNRESOLVED
        assert resolution.session is None

    def test_roster_only_staff_never_resolves(self, services, seed, store):
        owner = seed.shop()
        store.set("staff", "roster", {"id": "roster", "shop_id": owner.id, "name": "Roster"})
        resolution = services["role_resolver"].resolve(Identity(id="roster", email="r@shop.test"))
        assert resolution.state == ResolutionState.UNRESOLVED


class TestFailures:
    def test_store_failure_is_failed_not_unresolved(self, services, seed, store):
        owner = seed.shop()
        store.failing.add("get")
        resolution = services["role_resolver"].resolve(_identity(owner))
        assert resolution.state == ResolutionState.FAILED
        assert resolution.session is None
        assert resolution.error

    def test_failure_never_falls_through_to_weaker_rule(self, services, seed, store):
        owner = seed.shop()
        guest = seed.guest(owner.id)
        # Staff lookup fails; the guest rule must not be consulted.
        store.failing.add("query")
        resolution = services["role_resolver"].resolve(_identity(guest))
        assert resolution.state == ResolutionState.FAILED

    def test_malformed_document_is_failed(self, services, store):
        store.set("shops", "bad", {"id": "bad", "email": "bad@shop.test", "status": "bogus"})
        resolution = services["role_resolver"].resolve(Identity(id="bad", email="bad@shop.test"))
        assert resolution.state == ResolutionState.FAILED


class TestResolveCurrent:
    def test_nobody_signed_in(self, services):
        assert services["role_resolver"].resolve_current().state == ResolutionState.UNRESOLVED

    def test_signed_in_identity(self, services, seed, credentials):
        owner = seed.shop()
        credentials.sign_in(owner.email, OWNER_PASSWORD)
        resolution = services["role_resolver"].resolve_current()
        assert resolution.session.role == AccountRole.OWNER
