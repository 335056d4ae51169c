from shopgate.adapters.credential_store import CredentialNetworkError, CredentialStoreError
from shopgate.models.auth_models import AuthErrorCode
from shopgate.services.lockout import LockoutPolicy

from conftest import ADMIN_PASSWORD, OWNER_PASSWORD


def _stored(store, collection, record_id):
    return store.get(collection, record_id)


class TestAdminPolicy:
    """Admins lock after 3 failures for 30 minutes."""

    def test_policy_from_config(self, services):
        assert services["admin_lockout"].policy == LockoutPolicy(max_attempts=3, lock_minutes=30)

    def test_failures_count_down_then_lock(self, services, seed, store, clock):
        admin = seed.admin()
        tracker = services["admin_lockout"]

        first = tracker.attempt(admin.email, "wrong")
        assert first.error_code == AuthErrorCode.INVALID_CREDENTIALS
        assert first.error_message == (
            "Invalid email or password. 2 attempts remaining before account is locked."
        )
        assert first.remaining_attempts == 2

        second = tracker.attempt(admin.email, "wrong")
        assert second.remaining_attempts == 1

        third = tracker.attempt(admin.email, "wrong")
        assert third.error_code == AuthErrorCode.ACCOUNT_LOCKED
        assert third.error_message == (
            "Too many failed login attempts. Your account has been locked for 30 minutes."
        )
        assert third.locked_minutes == 30

        doc = _stored(store, "admins", admin.id)
        assert doc["failed_login_attempts"] == 3
        assert doc["lock_duration"] == 30
        assert doc["locked_until"] == clock.now.isoformat()

    def test_locked_account_is_refused_without_checking_password(
        self, services, seed, credentials, clock,
    ):
        admin = seed.admin()
        tracker = services["admin_lockout"]
        for _ in range(3):
            tracker.attempt(admin.email, "wrong")
        calls_before = credentials.sign_in_calls

        refused = tracker.attempt(admin.email, ADMIN_PASSWORD)
        assert refused.success is False
        assert refused.error_code == AuthErrorCode.ACCOUNT_LOCKED
        assert refused.error_message == (
            "Account is temporarily locked. Please try again in 30 minute(s)."
        )
        assert credentials.sign_in_calls == calls_before

        clock.advance(minutes=10, seconds=30)
        later = tracker.attempt(admin.email, ADMIN_PASSWORD)
        assert later.locked_minutes == 20
        assert "20 minute(s)" in later.error_message

    def test_success_resets_counter(self, services, seed, store):
        admin = seed.admin()
        tracker = services["admin_lockout"]
        tracker.attempt(admin.email, "wrong")
        tracker.attempt(admin.email, "wrong")

        assert tracker.attempt(admin.email, ADMIN_PASSWORD).success is True
        doc = _stored(store, "admins", admin.id)
        assert doc["failed_login_attempts"] == 0
        assert doc["locked_until"] is None

        again = tracker.attempt(admin.email, "wrong")
        assert again.remaining_attempts == 2

    def test_lock_expires_and_success_clears_it(self, services, seed, store, clock):
        admin = seed.admin()
        tracker = services["admin_lockout"]
        for _ in range(3):
            tracker.attempt(admin.email, "wrong")

        clock.advance(minutes=30)
        result = tracker.attempt(admin.email, ADMIN_PASSWORD)
        assert result.success is True
        assert result.identity.id == admin.id

        doc = _stored(store, "admins", admin.id)
        assert doc["failed_login_attempts"] == 0
        assert doc["locked_until"] is None
        assert doc["lock_duration"] is None
        assert doc["last_login_at"] == clock.now.isoformat()

    def test_failure_after_expiry_locks_again_immediately(self, services, seed, clock):
        admin = seed.admin()
        tracker = services["admin_lockout"]
        for _ in range(3):
            tracker.attempt(admin.email, "wrong")

        clock.advance(minutes=31)
        again = tracker.attempt(admin.email, "wrong")
        assert again.error_code == AuthErrorCode.ACCOUNT_LOCKED
        assert again.locked_minutes == 30


class TestShopPolicy:
    def test_policy_from_config(self, services):
        assert services["shop_lockout"].policy == LockoutPolicy(max_attempts=5, lock_minutes=15)

    def test_fifth_failure_locks_for_fifteen_minutes(self, services, seed):
        owner = seed.shop()
        tracker = services["shop_lockout"]
        results = [tracker.attempt(owner.email, "wrong") for _ in range(5)]

        assert [r.remaining_attempts for r in results[:4]] == [4, 3, 2, 1]
        assert results[4].error_code == AuthErrorCode.ACCOUNT_LOCKED
        assert results[4].error_message.endswith("locked for 15 minutes.")

    def test_success_resets_counter(self, services, seed, store):
        owner = seed.shop()
        tracker = services["shop_lockout"]
        tracker.attempt(owner.email, "wrong")
        tracker.attempt(owner.email, "wrong")

        assert tracker.attempt(owner.email, OWNER_PASSWORD).success is True
        assert _stored(store, "shops", owner.id)["failed_login_attempts"] == 0

        again = tracker.attempt(owner.email, "wrong")
        assert again.remaining_attempts == 4

    def test_email_lookup_is_case_insensitive(self, services, seed):
        owner = seed.shop()
        result = services["shop_lockout"].attempt("  OWNER@Shop.TEST ", "wrong")
        assert result.remaining_attempts == 4
        assert owner.email == "owner@shop.test"


class TestUnknownEmail:
    def test_unknown_email_gets_generic_message_and_no_writes(self, services, store):
        result = services["shop_lockout"].attempt("ghost@nowhere.test", "whatever")

        assert result.error_code == AuthErrorCode.INVALID_CREDENTIALS
        assert result.error_message == "Invalid email or password."
        assert result.remaining_attempts is None
        assert store.query("shops") == []

    def test_identity_without_account_record_is_never_locked(self, services, seed):
        seed.identity_only("drifter@shop.test", OWNER_PASSWORD)
        tracker = services["shop_lockout"]
        for _ in range(10):
            result = tracker.attempt("drifter@shop.test", "wrong")
        assert result.error_code == AuthErrorCode.INVALID_CREDENTIALS
        assert tracker.attempt("drifter@shop.test", OWNER_PASSWORD).success is True


class TestStoreAndNetworkFailures:
    def test_lookup_failure_refuses_without_contacting_credentials(
        self, services, seed, store, credentials,
    ):
        owner = seed.shop()
        store.failing.add("query")
        calls_before = credentials.sign_in_calls

        result = services["shop_lockout"].attempt(owner.email, OWNER_PASSWORD)
        assert result.success is False
        assert result.error_code == AuthErrorCode.NETWORK_ERROR
        assert credentials.sign_in_calls == calls_before

    def test_failed_bookkeeping_write_reports_generic_message(self, services, seed, store):
        owner = seed.shop()
        store.failing.add("update")

        result = services["shop_lockout"].attempt(owner.email, "wrong")
        assert result.error_code == AuthErrorCode.INVALID_CREDENTIALS
        assert result.error_message == "Invalid email or password."

        store.failing.clear()
        assert _stored(store, "shops", owner.id)["failed_login_attempts"] == 0

    def test_failed_reset_write_still_signs_in(self, services, seed, store):
        owner = seed.shop()
        store.failing.add("update")
        assert services["shop_lockout"].attempt(owner.email, OWNER_PASSWORD).success is True

    def test_network_error_does_not_count_as_failure(self, services, seed, store, credentials):
        owner = seed.shop()
        credentials.error = CredentialNetworkError("offline")

        result = services["shop_lockout"].attempt(owner.email, "wrong")
        assert result.error_code == AuthErrorCode.NETWORK_ERROR
        assert result.error_message == "Cannot reach the server. Check your internet connection."
        assert _stored(store, "shops", owner.id)["failed_login_attempts"] == 0

    def test_unexpected_credential_error_is_unknown(self, services, seed, store, credentials):
        owner = seed.shop()
        credentials.error = CredentialStoreError("boom")

        result = services["shop_lockout"].attempt(owner.email, "wrong")
        assert result.error_code == AuthErrorCode.UNKNOWN_ERROR
        assert _stored(store, "shops", owner.id)["failed_login_attempts"] == 0


class TestCheckLock:
    def test_reports_remaining_minutes(self, services, seed, clock):
        owner = seed.shop()
        tracker = services["shop_lockout"]
        for _ in range(5):
            tracker.attempt(owner.email, "wrong")

        assert tracker.check_lock(owner.email).data == 15
        clock.advance(minutes=14)
        assert tracker.check_lock(owner.email).data == 1
        clock.advance(minutes=1)
        assert tracker.check_lock(owner.email).data == 0

    def test_unknown_email_is_not_locked(self, services):
        result = services["shop_lockout"].check_lock("ghost@nowhere.test")
        assert result.success is True
        assert result.data == 0

    def test_lookup_failure_is_reported(self, services, store):
        store.failing.add("query")
        result = services["shop_lockout"].check_lock("ghost@nowhere.test")
        assert result.success is False
        assert result.status_code == 503
