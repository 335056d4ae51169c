import os
import tempfile
from datetime import datetime, timedelta, timezone
from typing import Optional

# Keep log files out of the working tree before anything builds a logger.
_test_tmp_dir = tempfile.mkdtemp(prefix="shopgate_test_")
os.environ.setdefault("LOG_FILE", os.path.join(_test_tmp_dir, "shopgate.log"))
os.environ.setdefault("SUPABASE_URL", "")
os.environ.setdefault("SUPER_ADMIN_EMAIL", "root@platform.test")

import pytest  # noqa: E402

from shopgate.adapters.credential_store import CredentialStoreError  # noqa: E402
from shopgate.adapters.document_store import DocumentStoreError  # noqa: E402
from shopgate.adapters.memory import MemoryCredentialStore, MemoryDocumentStore  # noqa: E402
from shopgate.auth import SessionManager  # noqa: E402
from shopgate.config import AppConfig  # noqa: E402
from shopgate.logger import StructuredLogger  # noqa: E402
from shopgate.models.account import AccountRecord, GuestRecord, StaffRecord  # noqa: E402
from shopgate.models.enums import AccountRole, AccountStatus  # noqa: E402
from shopgate.models.identity import Identity, SignInResult  # noqa: E402
from shopgate.models.permissions import PermissionSet  # noqa: E402
from shopgate.services import ServiceContainer, create_services  # noqa: E402

SUPER_ADMIN_EMAIL = "root@platform.test"
OWNER_PASSWORD = "Owner#2024pass"
ADMIN_PASSWORD = "Admin#2024pass"
STAFF_PASSWORD = "Staff#2024pass"
GUEST_PASSWORD = "guest123"


class FakeClock:
    """Controllable UTC clock injected wherever services read the time."""

    def __init__(self, start: Optional[datetime] = None) -> None:
        self.now = start or datetime(2026, 1, 15, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


class FlakyDocumentStore(MemoryDocumentStore):
    """Memory store that raises ``DocumentStoreError`` for chosen operations."""

    def __init__(self) -> None:
        super().__init__()
        self.failing: set[str] = set()

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.failing:
            raise DocumentStoreError(f"simulated {operation} failure")

    def get(self, collection, doc_id):
        self._maybe_fail("get")
        return super().get(collection, doc_id)

    def query(self, collection, filters=None, *, order_by=None, descending=False):
        self._maybe_fail("query")
        return super().query(collection, filters, order_by=order_by, descending=descending)

    def add(self, collection, data):
        self._maybe_fail("add")
        return super().add(collection, data)

    def set(self, collection, doc_id, data):
        self._maybe_fail("set")
        super().set(collection, doc_id, data)

    def update(self, collection, doc_id, partial):
        self._maybe_fail("update")
        super().update(collection, doc_id, partial)


class FlakyCredentialStore(MemoryCredentialStore):
    """Memory credential store that counts sign-ins and can be made to fail."""

    def __init__(self) -> None:
        super().__init__(iterations=1_000)
        self.sign_in_calls = 0
        self.error: Optional[CredentialStoreError] = None

    def sign_in(self, email: str, password: str) -> SignInResult:
        self.sign_in_calls += 1
        if self.error is not None:
            raise self.error
        return super().sign_in(email, password)


class Seeder:
    """Creates identities plus the records that give them a role."""

    def __init__(self, store, credentials, config: AppConfig, clock: FakeClock) -> None:
        self._store = store
        self._credentials = credentials
        self._config = config
        self._clock = clock

    def shop(
        self,
        email: str = "owner@shop.test",
        password: str = OWNER_PASSWORD,
        status: AccountStatus = AccountStatus.APPROVED,
        shop_name: str = "Corner Store",
    ) -> AccountRecord:
        identity = self._credentials.sign_up(email, password)
        record = AccountRecord(
            id=identity.id,
            email=email,
            role=AccountRole.OWNER,
            status=status,
            shop_name=shop_name,
            created_at=self._clock(),
        )
        self._put("shops", record.id, record.model_dump(mode="json"))
        return record

    def admin(self, email: str = "admin@platform.test", password: str = ADMIN_PASSWORD) -> AccountRecord:
        identity = self._credentials.sign_up(email, password)
        record = AccountRecord(
            id=identity.id,
            email=email,
            role=AccountRole.ADMIN,
            status=AccountStatus.ACTIVE,
            created_at=self._clock(),
        )
        self._put("admins", record.id, record.model_dump(mode="json"))
        return record

    def staff(
        self,
        shop_id: str,
        email: str = "clerk@shop.test",
        password: str = STAFF_PASSWORD,
        permissions: Optional[dict[str, bool]] = None,
        name: str = "Clerk",
    ) -> StaffRecord:
        identity = self._credentials.sign_up(email, password)
        record = StaffRecord(
            id=f"staff-{identity.id}",
            shop_id=shop_id,
            user_id=identity.id,
            email=identity.email,
            name=name,
            permissions=PermissionSet.from_mapping(permissions or {}),
            created_at=self._clock(),
        )
        self._put("staff", record.id, record.model_dump(mode="json", by_alias=True))
        return record

    def guest(
        self,
        shop_id: str,
        email: str = "guest@shop.test",
        password: str = GUEST_PASSWORD,
    ) -> GuestRecord:
        identity = self._credentials.sign_up(email, password)
        record = GuestRecord(
            id=identity.id,
            shop_id=shop_id,
            email=identity.email,
            created_at=self._clock(),
        )
        self._put("guests", record.id, record.model_dump(mode="json"))
        return record

    def identity_only(self, email: str, password: str) -> Identity:
        return self._credentials.sign_up(email, password)

    def _put(self, key: str, doc_id: str, document: dict) -> None:
        self._store.set(self._config.collection(key), doc_id, document)


@pytest.fixture
def config() -> AppConfig:
    return AppConfig(SUPABASE_URL="", SUPER_ADMIN_EMAIL=SUPER_ADMIN_EMAIL)


@pytest.fixture
def logger() -> StructuredLogger:
    return StructuredLogger(name="shopgate.tests")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> FlakyDocumentStore:
    return FlakyDocumentStore()


@pytest.fixture
def credentials() -> FlakyCredentialStore:
    return FlakyCredentialStore()


@pytest.fixture
def session() -> SessionManager:
    return SessionManager()


@pytest.fixture
def services(config, store, credentials, session, clock) -> ServiceContainer:
    return create_services(config, store, credentials, session, clock=clock)


@pytest.fixture
def seed(store, credentials, config, clock) -> Seeder:
    return Seeder(store, credentials, config, clock)
