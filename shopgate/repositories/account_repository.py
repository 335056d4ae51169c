"""
Account Repository.

Data access for shop and admin account records.  One class serves both
collections; the composition root creates one instance per collection.
"""

from __future__ import annotations

from typing import Optional

from shopgate.adapters.document_store import DocumentStore
from shopgate.config import AppConfig
from shopgate.logger import StructuredLogger
from shopgate.models.account import AccountRecord
from shopgate.models.enums import AccountStatus
from shopgate.models.identity import normalize_email
from shopgate.models.service_models import ServiceResult
from shopgate.repositories.base_repository import BaseRepository


class AccountRepository(BaseRepository):
    """Data access layer for :class:`AccountRecord` entities.

    **No ``delete()`` method.**  Accounts are never hard-deleted; access is
    revoked by moving the record to ``frozen`` or ``rejected``.
    """

    COLLECTION_KEY = "shops"

    def __init__(
        self,
        store: DocumentStore,
        config: AppConfig,
        logger: StructuredLogger,
        collection_key: str = "shops",
    ) -> None:
        super().__init__(store, config, logger)
        self.COLLECTION_KEY = collection_key

    def get_by_id(self, account_id: str) -> ServiceResult[Optional[AccountRecord]]:
        return self._run(
            lambda: self._parse(AccountRecord, self._store.get(self.collection, account_id)),
            operation_name=f"get_by_id ({self.collection})",
        )

    def get_by_email(self, email: str) -> ServiceResult[Optional[AccountRecord]]:
        """Fetch an account by email (case-insensitive).

        When several rows share an email the first one returned wins.
        """
        normalized_email = normalize_email(email)

        def _op() -> Optional[AccountRecord]:
            docs = self._store.query(self.collection, {"email": normalized_email})
            return AccountRecord.model_validate(docs[0]) if docs else None

        return self._run(_op, operation_name=f"get_by_email ({self.collection})")

    def list_accounts(
        self,
        status: Optional[AccountStatus] = None,
    ) -> ServiceResult[list[AccountRecord]]:
        """All accounts, optionally filtered by status, newest first."""
        filters = {"status": str(status)} if status is not None else None

        def _op() -> list[AccountRecord]:
            docs = self._store.query(
                self.collection, filters, order_by="created_at", descending=True,
            )
            return self._sorted_newest_first(
                [AccountRecord.model_validate(doc) for doc in docs],
            )

        return self._run(_op, operation_name=f"list_accounts ({self.collection})")

    def create(self, record: AccountRecord) -> ServiceResult[AccountRecord]:
        def _op() -> AccountRecord:
            self._store.set(self.collection, record.id, self._to_document(record))
            self._logger.info("Account created: %s/%s", self.collection, record.id)
            return record

        return self._run(_op, operation_name=f"create ({self.collection})")

    def update_status(
        self,
        account_id: str,
        status: AccountStatus,
    ) -> ServiceResult[None]:
        return self.update_fields(account_id, {"status": str(status)})

    def update_fields(
        self,
        account_id: str,
        fields: dict[str, object],
    ) -> ServiceResult[None]:
        """Apply a partial update in a single store call.

        Callers pass every field that must change together (e.g. the
        failed-attempt counter and the lock timestamp) so a failed write
        never leaves the record half-updated.
        """
        return self._run(
            lambda: self._store.update(self.collection, account_id, fields),
            operation_name=f"update_fields ({self.collection})",
        )
