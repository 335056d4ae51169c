"""
Guest Repository.

Guest markers: one document per guest identity, keyed by identity id.
"""

from __future__ import annotations

from typing import Optional

from shopgate.models.account import GuestRecord
from shopgate.models.service_models import ServiceResult
from shopgate.repositories.base_repository import BaseRepository


class GuestRepository(BaseRepository):
    """Data access layer for :class:`GuestRecord` entities."""

    COLLECTION_KEY = "guests"

    def get_by_id(self, user_id: str) -> ServiceResult[Optional[GuestRecord]]:
        return self._run(
            lambda: self._parse(GuestRecord, self._store.get(self.collection, user_id)),
            operation_name="get_by_id (guests)",
        )

    def list_for_shop(self, shop_id: str) -> ServiceResult[list[GuestRecord]]:
        return self._run(
            lambda: [
                GuestRecord.model_validate(doc)
                for doc in self._store.query(self.collection, {"shop_id": shop_id})
            ],
            operation_name="list_for_shop (guests)",
        )

    def create(self, record: GuestRecord) -> ServiceResult[GuestRecord]:
        def _op() -> GuestRecord:
            self._store.set(self.collection, record.id, self._to_document(record))
            return record

        return self._run(_op, operation_name="create (guests)")
