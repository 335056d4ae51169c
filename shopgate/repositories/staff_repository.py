"""
Staff Repository.

Handles staff member records, scoped by shop id.
"""

from __future__ import annotations

from typing import Optional

from shopgate.models.account import StaffRecord
from shopgate.models.permissions import PermissionSet
from shopgate.models.service_models import ServiceResult
from shopgate.repositories.base_repository import BaseRepository


class StaffRepository(BaseRepository):
    """Data access layer for :class:`StaffRecord` entities."""

    COLLECTION_KEY = "staff"

    def get_by_id(self, staff_id: str) -> ServiceResult[Optional[StaffRecord]]:
        return self._run(
            lambda: self._parse(StaffRecord, self._store.get(self.collection, staff_id)),
            operation_name="get_by_id (staff)",
        )

    def get_by_user_id(self, user_id: str) -> ServiceResult[Optional[StaffRecord]]:
        """Staff record linked to a sign-in identity, if any."""
        def _op() -> Optional[StaffRecord]:
            docs = self._store.query(self.collection, {"user_id": user_id})
            return StaffRecord.model_validate(docs[0]) if docs else None

        return self._run(_op, operation_name="get_by_user_id (staff)")

    def list_for_shop(self, shop_id: str) -> ServiceResult[list[StaffRecord]]:
        def _op() -> list[StaffRecord]:
            docs = self._store.query(self.collection, {"shop_id": shop_id}, order_by="name")
            return sorted(
                (StaffRecord.model_validate(doc) for doc in docs),
                key=lambda staff: staff.name.lower(),
            )

        return self._run(_op, operation_name="list_for_shop (staff)")

    def create(self, record: StaffRecord) -> ServiceResult[StaffRecord]:
        def _op() -> StaffRecord:
            self._store.set(self.collection, record.id, self._to_document(record))
            return record

        return self._run(_op, operation_name="create (staff)")

    def update_permissions(
        self,
        staff_id: str,
        permissions: PermissionSet,
    ) -> ServiceResult[None]:
        return self._run(
            lambda: self._store.update(
                self.collection, staff_id, {"permissions": permissions.to_mapping()},
            ),
            operation_name="update_permissions (staff)",
        )

    def delete(self, staff_id: str) -> ServiceResult[None]:
        return self._run(
            lambda: self._store.delete(self.collection, staff_id),
            operation_name="delete (staff)",
        )
