"""
Document Store Adapter.

Contract for the hosted document database and its Supabase
implementation.  Collections map one-to-one onto PostgREST tables whose
primary key column is ``id``.

Every failure (offline client, HTTP error, constraint violation) is
raised as :class:`DocumentStoreError`; repositories translate it into a
``ServiceResult`` so raw backend exceptions never leave the data layer.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from typing import Callable, Optional, Protocol, TypeVar

from shopgate.database import DatabaseManager
from shopgate.logger import StructuredLogger

T = TypeVar("T")

Document = dict[str, object]


class DocumentStoreError(Exception):
    """Raised when the document store cannot complete an operation."""

    def __init__(self, message: str, original_error: Optional[Exception] = None) -> None:
        self.message: str = message
        self.original_error: Optional[Exception] = original_error
        super().__init__(self.message)


class DocumentNotFoundError(DocumentStoreError):
    """Raised by ``update`` when the target document does not exist."""


class DocumentStore(Protocol):
    """Minimal CRUD surface over named collections.

    ``query`` filters are equality predicates on top-level fields.
    Ordering is best-effort: callers that depend on order must sort the
    returned documents themselves.
    """

    def get(self, collection: str, doc_id: str) -> Optional[Document]: ...

    def query(
        self,
        collection: str,
        filters: Optional[Mapping[str, object]] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Document]: ...

    def add(self, collection: str, data: Mapping[str, object]) -> str: ...

    def set(self, collection: str, doc_id: str, data: Mapping[str, object]) -> None: ...

    def update(self, collection: str, doc_id: str, partial: Mapping[str, object]) -> None: ...

    def delete(self, collection: str, doc_id: str) -> None: ...


class SupabaseDocumentStore:
    """PostgREST-backed :class:`DocumentStore`.

    Parameters
    ----------
    db:
        Connection holder; its ``supabase`` property raises
        ``RuntimeError`` when offline.
    logger:
        Structured logger for failure diagnostics.
    """

    def __init__(self, db: DatabaseManager, logger: StructuredLogger) -> None:
        self._db = db
        self._logger = logger

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        def _op() -> Optional[Document]:
            response = (
                self._db.supabase.table(collection)
                .select("*")
                .eq("id", doc_id)
                .limit(1)
                .execute()
            )
            return dict(response.data[0]) if response.data else None

        return self._execute(_op, f"get {collection}/{doc_id}")

    def query(
        self,
        collection: str,
        filters: Optional[Mapping[str, object]] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Document]:
        def _op() -> list[Document]:
            request = self._db.supabase.table(collection).select("*")
            for field, value in (filters or {}).items():
                request = request.eq(field, value)
            if order_by:
                request = request.order(order_by, desc=descending)
            response = request.execute()
            return [dict(row) for row in response.data or []]

        return self._execute(_op, f"query {collection}")

    def add(self, collection: str, data: Mapping[str, object]) -> str:
        payload = dict(data)
        doc_id = str(payload.get("id") or uuid.uuid4())
        payload["id"] = doc_id

        def _op() -> str:
            self._db.supabase.table(collection).insert(payload).execute()
            return doc_id

        return self._execute(_op, f"add {collection}")

    def set(self, collection: str, doc_id: str, data: Mapping[str, object]) -> None:
        payload = {**dict(data), "id": doc_id}

        def _op() -> None:
            self._db.supabase.table(collection).upsert(payload).execute()

        self._execute(_op, f"set {collection}/{doc_id}")

    def update(self, collection: str, doc_id: str, partial: Mapping[str, object]) -> None:
        def _op() -> None:
            response = (
                self._db.supabase.table(collection)
                .update(dict(partial))
                .eq("id", doc_id)
                .execute()
            )
            if not response.data:
                raise DocumentNotFoundError(f"{collection}/{doc_id} does not exist.")

        self._execute(_op, f"update {collection}/{doc_id}")

    def delete(self, collection: str, doc_id: str) -> None:
        def _op() -> None:
            self._db.supabase.table(collection).delete().eq("id", doc_id).execute()

        self._execute(_op, f"delete {collection}/{doc_id}")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _execute(self, operation: Callable[[], T], operation_name: str) -> T:
        try:
            return operation()
        except DocumentStoreError:
            raise
        except Exception as exc:
            self._logger.warning(
                "Document store failure during %s: %s", operation_name, exc,
            )
            raise DocumentStoreError(
                f"Document store failure during {operation_name}.",
                original_error=exc,
            ) from exc
