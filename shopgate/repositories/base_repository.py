"""
Base Repository.

Provides shared infrastructure for all repositories:
- DocumentStore reference (Supabase or in-memory)
- Logger reference
- Logical-to-physical collection name resolution
- Uniform translation of store failures into ``ServiceResult``
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable, Optional, TypeVar

from pydantic import BaseModel, ValidationError

from shopgate.adapters.document_store import Document, DocumentNotFoundError, DocumentStore, DocumentStoreError
from shopgate.config import AppConfig
from shopgate.logger import StructuredLogger
from shopgate.models.service_models import ServiceResult

T = TypeVar("T")
M = TypeVar("M", bound=BaseModel)


class BaseRepository:
    """Base class for all repositories. Receives dependencies via __init__.

    Subclasses set ``COLLECTION_KEY`` to the logical collection name
    looked up in ``AppConfig.COLLECTIONS``.
    """

    COLLECTION_KEY: str = ""

    def __init__(
        self,
        store: DocumentStore,
        config: AppConfig,
        logger: StructuredLogger,
    ) -> None:
        self._store = store
        self._config = config
        self._logger = logger

    @property
    def collection(self) -> str:
        """Physical collection name on the document store."""
        return self._config.collection(self.COLLECTION_KEY)

    def _run(
        self,
        operation: Callable[[], T],
        *,
        operation_name: str,
    ) -> ServiceResult[T]:
        """Execute *operation* and wrap its outcome in a ``ServiceResult``.

        ``DocumentNotFoundError`` maps to 404, other store failures to 503,
        and documents that fail model validation to 500.  The failure is
        logged here so callers only need to inspect ``success``.
        """
        try:
            return ServiceResult(success=True, data=operation())
        except DocumentNotFoundError as exc:
            self._logger.info("%s: %s", operation_name, exc.message)
            return ServiceResult(success=False, error=exc.message, status_code=404)
        except DocumentStoreError as exc:
            self._logger.warning(
                "Document store unavailable for %s: %s", operation_name, exc.message,
            )
            return ServiceResult(
                success=False,
                error=f"Document store unavailable for {operation_name}.",
                status_code=503,
            )
        except ValidationError as exc:
            self._logger.error(
                "Malformed document in %s during %s: %s",
                self.collection,
                operation_name,
                exc,
            )
            return ServiceResult(
                success=False,
                error=f"Malformed document in {self.collection}.",
                status_code=500,
            )

    @staticmethod
    def _parse(model: type[M], doc: Optional[Document]) -> Optional[M]:
        return model.model_validate(doc) if doc is not None else None

    @staticmethod
    def _to_document(model: BaseModel) -> Document:
        """JSON-safe payload (datetimes as ISO-8601 strings)."""
        return model.model_dump(mode="json", by_alias=True)

    @staticmethod
    def _sorted_newest_first(items: list[M], field: str = "created_at") -> list[M]:
        """Client-side ordering; store-side ordering is best-effort only."""
        def _key(item: M) -> tuple[bool, float]:
            value: Optional[datetime] = getattr(item, field)
            return (value is not None, value.timestamp() if value else 0.0)

        return sorted(items, key=_key, reverse=True)
