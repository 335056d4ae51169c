"""
Structured Audit Logging Utility.

Every account state change (approval, freeze, lock, staff permission
edit) is logged as a structured JSON object.  Provides a
Pydantic-validated model and a single function for consistent audit
trail entries.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Optional, Union

from pydantic import BaseModel, Field

from shopgate.adapters.document_store import DocumentStore, DocumentStoreError
from shopgate.logger import StructuredLogger

__all__ = ["AuditEvent", "log_audit_event"]

# Scalar type permitted inside the ``details`` mapping.  Kept flat;
# nested structures should be modelled explicitly.
DetailValue = Union[str, int, float, bool, None]


class AuditEvent(BaseModel):
    """Schema-validated representation of a single audit trail entry."""

    timestamp: str
    action: str
    entity_type: str
    entity_id: str
    user_id: str
    details: dict[str, DetailValue] = Field(default_factory=dict)


def log_audit_event(
    logger: StructuredLogger,
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: str,
    details: Optional[dict[str, DetailValue]] = None,
    store: Optional[DocumentStore] = None,
    collection: str = "audit_log",
) -> AuditEvent:
    """Log a structured JSON audit event, with optional persistence.

    Always emits a structured JSON log line via *logger*.  When *store* is
    provided, the event is also added to *collection* so administrators
    can query it later.

    Args:
        logger: The logger instance to write to.
        action: What happened (e.g. ``"APPROVE"``, ``"FREEZE"``,
            ``"ACCOUNT_LOCKED"``).
        entity_type: Type of entity affected (e.g. ``"Shop"``, ``"Staff"``).
        entity_id: Primary key of the affected entity.
        user_id: ID of the identity that performed the action.
        details: Optional additional context (e.g. old/new values).
        store: Optional document store for persistence.
        collection: Collection receiving persisted events.

    Returns:
        The validated event.
    """
    event = AuditEvent(
        timestamp=datetime.now(timezone.utc).isoformat(),
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        details=details or {},
    )
    logger.info("AUDIT: %s", json.dumps(event.model_dump(), default=str))

    # Persistence failures are logged, never propagated.
    if store is not None:
        try:
            store.add(collection, event.model_dump())
        except DocumentStoreError as db_err:
            logger.warning("Failed to persist audit event: %s", db_err)

    return event
