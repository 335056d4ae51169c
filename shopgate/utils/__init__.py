"""Shared utility functions and models for the ShopGate access core."""

from shopgate.utils.audit import AuditEvent, log_audit_event

__all__ = [
    "AuditEvent",
    "log_audit_event",
]
