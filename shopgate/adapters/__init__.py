"""
Backend Adapter Package.

Contracts for the two hosted services the access core depends on, with
Supabase and in-memory implementations:

    from shopgate.adapters import DocumentStore, CredentialStore
    from shopgate.adapters.memory import MemoryDocumentStore, MemoryCredentialStore
"""

from shopgate.adapters.credential_store import (
    CredentialNetworkError,
    CredentialStore,
    CredentialStoreError,
    EmailAlreadyRegisteredError,
    InvalidCredentialError,
    SupabaseCredentialStore,
)
from shopgate.adapters.document_store import (
    Document,
    DocumentNotFoundError,
    DocumentStore,
    DocumentStoreError,
    SupabaseDocumentStore,
)

__all__ = [
    "CredentialNetworkError",
    "CredentialStore",
    "CredentialStoreError",
    "EmailAlreadyRegisteredError",
    "InvalidCredentialError",
    "SupabaseCredentialStore",
    "Document",
    "DocumentNotFoundError",
    "DocumentStore",
    "DocumentStoreError",
    "SupabaseDocumentStore",
]
