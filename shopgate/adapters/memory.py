"""
In-Memory Backend Adapters.

Process-local implementations of :class:`DocumentStore` and
:class:`CredentialStore`, used when Supabase is not configured (local
development, demos) and by the test-suite.  Both are thread-safe.

Passwords are never stored in clear text: the credential store keeps a
PBKDF2-HMAC-SHA256 hash and a random salt per identity.
"""

from __future__ import annotations

import copy
import hashlib
import hmac
import os
import secrets
import threading
import time
import uuid
from collections.abc import Mapping
from typing import Optional

from shopgate.adapters.credential_store import (
    EmailAlreadyRegisteredError,
    InvalidCredentialError,
)
from shopgate.adapters.document_store import Document, DocumentNotFoundError
from shopgate.models.identity import AuthTokens, Identity, SignInResult, normalize_email


class MemoryDocumentStore:
    """Dict-of-dicts document store keyed by collection then document id."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, Document]] = {}
        self._lock = threading.RLock()

    def get(self, collection: str, doc_id: str) -> Optional[Document]:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            return copy.deepcopy(doc) if doc is not None else None

    def query(
        self,
        collection: str,
        filters: Optional[Mapping[str, object]] = None,
        *,
        order_by: Optional[str] = None,
        descending: bool = False,
    ) -> list[Document]:
        with self._lock:
            docs = [
                copy.deepcopy(doc)
                for doc in self._collections.get(collection, {}).values()
                if all(doc.get(field) == value for field, value in (filters or {}).items())
            ]
        if order_by:
            # Missing values sort first in ascending order.
            docs.sort(
                key=lambda d: (d.get(order_by) is not None, str(d.get(order_by) or "")),
                reverse=descending,
            )
        return docs

    def add(self, collection: str, data: Mapping[str, object]) -> str:
        payload = copy.deepcopy(dict(data))
        doc_id = str(payload.get("id") or uuid.uuid4())
        payload["id"] = doc_id
        with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = payload
        return doc_id

    def set(self, collection: str, doc_id: str, data: Mapping[str, object]) -> None:
        payload = copy.deepcopy(dict(data))
        payload["id"] = doc_id
        with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = payload

    def update(self, collection: str, doc_id: str, partial: Mapping[str, object]) -> None:
        with self._lock:
            doc = self._collections.get(collection, {}).get(doc_id)
            if doc is None:
                raise DocumentNotFoundError(f"{collection}/{doc_id} does not exist.")
            doc.update(copy.deepcopy(dict(partial)))

    def delete(self, collection: str, doc_id: str) -> None:
        with self._lock:
            self._collections.get(collection, {}).pop(doc_id, None)


class _StoredCredential:
    __slots__ = ("user_id", "email", "password_hash", "salt")

    def __init__(self, user_id: str, email: str, password_hash: str, salt: str) -> None:
        self.user_id = user_id
        self.email = email
        self.password_hash = password_hash
        self.salt = salt


class MemoryCredentialStore:
    """Credential store holding salted password hashes in memory.

    Parameters
    ----------
    iterations:
        PBKDF2 iteration count.  Tests pass a small value to stay fast.
    token_ttl_seconds:
        Lifetime of issued access tokens.
    """

    def __init__(self, iterations: int = 100_000, token_ttl_seconds: int = 3600) -> None:
        self._iterations = iterations
        self._token_ttl = token_ttl_seconds
        self._by_email: dict[str, _StoredCredential] = {}
        self._refresh_tokens: dict[str, str] = {}
        self._current: Optional[Identity] = None
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # CredentialStore protocol
    # ------------------------------------------------------------------

    def sign_in(self, email: str, password: str) -> SignInResult:
        email = normalize_email(email)
        with self._lock:
            stored = self._by_email.get(email)
            if stored is None or not self._verify(password, stored):
                raise InvalidCredentialError("Invalid credentials.")
            identity = Identity(id=stored.user_id, email=stored.email)
            self._current = identity
            return SignInResult(identity=identity, tokens=self._issue_tokens(identity.id))

    def sign_up(
        self,
        email: str,
        password: str,
        metadata: Optional[dict[str, str]] = None,
    ) -> Identity:
        email = normalize_email(email)
        with self._lock:
            if email in self._by_email:
                raise EmailAlreadyRegisteredError(
                    "An account with this email already exists.",
                )
            salt = os.urandom(16).hex()
            stored = _StoredCredential(
                user_id=str(uuid.uuid4()),
                email=email,
                password_hash=self._hash(password, salt),
                salt=salt,
            )
            self._by_email[email] = stored
            return Identity(id=stored.user_id, email=email)

    def sign_out(self) -> None:
        with self._lock:
            self._current = None

    def current_identity(self) -> Optional[Identity]:
        with self._lock:
            return self._current

    def refresh(self, refresh_token: str) -> AuthTokens:
        with self._lock:
            user_id = self._refresh_tokens.pop(refresh_token, None)
            if user_id is None:
                raise InvalidCredentialError("Refresh token is invalid or revoked.")
            return self._issue_tokens(user_id)

    def update_password(self, new_password: str) -> None:
        with self._lock:
            if self._current is None:
                raise InvalidCredentialError("No identity is signed in.")
            stored = self._by_email[self._current.email]
            stored.salt = os.urandom(16).hex()
            stored.password_hash = self._hash(new_password, stored.salt)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _hash(self, password: str, salt: str) -> str:
        return hashlib.pbkdf2_hmac(
            "sha256",
            password.encode("utf-8"),
            bytes.fromhex(salt),
            iterations=self._iterations,
        ).hex()

    def _verify(self, password: str, stored: _StoredCredential) -> bool:
        return hmac.compare_digest(self._hash(password, stored.salt), stored.password_hash)

    def _issue_tokens(self, user_id: str) -> AuthTokens:
        refresh_token = secrets.token_urlsafe(32)
        self._refresh_tokens[refresh_token] = user_id
        return AuthTokens(
            access_token=secrets.token_urlsafe(32),
            refresh_token=refresh_token,
            expires_at=int(time.time()) + self._token_ttl,
        )
