"""
Authentication & Session State.

Provides an injectable ``SessionManager`` holding the explicit session
context: the resolved role/status/permissions of the signed-in identity
and its tokens.  It is initialised at sign-in and torn down at sign-out;
nothing about the session lives in module-level globals.

Usage::

    from shopgate.auth import SessionManager

    session = SessionManager()
    session.start(resolved_session, tokens)
    current = session.get_current_session()
    session.clear()
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone
from typing import Optional

from shopgate.models.identity import AuthTokens
from shopgate.models.session_models import ResolvedSession


class SessionManager:
    """Injectable holder for the current session context.

    Pass a single ``SessionManager`` through the composition root so every
    component shares the same session.  All state is guarded by an
    ``RLock`` because guard evaluations run on background threads.
    """

    def __init__(self) -> None:
        self._lock: threading.RLock = threading.RLock()
        self._session: Optional[ResolvedSession] = None
        self._access_token: Optional[str] = None
        self._refresh_token: Optional[str] = None
        self._token_expiry: Optional[datetime] = None

    def start(self, session: ResolvedSession, tokens: Optional[AuthTokens] = None) -> None:
        """Initialise the context after a successful sign-in.

        Tokens from any previous session are dropped; without *tokens* the
        new session has none.
        """
        with self._lock:
            self.clear()
            self._session = session
            if tokens is not None:
                self.set_tokens(tokens)

    def get_current_session(self) -> ResolvedSession:
        """Return the active session.

        Raises:
            RuntimeError: If no identity is currently signed in.
        """
        with self._lock:
            if self._session is None:
                raise RuntimeError(
                    "No user is currently authenticated. Login required."
                )
            return self._session

    @property
    def current_session(self) -> Optional[ResolvedSession]:
        """The active session, or ``None`` when signed out."""
        with self._lock:
            return self._session

    def set_tokens(self, tokens: AuthTokens) -> None:
        """Store auth tokens for session refresh."""
        with self._lock:
            self._access_token = tokens.access_token
            self._refresh_token = tokens.refresh_token
            self._token_expiry = tokens.expires_at_datetime

    @property
    def access_token(self) -> Optional[str]:
        with self._lock:
            return self._access_token

    @property
    def refresh_token(self) -> Optional[str]:
        """Return the refresh token for session renewal."""
        with self._lock:
            return self._refresh_token

    @property
    def is_token_expired(self) -> bool:
        """``True`` when the access token has expired or was never set."""
        with self._lock:
            if self._token_expiry is None:
                return True
            return datetime.now(timezone.utc) >= (self._token_expiry - timedelta(seconds=30))

    def clear(self) -> None:
        """Remove the session and tokens, ending the session."""
        with self._lock:
            self._session = None
            self._access_token = None
            self._refresh_token = None
            self._token_expiry = None

    @property
    def is_authenticated(self) -> bool:
        """``True`` when an identity is currently signed in."""
        with self._lock:
            return self._session is not None
