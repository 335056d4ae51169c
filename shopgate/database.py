"""
Backend Connection Layer.

Holds the single Supabase client shared by the credential and document
store adapters.  Supabase provides both halves of the hosted backend:
GoTrue for sign-in/sign-up and PostgREST tables for the account, staff
and guest collections.

When ``supabase_url`` or ``supabase_key`` is empty the client is **not**
created and the application runs against the in-memory stores (see
``shopgate.adapters.memory``).  This module only manages the connection;
it contains no query logic.

Usage (dependency injection at app startup)::

    from shopgate.database import DatabaseManager
    from shopgate.logger import StructuredLogger

    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        supabase_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        logger=StructuredLogger(name="database"),
    )
"""

from __future__ import annotations

from typing import Optional

from supabase import create_client, Client as SupabaseClient

from shopgate.logger import StructuredLogger


class DatabaseManager:
    """Manages the connection to the hosted Supabase backend.

    Fully configured at construction time via dependency injection.

    Parameters
    ----------
    supabase_url:
        The Supabase project URL (e.g. ``https://xyz.supabase.co``).
        May be empty to run offline.
    supabase_key:
        The Supabase anonymous key.  May be empty to run offline.
    logger:
        A ``StructuredLogger`` instance for structured JSON log output.
    """

    def __init__(
        self,
        supabase_url: str,
        supabase_key: str,
        logger: StructuredLogger,
    ) -> None:
        self._logger: StructuredLogger = logger

        self._supabase: Optional[SupabaseClient] = None
        if supabase_url and supabase_key:
            try:
                self._supabase = create_client(supabase_url, supabase_key)
                self._logger.info("Supabase client initialized.")
            except (ValueError, TypeError) as exc:
                self._logger.warning(
                    "Supabase credential format error: %s. Running offline.",
                    exc,
                )
            except Exception as exc:
                self._logger.error(
                    "Unexpected Supabase initialization failure: %s. "
                    "Running offline.",
                    exc,
                    exc_info=True,
                )
        else:
            self._logger.warning(
                "Supabase credentials not configured; running offline."
            )

    # ------------------------------------------------------------------
    # Public properties
    # ------------------------------------------------------------------

    @property
    def supabase(self) -> SupabaseClient:
        """Return the initialised Supabase client.

        Raises
        ------
        RuntimeError
            If the Supabase client was not initialised (offline mode).
            The adapters translate this into their own error types.
        """
        if self._supabase is None:
            raise RuntimeError(
                "Supabase client is not initialised. "
                "The application is running offline."
            )
        return self._supabase

    @property
    def is_online(self) -> bool:
        """``True`` when the Supabase client is available."""
        return self._supabase is not None
