"""
Application Configuration.

Pydantic Settings model for the ShopGate access core.
All configuration is loaded from environment variables and .env files.
Inject an AppConfig instance via dependency injection where needed.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field, SecretStr, model_validator


class AppConfig(BaseSettings):
    """Central configuration loaded from environment variables and defaults."""

    # --- Supabase ---
    SUPABASE_URL: str = ""
    SUPABASE_ANON_KEY: SecretStr = SecretStr("")

    # --- Platform administration ---
    # The designated super-admin is always resolved as ADMIN, even before
    # a row exists in the ``admins`` collection.
    SUPER_ADMIN_EMAIL: str = ""

    # --- Lockout policies ---
    ADMIN_MAX_FAILED_ATTEMPTS: int = Field(default=3, ge=1)
    ADMIN_LOCKOUT_MINUTES: int = Field(default=30, ge=1)
    SHOP_MAX_FAILED_ATTEMPTS: int = Field(default=5, ge=1)
    SHOP_LOCKOUT_MINUTES: int = Field(default=15, ge=1)

    # --- Guest accounts ---
    GUEST_MIN_PASSWORD_LENGTH: int = Field(default=6, ge=1)

    # --- Collections (tables on the hosted document store) ---
    COLLECTIONS: dict[str, str] = Field(default_factory=lambda: {
        "shops": "shops",
        "admins": "admins",
        "staff": "staff",
        "guests": "guests",
        "audit_log": "audit_log",
    })

    # --- Logging ---
    LOG_FILE: str = "shopgate.log"
    LOG_MAX_BYTES: int = 5_242_880  # 5 MB
    LOG_BACKUP_COUNT: int = 3

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @model_validator(mode="after")
    def _warn_missing_env(self) -> "AppConfig":
        """Emit a startup warning when critical configuration is empty.

        Pydantic silently falls back to defaults when ``.env`` is missing.
        This validator logs a warning so operators know the app is running
        with placeholder values.
        """
        _log = logging.getLogger("shopgate.config")

        if not Path(".env").exists():
            _log.warning(
                "No .env file found; all configuration loaded from "
                "environment variables or defaults."
            )

        if not self.SUPABASE_URL:
            _log.warning(
                "SUPABASE_URL is empty. Supabase connectivity is disabled "
                "and the in-memory stores will be used."
            )

        if not self.SUPER_ADMIN_EMAIL:
            _log.warning(
                "SUPER_ADMIN_EMAIL is empty. Only accounts listed in the "
                "admins collection can reach the admin area."
            )

        return self

    @property
    def super_admin_email(self) -> str:
        """Normalised super-admin email (empty when not configured)."""
        return self.SUPER_ADMIN_EMAIL.strip().lower()

    def collection(self, key: str) -> str:
        """Return the physical collection name for the logical *key*.

        Raises:
            KeyError: If *key* is not a known collection.
        """
        return self.COLLECTIONS[key]


# ---------------------------------------------------------------------------
# Module-level singleton factory
# ---------------------------------------------------------------------------

_config_instance: Optional[AppConfig] = None
_config_lock: threading.Lock = threading.Lock()


def get_config() -> AppConfig:
    """Return a cached ``AppConfig`` singleton.

    On first call, creates an ``AppConfig`` instance (reading from ``.env``).
    Subsequent calls return the same instance.  Uses a check-lock-check
    pattern so the fast path stays lock-free.

    Prefer direct constructor injection of ``AppConfig`` in new code.
    """
    global _config_instance
    if _config_instance is None:
        with _config_lock:
            if _config_instance is None:
                _config_instance = AppConfig()
    return _config_instance
