"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for OpenAudit happen here. No module should
call os.getenv() or os.environ.get() directly -- import get_settings() instead.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY). Type coercion and validation are built in.

  @model_validator(mode="after"): cross-field validation after all fields are
      resolved. Dev mode generates a SECRET_KEY with a warning, production mode
      refuses to start without one.

Brute-force budgets are plain configuration. The per-action numbers differ by
endpoint sensitivity and are not derived from any rule; override them with a
JSON object in BRUTE_FORCE_BUDGETS.

Layer rule: core/ is the kernel. This module may not import from api/, auth/,
or documents/.
"""

import logging
import secrets
from functools import lru_cache
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("openaudit.config")

_DATA_DIR = Path(__file__).resolve().parent.parent

_DEFAULT_BUDGETS: dict[str, int] = {
    "signup": 50,
    "confirm-email": 50,
    "resend-confirm-code": 20,
    "signin": 50,
    "signout": 20,
    "forgot-password": 20,
    "reset-password": 20,
    "do-not-email": 20,
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured". The model_validator
    # below either generates a dev key or raises, so callers never see "".
    secret_key: str = ""

    # Host header allow-list for TrustedHostMiddleware and browser origins for CORS.
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "*.localhost"]
    cors_origins: list[str] = ["http://localhost", "http://localhost:3000", "http://127.0.0.1"]

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    auth_database_url: str = f"sqlite:///{_DATA_DIR / 'openaudit_auth.db'}"
    docs_database_url: str = f"sqlite:///{_DATA_DIR / 'openaudit_docs.db'}"

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    session_cookie_name: str = "openauditid"
    session_max_age_seconds: int = 30 * 24 * 60 * 60
    secure_cookies: bool = False
    cookie_domain: str = ""

    # ------------------------------------------------------------------
    # Brute-force protection and rate limiting
    # ------------------------------------------------------------------

    # Any storage URI understood by the `limits` package (memory://, redis://...)
    brute_force_storage_uri: str = "memory://"
    brute_force_window_seconds: int = 3600
    brute_force_budgets: dict[str, int] = dict(_DEFAULT_BUDGETS)

    # App-wide flood limit applied by SlowAPIMiddleware to every route.
    default_rate_limit: str = "600/minute"

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    blocked_email_domains: list[str] = ["affecting.org", "mailinator.com", "guerrillamail.com", "10minutemail.com"]
    reset_code_ttl_seconds: int = 3600

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Enforce the SECRET_KEY policy.

        Dev mode (DEBUG=true): auto-generate a random key with a warning.
            Session token digests will not match across restarts.

        Production mode: refuse to start if SECRET_KEY is missing.

        Both modes: reject keys shorter than 32 characters.
        """
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning("Using auto-generated SECRET_KEY. Sessions will not persist across restarts.")
            else:
                raise ValueError(
                    "SECRET_KEY is required in production mode. "
                    "Set SECRET_KEY in your environment or .env file. "
                    "To run in development mode, set DEBUG=true."
                )
        if len(self.secret_key) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
