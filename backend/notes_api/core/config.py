from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models.enums import PAID_TIERS, SubscriptionTier

log = logging.getLogger("notes_api.core.config")

# Load .env.local first, then .env. override=False so real env vars (CI, Cloud Run) win.
_PROJECT_ROOT = Path(__file__).parent.parent.parent
_ENV_LOCAL = _PROJECT_ROOT / ".env.local"
_ENV_FILE = _PROJECT_ROOT / ".env"

if _ENV_LOCAL.exists():
    load_dotenv(_ENV_LOCAL, override=False)
    log.info(f"[config] Loaded .env.local from {_ENV_LOCAL}")
if _ENV_FILE.exists():
    load_dotenv(_ENV_FILE, override=False)
    log.info(f"[config] Loaded .env from {_ENV_FILE}")

_PROD_ENVS = {"prod", "production", "stage", "staging"}
_DEV_ENVS = {"dev", "development", "local", "test", "testing"}


class Settings(BaseSettings):
    # --- Core Infrastructure ---
    APP_ENV: str = Field(
        default="dev",
        validation_alias=AliasChoices("APP_ENV", "ENV", "PYTHON_ENV"),
    )
    DATABASE_URL: Optional[str] = None
    DB_CONNECT_TIMEOUT: int = Field(default=5, description="Seconds before a connection attempt is abandoned")
    DB_STATEMENT_TIMEOUT_MS: int = Field(default=5000, description="PostgreSQL statement_timeout for usage queries")

    # --- Billing ---
    # Calendar month boundaries for usage are computed in this zone.
    BILLING_TIMEZONE: str = "UTC"
    # Empty means "latest registered limits table" (see notes_api.billing.plans)
    TIER_LIMITS_VERSION: str = ""
    # Tier granted during a downgrade grace window when the profile has no grace_tier recorded
    GRACE_FALLBACK_TIER: str = "student"

    # --- Observability ---
    SENTRY_DSN: Optional[str] = None
    SENTRY_TRACES_SAMPLE_RATE: float = 0.1

    model_config = SettingsConfigDict(
        env_file=(str(_ENV_LOCAL), str(_ENV_FILE)),
        extra="ignore",
    )

    @property
    def is_dev_mode(self) -> bool:
        env = (self.APP_ENV or "dev").strip().lower()
        return env in _DEV_ENVS

    @property
    def billing_tz(self) -> ZoneInfo:
        return ZoneInfo(self.BILLING_TIMEZONE)

    @property
    def database_url(self) -> str:
        url = (self.DATABASE_URL or "").strip()
        if url:
            return url
        return "sqlite:///./notes_api.db"

    @model_validator(mode="after")
    def _validate_and_warn(self):
        env = (self.APP_ENV or "dev").strip().lower()

        try:
            ZoneInfo(self.BILLING_TIMEZONE)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"BILLING_TIMEZONE is not a valid IANA zone: {self.BILLING_TIMEZONE!r}") from e

        if self.DB_CONNECT_TIMEOUT <= 0:
            raise ValueError("DB_CONNECT_TIMEOUT must be positive")

        if not (self.DATABASE_URL or "").strip():
            if env in _PROD_ENVS:
                raise ValueError("DATABASE_URL is required outside dev/test")
            log.warning("[config] DATABASE_URL not set; using local SQLite database")

        fallback = (self.GRACE_FALLBACK_TIER or "").strip().lower()
        try:
            fallback_tier = SubscriptionTier(fallback)
        except ValueError:
            fallback_tier = None
        if fallback_tier not in PAID_TIERS:
            raise ValueError(
                f"GRACE_FALLBACK_TIER must name a paid tier (one of {sorted(t.value for t in PAID_TIERS)}), "
                f"got {self.GRACE_FALLBACK_TIER!r}"
            )
        self.GRACE_FALLBACK_TIER = fallback_tier.value

        return self


settings = Settings()
