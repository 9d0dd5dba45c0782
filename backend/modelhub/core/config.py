"""Application configuration loaded from environment variables.

Settings for database, API, authentication, signed deep links, and the coin
economy. Uses pydantic-settings for validation and .env file support.
"""

import re
import uuid
from typing import Literal

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "modelhub_dev_password"  # nosec B105

# Minimum length for AUTH_SECRET in production (256 bits = 32 bytes)
_MIN_AUTH_SECRET_LENGTH = 32

# Deep-link HMAC key: exactly 32 bytes, hex encoded
_DEEP_LINK_SECRET_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "modelhub"
    database_user: str = "modelhub_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # CORS (Security)
    # Never set to ["*"] when allow_credentials=True
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Application
    environment: str = "development"

    # Authentication
    # Local-first mode: DEFAULT_USER_ID provides user context without JWT
    # Hosted mode: auth_enabled=True, JWT cookie required on every request
    default_user_id: uuid.UUID | None = None
    auth_enabled: bool = False
    auth_secret: SecretStr = SecretStr("")
    auth_issuer: str = "modelhub"
    auth_audience: str = "modelhub"
    auth_cookie_name: str = "modelhub.session-token"
    auth_cookie_secure: bool = True
    auth_cookie_samesite: Literal["lax", "strict", "none"] = "lax"

    # Signed deep links (email gig-accept links)
    # 64 hex characters = 32-byte HMAC-SHA256 key
    deep_link_secret: SecretStr = SecretStr("")
    deep_link_ttl_days: int = 30

    # Coin economy
    call_rate_coins_per_minute: int = 10
    creator_earnings_share: float = 0.70

    # Email
    email_from: str = "noreply@modelhub.app"
    resend_api_key: SecretStr = SecretStr("")

    # Frontend URL (redirect target for public deep links)
    frontend_url: str = "http://localhost:3000"

    # Backend URL (deep links must hit the API directly)
    backend_url: str = "http://localhost:8000"

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "10/minute", "100/hour")
    rate_limit_financial: str = "10/minute"  # every coin-moving route
    rate_limit_public_links: str = "20/minute"  # unauthenticated deep links
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic."""
        return (
            f"postgresql+psycopg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate security and economy invariants at startup.

        Checks:
        - SameSite=None requires the Secure cookie flag (all environments)
        - CORS must not use wildcard origin (all environments)
        - DEEP_LINK_SECRET, when set, must be 64 hex characters (all environments)
        - Creator earnings share in (0, 1], call rate non-negative
        - Production: DEEP_LINK_SECRET required, no default DB password,
          AUTH_SECRET >= 32 chars when auth is enabled
        """
        if self.auth_cookie_samesite == "none" and not self.auth_cookie_secure:
            msg = (
                "AUTH_COOKIE_SECURE must be true when AUTH_COOKIE_SAMESITE=none. "
                "Browsers reject SameSite=None cookies without the Secure flag."
            )
            raise ValueError(msg)

        if "*" in self.allowed_origins:
            msg = (
                "ALLOWED_ORIGINS must not contain '*' (wildcard). "
                "This application uses credentials (cookies) which are "
                "incompatible with wildcard CORS origins."
            )
            raise ValueError(msg)

        deep_link_secret = self.deep_link_secret.get_secret_value()
        if deep_link_secret and not _DEEP_LINK_SECRET_PATTERN.match(deep_link_secret):
            msg = (
                "DEEP_LINK_SECRET must be exactly 64 hex characters (32 bytes). "
                'Generate with: python -c "import secrets; '
                'print(secrets.token_hex(32))"'
            )
            raise ValueError(msg)

        if self.deep_link_ttl_days <= 0:
            msg = f"DEEP_LINK_TTL_DAYS must be positive. Got: {self.deep_link_ttl_days}"
            raise ValueError(msg)

        if not 0 < self.creator_earnings_share <= 1:
            msg = (
                "CREATOR_EARNINGS_SHARE must be in (0, 1]. "
                f"Got: {self.creator_earnings_share}"
            )
            raise ValueError(msg)
        if self.call_rate_coins_per_minute < 0:
            msg = (
                "CALL_RATE_COINS_PER_MINUTE cannot be negative. "
                f"Got: {self.call_rate_coins_per_minute}"
            )
            raise ValueError(msg)

        if self.environment == "production":
            if self.database_password == _INSECURE_DEFAULT_PASSWORD:
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            if not deep_link_secret:
                msg = "DEEP_LINK_SECRET must be set in production."
                raise ValueError(msg)

            if self.auth_enabled:
                secret_value = self.auth_secret.get_secret_value()
                if len(secret_value) < _MIN_AUTH_SECRET_LENGTH:
                    msg = (
                        f"AUTH_SECRET must be at least {_MIN_AUTH_SECRET_LENGTH} "
                        "characters when AUTH_ENABLED=true in production."
                    )
                    raise ValueError(msg)

        return self


settings = Settings()
