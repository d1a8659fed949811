"""Application configuration using pydantic-settings."""
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = 10
    db_max_overflow: int = 20
    # Per-statement timeout applied to every connection (0 disables it)
    db_statement_timeout_ms: int = 10_000

    # Auth0
    auth0_domain: str = ""
    auth0_audience: str = ""

    # Development mode - bypasses auth for local development
    dev_mode: bool = False

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    # Redis - for rate limiting
    redis_url: str = "redis://localhost:6379"
    redis_enabled: bool = True
    redis_pool_size: int = 20
    rate_limit_read_per_minute: int = 300
    rate_limit_write_per_minute: int = 60

    # Object storage (any S3-compatible endpoint) for avatars
    storage_endpoint_url: str | None = None
    storage_access_key: str = ""
    storage_secret_key: str = ""
    storage_region: str = "us-east-1"
    storage_bucket: str = "public"
    storage_public_url: str = "http://localhost:9000/public"
    max_avatar_bytes: int = 2 * 1024 * 1024

    # Unsplash image search
    unsplash_access_key: str = ""
    unsplash_timeout: float = 10.0

    log_level: str = "INFO"

    @model_validator(mode="after")
    def validate_dev_mode_security(self) -> "Settings":
        """
        Prevent DEV_MODE from being enabled with a production database.

        DEV_MODE completely bypasses authentication, so it is only allowed
        against a database on the local machine.
        """
        if not self.dev_mode:
            return self

        try:
            hostname = urlparse(self.database_url).hostname or ""
        except ValueError:
            hostname = ""

        local_hosts = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
        if hostname.lower() not in local_hosts:
            raise ValueError(
                f"DEV_MODE cannot be enabled with a non-local database. "
                f"Database host '{hostname}' appears to be a production database. "
                f"DEV_MODE bypasses all authentication and must only be used locally.",
            )

        return self

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]

    @property
    def auth0_issuer(self) -> str:
        """Get the Auth0 issuer URL."""
        return f"https://{self.auth0_domain}/"

    @property
    def auth0_jwks_url(self) -> str:
        """Get the Auth0 JWKS URL for fetching public keys."""
        return f"https://{self.auth0_domain}/.well-known/jwks.json"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
