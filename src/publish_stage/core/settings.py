"""Application settings and configuration.

This module defines all configuration options for the Publish Stage service.
Settings are loaded from environment variables with sensible defaults and are
built once per process by :func:`get_settings`; components receive the
instance through their constructors instead of reading the environment.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Publish Stage", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Session tokens
    secret_key: str = Field(alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    session_token_ttl_seconds: int = Field(
        default=2 * 60 * 60,
        alias="SESSION_TOKEN_TTL_SECONDS",
    )

    # Signature proofs
    signature_max_age_seconds: int = Field(default=60, alias="SIGNATURE_MAX_AGE_SECONDS")
    typed_data_clock_skew_seconds: int = Field(
        default=0,
        alias="TYPED_DATA_CLOCK_SKEW_SECONDS",
    )
    typed_data_domain_name: str = Field(
        default="DecentralizedX",
        alias="TYPED_DATA_DOMAIN_NAME",
    )
    typed_data_domain_version: str = Field(default="1", alias="TYPED_DATA_DOMAIN_VERSION")
    chain_id: int = Field(default=11155111, alias="CHAIN_ID")

    # Content store
    content_store_backend: Literal["pinata", "sql"] = Field(
        default="pinata",
        alias="CONTENT_STORE_BACKEND",
    )
    pinata_jwt: str | None = Field(default=None, alias="PINATA_JWT")
    pinata_api_url: str = Field(
        default="https://api.pinata.cloud/v3",
        alias="PINATA_API_URL",
    )
    pinata_upload_url: str = Field(
        default="https://uploads.pinata.cloud/v3",
        alias="PINATA_UPLOAD_URL",
    )
    content_store_timeout_seconds: float = Field(
        default=10.0,
        alias="CONTENT_STORE_TIMEOUT_SECONDS",
    )
    pinata_gateway_url: str | None = Field(default=None, alias="PINATA_GATEWAY_URL")
    pinata_download_link_ttl_seconds: int = Field(
        default=60,
        alias="PINATA_DOWNLOAD_LINK_TTL_SECONDS",
    )
    pending_page_size: int = Field(default=12, alias="PENDING_PAGE_SIZE")

    # Chain reads for token-gated access to published assets
    chain_rpc_url: str | None = Field(default=None, alias="CHAIN_RPC_URL")
    chain_rpc_timeout_seconds: float = Field(default=20.0, alias="CHAIN_RPC_TIMEOUT_SECONDS")

    # Database configuration for the SQL-backed content store
    database_url: str = Field(default="sqlite:///./publish_stage.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Webhook providers
    alchemy_signing_key: str | None = Field(default=None, alias="ALCHEMY_SIGNING_KEY")
    quicknode_security_token: str | None = Field(
        default=None,
        alias="QUICKNODE_SECURITY_TOKEN",
    )
    publish_event_name: str = Field(default="AssetPublished", alias="PUBLISH_EVENT_NAME")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=[
            "http://localhost:8080",
            "https://decentralizedx.tech",
        ],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=[
            "Content-Type",
            "Authorization",
            "X-Requested-With",
            "Accept",
            "Origin",
        ],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for tooling.

        Converts asyncpg URLs to psycopg for synchronous database operations
        like Alembic migrations.
        """
        url = self.database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()  # type: ignore[call-arg]
