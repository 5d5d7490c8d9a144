"""Application settings and configuration.

This module defines all configuration options for the Comu Relay service.
Settings are loaded from environment variables with sensible defaults.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Comu Relay", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")

    # Database configuration
    database_url: str = Field(default="sqlite:///./comu.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )
    # argon2id cost parameters (libsodium "interactive" profile by default)
    pwhash_opslimit: int = Field(default=2, alias="PWHASH_OPSLIMIT")
    pwhash_memlimit: int = Field(default=64 * 1024 * 1024, alias="PWHASH_MEMLIMIT")

    # Messaging rules
    edit_grace_seconds: int = Field(default=180, alias="EDIT_GRACE_SECONDS")
    typing_ttl_seconds: int = Field(default=3, alias="TYPING_TTL_SECONDS")
    user_code_length: int = Field(default=8, alias="USER_CODE_LENGTH")

    # Object store for media payloads
    media_root: str = Field(default="./media", alias="MEDIA_ROOT")
    # Served back by GET /api/v1/media/{key} unless a CDN fronts the store.
    media_base_url: str = Field(default="/api/v1/media/", alias="MEDIA_BASE_URL")
    media_max_bytes: int = Field(default=25 * 1024 * 1024, alias="MEDIA_MAX_BYTES")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def effective_database_url(self) -> str:
        """Return the database URL respecting testing overrides.

        Returns:
            The active database URL (test database if in testing mode, otherwise production)
        """
        if self.use_testing_database and self.test_database_url:
            return self.test_database_url
        return self.database_url

    @property
    def database_url_sync(self) -> str:
        """Return a sync-compatible database URL for Alembic."""
        url = self.effective_database_url
        if url.startswith("postgresql+asyncpg"):
            return url.replace("postgresql+asyncpg", "postgresql+psycopg", 1)
        return url

    @property
    def edit_grace_ms(self) -> int:
        """Grace window for editing or deleting a committed message, in milliseconds."""
        return self.edit_grace_seconds * 1000

    @property
    def typing_ttl_ms(self) -> int:
        """Lifetime of a typing indicator, in milliseconds."""
        return self.typing_ttl_seconds * 1000


settings = Settings()
