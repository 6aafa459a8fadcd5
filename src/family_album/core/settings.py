"""Application settings and configuration.

This module defines all configuration options for the Family Album application.
Settings are loaded from environment variables with sensible defaults.
"""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

MEBIBYTE = 1024 * 1024


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="Family Album", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")

    # Security and authentication
    secret_key: str = Field(alias="SECRET_KEY")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Database configuration
    database_url: str = Field(default="sqlite:///./family_album.db", alias="DATABASE_URL")
    test_database_url: str | None = Field(default=None, alias="TEST_DATABASE_URL")
    use_testing_database: bool = Field(default=False, alias="USE_TEST_DATABASE")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # JWT authentication settings
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(
        default=60 * 24 * 30,
        alias="ACCESS_TOKEN_EXPIRE_MINUTES",
    )

    # Media storage
    storage_root: Path = Field(default=Path("./storage"), alias="STORAGE_ROOT")
    storage_url_prefix: str = Field(default="/storage", alias="STORAGE_URL_PREFIX")

    # Upload limits, shown to users as a constraint of the deployment
    max_upload_bytes: int = Field(default=10 * MEBIBYTE, alias="MAX_UPLOAD_BYTES")
    max_files_per_post: int = Field(default=10, alias="MAX_FILES_PER_POST")
    caption_max_length: int = Field(default=500, alias="CAPTION_MAX_LENGTH")
    edit_caption_max_length: int = Field(default=2000, alias="EDIT_CAPTION_MAX_LENGTH")

    # Image pipeline
    thumbnail_size: int = Field(default=800, alias="THUMBNAIL_SIZE")
    thumbnail_quality: int = Field(default=85, alias="THUMBNAIL_QUALITY")
    heic_transcode_quality: int = Field(default=90, alias="HEIC_TRANSCODE_QUALITY")

    # Public feed pagination
    feed_default_per_page: int = Field(default=20, alias="FEED_DEFAULT_PER_PAGE")
    feed_max_per_page: int = Field(default=50, alias="FEED_MAX_PER_PAGE")
    feed_max_page: int = Field(default=1000, alias="FEED_MAX_PAGE")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(
        default=["*"],
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        alias="CORS_ALLOW_HEADERS",
    )

    # Browser hardening headers on every response
    security_headers_enabled: bool = Field(default=True, alias="SECURITY_HEADERS_ENABLED")

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
    def upload_size_label(self) -> str:
        """Return the upload size limit as a human readable string."""
        megabytes = self.max_upload_bytes / MEBIBYTE
        return f"{megabytes:g} MB"


settings = Settings()  # type: ignore[call-arg]
