"""Application configuration."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_parse_none_str="null",
    )

    # Application
    app_name: str = Field(default="Vecstash API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Metadata store
    database_url: str = Field(..., alias="DATABASE_URL")

    # Google OAuth
    google_client_id: str = Field(..., alias="GOOGLE_CLIENT_ID")
    google_client_secret: str = Field(..., alias="GOOGLE_CLIENT_SECRET")
    google_callback_url: str = Field(..., alias="GOOGLE_CALLBACK_URL")

    # Neon provisioning
    neon_api_key: str = Field(..., alias="NEON_API_KEY")
    neon_api_base_url: str = Field(
        default="https://console.neon.tech/api/v2", alias="NEON_API_BASE_URL"
    )
    provisioner_timeout_seconds: float = Field(default=30.0, alias="PROVISIONER_TIMEOUT_SECONDS")
    # Only failures where the project was certainly not created are retried
    provisioner_max_retries: int = Field(default=2, alias="PROVISIONER_MAX_RETRIES")
    provisioner_retry_backoff_seconds: float = Field(
        default=1.0, alias="PROVISIONER_RETRY_BACKOFF_SECONDS"
    )

    # Vector database bootstrap
    bootstrap_timeout_seconds: float = Field(default=30.0, alias="BOOTSTRAP_TIMEOUT_SECONDS")
    embedding_dimensions: int = Field(default=1536, alias="EMBEDDING_DIMENSIONS")

    # Session cookie
    session_secret_str: str = Field(..., alias="SESSION_SECRET")
    session_cookie_name: str = Field(default="__session", alias="SESSION_COOKIE_NAME")
    session_max_age_seconds: int = Field(
        default=60 * 60 * 24 * 30, alias="SESSION_MAX_AGE_SECONDS"
    )

    @property
    def session_secrets(self) -> list[str]:
        """Get session secrets as a list, newest first."""
        return [secret.strip() for secret in self.session_secret_str.split(",") if secret.strip()]

    # Post-login redirects
    auth_success_redirect: str = Field(default="/", alias="AUTH_SUCCESS_REDIRECT")
    auth_failure_redirect: str = Field(default="/login", alias="AUTH_FAILURE_REDIRECT")

    # CORS
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        alias="CORS_ORIGINS",
    )
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as a list."""
        if isinstance(self.cors_origins_str, str):
            return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]
        return [self.cors_origins_str]

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()  # type: ignore[call-arg]


# Global settings instance
settings = get_settings()
