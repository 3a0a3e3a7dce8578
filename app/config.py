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
    app_name: str = Field(default="Bookmarks Sync API", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api/v1", alias="API_V1_PREFIX")

    # Server
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    reload: bool = Field(default=False, alias="RELOAD")

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")

    # Redis (change feed transport)
    redis_host: str = Field(default="localhost", alias="REDIS_HOST")
    redis_port: int = Field(default=6379, alias="REDIS_PORT")
    redis_username: str = Field(default="default", alias="REDIS_USERNAME")
    redis_password: str = Field(default="", alias="REDIS_PASSWORD")
    redis_decode_responses: bool = Field(default=True, alias="REDIS_DECODE_RESPONSES")

    # Google OAuth
    google_client_id: str = Field(..., alias="GOOGLE_CLIENT_ID")
    google_client_secret: str = Field(..., alias="GOOGLE_CLIENT_SECRET")
    google_redirect_uri: str = Field(..., alias="GOOGLE_REDIRECT_URI")
    google_authorization_endpoint: str = Field(
        default="https://accounts.google.com/o/oauth2/v2/auth",
        alias="GOOGLE_AUTHORIZATION_ENDPOINT",
    )
    google_token_endpoint: str = Field(
        default="https://oauth2.googleapis.com/token",
        alias="GOOGLE_TOKEN_ENDPOINT",
    )
    google_scopes: str = Field(default="openid profile email", alias="GOOGLE_SCOPES")

    # Sessions
    session_cookie_name: str = Field(default="auth-session", alias="SESSION_COOKIE_NAME")
    session_lifetime_days: int = Field(default=30, alias="SESSION_LIFETIME_DAYS")
    # Sessions are extended once they enter the last N days of their lifetime
    session_renewal_threshold_days: int = Field(
        default=15, alias="SESSION_RENEWAL_THRESHOLD_DAYS"
    )

    # OAuth state/PKCE cookies
    oauth_state_cookie_name: str = Field(
        default="google_oauth_state", alias="OAUTH_STATE_COOKIE_NAME"
    )
    oauth_verifier_cookie_name: str = Field(
        default="google_code_verifier", alias="OAUTH_VERIFIER_COOKIE_NAME"
    )
    oauth_cookie_max_age: int = Field(default=600, alias="OAUTH_COOKIE_MAX_AGE")

    # Pages
    login_path: str = Field(default="/login", alias="LOGIN_PATH")
    landing_path: str = Field(default="/dashboard", alias="LANDING_PATH")

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
