"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_JWT_SECRET = "dev-secret-change-me"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database (Postgres when DATABASE_URL is set, SQLite otherwise)
    database_url: str | None = None
    database_path: str = "data.sqlite"
    database_ssl: bool = True
    test_database_url: str = "sqlite+aiosqlite:///./test.sqlite3"

    # Session
    jwt_secret: str = DEFAULT_JWT_SECRET
    session_cookie_name: str = "session"
    session_expire_days: int = 30
    environment: str = "development"

    # Frontend / CORS
    frontend_base_url: str = "http://localhost:3000"
    cors_origins: str = "http://localhost:3000"
    public_dir: str = "public"

    # Uploads
    max_upload_mb: int = 15
    uploads_dir: str = "uploads"

    # OAuth providers
    discord_client_id: str | None = None
    discord_client_secret: str | None = None
    discord_redirect_uri: str | None = None
    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_redirect_uri: str | None = None

    # Cloudinary (selects CDN storage when the cloud name is set)
    cloudinary_cloud_name: str | None = None
    cloudinary_api_key: str | None = None
    cloudinary_api_secret: str | None = None
    cloudinary_folder: str = "beardedvibes"

    # Admin bootstrap and service-to-service auth
    setup_secret: str | None = None
    bot_service_token: str | None = None

    # Discord bot process
    bot_token: str | None = None
    target_channel_id: int | None = None
    backend_upload_url: str | None = None

    # Rate limiting
    upload_rate_limit: str = "20/hour"
    comment_rate_limit: str = "30/minute"
    login_rate_limit: str = "20/minute"

    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() in {"production", "prod"}

    @property
    def async_database_url(self) -> str:
        """Normalize DATABASE_URL to an async driver URL, falling back to SQLite."""
        if not self.database_url:
            return f"sqlite+aiosqlite:///{self.database_path}"
        url = self.database_url
        for prefix in ("postgres://", "postgresql://"):
            if url.startswith(prefix):
                return "postgresql+asyncpg://" + url[len(prefix):]
        return url

    @property
    def frontend_base(self) -> str:
        return self.frontend_base_url.rstrip("/")

    @property
    def discord_callback_url(self) -> str:
        return (self.discord_redirect_uri or f"{self.frontend_base}/api/auth/callback").rstrip("/")

    @property
    def google_callback_url(self) -> str:
        return (self.google_redirect_uri or f"{self.frontend_base}/api/auth/google/callback").rstrip("/")

    @property
    def storage_backend(self) -> str:
        return "cloudinary" if self.cloudinary_cloud_name else "local"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins, filtering empty strings."""
        if not self.cors_origins:
            return [self.frontend_base]
        origins = [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return origins if origins else [self.frontend_base]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()


def validate_security_settings() -> None:
    """Ensure insecure defaults are never used in production-like environments."""
    if not settings.is_production:
        return

    insecure = []
    if settings.jwt_secret == DEFAULT_JWT_SECRET:
        insecure.append("JWT_SECRET")
    if settings.setup_secret is not None and len(settings.setup_secret) < 16:
        insecure.append("SETUP_SECRET")

    if insecure:
        insecure_list = ", ".join(insecure)
        raise RuntimeError(
            f"Insecure secrets are configured for production: {insecure_list}. "
            "Set strong values in the environment before starting the API."
        )
