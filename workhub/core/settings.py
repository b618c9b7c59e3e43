from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Persistence
    DATABASE_URL: str | None = None

    # Identity provider (token verification only, sessions are issued upstream)
    SUPABASE_URL: str | None = None
    JWT_SECRET: str | None = None

    # Application URLs
    FRONTEND_URL: str | None = None

    # Access cache
    ACCESS_CACHE_TTL_SECONDS: int = 300
    ACCESS_CACHE_MAXSIZE: int = 10_000

    # Lifecycle gates
    LEGAL_CURRENT_VERSION: str = "v1"
    REQUIRE_EMAIL_VERIFICATION: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


settings = Settings()
