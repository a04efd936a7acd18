from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # App
    APP_ENV: str = "development"
    CORS_ORIGINS: str = "http://localhost:5173"

    # Platform API
    PLATFORM_API_URL: str = "http://localhost:8000/api"
    PLATFORM_API_TIMEOUT_SECONDS: float = 60.0

    # Bulk import
    BULK_MAX_ROWS: int = 500
    BULK_MAX_FILE_MB: int = 10
    WIZARD_TTL_MINUTES: int = 60
    STUDENT_CACHE_TTL_MINUTES: int = 15
    UPLOAD_RATE_LIMIT: str = "30/minute"

    # Monitoring
    SENTRY_DSN: str = ""
    SENTRY_TRACES_SAMPLE_RATE: float = 0.0

    @property
    def cors_origins_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",")]

    @property
    def bulk_max_file_bytes(self) -> int:
        return self.BULK_MAX_FILE_MB * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
