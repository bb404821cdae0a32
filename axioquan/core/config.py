"""Application configuration from environment."""
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """App settings loaded from env / .env."""

    app_name: str = "AxioQuan"
    debug: bool = False
    environment: str = "development"  # development | production
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite+aiosqlite:///./axioquan.db"
    db_timeout_seconds: float = 5.0

    # Session cookie signing
    secret_key: str = "change-me-in-production-use-env"
    algorithm: str = "HS256"

    # Session cookie (client-held, one per browser)
    session_cookie_name: str = "axioquan-user"
    session_duration_seconds: int = 60 * 60  # 1 hour
    session_refresh_threshold_seconds: int = 15 * 60  # 15 minutes

    # Roles
    default_role: str = "student"
    admin_registration_key: str = "change-me-admin-key"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


def get_settings() -> Settings:
    return Settings()


# Package directory (holds templates/)
BASE_DIR = Path(__file__).resolve().parent.parent
