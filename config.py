from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Process configuration, read once at startup from the environment / .env"""
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "mongodb://localhost:27017"
    database_name: str = "course_content"

    # Shared-secret login; both must be set for /auth/login to work
    admin_username: Optional[str] = None
    admin_password: Optional[str] = None

    environment: str = Field("development", description="development | production")
    database_timeout_ms: int = 10000
    stats_timeout_ms: int = 10000
    normalize_unit_numbers: bool = False

    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]
    port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def get_settings() -> Settings:
    return Settings()
