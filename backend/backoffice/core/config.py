from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", case_sensitive=False)

    app_name: str = "Backoffice Access Control"
    environment: str = "dev"
    log_level: str = "INFO"
    log_format: str = "json"

    database_url: str = "sqlite:///./backoffice.db"
    database_echo: bool = False

    secret_key: str = "change-me"
    access_token_expire_minutes: int = 60
    algorithm: str = "HS256"

    default_admin_name: str = "Admin User"
    default_admin_email: str = "admin@example.com"
    default_admin_password: str = "password"

    activity_log_retention_days: int = Field(default=365, ge=1)
    user_agent_max_length: int = Field(default=500, ge=1)
    trust_forwarded_for: bool = True

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
