from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Settings of the configuration engine itself, read from the environment and .env."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Service settings
    SERVICE_NAME: str = "config_manager_service"
    SERVICE_VERSION: str = "1.0.0"

    # Database settings
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_NAME: str = "squirrel"
    SETTINGS_DATABASE_URL: Optional[str] = None

    # Secrets
    SQUIRREL_ENCRYPTION_KEY: Optional[str] = None

    # Resolution
    PROVIDER_TIMEOUT_SECONDS: float = 5.0
    CACHE_TTL_SECONDS: float = 60.0

    # Modules
    MODULE_MANIFEST_DIR: Optional[str] = None

    # Logging settings
    LOG_LEVEL: str = "INFO"

    @property
    def DATABASE_URL(self) -> str:
        if self.SETTINGS_DATABASE_URL:
            return self.SETTINGS_DATABASE_URL
        return f"postgresql+asyncpg://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
