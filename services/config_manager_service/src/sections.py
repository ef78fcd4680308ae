from typing import Dict, Type

from pydantic import BaseModel, Field


class GeneralSettings(BaseModel):
    site_name: str = Field("Squirrel Wiki", description="Site name")
    site_url: str = Field("", description="Public base URL")
    default_language: str = Field("en", description="Default language")
    time_zone: str = Field("UTC", description="Display time zone")


class SecuritySettings(BaseModel):
    allow_anonymous_reading: bool = Field(False, description="Anonymous read access")
    session_timeout_minutes: int = Field(480, description="Idle session lifetime")
    max_login_attempts: int = Field(5, description="Failed attempts before lockout")
    account_lock_duration_minutes: int = Field(30, description="Lockout duration")


class ContentSettings(BaseModel):
    default_page_template: str = Field("", description="Template for new pages")
    max_page_title_length: int = Field(200, description="Longest page title")
    enable_page_versioning: bool = Field(False, description="Keep page history")


class PerformanceSettings(BaseModel):
    enable_caching: bool = Field(True, description="In-memory caching")
    cache_duration_minutes: int = Field(60, description="Cache entry lifetime")
    enable_response_caching: bool = Field(True, description="Client response caching")
    response_cache_duration_minutes: int = Field(5, description="Response cache lifetime")
    cache_provider: str = Field("Memory", description="Cache backend")
    redis_configuration: str = Field("localhost:6379", description="Redis connection string")
    redis_instance_name: str = Field("Squirrel_", description="Redis key prefix")


class FileSettings(BaseModel):
    storage_path: str = Field("App_Data/Files", description="Upload directory")
    max_size_mb: int = Field(100, description="Largest upload")
    allowed_extensions: str = Field("", description="Comma separated accepted extensions")

    @property
    def extensions(self):
        return [ext.strip().lower() for ext in self.allowed_extensions.split(",") if ext.strip()]


# Field name -> setting key, per section
SECTION_KEYS: Dict[Type[BaseModel], Dict[str, str]] = {
    GeneralSettings: {
        "site_name": "SQUIRREL_SITE_NAME",
        "site_url": "SQUIRREL_SITE_URL",
        "default_language": "SQUIRREL_DEFAULT_LANGUAGE",
        "time_zone": "SQUIRREL_TIMEZONE",
    },
    SecuritySettings: {
        "allow_anonymous_reading": "SQUIRREL_ALLOW_ANONYMOUS_READING",
        "session_timeout_minutes": "SQUIRREL_SESSION_TIMEOUT_MINUTES",
        "max_login_attempts": "SQUIRREL_MAX_LOGIN_ATTEMPTS",
        "account_lock_duration_minutes": "SQUIRREL_ACCOUNT_LOCK_DURATION_MINUTES",
    },
    ContentSettings: {
        "default_page_template": "SQUIRREL_DEFAULT_PAGE_TEMPLATE",
        "max_page_title_length": "SQUIRREL_MAX_PAGE_TITLE_LENGTH",
        "enable_page_versioning": "SQUIRREL_ENABLE_PAGE_VERSIONING",
    },
    PerformanceSettings: {
        "enable_caching": "SQUIRREL_ENABLE_CACHING",
        "cache_duration_minutes": "SQUIRREL_CACHE_DURATION_MINUTES",
        "enable_response_caching": "SQUIRREL_ENABLE_RESPONSE_CACHING",
        "response_cache_duration_minutes": "SQUIRREL_RESPONSE_CACHE_DURATION_MINUTES",
        "cache_provider": "SQUIRREL_CACHE_PROVIDER",
        "redis_configuration": "SQUIRREL_REDIS_CONFIGURATION",
        "redis_instance_name": "SQUIRREL_REDIS_INSTANCE_NAME",
    },
    FileSettings: {
        "storage_path": "SQUIRREL_FILE_STORAGE_PATH",
        "max_size_mb": "SQUIRREL_FILE_MAX_SIZE_MB",
        "allowed_extensions": "SQUIRREL_FILE_ALLOWED_EXTENSIONS",
    },
}
