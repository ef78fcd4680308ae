"""
Static catalog of the core settings understood by the engine.
Every key doubles as the name of the environment variable that overrides it.
"""

from typing import Any, List, Optional

from .schemas import SettingDescriptor, SettingType, ValidationRule

FILE_ALLOWED_EXTENSIONS = (
    ".pdf,.doc,.docx,.xls,.xlsx,.ppt,.pptx,.txt,.md,"
    ".jpg,.jpeg,.png,.gif,.bmp,.svg,.zip,.rar,.7z"
)


def _setting(
    key: str,
    display_name: str,
    category: str,
    value_type: SettingType,
    default_value: Any,
    description: str = "",
    is_secret: bool = False,
    allow_runtime_modification: bool = True,
    is_visible_in_ui: bool = True,
    validation: Optional[ValidationRule] = None,
) -> SettingDescriptor:
    return SettingDescriptor(
        key=key,
        display_name=display_name,
        description=description,
        category=category,
        value_type=value_type,
        default_value=default_value,
        environment_variable=key,
        is_secret=is_secret,
        allow_runtime_modification=allow_runtime_modification,
        is_visible_in_ui=is_visible_in_ui,
        validation=validation,
    )


def core_settings() -> List[SettingDescriptor]:
    return [
        # General
        _setting("SQUIRREL_SITE_NAME", "Site Name", "General", SettingType.STRING, "Squirrel Wiki",
                 "Name displayed in the site header and page titles"),
        _setting("SQUIRREL_SITE_URL", "Site URL", "General", SettingType.STRING, "",
                 "Public base URL of the site",
                 validation=ValidationRule(must_be_url=True)),
        _setting("SQUIRREL_DEFAULT_LANGUAGE", "Default Language", "General", SettingType.STRING, "en",
                 "Language used when a visitor has no preference",
                 validation=ValidationRule(allowed_values=("en", "es", "fr", "de", "it"))),
        _setting("SQUIRREL_TIMEZONE", "Time Zone", "General", SettingType.STRING, "UTC",
                 "Time zone used to display dates"),

        # Security
        _setting("SQUIRREL_ADMIN_USERNAME", "Admin Username", "Security", SettingType.STRING, "admin",
                 "Username of the bootstrap administrator",
                 allow_runtime_modification=False, is_visible_in_ui=False),
        _setting("SQUIRREL_ADMIN_PASSWORD", "Admin Password", "Security", SettingType.STRING, "Squirrel123!",
                 "Password of the bootstrap administrator",
                 is_secret=True, allow_runtime_modification=False, is_visible_in_ui=False),
        _setting("SQUIRREL_ADMIN_EMAIL", "Admin Email", "Security", SettingType.STRING, "admin@localhost",
                 "Email of the bootstrap administrator",
                 allow_runtime_modification=False, is_visible_in_ui=False),
        _setting("SQUIRREL_ADMIN_DISPLAYNAME", "Admin Display Name", "Security", SettingType.STRING,
                 "Administrator", "Display name of the bootstrap administrator",
                 allow_runtime_modification=False, is_visible_in_ui=False),
        _setting("SQUIRREL_ALLOW_ANONYMOUS_READING", "Allow Anonymous Reading", "Security",
                 SettingType.BOOLEAN, False, "Let visitors read pages without signing in"),
        _setting("SQUIRREL_SESSION_TIMEOUT_MINUTES", "Session Timeout (Minutes)", "Security",
                 SettingType.INTEGER, 480, "Idle time before a session expires",
                 validation=ValidationRule(min_value=30, max_value=20160)),
        _setting("SQUIRREL_MAX_LOGIN_ATTEMPTS", "Maximum Login Attempts", "Security", SettingType.INTEGER, 5,
                 "Failed attempts before an account is locked",
                 validation=ValidationRule(min_value=3, max_value=20)),
        _setting("SQUIRREL_ACCOUNT_LOCK_DURATION_MINUTES", "Account Lock Duration (Minutes)", "Security",
                 SettingType.INTEGER, 30, "How long a locked account stays locked",
                 validation=ValidationRule(min_value=5, max_value=1440)),

        # Content
        _setting("SQUIRREL_DEFAULT_PAGE_TEMPLATE", "Default Page Template", "Content", SettingType.STRING, "",
                 "Markdown used to pre-fill new pages"),
        _setting("SQUIRREL_MAX_PAGE_TITLE_LENGTH", "Maximum Page Title Length", "Content", SettingType.INTEGER,
                 200, "Longest accepted page title",
                 validation=ValidationRule(min_value=25, max_value=500)),
        _setting("SQUIRREL_ENABLE_PAGE_VERSIONING", "Enable Page Versioning", "Content", SettingType.BOOLEAN,
                 False, "Keep a history of page revisions"),

        # Performance
        _setting("SQUIRREL_ENABLE_CACHING", "Memory Cache", "Performance", SettingType.BOOLEAN, True,
                 "Cache rendered content in memory"),
        _setting("SQUIRREL_CACHE_DURATION_MINUTES", "Memory Cache Duration (Minutes)", "Performance",
                 SettingType.INTEGER, 60, "Lifetime of cached entries",
                 validation=ValidationRule(min_value=1, max_value=1440)),
        _setting("SQUIRREL_ENABLE_RESPONSE_CACHING", "Response Caching", "Performance", SettingType.BOOLEAN,
                 True, "Let clients cache responses"),
        _setting("SQUIRREL_RESPONSE_CACHE_DURATION_MINUTES", "Response Cache Duration (Minutes)",
                 "Performance", SettingType.INTEGER, 5, "Lifetime of cached responses",
                 validation=ValidationRule(min_value=1, max_value=60)),
        _setting("SQUIRREL_CACHE_PROVIDER", "Memory Cache Provider", "Performance", SettingType.STRING,
                 "Memory", "Cache backend, requires a restart",
                 allow_runtime_modification=False,
                 validation=ValidationRule(allowed_values=("Memory", "Redis"))),
        _setting("SQUIRREL_REDIS_CONFIGURATION", "Redis Configuration", "Performance", SettingType.STRING,
                 "localhost:6379", "Redis connection string",
                 allow_runtime_modification=False),
        _setting("SQUIRREL_REDIS_INSTANCE_NAME", "Redis Instance Name", "Performance", SettingType.STRING,
                 "Squirrel_", "Prefix applied to Redis keys",
                 allow_runtime_modification=False),

        # Application
        _setting("SQUIRREL_APP_DATA_PATH", "Application Data Path", "Application", SettingType.STRING,
                 "App_Data", "Directory for application data",
                 allow_runtime_modification=False, is_visible_in_ui=False),
        _setting("SQUIRREL_SEED_DATA_FILE_PATH", "Seed Data File Path", "Application", SettingType.STRING,
                 None, "Optional seed data file",
                 allow_runtime_modification=False, is_visible_in_ui=False),

        # Database
        _setting("SQUIRREL_DATABASE_PROVIDER", "Database Provider", "Database", SettingType.STRING, "SQLite",
                 "Database engine",
                 allow_runtime_modification=False, is_visible_in_ui=False,
                 validation=ValidationRule(allowed_values=("PostgreSQL", "MySQL", "MariaDB", "SQLServer", "SQLite"))),
        _setting("SQUIRREL_DATABASE_CONNECTION_STRING", "Database Connection String", "Database",
                 SettingType.STRING, "Data Source=App_Data/squirrel.db", "Database connection string",
                 is_secret=True, allow_runtime_modification=False, is_visible_in_ui=False),
        _setting("SQUIRREL_DATABASE_AUTO_MIGRATE", "Auto Migrate Database", "Database", SettingType.BOOLEAN,
                 True, "Apply pending migrations at startup",
                 allow_runtime_modification=False, is_visible_in_ui=False),
        _setting("SQUIRREL_DATABASE_SEED_DATA", "Seed Database Data", "Database", SettingType.BOOLEAN, True,
                 "Seed an empty database at startup",
                 allow_runtime_modification=False, is_visible_in_ui=False),

        # Files
        _setting("SQUIRREL_FILE_STORAGE_PATH", "File Storage Path", "Files", SettingType.STRING,
                 "App_Data/Files", "Directory for uploaded files",
                 allow_runtime_modification=False),
        _setting("SQUIRREL_FILE_MAX_SIZE_MB", "Maximum File Size (MB)", "Files", SettingType.INTEGER, 100,
                 "Largest accepted upload",
                 validation=ValidationRule(min_value=1, max_value=2048)),
        _setting("SQUIRREL_FILE_ALLOWED_EXTENSIONS", "Allowed File Extensions", "Files", SettingType.STRING,
                 FILE_ALLOWED_EXTENSIONS, "Comma separated list of accepted extensions"),
    ]
