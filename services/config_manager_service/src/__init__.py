"""
Configuration Manager Service Source Package
Layered resolution of settings from the environment, the settings store and defaults.
"""

from .config_manager import ConfigManager
from .schemas import (
    ConfigSource,
    SettingType,
    ValidationRule,
    SettingDescriptor,
    NotFound,
    ResolvedValue,
    ValidationResult,
    ModuleKeyBinding,
)
from .registry import SettingRegistry, build_default_registry
from .providers import (
    ConfigurationProvider,
    EnvironmentProvider,
    PersistentStoreProvider,
    DefaultProvider,
)
from .resolution_engine import ResolutionEngine, CachedResolutionEngine, StartupConfigReader
from .sections import (
    GeneralSettings,
    SecuritySettings,
    ContentSettings,
    PerformanceSettings,
    FileSettings,
)
from .validator import validate_setting, rule_violations

__all__ = [
    # Main components
    "ConfigManager",
    "ResolutionEngine",
    "CachedResolutionEngine",
    "StartupConfigReader",

    # Registry
    "SettingRegistry",
    "build_default_registry",

    # Providers
    "ConfigurationProvider",
    "EnvironmentProvider",
    "PersistentStoreProvider",
    "DefaultProvider",

    # Schemas
    "ConfigSource",
    "SettingType",
    "ValidationRule",
    "SettingDescriptor",
    "NotFound",
    "ResolvedValue",
    "ValidationResult",
    "ModuleKeyBinding",

    # Sections
    "GeneralSettings",
    "SecuritySettings",
    "ContentSettings",
    "PerformanceSettings",
    "FileSettings",

    # Validation
    "validate_setting",
    "rule_violations",
]
