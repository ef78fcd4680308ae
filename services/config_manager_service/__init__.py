"""
Configuration Manager Service
Decides which source controls the effective value of every Squirrel setting.
"""

from .src.config_manager import ConfigManager
from .src.resolution_engine import ResolutionEngine, CachedResolutionEngine, StartupConfigReader
from .src.registry import SettingRegistry, build_default_registry
from .src.schemas import (
    ConfigSource,
    SettingType,
    SettingDescriptor,
    ResolvedValue,
    ValidationResult,
)

__version__ = "0.1.0"
__all__ = [
    "ConfigManager",
    "ResolutionEngine",
    "CachedResolutionEngine",
    "StartupConfigReader",
    "SettingRegistry",
    "build_default_registry",
    "ConfigSource",
    "SettingType",
    "SettingDescriptor",
    "ResolvedValue",
    "ValidationResult",
]
