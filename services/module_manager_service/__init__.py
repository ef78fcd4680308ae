"""
Module Manager Service
Keeps extension module settings consistent with the environment across restarts.
"""

from .src.module_manager import ModuleManager
from .src.module_registry import ExtensionModule, ManifestModule, ModuleRegistry
from .src.synchronizer import ModuleSettingsSynchronizer
from .src.schemas import ModuleConfigItem, ModuleConfigType, SyncReport
from .src.bootstrap import bootstrap_configuration

__version__ = "0.1.0"
__all__ = [
    "ModuleManager",
    "ExtensionModule",
    "ManifestModule",
    "ModuleRegistry",
    "ModuleSettingsSynchronizer",
    "ModuleConfigItem",
    "ModuleConfigType",
    "SyncReport",
    "bootstrap_configuration",
]
