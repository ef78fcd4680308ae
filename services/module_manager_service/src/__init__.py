"""
Module Manager Service Source Package
Extension module registry, settings reconciliation and lifecycle.
"""

from .module_manager import ModuleManager
from .module_registry import ExtensionModule, ManifestModule, ModuleRegistry
from .synchronizer import ModuleSettingsSynchronizer
from .schemas import ModuleConfigItem, ModuleConfigType, SyncReport, ModuleValidationResult
from .validator import ModuleConfigValidator
from .manifest_loader import load_manifest, load_module_manifests
from .naming import environment_prefix, environment_variable_name, enabled_variable_name
from .bootstrap import bootstrap_configuration

__all__ = [
    # Main components
    "ModuleManager",
    "ModuleSettingsSynchronizer",
    "bootstrap_configuration",

    # Registry
    "ExtensionModule",
    "ManifestModule",
    "ModuleRegistry",
    "load_manifest",
    "load_module_manifests",

    # Schemas
    "ModuleConfigItem",
    "ModuleConfigType",
    "SyncReport",
    "ModuleValidationResult",
    "ModuleConfigValidator",

    # Naming
    "environment_prefix",
    "environment_variable_name",
    "enabled_variable_name",
]
