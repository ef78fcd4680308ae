from .settings_models import *
from .store import SettingsStore
from .memory_store import InMemorySettingsStore
from .db_interface import DatabaseInterface

__all__ = [
    # Models
    "SettingRecord",
    "ModuleRecord",
    "ModuleSettingRecord",
    "ModuleOperation",
    "AuditEntry",
    # Stores
    "SettingsStore",
    "InMemorySettingsStore",
    "DatabaseInterface",
]
