from abc import ABC, abstractmethod
from typing import List, Optional, Sequence

from .settings_models import SettingRecord, ModuleRecord, ModuleSettingRecord, AuditEntry


class SettingsStore(ABC):
    """Abstract persistence for core settings, modules and module settings.

    Implementations raise ``StorageFailure`` when the backend fails.
    """

    # Core settings
    @abstractmethod
    async def get_setting(self, key: str) -> Optional[SettingRecord]:
        ...

    @abstractmethod
    async def list_settings(self) -> List[SettingRecord]:
        ...

    @abstractmethod
    async def save_setting(self, key: str, value: Optional[str], modified_by: Optional[str] = None) -> SettingRecord:
        ...

    @abstractmethod
    async def delete_setting(self, key: str) -> bool:
        ...

    # Modules
    @abstractmethod
    async def get_module(self, module_id: str) -> Optional[ModuleRecord]:
        ...

    @abstractmethod
    async def list_modules(self) -> List[ModuleRecord]:
        ...

    @abstractmethod
    async def save_module(self, module: ModuleRecord) -> ModuleRecord:
        ...

    @abstractmethod
    async def delete_module(self, module_id: str) -> bool:
        """Delete a module together with all of its setting records."""

    # Module settings
    @abstractmethod
    async def get_module_settings(self, module_id: str) -> List[ModuleSettingRecord]:
        ...

    @abstractmethod
    async def save_module_setting(self, record: ModuleSettingRecord) -> ModuleSettingRecord:
        ...

    @abstractmethod
    async def commit_module_batch(
        self,
        module: Optional[ModuleRecord],
        upserts: Sequence[ModuleSettingRecord],
        deletes: Sequence[str],
    ) -> None:
        """Apply a module update, setting upserts and setting deletions (by id) atomically."""

    # Audit trail
    @abstractmethod
    async def add_audit_entry(self, entry: AuditEntry) -> AuditEntry:
        ...

    @abstractmethod
    async def list_audit_entries(
        self,
        module_id: Optional[str] = None,
        operation: Optional[str] = None,
        limit: int = 50,
    ) -> List[AuditEntry]:
        """Most recent entries first."""

    async def get_module_setting(self, module_id: str, key: str) -> Optional[ModuleSettingRecord]:
        for record in await self.get_module_settings(module_id):
            if record.key == key:
                return record
        return None
