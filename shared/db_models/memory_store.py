from typing import Dict, List, Optional, Sequence

from pydantic import ValidationError

from shared.common_utils.exceptions import StorageFailure
from shared.common_utils.logger import logger
from .settings_models import SettingRecord, ModuleRecord, ModuleSettingRecord, AuditEntry, utc_now
from .store import SettingsStore


class InMemorySettingsStore(SettingsStore):
    """Process-local settings store.

    No method awaits while it mutates state, so every call, including a batch
    commit, is applied as one step on the event loop. Records are copied on
    the way in and out, and a batch is checked in full before any of it is
    applied.
    """

    def __init__(self):
        self._settings: Dict[str, SettingRecord] = {}
        self._modules: Dict[str, ModuleRecord] = {}
        self._module_settings: Dict[str, ModuleSettingRecord] = {}
        self._audit: List[AuditEntry] = []

    async def get_setting(self, key: str) -> Optional[SettingRecord]:
        record = self._settings.get(key)
        return record.model_copy() if record else None

    async def list_settings(self) -> List[SettingRecord]:
        return [record.model_copy() for record in self._settings.values()]

    async def save_setting(self, key: str, value: Optional[str], modified_by: Optional[str] = None) -> SettingRecord:
        record = SettingRecord(key=key, value=value, modified_by=modified_by, last_modified=utc_now())
        self._settings[key] = record
        return record.model_copy()

    async def delete_setting(self, key: str) -> bool:
        return self._settings.pop(key, None) is not None

    async def get_module(self, module_id: str) -> Optional[ModuleRecord]:
        module = self._modules.get(module_id)
        return module.model_copy() if module else None

    async def list_modules(self) -> List[ModuleRecord]:
        return [module.model_copy() for module in self._modules.values()]

    async def save_module(self, module: ModuleRecord) -> ModuleRecord:
        self._modules[module.module_id] = module.model_copy()
        return module.model_copy()

    async def delete_module(self, module_id: str) -> bool:
        if self._modules.pop(module_id, None) is None:
            return False
        self._module_settings = {
            record_id: record
            for record_id, record in self._module_settings.items()
            if record.module_id != module_id
        }
        logger.debug(f"Deleted module {module_id} and its settings from memory store")
        return True

    async def get_module_settings(self, module_id: str) -> List[ModuleSettingRecord]:
        return [
            record.model_copy()
            for record in self._module_settings.values()
            if record.module_id == module_id
        ]

    @staticmethod
    def _checked(record: ModuleSettingRecord) -> ModuleSettingRecord:
        # Records built with model_copy(update=...) skip validation
        try:
            return ModuleSettingRecord.model_validate(dict(record))
        except ValidationError as e:
            logger.error(f"Rejected setting record {record.id}: {e}")
            raise StorageFailure(f"Invalid setting record '{record.id}'") from e

    async def save_module_setting(self, record: ModuleSettingRecord) -> ModuleSettingRecord:
        self._module_settings[record.id] = self._checked(record)
        return record.model_copy()

    async def commit_module_batch(
        self,
        module: Optional[ModuleRecord],
        upserts: Sequence[ModuleSettingRecord],
        deletes: Sequence[str],
    ) -> None:
        checked = [self._checked(record) for record in upserts]

        module_settings = dict(self._module_settings)
        for record_id in deletes:
            module_settings.pop(record_id, None)
        for record in checked:
            module_settings[record.id] = record

        modules = self._modules
        if module is not None:
            modules = dict(self._modules)
            modules[module.module_id] = module.model_copy()

        self._module_settings = module_settings
        self._modules = modules

    async def add_audit_entry(self, entry: AuditEntry) -> AuditEntry:
        self._audit.append(entry.model_copy())
        return entry

    async def list_audit_entries(
        self,
        module_id: Optional[str] = None,
        operation: Optional[str] = None,
        limit: int = 50,
    ) -> List[AuditEntry]:
        entries = [
            entry
            for entry in reversed(self._audit)
            if (module_id is None or entry.module_id == module_id)
            and (operation is None or entry.operation == operation)
        ]
        entries.sort(key=lambda entry: entry.timestamp, reverse=True)
        return [entry.model_copy() for entry in entries[:limit]]
