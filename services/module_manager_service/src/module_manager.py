from typing import Callable, Dict, Iterable, List, Optional, Tuple

from services.config_manager_service.src.schemas import ModuleKeyBinding
from shared.common_utils.env_settings import EnvironmentReader
from shared.common_utils.exceptions import (
    ConfigValidationError,
    CoreModuleDeletionError,
    DecryptFailure,
    ImmutableSettingError,
    LockedByEnvironmentError,
    ModuleNotConfiguredError,
    UnknownModuleError,
)
from shared.common_utils.logger import logger
from shared.common_utils.secret_encryption import SecretEncryptionService
from shared.db_models.settings_models import AuditEntry, ModuleOperation, ModuleRecord, ModuleSettingRecord, utc_now
from shared.db_models.store import SettingsStore

from .audit import ModuleAuditService
from .config_helpers import filter_by_schema, is_secret_item, mask_secrets, merge_with_defaults, missing_required_keys
from .module_registry import ExtensionModule, ModuleRegistry
from .naming import enabled_variable_name, environment_variable_name
from .schemas import SyncReport
from .synchronizer import ModuleSettingsSynchronizer
from .validator import ModuleConfigValidator

CacheInvalidator = Callable[[Optional[str]], None]


class ModuleManager:
    """Lifecycle and configuration of extension modules.

    Every enable, disable, configuration change and deletion is written to the
    audit trail. When ``invalidate`` is given it is called with the
    ``PLUGIN_...`` key of every setting a write touches, so cached resolutions
    of those keys are dropped.
    """

    def __init__(
        self,
        store: SettingsStore,
        registry: ModuleRegistry,
        encryption: SecretEncryptionService,
        environment: Optional[EnvironmentReader] = None,
        invalidate: Optional[CacheInvalidator] = None,
    ):
        self.store = store
        self.registry = registry
        self.encryption = encryption
        self.environment = environment or EnvironmentReader()
        self.invalidate = invalidate
        self.audit = ModuleAuditService(store)
        self.synchronizer = ModuleSettingsSynchronizer(store, registry, encryption, self.environment, self.audit)

    def _settings_changed(self, module_id: str, keys: Optional[Iterable[str]]) -> None:
        # None drops every cached resolution
        if self.invalidate is None:
            return
        if keys is None:
            self.invalidate(None)
            return
        for key in keys:
            self.invalidate(environment_variable_name(module_id, key))

    async def initialize(self) -> List[SyncReport]:
        """Reconcile every module's settings, then start the modules that are enabled."""
        reports = await self.synchronizer.synchronize_all()
        if self.invalidate is not None:
            self.invalidate(None)
        for module in self.registry.all():
            record = await self.store.get_module(module.module_id)
            if record is None or not (record.enabled and record.configured):
                continue
            try:
                await module.initialize(await self.get_configuration(module.module_id))
            except Exception as e:
                logger.error(f"Failed to initialize module {module.module_id}: {e}")
        logger.info(f"Initialized {len(reports)} modules")
        return reports

    async def reload(self, module_id: str, username: Optional[str] = None) -> SyncReport:
        """Re-run reconciliation for one module."""
        module = self.registry.get(module_id)
        if module is None:
            raise UnknownModuleError(module_id)
        report = await self.synchronizer.synchronize(module)
        self._settings_changed(module_id, [item.key for item in module.get_configuration_schema()])
        await self.audit.record(
            module_id, module.name, ModuleOperation.RELOAD, username,
            success=report.error is None, error_message=report.error,
        )
        return report

    async def list_modules(self) -> List[ModuleRecord]:
        return await self.store.list_modules()

    async def get_module(self, module_id: str) -> ModuleRecord:
        record = await self.store.get_module(module_id)
        if record is None:
            raise UnknownModuleError(module_id)
        return record

    async def audit_history(self, module_id: Optional[str] = None, limit: int = 50) -> List[AuditEntry]:
        return await self.audit.history(module_id, limit=limit)

    def is_enabled_locked(self, module_id: str) -> bool:
        return self.environment.is_set(enabled_variable_name(module_id))

    async def _lookup(self, module_id: str) -> Tuple[ExtensionModule, ModuleRecord]:
        module = self.registry.get(module_id)
        record = await self.store.get_module(module_id)
        if module is None or record is None:
            raise UnknownModuleError(module_id)
        return module, record

    def _check_lock(self, module_id: str) -> None:
        if self.is_enabled_locked(module_id):
            raise LockedByEnvironmentError(module_id, enabled_variable_name(module_id))

    async def enable(self, module_id: str, username: Optional[str] = None) -> ModuleRecord:
        module, record = await self._lookup(module_id)
        self._check_lock(module_id)
        if not record.configured:
            configuration = await self.get_configuration(module_id)
            raise ModuleNotConfiguredError(
                module_id, missing_required_keys(configuration, module.get_configuration_schema())
            )
        if record.enabled:
            return record

        try:
            await module.initialize(await self.get_configuration(module_id))
        except Exception as e:
            await self.audit.record(
                module_id, record.name, ModuleOperation.ENABLE, username, success=False, error_message=str(e)
            )
            raise
        record.enabled = True
        record.updated_at = utc_now()
        await self.store.save_module(record)
        logger.info(f"Module {module_id} enabled")
        await self.audit.record(
            module_id, record.name, ModuleOperation.ENABLE, username, notes="Module enabled and initialized"
        )
        return record

    async def disable(self, module_id: str, username: Optional[str] = None) -> ModuleRecord:
        module, record = await self._lookup(module_id)
        self._check_lock(module_id)
        if not record.enabled:
            return record

        await module.shutdown()
        record.enabled = False
        record.updated_at = utc_now()
        await self.store.save_module(record)
        logger.info(f"Module {module_id} disabled")
        await self.audit.record(module_id, record.name, ModuleOperation.DISABLE, username, notes="Module disabled")
        return record

    async def _current_records(self, module_id: str) -> Dict[str, ModuleSettingRecord]:
        records: Dict[str, ModuleSettingRecord] = {}
        for record in await self.store.get_module_settings(module_id):
            records.setdefault(record.key, record)
        return records

    def _record_value(self, record: ModuleSettingRecord) -> str:
        if record.is_from_environment:
            return self.environment.get(record.environment_variable_name or "") or ""
        if not record.value:
            return ""
        if not record.is_secret:
            return record.value
        try:
            return self.encryption.decrypt_if_needed(record.value)
        except DecryptFailure:
            logger.error(f"Failed to decrypt setting {record.key} of module {record.module_id}")
            return ""

    async def get_configuration(self, module_id: str) -> Dict[str, str]:
        """Effective configuration: environment values, decrypted stored values, then schema defaults."""
        module = self.registry.get(module_id)
        if module is None:
            raise UnknownModuleError(module_id)
        records = await self._current_records(module_id)
        configuration = {key: self._record_value(record) for key, record in records.items()}
        return merge_with_defaults(configuration, module.get_configuration_schema())

    async def get_masked_configuration(self, module_id: str) -> Dict[str, str]:
        module = self.registry.get(module_id)
        if module is None:
            raise UnknownModuleError(module_id)
        return mask_secrets(await self.get_configuration(module_id), module.get_configuration_schema())

    async def update_configuration(
        self,
        module_id: str,
        values: Dict[str, Optional[str]],
        username: Optional[str] = None,
        require_complete: bool = True,
    ) -> ModuleRecord:
        """Validate and store new values for store-sourced keys.

        With ``require_complete`` the whole resulting configuration must be
        valid; otherwise only the keys being written are checked. Secrets are
        encrypted, and the module's configured flag is recomputed in the same
        batch as the values.
        """
        module, record = await self._lookup(module_id)
        schema = module.get_configuration_schema()
        updates = filter_by_schema(values, schema)
        ignored = sorted(set(values) - set(updates))
        if ignored:
            logger.warning(f"Ignoring unknown configuration keys for module {module_id}: {', '.join(ignored)}")

        records = await self._current_records(module_id)
        for key in updates:
            current = records.get(key)
            if current is not None and current.is_from_environment:
                raise ImmutableSettingError(
                    key,
                    f"Setting '{key}' of module '{module_id}' is set via environment variable "
                    f"{current.environment_variable_name} and cannot be changed here",
                )

        masked_updates = mask_secrets(updates, schema)
        merged = {**await self.get_configuration(module_id), **updates}
        checked = schema if require_complete else [item for item in schema if item.key in updates]
        result = ModuleConfigValidator.validate(merged, checked)
        if not result.is_valid:
            await self.audit.record(
                module_id, record.name, ModuleOperation.CONFIGURE, username,
                success=False, changes=masked_updates, error_message="; ".join(result.messages()),
            )
            raise ConfigValidationError(module_id, result.messages())

        upserts = []
        items = {item.key: item for item in schema}
        for key, value in updates.items():
            secret = is_secret_item(items[key])
            stored = self.encryption.encrypt_if_needed(value) if secret else value
            setting = records.get(key) or ModuleSettingRecord(module_id=module_id, key=key)
            setting = setting.model_copy(update={
                "value": stored if stored is not None else "",
                "is_secret": secret,
                "updated_at": utc_now(),
            })
            upserts.append(setting)

        record.configured = not missing_required_keys(merged, schema)
        record.updated_at = utc_now()
        await self.store.commit_module_batch(record, upserts, [])
        self._settings_changed(module_id, updates)
        logger.info(f"Configuration of module {module_id} updated: {masked_updates}")
        await self.audit.record(
            module_id, record.name, ModuleOperation.CONFIGURE, username,
            changes=masked_updates, notes=f"Configuration updated with {len(updates)} settings",
        )
        return record

    async def write_setting(self, binding: ModuleKeyBinding, value: Optional[str], modified_by: Optional[str]) -> None:
        """Store one module key written through the configuration engine."""
        await self.update_configuration(
            binding.module_id, {binding.setting_key: value}, modified_by, require_complete=False
        )

    async def delete(self, module_id: str, username: Optional[str] = None) -> None:
        record = await self.store.get_module(module_id)
        if record is None:
            raise UnknownModuleError(module_id)
        if record.is_core:
            raise CoreModuleDeletionError(module_id)

        module = self.registry.get(module_id)
        if record.enabled and module is not None:
            try:
                await module.shutdown()
            except Exception as e:
                logger.error(f"Failed to shut down module {module_id} before deletion: {e}")
        await self.store.delete_module(module_id)
        self._settings_changed(
            module_id, [item.key for item in module.get_configuration_schema()] if module is not None else None
        )
        logger.info(f"Module {module_id} deleted")
        await self.audit.record(module_id, record.name, ModuleOperation.DELETE, username, notes="Module deleted")
