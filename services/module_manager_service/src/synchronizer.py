from typing import Dict, List, Optional, Tuple

from shared.common_utils.env_settings import EnvironmentReader, parse_switch
from shared.common_utils.logger import logger
from shared.common_utils.secret_encryption import SecretEncryptionService
from shared.db_models.settings_models import ModuleOperation, ModuleRecord, ModuleSettingRecord, utc_now
from shared.db_models.store import SettingsStore

from .audit import ENVIRONMENT_ACTOR, SYSTEM_ACTOR, ModuleAuditService
from .config_helpers import is_secret_item
from .module_registry import ExtensionModule, ModuleRegistry
from .naming import enabled_variable_name, environment_variable_name
from .schemas import ModuleConfigItem, SyncReport


class ModuleSettingsSynchronizer:
    """Keeps persisted module settings in line with module schemas and the current environment.

    One pass per module:

    1. read the ``PLUGIN_<MODULE>_ENABLED`` switch; a falsy value disables the
       module right away, a truthy one asks for an enable at the end of the pass;
    2. find which schema keys are supplied by environment variables;
    3. work out which required keys have no value from any source;
    4. reconcile every schema key's record with the environment, dropping
       duplicate records for the same key;
    5. commit all record changes for the module in one batch;
    6. apply the requested enable if no required key is missing.

    Registration and environment driven enable or disable are written to the
    audit trail once their changes are committed.

    Modules are reconciled independently: one module failing is logged and the
    pass carries on with the next.
    """

    def __init__(
        self,
        store: SettingsStore,
        registry: ModuleRegistry,
        encryption: SecretEncryptionService,
        environment: Optional[EnvironmentReader] = None,
        audit: Optional[ModuleAuditService] = None,
    ):
        self.store = store
        self.registry = registry
        self.encryption = encryption
        self.environment = environment or EnvironmentReader()
        self.audit = audit or ModuleAuditService(store)

    async def synchronize_all(self) -> List[SyncReport]:
        reports = []
        for module in self.registry.all():
            reports.append(await self.synchronize(module))
        return reports

    async def synchronize(self, module: ExtensionModule) -> SyncReport:
        report = SyncReport(module_id=module.module_id)
        try:
            await self._synchronize(module, report)
        except Exception as e:
            logger.error(f"Failed to reconcile settings of module {module.module_id}: {e}")
            report.error = str(e)
        return report

    async def _synchronize(self, module: ExtensionModule, report: SyncReport) -> None:
        module_id = module.module_id
        schema = module.get_configuration_schema()

        record, module_changed, registered = await self._load_module_record(module)

        # Enable switch
        enabled_var = enabled_variable_name(module_id)
        raw_switch = self.environment.get(enabled_var)
        switch = parse_switch(raw_switch)
        report.locked = raw_switch is not None
        force_enable = switch is True
        env_disabled = False
        if switch is False and record.enabled:
            record.enabled = False
            module_changed = True
            env_disabled = True
            logger.info(f"Module {module_id} disabled by environment variable {enabled_var}")
        elif raw_switch is not None and switch is None:
            logger.warning(
                f"Environment variable {enabled_var} has unrecognised value '{raw_switch}', "
                f"module {module_id} keeps its current enabled state"
            )

        # Environment scan
        env_found: Dict[str, str] = {}
        for item in schema:
            variable = environment_variable_name(module_id, item.key)
            if self.environment.is_set(variable):
                env_found[item.key] = variable

        # Record reconciliation
        existing = await self.store.get_module_settings(module_id)
        by_key, duplicates = self._deduplicate(existing)
        upserts: List[ModuleSettingRecord] = []
        for item in schema:
            current = by_key.get(item.key)
            reconciled, created = self._reconcile(module_id, item, current, env_found.get(item.key))
            if reconciled is None:
                continue
            upserts.append(reconciled)
            by_key[item.key] = reconciled
            if created:
                report.created += 1
            else:
                report.updated += 1
        report.deleted = len(duplicates)

        # Required-field gate
        missing = [
            item.key
            for item in schema
            if item.is_required
            and item.key not in env_found
            and not item.default_value
            and not (by_key.get(item.key) and by_key[item.key].value)
        ]
        report.missing_required = missing
        if missing:
            logger.warning(
                f"Module {module_id} is missing required settings {', '.join(missing)}"
                + (f", ignoring {enabled_var}" if force_enable else "")
            )
        elif not record.configured:
            record.configured = True
            module_changed = True

        # Commit
        if module_changed:
            record.updated_at = utc_now()
        if module_changed or upserts or duplicates:
            await self.store.commit_module_batch(
                record if module_changed else None,
                upserts,
                [duplicate.id for duplicate in duplicates],
            )
            report.module_written = module_changed
            logger.info(
                f"Reconciled module {module_id}: {report.created} created, {report.updated} updated, "
                f"{report.deleted} duplicates removed"
            )
        if registered:
            await self.audit.record(
                module_id, module.name, ModuleOperation.REGISTER, SYSTEM_ACTOR,
                notes=f"Registered module version {module.version}",
            )
        if env_disabled:
            await self.audit.record(
                module_id, module.name, ModuleOperation.DISABLE, ENVIRONMENT_ACTOR, notes=f"Disabled by {enabled_var}"
            )

        # Enable commit
        if force_enable and not missing and not (record.enabled and record.configured):
            record.configured = True
            record.enabled = True
            record.updated_at = utc_now()
            await self.store.save_module(record)
            report.module_written = True
            logger.info(f"Module {module_id} enabled by environment variable {enabled_var}")
            await self.audit.record(
                module_id, module.name, ModuleOperation.ENABLE, ENVIRONMENT_ACTOR, notes=f"Enabled by {enabled_var}"
            )

        report.enabled = record.enabled
        report.configured = record.configured

    async def _load_module_record(self, module: ExtensionModule) -> Tuple[ModuleRecord, bool, bool]:
        """Return the module record, whether it changed and whether it is new."""
        record = await self.store.get_module(module.module_id)
        if record is None:
            logger.info(f"Registering new module {module.module_id} version {module.version}")
            return ModuleRecord(
                module_id=module.module_id,
                name=module.name,
                version=module.version,
                is_core=module.is_core,
            ), True, True

        changed = False
        if record.version != module.version or record.name != module.name:
            logger.info(f"Module {module.module_id} updated from version {record.version} to {module.version}")
            record.version = module.version
            record.name = module.name
            changed = True
        if record.is_core != module.is_core:
            record.is_core = module.is_core
            changed = True
        return record, changed, False

    @staticmethod
    def _deduplicate(
        records: List[ModuleSettingRecord],
    ) -> Tuple[Dict[str, ModuleSettingRecord], List[ModuleSettingRecord]]:
        by_key: Dict[str, ModuleSettingRecord] = {}
        duplicates: List[ModuleSettingRecord] = []
        for record in records:
            if record.key in by_key:
                duplicates.append(record)
            else:
                by_key[record.key] = record
        if duplicates:
            logger.warning(
                f"Removing {len(duplicates)} duplicate setting records of module {records[0].module_id}"
            )
        return by_key, duplicates

    def _stored_default(self, item: ModuleConfigItem) -> str:
        value = item.default_value or ""
        if value and is_secret_item(item):
            return self.encryption.encrypt(value)
        return value

    def _reconcile(
        self,
        module_id: str,
        item: ModuleConfigItem,
        current: Optional[ModuleSettingRecord],
        variable: Optional[str],
    ) -> Tuple[Optional[ModuleSettingRecord], bool]:
        """Return the changed record (or None when nothing changed) and whether it is new."""
        secret = is_secret_item(item)

        if current is None:
            if variable:
                logger.info(f"Setting {item.key} of module {module_id} is supplied by {variable}")
                return ModuleSettingRecord(
                    module_id=module_id,
                    key=item.key,
                    value=None,
                    is_from_environment=True,
                    environment_variable_name=variable,
                    is_secret=secret,
                ), True
            return ModuleSettingRecord(
                module_id=module_id,
                key=item.key,
                value=self._stored_default(item),
                is_secret=secret,
            ), True

        record = current.model_copy()
        changed = False

        if variable:
            if not record.is_from_environment:
                logger.info(f"Setting {item.key} of module {module_id} is now supplied by {variable}")
                if record.value:
                    record.previous_value = record.value
                record.value = None
                record.is_from_environment = True
                record.environment_variable_name = variable
                changed = True
            else:
                if record.environment_variable_name != variable:
                    record.environment_variable_name = variable
                    changed = True
                if record.value is not None:
                    record.value = None
                    changed = True
        elif record.is_from_environment:
            logger.info(
                f"Environment variable for setting {item.key} of module {module_id} was removed, "
                f"restoring the stored value"
            )
            record.is_from_environment = False
            record.environment_variable_name = None
            record.value = record.previous_value or self._stored_default(item)
            record.previous_value = None
            changed = True

        if record.is_secret != secret:
            record.is_secret = secret
            if secret and record.value:
                record.value = self.encryption.encrypt_if_needed(record.value)
            if secret and record.previous_value:
                record.previous_value = self.encryption.encrypt_if_needed(record.previous_value)
            if not secret:
                record.value = self.encryption.decrypt_if_needed(record.value)
                record.previous_value = self.encryption.decrypt_if_needed(record.previous_value)
            changed = True

        if not changed:
            return None, False
        record.updated_at = utc_now()
        return record, False
