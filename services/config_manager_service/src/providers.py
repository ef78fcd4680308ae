from abc import ABC, abstractmethod
from typing import Any, List, Optional

from shared.common_utils.env_settings import EnvironmentReader, convert_value
from shared.common_utils.exceptions import (
    DecryptFailure,
    StorageFailure,
    TypeConversionFailure,
    WriteUnsupportedError,
)
from shared.common_utils.logger import logger, mask_value
from shared.common_utils.secret_encryption import SecretEncryptionService
from shared.db_models.store import SettingsStore

from .registry import ModuleKeyLookup, ModuleSettingWriter, SettingRegistry, describe
from .schemas import ConfigSource, NotFound, ResolvedValue, SettingType
from .validator import rule_violations

MODULE_KEY_PREFIX = "PLUGIN_"


def serialize_value(value: Any) -> Optional[str]:
    """Render a typed value as the string kept in the store."""
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ConfigurationProvider(ABC):
    """A source of setting values with a fixed priority."""

    name: str = "Provider"
    source: ConfigSource

    def __init__(self, registry: SettingRegistry, module_lookup: Optional[ModuleKeyLookup] = None):
        self.registry = registry
        self.module_lookup = module_lookup

    @property
    @abstractmethod
    def priority(self) -> int:
        ...

    @abstractmethod
    async def get(self, key: str) -> Optional[ResolvedValue]:
        """Return the value for ``key`` or None when this source has nothing for it."""

    def can_write(self, key: str) -> bool:
        return False

    async def write(self, key: str, value: Any, modified_by: Optional[str] = None) -> None:
        raise WriteUnsupportedError(self.name, key)

    @abstractmethod
    async def all_keys(self) -> List[str]:
        ...


class EnvironmentProvider(ConfigurationProvider):
    """Values supplied by operators through environment variables. Read-only."""

    name = "Environment"
    source = ConfigSource.ENVIRONMENT

    def __init__(
        self,
        registry: SettingRegistry,
        environment: Optional[EnvironmentReader] = None,
        module_lookup: Optional[ModuleKeyLookup] = None,
    ):
        super().__init__(registry, module_lookup)
        self.environment = environment or EnvironmentReader()

    @property
    def priority(self) -> int:
        return 100

    def _masked(self, key: str, value: Any, secret: bool) -> str:
        return mask_value(value, secret or key.startswith(MODULE_KEY_PREFIX))

    async def get(self, key: str) -> Optional[ResolvedValue]:
        descriptor = describe(self.registry, key, self.module_lookup)
        known = not isinstance(descriptor, NotFound)
        variable = descriptor.environment_variable if known else key
        raw_value = self.environment.get(variable)
        if raw_value is None:
            return None

        value_type = descriptor.value_type if known else SettingType.STRING
        secret = known and descriptor.is_secret
        try:
            value = convert_value(raw_value, value_type)
        except TypeConversionFailure:
            logger.warning(
                f"Environment variable {variable} for setting {key} is not a valid {value_type.value}: "
                f"{self._masked(key, raw_value, secret)}"
            )
            return None

        if known:
            violations = rule_violations(descriptor.display_name, descriptor.validation, value)
            if violations:
                logger.warning(
                    f"Environment variable {variable} for setting {key} breaks its validation rule "
                    f"({'; '.join(violations)}), using it anyway: {self._masked(key, value, secret)}"
                )

        logger.debug(f"Setting {key} read from environment variable {variable}: {self._masked(key, value, secret)}")
        return ResolvedValue(key=key, value=value, source=self.source)

    async def all_keys(self) -> List[str]:
        keys = [d.key for d in self.registry.all() if self.environment.is_set(d.environment_variable)]
        if self.module_lookup is not None:
            for variable in self.environment.environ:
                if (
                    variable.startswith(MODULE_KEY_PREFIX)
                    and self.environment.is_set(variable)
                    and self.module_lookup(variable) is not None
                ):
                    keys.append(variable)
        return keys


class DefaultProvider(ConfigurationProvider):
    """Compiled-in defaults. Read-only."""

    name = "Default"
    source = ConfigSource.DEFAULT

    @property
    def priority(self) -> int:
        return 0

    async def get(self, key: str) -> Optional[ResolvedValue]:
        descriptor = describe(self.registry, key, self.module_lookup)
        if isinstance(descriptor, NotFound) or descriptor.default_value is None:
            return None
        return ResolvedValue(key=key, value=descriptor.default_value, source=self.source)

    async def all_keys(self) -> List[str]:
        return [d.key for d in self.registry.all() if d.default_value is not None]


class PersistentStoreProvider(ConfigurationProvider):
    """Values edited at runtime and kept in the settings store.

    Secrets are encrypted before they are written and decrypted on read. A
    secret that cannot be decrypted reads as an empty string so one corrupted
    row never hides the remaining settings.

    Module keys are read straight from the module settings table but are only
    writable through ``module_writer``, which owns their validation and the
    module's configured flag.
    """

    name = "PersistentStore"
    source = ConfigSource.PERSISTENT_STORE

    def __init__(
        self,
        registry: SettingRegistry,
        store: SettingsStore,
        encryption: SecretEncryptionService,
        module_lookup: Optional[ModuleKeyLookup] = None,
        module_writer: Optional[ModuleSettingWriter] = None,
    ):
        super().__init__(registry, module_lookup)
        self.store = store
        self.encryption = encryption
        self.module_writer = module_writer

    @property
    def priority(self) -> int:
        return 50

    def _reveal(self, key: str, stored: str, secret: bool) -> str:
        if not secret:
            return stored
        try:
            return self.encryption.decrypt_if_needed(stored)
        except DecryptFailure:
            logger.error(f"Failed to decrypt stored secret for setting {key}, returning an empty value")
            return ""

    async def get(self, key: str) -> Optional[ResolvedValue]:
        descriptor = self.registry.lookup(key)
        if not isinstance(descriptor, NotFound):
            try:
                record = await self.store.get_setting(key)
            except StorageFailure as e:
                logger.error(f"Failed to read setting {key} from store: {e}")
                return None
            if record is None or record.value is None:
                return None

            stored = self._reveal(key, record.value, descriptor.is_secret)
            try:
                value = convert_value(stored, descriptor.value_type)
            except TypeConversionFailure:
                logger.warning(
                    f"Stored value for setting {key} is not a valid {descriptor.value_type.value}: "
                    f"{mask_value(stored, descriptor.is_secret)}"
                )
                return None
            return ResolvedValue(
                key=key,
                value=value,
                source=self.source,
                last_modified=record.last_modified,
                modified_by=record.modified_by,
            )

        binding = self.module_lookup(key) if self.module_lookup else None
        if binding is None:
            return None
        try:
            record = await self.store.get_module_setting(binding.module_id, binding.setting_key)
        except StorageFailure as e:
            logger.error(f"Failed to read setting {binding.setting_key} of module {binding.module_id}: {e}")
            return None
        if record is None or record.is_from_environment or record.value is None:
            return None
        return ResolvedValue(
            key=key,
            value=self._reveal(key, record.value, record.is_secret or binding.descriptor.is_secret),
            source=self.source,
            last_modified=record.updated_at,
        )

    def can_write(self, key: str) -> bool:
        descriptor = self.registry.lookup(key)
        if not isinstance(descriptor, NotFound):
            return descriptor.allow_runtime_modification
        return (
            self.module_writer is not None
            and self.module_lookup is not None
            and self.module_lookup(key) is not None
        )

    async def write(self, key: str, value: Any, modified_by: Optional[str] = None) -> None:
        if not self.can_write(key):
            raise WriteUnsupportedError(self.name, key)

        if not self.registry.has(key):
            await self.module_writer(self.module_lookup(key), serialize_value(value), modified_by)
            return

        descriptor = self.registry.lookup(key)
        stored = serialize_value(value)
        if descriptor.is_secret:
            stored = self.encryption.encrypt_if_needed(stored)
        await self.store.save_setting(key, stored, modified_by)
        logger.info(f"Setting {key} stored by {modified_by}: {mask_value(value, descriptor.is_secret)}")

    async def all_keys(self) -> List[str]:
        try:
            return [record.key for record in await self.store.list_settings()]
        except StorageFailure as e:
            logger.error(f"Failed to list stored settings: {e}")
            return []
