import asyncio
from datetime import datetime, UTC
from typing import Any, Dict, List, Optional, Set, Type

from services.config_manager_service.config.env_settings import EngineSettings
from shared.common_utils.env_settings import EnvironmentReader, load_environment
from shared.common_utils.logger import logger
from shared.common_utils.secret_encryption import SecretEncryptionService
from shared.db_models.db_interface import DatabaseInterface
from shared.db_models.store import SettingsStore

from .providers import DefaultProvider, EnvironmentProvider, PersistentStoreProvider
from .registry import ModuleKeyLookup, ModuleSettingWriter, SettingRegistry, build_default_registry
from .resolution_engine import CachedResolutionEngine, ResolutionEngine, StartupConfigReader
from .schemas import ConfigSource, ResolvedValue, ValidationResult


class ConfigManager:
    """Wires the registry, providers, resolution engine and cache for a host process."""

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        store: Optional[SettingsStore] = None,
        registry: Optional[SettingRegistry] = None,
        environment: Optional[EnvironmentReader] = None,
        module_lookup: Optional[ModuleKeyLookup] = None,
        use_cache: bool = True,
    ):
        self.settings = settings or EngineSettings()
        self.registry = registry or build_default_registry()
        self.environment = environment or EnvironmentReader()
        self.module_lookup = module_lookup
        self.module_writer: Optional[ModuleSettingWriter] = None
        self.startup = StartupConfigReader(self.registry, self.environment)
        self.encryption = SecretEncryptionService(self.settings.SQUIRREL_ENCRYPTION_KEY)
        self.store = store
        self._owns_store = store is None
        self._use_cache = use_cache
        self.engine: Optional[ResolutionEngine] = None
        self.store_provider: Optional[PersistentStoreProvider] = None
        self.reader = None
        self._config_subscribers: Set[asyncio.Queue] = set()

    async def start(self):
        """Open the store and build the resolution chain."""
        if self._owns_store:
            load_environment()
            self.store = DatabaseInterface(self.settings.DATABASE_URL)
            await self.store.connect()
            if await self.startup.get_value("SQUIRREL_DATABASE_AUTO_MIGRATE", True):
                await self.store.create_schema()

        self.store_provider = PersistentStoreProvider(
            self.registry, self.store, self.encryption, self.module_lookup, self.module_writer
        )
        providers = [
            EnvironmentProvider(self.registry, self.environment, self.module_lookup),
            self.store_provider,
            DefaultProvider(self.registry, self.module_lookup),
        ]
        self.engine = ResolutionEngine(
            self.registry,
            providers,
            module_lookup=self.module_lookup,
            provider_timeout=self.settings.PROVIDER_TIMEOUT_SECONDS,
        )
        if self._use_cache:
            self.reader = CachedResolutionEngine(self.engine, ttl_seconds=self.settings.CACHE_TTL_SECONDS)
        else:
            self.reader = self.engine
        logger.info(f"Config Manager started with {len(self.registry)} registered settings")

    async def stop(self):
        if self._owns_store and self.store is not None:
            await self.store.close()
        self.engine = None
        self.store_provider = None
        self.reader = None
        logger.info("Config Manager stopped")

    def attach_module_writer(self, writer: ModuleSettingWriter) -> None:
        """Route writes of module keys to ``writer``. Without one, module keys are read-only."""
        self.module_writer = writer
        if self.store_provider is not None:
            self.store_provider.module_writer = writer

    def invalidate(self, key: Optional[str] = None) -> None:
        """Drop cached resolutions of ``key``, or of every key when None."""
        if isinstance(self.reader, CachedResolutionEngine):
            self.reader.invalidate(key)

    def _require_started(self):
        if self.reader is None:
            raise RuntimeError("Config Manager has not been started")
        return self.reader

    async def get(self, key: str, value_type=None) -> Any:
        return await self._require_started().get(key, value_type)

    async def resolve(self, key: str) -> Optional[ResolvedValue]:
        return await self._require_started().resolve(key)

    async def source(self, key: str) -> ConfigSource:
        return await self._require_started().source(key)

    async def get_section(self, section_type: Type):
        return await self._require_started().get_section(section_type)

    def validate(self, key: str, value: Any) -> ValidationResult:
        return self._require_started().validate(key, value)

    async def set(self, key: str, value: Any, modified_by: str = "System") -> None:
        await self._require_started().set(key, value, modified_by)
        await self._notify_subscribers(key)

    async def describe_settings(self, category: Optional[str] = None) -> List[Dict[str, Any]]:
        self._require_started()
        descriptors = (
            self.registry.ui_visible_by_category(category) if category else self.registry.ui_visible()
        )
        return await self.engine.describe_settings(descriptors)

    async def subscribe_to_updates(self) -> asyncio.Queue:
        """Subscribe to setting changes made through this manager."""
        queue = asyncio.Queue()
        self._config_subscribers.add(queue)
        return queue

    async def unsubscribe_from_updates(self, queue: asyncio.Queue) -> None:
        self._config_subscribers.discard(queue)

    async def _notify_subscribers(self, key: str) -> None:
        for queue in self._config_subscribers:
            await queue.put({
                "key": key,
                "timestamp": datetime.now(UTC).isoformat(),
            })
