import asyncio
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel

from shared.common_utils.env_settings import EnvironmentReader, convert_value
from shared.common_utils.exceptions import (
    ConfigValidationError,
    ImmutableSettingError,
    NoWritableProviderError,
    TypeConversionFailure,
)
from shared.common_utils.logger import logger, mask_value

from .providers import ConfigurationProvider, DefaultProvider, EnvironmentProvider
from .registry import ModuleKeyLookup, SettingRegistry, describe
from .schemas import (
    ConfigSource,
    NotFound,
    ResolvedValue,
    SettingDescriptor,
    SettingType,
    ValidationResult,
    zero_value,
)
from .sections import SECTION_KEYS
from .validator import validate_setting

SectionT = TypeVar("SectionT", bound=BaseModel)

DEFAULT_PROVIDER_TIMEOUT = 5.0


class SettingReader(ABC):
    """Read operations shared by every way of resolving settings."""

    registry: SettingRegistry
    module_lookup: Optional[ModuleKeyLookup] = None

    @abstractmethod
    async def resolve(self, key: str) -> Optional[ResolvedValue]:
        """Effective value of ``key`` with its provenance, or None when no source has it."""

    def describe(self, key: str):
        return describe(self.registry, key, self.module_lookup)

    def value_of(self, key: str, resolved: Optional[ResolvedValue], value_type: Optional[SettingType] = None) -> Any:
        descriptor = self.describe(key)
        known = not isinstance(descriptor, NotFound)

        if resolved is not None:
            value = resolved.value
            if value_type is not None and isinstance(value, str) and SettingType(value_type) != SettingType.STRING:
                try:
                    return convert_value(value, value_type)
                except TypeConversionFailure:
                    logger.warning(f"Value of {key} cannot be read as {SettingType(value_type).value}")
                    return zero_value(value_type)
            return value

        if known and descriptor.default_value is not None:
            return descriptor.default_value
        if value_type is None and known:
            value_type = descriptor.value_type
        return zero_value(value_type)

    async def get(self, key: str, value_type: Optional[SettingType] = None) -> Any:
        return self.value_of(key, await self.resolve(key), value_type)

    async def source(self, key: str) -> ConfigSource:
        resolved = await self.resolve(key)
        return resolved.source if resolved is not None else ConfigSource.DEFAULT

    async def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        return {key: await self.get(key) for key in keys}

    async def get_section(self, section_type: Type[SectionT]) -> SectionT:
        """Populate a typed settings section through its explicit field to key table."""
        try:
            field_keys = SECTION_KEYS[section_type]
        except KeyError:
            raise ValueError(f"No setting keys are mapped for section {section_type.__name__}")
        values = {field: await self.get(key) for field, key in field_keys.items()}
        return section_type(**values)


class ResolutionEngine(SettingReader):
    """Resolves settings by asking providers in descending priority order.

    A provider that fails or does not answer within ``provider_timeout``
    seconds counts as having no value, and the next provider is asked.
    """

    def __init__(
        self,
        registry: SettingRegistry,
        providers: Iterable[ConfigurationProvider],
        module_lookup: Optional[ModuleKeyLookup] = None,
        provider_timeout: float = DEFAULT_PROVIDER_TIMEOUT,
    ):
        self.registry = registry
        self.module_lookup = module_lookup
        self.providers: Tuple[ConfigurationProvider, ...] = tuple(
            sorted(providers, key=lambda provider: provider.priority, reverse=True)
        )
        self.provider_timeout = provider_timeout

    async def _query(self, provider: ConfigurationProvider, key: str) -> Optional[ResolvedValue]:
        try:
            return await asyncio.wait_for(provider.get(key), timeout=self.provider_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{provider.name} provider timed out after {self.provider_timeout}s reading {key}")
        except Exception as e:
            logger.error(f"{provider.name} provider failed reading {key}: {e}")
        return None

    async def resolve(self, key: str) -> Optional[ResolvedValue]:
        for provider in self.providers:
            resolved = await self._query(provider, key)
            if resolved is not None:
                return resolved
        return None

    def validate(self, key: str, value: Any) -> ValidationResult:
        return validate_setting(self.describe(key), value)

    async def set(self, key: str, value: Any, modified_by: str = "System") -> None:
        descriptor = self.describe(key)
        known = not isinstance(descriptor, NotFound)

        if await self.source(key) == ConfigSource.ENVIRONMENT:
            variable = descriptor.environment_variable if known else key
            raise ImmutableSettingError(
                key,
                f"Setting '{key}' is set via environment variable {variable}. "
                f"To change it, update the environment variable and restart the application.",
            )
        if known and not descriptor.allow_runtime_modification:
            raise ImmutableSettingError(
                key, f"Setting '{key}' can only be changed before startup and requires a restart"
            )

        result = self.validate(key, value)
        if not result.is_valid:
            raise ConfigValidationError(key, result.errors)

        for provider in self.providers:
            if provider.can_write(key):
                await provider.write(key, value, modified_by)
                secret = known and descriptor.is_secret
                logger.info(f"Setting {key} updated to {mask_value(value, secret)} by {modified_by}")
                return
        raise NoWritableProviderError(key)

    async def describe_settings(self, descriptors: Optional[List[SettingDescriptor]] = None) -> List[Dict[str, Any]]:
        """Effective state of each setting for operator facing listings. Secrets are masked."""
        rows = []
        for descriptor in descriptors if descriptors is not None else self.registry.ui_visible():
            resolved = await self.resolve(descriptor.key)
            value = self.value_of(descriptor.key, resolved)
            source = resolved.source if resolved is not None else ConfigSource.DEFAULT
            rows.append({
                "key": descriptor.key,
                "display_name": descriptor.display_name,
                "category": descriptor.category,
                "value": mask_value(value, True) if descriptor.is_secret else value,
                "source": source,
                "is_locked": source == ConfigSource.ENVIRONMENT or not descriptor.allow_runtime_modification,
                "last_modified": resolved.last_modified if resolved is not None else None,
                "modified_by": resolved.modified_by if resolved is not None else None,
            })
        return rows


class CachedResolutionEngine(SettingReader):
    """Caches resolutions of an already built engine for ``ttl_seconds``."""

    def __init__(
        self,
        engine: ResolutionEngine,
        ttl_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.engine = engine
        self.registry = engine.registry
        self.module_lookup = engine.module_lookup
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._cache: Dict[str, Tuple[float, Optional[ResolvedValue]]] = {}

    async def resolve(self, key: str) -> Optional[ResolvedValue]:
        now = self._clock()
        cached = self._cache.get(key)
        if cached is not None and cached[0] > now:
            return cached[1]
        resolved = await self.engine.resolve(key)
        self._cache[key] = (now + self.ttl_seconds, resolved)
        return resolved

    def invalidate(self, key: Optional[str] = None) -> None:
        if key is None:
            self._cache.clear()
        else:
            self._cache.pop(key, None)

    def validate(self, key: str, value: Any) -> ValidationResult:
        return self.engine.validate(key, value)

    async def set(self, key: str, value: Any, modified_by: str = "System") -> None:
        try:
            await self.engine.set(key, value, modified_by)
        finally:
            self.invalidate(key)


class StartupConfigReader(SettingReader):
    """Environment and defaults only, for settings needed before the store is reachable."""

    def __init__(self, registry: SettingRegistry, environment: Optional[EnvironmentReader] = None):
        self.registry = registry
        self.environment = EnvironmentProvider(registry, environment)
        self.defaults = DefaultProvider(registry)

    async def resolve(self, key: str) -> Optional[ResolvedValue]:
        resolved = await self.environment.get(key)
        if resolved is None:
            resolved = await self.defaults.get(key)
        return resolved

    async def get_value(self, key: str, fallback: Any = None) -> Any:
        resolved = await self.resolve(key)
        return resolved.value if resolved is not None else fallback

    async def has_value(self, key: str) -> bool:
        return await self.resolve(key) is not None
