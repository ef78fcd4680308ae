import asyncio
import pytest
from unittest.mock import AsyncMock, patch

from services.config_manager_service.src.providers import (
    ConfigurationProvider,
    DefaultProvider,
    EnvironmentProvider,
    PersistentStoreProvider,
)
from services.config_manager_service.src.registry import SettingRegistry
from services.config_manager_service.src.resolution_engine import (
    CachedResolutionEngine,
    ResolutionEngine,
    StartupConfigReader,
)
from services.config_manager_service.src.schemas import (
    ConfigSource,
    ResolvedValue,
    SettingDescriptor,
    SettingType,
    ValidationRule,
)
from services.config_manager_service.src.sections import ContentSettings, SecuritySettings
from shared.common_utils.exceptions import (
    ConfigValidationError,
    ImmutableSettingError,
    NoWritableProviderError,
)
from shared.common_utils.logger import logger
from shared.db_models.settings_models import ModuleOperation


class StaticProvider(ConfigurationProvider):
    """Provider answering from a dict, for ordering tests."""

    name = "Static"

    def __init__(self, registry, values, priority, source=ConfigSource.PERSISTENT_STORE):
        super().__init__(registry)
        self.values = values
        self._priority = priority
        self.source = source

    @property
    def priority(self):
        return self._priority

    async def get(self, key):
        if key not in self.values:
            return None
        return ResolvedValue(key=key, value=self.values[key], source=self.source)

    async def all_keys(self):
        return list(self.values)


class BrokenProvider(StaticProvider):
    async def get(self, key):
        raise RuntimeError("backend exploded")


class SlowProvider(StaticProvider):
    async def get(self, key):
        await asyncio.sleep(10)
        return await super().get(key)


@pytest.fixture
def rules_registry():
    return SettingRegistry([
        SettingDescriptor(
            key="LIMIT",
            display_name="Limit",
            category="Test",
            value_type=SettingType.INTEGER,
            default_value=5,
            environment_variable="TEST_LIMIT",
            validation=ValidationRule(min_value=3, max_value=20, allowed_values=("5", "10")),
        ),
        SettingDescriptor(
            key="HOMEPAGE",
            display_name="Homepage",
            category="Test",
            default_value="",
            environment_variable="TEST_HOMEPAGE",
            validation=ValidationRule(must_be_url=True, regex_pattern=r"\.example\.org"),
        ),
        SettingDescriptor(
            key="API_TOKEN",
            display_name="API Token",
            category="Test",
            environment_variable="TEST_API_TOKEN",
            is_secret=True,
        ),
    ])


@pytest.fixture
def rules_engine(rules_registry, environment, store, encryption):
    return ResolutionEngine(
        rules_registry,
        [
            EnvironmentProvider(rules_registry, environment),
            PersistentStoreProvider(rules_registry, store, encryption),
            DefaultProvider(rules_registry),
        ],
    )


def test_providers_sorted_by_priority(engine):
    assert [provider.priority for provider in engine.providers] == [100, 50, 0]
    assert isinstance(engine.providers, tuple)


async def test_default_scenario_enable_caching(engine):
    assert await engine.get("SQUIRREL_ENABLE_CACHING") is True
    assert await engine.source("SQUIRREL_ENABLE_CACHING") == ConfigSource.DEFAULT


async def test_environment_below_minimum_still_wins_and_blocks_set(engine, env_vars):
    env_vars["SQUIRREL_MAX_LOGIN_ATTEMPTS"] = "2"
    with patch.object(logger, "warning"):
        assert await engine.get("SQUIRREL_MAX_LOGIN_ATTEMPTS") == 2
        assert await engine.source("SQUIRREL_MAX_LOGIN_ATTEMPTS") == ConfigSource.ENVIRONMENT
        with patch.object(engine, "validate", wraps=engine.validate) as validate:
            with pytest.raises(ImmutableSettingError) as exc_info:
                await engine.set("SQUIRREL_MAX_LOGIN_ATTEMPTS", 2)
    validate.assert_not_called()
    assert "restart" in str(exc_info.value)


async def test_set_blocked_for_environment_even_with_valid_value(engine, env_vars):
    env_vars["SQUIRREL_SITE_NAME"] = "Operator Wiki"
    with pytest.raises(ImmutableSettingError):
        await engine.set("SQUIRREL_SITE_NAME", "Perfectly valid")


async def test_higher_priority_provider_wins(registry):
    low = StaticProvider(registry, {"SQUIRREL_SITE_NAME": "low", "ONLY_LOW": "x"}, 10)
    high = StaticProvider(registry, {"SQUIRREL_SITE_NAME": "high"}, 90, ConfigSource.ENVIRONMENT)
    engine = ResolutionEngine(registry, [low, high])
    assert await engine.get("SQUIRREL_SITE_NAME") == "high"
    assert await engine.source("SQUIRREL_SITE_NAME") == ConfigSource.ENVIRONMENT
    assert await engine.get("ONLY_LOW") == "x"


async def test_store_overrides_default_and_environment_overrides_store(engine, env_vars):
    await engine.set("SQUIRREL_SITE_NAME", "Team Wiki", modified_by="alice")
    assert await engine.get("SQUIRREL_SITE_NAME") == "Team Wiki"
    resolved = await engine.resolve("SQUIRREL_SITE_NAME")
    assert resolved.source == ConfigSource.PERSISTENT_STORE
    assert resolved.modified_by == "alice"

    env_vars["SQUIRREL_SITE_NAME"] = "Ops Wiki"
    assert await engine.get("SQUIRREL_SITE_NAME") == "Ops Wiki"
    assert await engine.source("SQUIRREL_SITE_NAME") == ConfigSource.ENVIRONMENT


async def test_failing_provider_falls_through(registry):
    broken = BrokenProvider(registry, {}, 100)
    fallback = StaticProvider(registry, {"SQUIRREL_SITE_NAME": "fallback"}, 0, ConfigSource.DEFAULT)
    engine = ResolutionEngine(registry, [broken, fallback])
    with patch.object(logger, "error") as error:
        assert await engine.get("SQUIRREL_SITE_NAME") == "fallback"
    error.assert_called_once()


async def test_slow_provider_times_out_and_falls_through(registry):
    slow = SlowProvider(registry, {"SQUIRREL_SITE_NAME": "slow"}, 100)
    fallback = StaticProvider(registry, {"SQUIRREL_SITE_NAME": "fast"}, 0, ConfigSource.DEFAULT)
    engine = ResolutionEngine(registry, [slow, fallback], provider_timeout=0.05)
    with patch.object(logger, "warning") as warning:
        assert await engine.get("SQUIRREL_SITE_NAME") == "fast"
    warning.assert_called_once()


async def test_caller_cancellation_propagates(registry):
    slow = SlowProvider(registry, {"SQUIRREL_SITE_NAME": "slow"}, 100)
    engine = ResolutionEngine(registry, [slow], provider_timeout=30)
    task = asyncio.create_task(engine.get("SQUIRREL_SITE_NAME"))
    await asyncio.sleep(0.01)
    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task


async def test_fallbacks_when_every_provider_is_absent(registry):
    engine = ResolutionEngine(registry, [])
    assert await engine.get("SQUIRREL_SITE_NAME") == "Squirrel Wiki"
    assert await engine.get("SQUIRREL_SEED_DATA_FILE_PATH") == ""
    assert await engine.get("UNKNOWN_KEY") is None
    assert await engine.get("UNKNOWN_KEY", SettingType.INTEGER) == 0
    assert await engine.get("UNKNOWN_KEY", SettingType.BOOLEAN) is False
    assert await engine.source("UNKNOWN_KEY") == ConfigSource.DEFAULT


async def test_requested_type_converts_string_values(engine, env_vars):
    env_vars["CUSTOM_PORT"] = "8080"
    assert await engine.get("CUSTOM_PORT", SettingType.INTEGER) == 8080


def test_validation_collects_every_violation(rules_engine):
    result = rules_engine.validate("LIMIT", 25)
    assert not result.is_valid
    assert result.errors == ["Limit must be at most 20", "Limit must be one of: 5, 10"]


def test_validation_reports_non_numbers(rules_engine):
    result = rules_engine.validate("LIMIT", "ten")
    assert result.errors[0] == "Limit must be a number"
    assert len(result.errors) == 2


def test_validation_allowed_values_case_insensitive(rules_registry, environment, store, encryption):
    engine = ResolutionEngine(rules_registry, [])
    assert engine.validate("LIMIT", "10").is_valid
    assert not engine.validate("LIMIT", 2).is_valid


def test_validation_url_and_pattern(rules_engine):
    assert rules_engine.validate("HOMEPAGE", "").is_valid
    assert rules_engine.validate("HOMEPAGE", "https://wiki.example.org").is_valid
    assert rules_engine.validate("HOMEPAGE", "ftp://wiki.example.org").errors == [
        "Homepage must be a valid HTTP/HTTPS URL"
    ]
    assert rules_engine.validate("HOMEPAGE", "https://elsewhere.com").errors == [
        "Homepage does not match the required pattern"
    ]


def test_validation_unknown_key(engine):
    result = engine.validate("NOPE", "x")
    assert result.errors == ["Unknown configuration key: NOPE"]


async def test_set_rejects_invalid_value(engine, store):
    with pytest.raises(ConfigValidationError) as exc_info:
        await engine.set("SQUIRREL_MAX_LOGIN_ATTEMPTS", 50)
    assert exc_info.value.errors == ["Maximum Login Attempts must be at most 20"]
    assert await store.get_setting("SQUIRREL_MAX_LOGIN_ATTEMPTS") is None


async def test_set_rejects_startup_only_setting(engine):
    with pytest.raises(ImmutableSettingError):
        await engine.set("SQUIRREL_CACHE_PROVIDER", "Redis")


async def test_set_without_writable_provider(registry, environment):
    engine = ResolutionEngine(registry, [EnvironmentProvider(registry, environment), DefaultProvider(registry)])
    with pytest.raises(NoWritableProviderError):
        await engine.set("SQUIRREL_SITE_NAME", "Docs")


async def test_secret_set_is_encrypted_at_rest(rules_engine, store):
    await rules_engine.set("API_TOKEN", "tok-123")
    record = await store.get_setting("API_TOKEN")
    assert record.value.startswith("ENC:")
    assert "tok-123" not in record.value
    assert await rules_engine.get("API_TOKEN") == "tok-123"


async def test_get_section_uses_explicit_mapping(engine, env_vars):
    env_vars["SQUIRREL_SESSION_TIMEOUT_MINUTES"] = "90"
    await engine.set("SQUIRREL_MAX_PAGE_TITLE_LENGTH", 120)
    security = await engine.get_section(SecuritySettings)
    content = await engine.get_section(ContentSettings)
    assert security.session_timeout_minutes == 90
    assert security.max_login_attempts == 5
    assert content.max_page_title_length == 120
    assert content.enable_page_versioning is False


async def test_get_section_rejects_unmapped_types(engine):
    with pytest.raises(ValueError):
        await engine.get_section(ResolvedValue)


async def test_module_keys_resolve_through_engine(engine, module_manager, env_vars, store):
    with patch.object(logger, "warning"):
        await module_manager.initialize()
    assert await engine.get("PLUGIN_SQUIRREL_OIDC_SCOPE") == "openid profile email"
    await engine.set("PLUGIN_SQUIRREL_OIDC_AUTHORITY", "https://login.example.org")
    assert await engine.source("PLUGIN_SQUIRREL_OIDC_AUTHORITY") == ConfigSource.PERSISTENT_STORE
    record = await store.get_module_setting("Squirrel.Oidc", "Authority")
    assert record.value == "https://login.example.org"

    with pytest.raises(ConfigValidationError):
        await engine.set("PLUGIN_SQUIRREL_OIDC_AUTHORITY", "not a url")

    env_vars["PLUGIN_SQUIRREL_OIDC_AUTHORITY"] = "https://sso.example.org"
    with pytest.raises(ImmutableSettingError):
        await engine.set("PLUGIN_SQUIRREL_OIDC_AUTHORITY", "https://other.example.org")


async def test_describe_settings_masks_and_locks(engine, env_vars, registry):
    env_vars["SQUIRREL_SITE_NAME"] = "Ops Wiki"
    rows = {row["key"]: row for row in await engine.describe_settings(registry.all())}
    assert rows["SQUIRREL_SITE_NAME"]["is_locked"] is True
    assert rows["SQUIRREL_SITE_NAME"]["source"] == ConfigSource.ENVIRONMENT
    assert rows["SQUIRREL_TIMEZONE"]["is_locked"] is False
    assert rows["SQUIRREL_CACHE_PROVIDER"]["is_locked"] is True
    assert rows["SQUIRREL_ADMIN_PASSWORD"]["value"] == "***"


async def test_cached_engine_reuses_resolutions(engine):
    cached = CachedResolutionEngine(engine, ttl_seconds=60)
    with patch.object(engine, "resolve", wraps=engine.resolve) as resolve:
        await cached.get("SQUIRREL_SITE_NAME")
        await cached.get("SQUIRREL_SITE_NAME")
        await cached.source("SQUIRREL_SITE_NAME")
    assert resolve.call_count == 1


async def test_cached_engine_invalidates_on_set(engine):
    cached = CachedResolutionEngine(engine, ttl_seconds=60)
    assert await cached.get("SQUIRREL_SITE_NAME") == "Squirrel Wiki"
    await cached.set("SQUIRREL_SITE_NAME", "Renamed", "bob")
    assert await cached.get("SQUIRREL_SITE_NAME") == "Renamed"


async def test_cached_engine_expires_entries(engine, env_vars):
    now = [1000.0]
    cached = CachedResolutionEngine(engine, ttl_seconds=5, clock=lambda: now[0])
    assert await cached.get("SQUIRREL_TIMEZONE") == "UTC"
    env_vars["SQUIRREL_TIMEZONE"] = "Europe/Paris"
    assert await cached.get("SQUIRREL_TIMEZONE") == "UTC"
    now[0] += 6
    assert await cached.get("SQUIRREL_TIMEZONE") == "Europe/Paris"
    env_vars["SQUIRREL_TIMEZONE"] = "Asia/Tokyo"
    cached.invalidate()
    assert await cached.get("SQUIRREL_TIMEZONE") == "Asia/Tokyo"


async def test_startup_reader_ignores_store(registry, environment, env_vars, store):
    await store.save_setting("SQUIRREL_CACHE_PROVIDER", "Redis", "seed")
    reader = StartupConfigReader(registry, environment)
    assert await reader.get_value("SQUIRREL_CACHE_PROVIDER") == "Memory"
    env_vars["SQUIRREL_CACHE_PROVIDER"] = "Redis"
    assert await reader.get_value("SQUIRREL_CACHE_PROVIDER") == "Redis"
    assert await reader.source("SQUIRREL_CACHE_PROVIDER") == ConfigSource.ENVIRONMENT
    assert await reader.get_value("SQUIRREL_SEED_DATA_FILE_PATH", "seed.json") == "seed.json"
    assert not await reader.has_value("SQUIRREL_SEED_DATA_FILE_PATH")
    assert await reader.has_value("SQUIRREL_DATABASE_AUTO_MIGRATE")


async def test_store_failure_on_read_falls_back_to_default(engine, store):
    store.get_setting = AsyncMock(side_effect=RuntimeError("connection reset"))
    with patch.object(logger, "error"):
        assert await engine.get("SQUIRREL_SITE_NAME") == "Squirrel Wiki"


async def test_get_many(engine, env_vars):
    env_vars["SQUIRREL_TIMEZONE"] = "Europe/Oslo"
    values = await engine.get_many(["SQUIRREL_TIMEZONE", "SQUIRREL_ENABLE_CACHING"])
    assert values == {"SQUIRREL_TIMEZONE": "Europe/Oslo", "SQUIRREL_ENABLE_CACHING": True}


async def test_module_key_write_recomputes_configured_flag(engine, module_manager, store):
    with patch.object(logger, "warning"):
        await module_manager.initialize()
    assert not (await store.get_module("lucene-search")).configured

    await engine.set("PLUGIN_LUCENE_SEARCH_INDEXPATH", "/idx", modified_by="erin")
    assert (await store.get_module("lucene-search")).configured
    assert (await module_manager.enable("lucene-search")).enabled

    configure = await module_manager.audit.history("lucene-search", ModuleOperation.CONFIGURE)
    assert configure[0].username == "erin"


async def test_module_key_write_checks_module_value_types(engine, module_manager, store):
    with patch.object(logger, "warning"):
        await module_manager.initialize()
    with pytest.raises(ConfigValidationError) as exc_info:
        await engine.set("PLUGIN_LUCENE_SEARCH_MAXRESULTS", "lots")
    assert "MaxResults: Max Results must be a valid number" in exc_info.value.errors
    assert (await store.get_module_setting("lucene-search", "MaxResults")).value == "50"


async def test_module_keys_read_only_without_writer(registry, store, encryption, module_registry):
    provider = PersistentStoreProvider(registry, store, encryption, module_registry.resolve_env_key)
    engine = ResolutionEngine(registry, [provider], module_lookup=module_registry.resolve_env_key)
    assert not provider.can_write("PLUGIN_LUCENE_SEARCH_INDEXPATH")
    with pytest.raises(NoWritableProviderError):
        await engine.set("PLUGIN_LUCENE_SEARCH_INDEXPATH", "/idx")
