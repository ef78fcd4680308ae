import pytest
from typing import Dict, List

from services.config_manager_service.src.providers import (
    DefaultProvider,
    EnvironmentProvider,
    PersistentStoreProvider,
)
from services.config_manager_service.src.registry import build_default_registry
from services.config_manager_service.src.resolution_engine import ResolutionEngine
from services.module_manager_service.src.module_manager import ModuleManager
from services.module_manager_service.src.module_registry import ExtensionModule, ModuleRegistry
from services.module_manager_service.src.schemas import ModuleConfigItem, ModuleConfigType
from shared.common_utils.env_settings import EnvironmentReader
from shared.common_utils.secret_encryption import SecretEncryptionService
from shared.db_models.memory_store import InMemorySettingsStore


class LuceneSearchModule(ExtensionModule):
    """Search module with one required key and no default."""

    module_id = "lucene-search"
    name = "Lucene Search"
    version = "1.0.0"

    def __init__(self):
        self.initialized_with = None
        self.shutdown_calls = 0

    def get_configuration_schema(self) -> List[ModuleConfigItem]:
        return [
            ModuleConfigItem(key="IndexPath", display_name="Index Path", is_required=True),
            ModuleConfigItem(
                key="MaxResults", display_name="Max Results", type=ModuleConfigType.NUMBER, default_value="50"
            ),
        ]

    async def initialize(self, configuration: Dict[str, str]) -> None:
        self.initialized_with = dict(configuration)

    async def shutdown(self) -> None:
        self.shutdown_calls += 1


class OidcModule(ExtensionModule):
    """Authentication module with a secret and a URL."""

    module_id = "Squirrel.Oidc"
    name = "OpenID Connect"
    version = "1.2.0"

    def __init__(self):
        self.initialized_with = None

    def get_configuration_schema(self) -> List[ModuleConfigItem]:
        return [
            ModuleConfigItem(key="Authority", display_name="Authority", type=ModuleConfigType.URL, is_required=True),
            ModuleConfigItem(key="ClientId", display_name="Client ID", is_required=True),
            ModuleConfigItem(
                key="ClientSecret",
                display_name="Client Secret",
                type=ModuleConfigType.SECRET,
                is_required=True,
                is_secret=True,
            ),
            ModuleConfigItem(key="Scope", display_name="Scope", default_value="openid profile email"),
            ModuleConfigItem(
                key="Prompt",
                display_name="Prompt",
                type=ModuleConfigType.DROPDOWN,
                dropdown_options=["login", "consent", "none"],
            ),
        ]

    async def initialize(self, configuration: Dict[str, str]) -> None:
        self.initialized_with = dict(configuration)


class CoreMarkdownModule(ExtensionModule):
    module_id = "core-markdown"
    name = "Markdown"
    is_core = True

    def get_configuration_schema(self) -> List[ModuleConfigItem]:
        return [ModuleConfigItem(key="Flavor", display_name="Flavor", default_value="gfm")]


@pytest.fixture
def env_vars():
    """Environment variables seen by the code under test."""
    return {}


@pytest.fixture
def environment(env_vars):
    return EnvironmentReader(env_vars)


@pytest.fixture
def registry():
    return build_default_registry()


@pytest.fixture
def store():
    return InMemorySettingsStore()


@pytest.fixture
def encryption():
    return SecretEncryptionService("component-test-key")


@pytest.fixture
def lucene_module():
    return LuceneSearchModule()


@pytest.fixture
def oidc_module():
    return OidcModule()


@pytest.fixture
def core_module():
    return CoreMarkdownModule()


@pytest.fixture
def module_registry(lucene_module, oidc_module, core_module):
    return ModuleRegistry([lucene_module, oidc_module, core_module])


@pytest.fixture
def module_manager(store, module_registry, encryption, environment):
    return ModuleManager(store, module_registry, encryption, environment)


@pytest.fixture
def engine(registry, environment, store, encryption, module_registry, module_manager):
    lookup = module_registry.resolve_env_key
    providers = [
        DefaultProvider(registry, lookup),
        EnvironmentProvider(registry, environment, lookup),
        PersistentStoreProvider(registry, store, encryption, lookup, module_manager.write_setting),
    ]
    return ResolutionEngine(registry, providers, module_lookup=lookup, provider_timeout=1.0)
