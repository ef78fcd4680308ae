from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from services.config_manager_service.src.schemas import ModuleKeyBinding
from shared.common_utils.logger import logger

from .schemas import ModuleConfigItem


class ExtensionModule(ABC):
    """A pluggable extension with its own configuration schema and lifecycle hooks."""

    module_id: str
    name: str
    version: str = "1.0.0"
    description: str = ""
    is_core: bool = False

    @abstractmethod
    def get_configuration_schema(self) -> List[ModuleConfigItem]:
        ...

    async def initialize(self, configuration: Dict[str, str]) -> None:
        logger.info(f"Module {self.module_id} initialized")

    async def shutdown(self) -> None:
        logger.info(f"Module {self.module_id} shut down")


class ManifestModule(ExtensionModule):
    """Module declared by a manifest file rather than by code."""

    def __init__(self, manifest: Dict[str, Any]):
        self.module_id = manifest["id"]
        self.name = manifest.get("name", self.module_id)
        self.version = str(manifest.get("version", "1.0.0"))
        self.description = manifest.get("description", "")
        self.is_core = bool(manifest.get("is_core", False))
        self._schema = [ModuleConfigItem(**item) for item in manifest.get("configuration", [])]
        self.configuration: Dict[str, str] = {}

    def get_configuration_schema(self) -> List[ModuleConfigItem]:
        return list(self._schema)

    async def initialize(self, configuration: Dict[str, str]) -> None:
        self.configuration = dict(configuration)
        await super().initialize(configuration)


class ModuleRegistry:
    """Registered extension modules, plus the index of their environment variable names."""

    def __init__(self, modules: Optional[List[ExtensionModule]] = None):
        self._modules: Dict[str, ExtensionModule] = {}
        self._env_keys: Dict[str, ModuleKeyBinding] = {}
        for module in modules or []:
            self.register(module)

    def register(self, module: ExtensionModule) -> None:
        if module.module_id in self._modules:
            raise ValueError(f"Module '{module.module_id}' is already registered")
        bindings = [item.to_binding(module.module_id) for item in module.get_configuration_schema()]
        for binding in bindings:
            if binding.descriptor.key in self._env_keys:
                raise ValueError(
                    f"Environment variable {binding.descriptor.key} of module '{module.module_id}' "
                    f"is already used by module '{self._env_keys[binding.descriptor.key].module_id}'"
                )
        self._modules[module.module_id] = module
        for binding in bindings:
            self._env_keys[binding.descriptor.key] = binding
        logger.debug(f"Registered module {module.module_id} with {len(bindings)} configuration keys")

    def get(self, module_id: str) -> Optional[ExtensionModule]:
        return self._modules.get(module_id)

    def all(self) -> List[ExtensionModule]:
        return list(self._modules.values())

    def module_ids(self) -> List[str]:
        return list(self._modules)

    def resolve_env_key(self, variable: str) -> Optional[ModuleKeyBinding]:
        """Map a ``PLUGIN_...`` variable name back to its module and schema key."""
        return self._env_keys.get(variable)

    def __len__(self) -> int:
        return len(self._modules)
