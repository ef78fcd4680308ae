from typing import List, Optional, Tuple

from services.config_manager_service.config.env_settings import EngineSettings
from services.config_manager_service.src.config_manager import ConfigManager
from shared.common_utils.env_settings import EnvironmentReader
from shared.common_utils.logger import logger
from shared.db_models.store import SettingsStore

from .manifest_loader import load_module_manifests
from .module_manager import ModuleManager
from .module_registry import ExtensionModule, ModuleRegistry


async def bootstrap_configuration(
    settings: Optional[EngineSettings] = None,
    store: Optional[SettingsStore] = None,
    modules: Optional[List[ExtensionModule]] = None,
    environment: Optional[EnvironmentReader] = None,
) -> Tuple[ConfigManager, ModuleManager]:
    """Start the configuration engine and reconcile module settings.

    Modules come from ``modules`` plus any manifests found in
    ``MODULE_MANIFEST_DIR``. Module keys set through the config manager are
    stored by the module manager, and module manager writes drop the config
    manager's cached values. The caller owns the returned managers and stops
    the config manager on shutdown.
    """
    settings = settings or EngineSettings()
    registry = ModuleRegistry(modules)
    if settings.MODULE_MANIFEST_DIR:
        for module in await load_module_manifests(settings.MODULE_MANIFEST_DIR):
            registry.register(module)

    config_manager = ConfigManager(
        settings=settings,
        store=store,
        environment=environment,
        module_lookup=registry.resolve_env_key,
    )
    await config_manager.start()

    module_manager = ModuleManager(
        config_manager.store,
        registry,
        config_manager.encryption,
        config_manager.environment,
        invalidate=config_manager.invalidate,
    )
    config_manager.attach_module_writer(module_manager.write_setting)
    reports = await module_manager.initialize()
    failed = [report.module_id for report in reports if report.error]
    if failed:
        logger.warning(f"Settings of modules {', '.join(failed)} could not be reconciled")
    return config_manager, module_manager
