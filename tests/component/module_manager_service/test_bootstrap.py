from unittest.mock import patch

from services.config_manager_service.config.env_settings import EngineSettings
from services.config_manager_service.src.schemas import ConfigSource
from services.module_manager_service.src.bootstrap import bootstrap_configuration
from shared.common_utils.logger import logger

DIAGRAMS_MANIFEST = """
id: diagrams
name: Diagrams
configuration:
  - key: RendererUrl
    display_name: Renderer URL
    type: url
    default_value: https://kroki.example.org
"""


async def test_bootstrap_wires_modules_into_engine(tmp_path, store, environment, env_vars, lucene_module):
    (tmp_path / "diagrams.yaml").write_text(DIAGRAMS_MANIFEST)
    settings = EngineSettings(
        _env_file=None, SQUIRREL_ENCRYPTION_KEY="bootstrap-key", MODULE_MANIFEST_DIR=str(tmp_path)
    )
    env_vars["PLUGIN_LUCENE_SEARCH_ENABLED"] = "true"
    env_vars["PLUGIN_LUCENE_SEARCH_INDEXPATH"] = "/srv/index"

    config_manager, module_manager = await bootstrap_configuration(
        settings=settings, store=store, modules=[lucene_module], environment=environment
    )
    try:
        assert module_manager.registry.module_ids() == ["lucene-search", "diagrams"]
        assert lucene_module.initialized_with["IndexPath"] == "/srv/index"
        assert (await store.get_module("diagrams")).configured

        assert await config_manager.get("PLUGIN_LUCENE_SEARCH_INDEXPATH") == "/srv/index"
        assert await config_manager.source("PLUGIN_LUCENE_SEARCH_INDEXPATH") == ConfigSource.ENVIRONMENT
        assert await config_manager.get("PLUGIN_DIAGRAMS_RENDERERURL") == "https://kroki.example.org"
        assert module_manager.encryption is config_manager.encryption
    finally:
        await config_manager.stop()


async def test_bootstrap_reports_failed_modules(store, environment, lucene_module):
    settings = EngineSettings(_env_file=None, SQUIRREL_ENCRYPTION_KEY="bootstrap-key")
    with patch.object(store, "get_module_settings", side_effect=RuntimeError("store offline")), \
            patch.object(logger, "warning") as warning, patch.object(logger, "error"):
        config_manager, _ = await bootstrap_configuration(
            settings=settings, store=store, modules=[lucene_module], environment=environment
        )
    assert any("lucene-search" in call[0][0] for call in warning.call_args_list)
    await config_manager.stop()


async def test_module_writes_are_visible_through_cached_engine(store, environment, lucene_module):
    settings = EngineSettings(_env_file=None, SQUIRREL_ENCRYPTION_KEY="bootstrap-key", CACHE_TTL_SECONDS=3600)
    with patch.object(logger, "warning"):
        config_manager, module_manager = await bootstrap_configuration(
            settings=settings, store=store, modules=[lucene_module], environment=environment
        )
    try:
        await module_manager.update_configuration("lucene-search", {"IndexPath": "/old"})
        assert await config_manager.get("PLUGIN_LUCENE_SEARCH_INDEXPATH") == "/old"
        await module_manager.update_configuration("lucene-search", {"IndexPath": "/new"})
        assert await config_manager.get("PLUGIN_LUCENE_SEARCH_INDEXPATH") == "/new"
    finally:
        await config_manager.stop()


async def test_module_key_set_through_config_manager_configures_module(store, environment, lucene_module):
    settings = EngineSettings(_env_file=None, SQUIRREL_ENCRYPTION_KEY="bootstrap-key")
    with patch.object(logger, "warning"):
        config_manager, module_manager = await bootstrap_configuration(
            settings=settings, store=store, modules=[lucene_module], environment=environment
        )
    try:
        assert await config_manager.get("PLUGIN_LUCENE_SEARCH_INDEXPATH") == ""
        await config_manager.set("PLUGIN_LUCENE_SEARCH_INDEXPATH", "/idx", "frank")
        assert (await module_manager.get_configuration("lucene-search"))["IndexPath"] == "/idx"
        assert (await store.get_module("lucene-search")).configured
        assert (await module_manager.enable("lucene-search")).enabled
        assert lucene_module.initialized_with["IndexPath"] == "/idx"
    finally:
        await config_manager.stop()
