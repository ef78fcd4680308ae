"""
Environment variable naming for extension modules.

For module ``lucene-search`` and schema key ``IndexPath`` the controlling
variable is ``PLUGIN_LUCENE_SEARCH_INDEXPATH``; the module wide enable switch
is ``PLUGIN_LUCENE_SEARCH_ENABLED``.
"""

MODULE_ENV_PREFIX = "PLUGIN_"
ENABLED_SUFFIX = "ENABLED"


def environment_prefix(module_id: str) -> str:
    if not module_id or not module_id.strip():
        raise ValueError("Module id cannot be empty")
    return f"{MODULE_ENV_PREFIX}{module_id.upper().replace('-', '_').replace('.', '_')}_"


def environment_variable_name(module_id: str, setting_key: str) -> str:
    if not setting_key or not setting_key.strip():
        raise ValueError("Setting key cannot be empty")
    return f"{environment_prefix(module_id)}{setting_key.upper()}"


def enabled_variable_name(module_id: str) -> str:
    return f"{environment_prefix(module_id)}{ENABLED_SUFFIX}"
