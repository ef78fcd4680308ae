from typing import Dict, Iterable, List, Optional

from .schemas import ModuleConfigItem, ModuleConfigType

SECRET_MASK = "••••••••"


def is_secret_item(item: ModuleConfigItem) -> bool:
    return item.is_secret or item.type == ModuleConfigType.SECRET


def merge_with_defaults(config: Dict[str, str], schema: Iterable[ModuleConfigItem]) -> Dict[str, str]:
    """Add schema defaults for keys the configuration does not mention."""
    result = dict(config)
    for item in schema:
        if item.key not in result and item.default_value:
            result[item.key] = item.default_value
    return result


def filter_by_schema(config: Dict[str, Optional[str]], schema: Iterable[ModuleConfigItem]) -> Dict[str, Optional[str]]:
    known = {item.key for item in schema}
    return {key: value for key, value in config.items() if key in known}


def missing_required_keys(config: Dict[str, Optional[str]], schema: Iterable[ModuleConfigItem]) -> List[str]:
    return [
        item.key
        for item in schema
        if item.is_required and not (config.get(item.key) or "").strip()
    ]


def mask_secrets(config: Dict[str, str], schema: Iterable[ModuleConfigItem], mask: str = SECRET_MASK) -> Dict[str, str]:
    result = dict(config)
    for item in schema:
        if is_secret_item(item) and result.get(item.key):
            result[item.key] = mask
    return result
