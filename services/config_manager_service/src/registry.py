from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple, Union

from .catalog import core_settings
from .schemas import ModuleKeyBinding, NotFound, SettingDescriptor


class SettingRegistry:
    """Read-only table of setting descriptors keyed by setting key."""

    def __init__(self, descriptors: Iterable[SettingDescriptor]):
        table: Dict[str, SettingDescriptor] = {}
        for descriptor in descriptors:
            if descriptor.key in table:
                raise ValueError(f"Duplicate setting key: {descriptor.key}")
            table[descriptor.key] = descriptor
        self._descriptors: Tuple[SettingDescriptor, ...] = tuple(table.values())
        self._by_key = table

    def lookup(self, key: str) -> Union[SettingDescriptor, NotFound]:
        descriptor = self._by_key.get(key)
        if descriptor is None:
            return NotFound(key=key)
        return descriptor

    def has(self, key: str) -> bool:
        return key in self._by_key

    def keys(self) -> List[str]:
        return list(self._by_key)

    def all(self) -> List[SettingDescriptor]:
        return list(self._descriptors)

    def by_category(self, category: str) -> List[SettingDescriptor]:
        category = category.lower()
        return [d for d in self._descriptors if d.category.lower() == category]

    def categories(self) -> List[str]:
        seen: List[str] = []
        for descriptor in self._descriptors:
            if descriptor.category not in seen:
                seen.append(descriptor.category)
        return seen

    def ui_visible(self) -> List[SettingDescriptor]:
        return [d for d in self._descriptors if d.is_visible_in_ui]

    def ui_visible_by_category(self, category: str) -> List[SettingDescriptor]:
        return [d for d in self.by_category(category) if d.is_visible_in_ui]

    def __len__(self) -> int:
        return len(self._descriptors)


def build_default_registry() -> SettingRegistry:
    """Build the registry of core settings. Call once at startup and inject the result."""
    return SettingRegistry(core_settings())


ModuleKeyLookup = Callable[[str], Optional[ModuleKeyBinding]]
# Stores a plain (unencrypted) value for a module key on behalf of modified_by
ModuleSettingWriter = Callable[[ModuleKeyBinding, Optional[str], Optional[str]], Awaitable[None]]


def describe(
    registry: SettingRegistry,
    key: str,
    module_lookup: Optional[ModuleKeyLookup] = None,
) -> Union[SettingDescriptor, NotFound]:
    """Find the descriptor for a core key, or for a module key when a module lookup is given."""
    descriptor = registry.lookup(key)
    if isinstance(descriptor, NotFound) and module_lookup is not None:
        binding = module_lookup(key)
        if binding is not None:
            return binding.descriptor
    return descriptor
