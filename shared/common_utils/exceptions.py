from typing import List, Optional


class ConfigurationError(Exception):
    """Base class for every error raised by the configuration engine."""


class ImmutableSettingError(ConfigurationError):
    """Write attempted on a setting that cannot change while the process runs."""

    def __init__(self, key: str, message: Optional[str] = None):
        self.key = key
        super().__init__(message or f"Setting '{key}' cannot be modified at runtime")


class ConfigValidationError(ConfigurationError):
    def __init__(self, key: str, errors: List[str]):
        self.key = key
        self.errors = list(errors)
        super().__init__(f"Validation failed for '{key}': {'; '.join(self.errors)}")


class NoWritableProviderError(ConfigurationError):
    def __init__(self, key: str):
        self.key = key
        super().__init__(f"No writable configuration provider found for key: {key}")


class WriteUnsupportedError(ConfigurationError):
    """Raised by read-only providers."""

    def __init__(self, provider: str, key: str):
        self.provider = provider
        self.key = key
        super().__init__(f"{provider} provider is read-only and cannot store '{key}'")


class TypeConversionFailure(ConfigurationError):
    def __init__(self, raw_value: str, value_type: str):
        self.raw_value = raw_value
        self.value_type = value_type
        super().__init__(f"Cannot convert value to {value_type}")


class StorageFailure(ConfigurationError):
    """The settings store failed to read or write."""


class DecryptFailure(ConfigurationError):
    """A stored secret could not be decrypted."""


class LockedByEnvironmentError(ConfigurationError):
    def __init__(self, module_id: str, variable: str):
        self.module_id = module_id
        self.variable = variable
        super().__init__(
            f"Module '{module_id}' enabled state is controlled by environment variable "
            f"{variable} and cannot be changed"
        )


class UnknownModuleError(ConfigurationError):
    def __init__(self, module_id: str):
        self.module_id = module_id
        super().__init__(f"Module '{module_id}' not found")


class ModuleNotConfiguredError(ConfigurationError):
    def __init__(self, module_id: str, missing: Optional[List[str]] = None):
        self.module_id = module_id
        self.missing = list(missing or [])
        detail = f" (missing: {', '.join(self.missing)})" if self.missing else ""
        super().__init__(f"Module '{module_id}' must be configured before it can be enabled{detail}")


class CoreModuleDeletionError(ConfigurationError):
    def __init__(self, module_id: str):
        self.module_id = module_id
        super().__init__(f"Core module '{module_id}' cannot be deleted")
