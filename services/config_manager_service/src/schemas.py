from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class ConfigSource(str, Enum):
    ENVIRONMENT = "environment"
    PERSISTENT_STORE = "persistent_store"
    DEFAULT = "default"


class SettingType(str, Enum):
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"
    DECIMAL = "decimal"
    BOOLEAN = "boolean"


ZERO_VALUES = {
    SettingType.STRING: "",
    SettingType.INTEGER: 0,
    SettingType.FLOAT: 0.0,
    SettingType.DECIMAL: Decimal(0),
    SettingType.BOOLEAN: False,
}


def zero_value(value_type: Optional[SettingType]) -> Any:
    if value_type is None:
        return None
    return ZERO_VALUES[SettingType(value_type)]


class ValidationRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_value: Optional[int] = Field(None, description="Inclusive lower bound for numeric values")
    max_value: Optional[int] = Field(None, description="Inclusive upper bound for numeric values")
    allowed_values: Optional[Tuple[str, ...]] = Field(None, description="Case-insensitive set of accepted values")
    must_be_url: bool = Field(False, description="Value must be an absolute http or https URL")
    regex_pattern: Optional[str] = Field(None, description="Pattern the value must match")


class SettingDescriptor(BaseModel):
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., description="Unique setting key")
    display_name: str = Field(..., description="Operator facing name")
    description: str = Field("", description="Operator facing description")
    category: str = Field(..., description="Grouping used by settings screens")
    value_type: SettingType = Field(SettingType.STRING, description="Declared value type")
    default_value: Any = Field(None, description="Compiled-in default, None when there is none")
    environment_variable: str = Field(..., description="Environment variable that overrides this setting")
    is_secret: bool = Field(False, description="Value is encrypted at rest and masked in logs")
    allow_runtime_modification: bool = Field(True, description="May change without a restart")
    is_visible_in_ui: bool = Field(True, description="Shown to operators")
    validation: Optional[ValidationRule] = Field(None, description="Optional validation rule")


class NotFound(BaseModel):
    """Registry lookup result for a key that is not a recognised setting."""

    model_config = ConfigDict(frozen=True)

    key: str

    def __bool__(self) -> bool:
        return False


class ResolvedValue(BaseModel):
    key: str = Field(..., description="Setting key")
    value: Any = Field(None, description="Typed effective value")
    source: ConfigSource = Field(..., description="Provider that supplied the value")
    last_modified: Optional[datetime] = Field(None, description="Only set for stored values")
    modified_by: Optional[str] = Field(None, description="Only set for stored values")


class ValidationResult(BaseModel):
    is_valid: bool = Field(..., description="Whether every check passed")
    errors: List[str] = Field(default_factory=list, description="Every violation, in check order")

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls(is_valid=True)

    @classmethod
    def failure(cls, errors: List[str]) -> "ValidationResult":
        return cls(is_valid=False, errors=list(errors))


class ModuleKeyBinding(BaseModel):
    """Ties a dynamically named module environment key back to its module."""

    module_id: str = Field(..., description="Owning module")
    setting_key: str = Field(..., description="Key inside the module schema")
    descriptor: SettingDescriptor = Field(..., description="Descriptor synthesised from the module schema")
