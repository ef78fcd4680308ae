from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from services.config_manager_service.src.schemas import (
    ModuleKeyBinding,
    SettingDescriptor,
    SettingType,
    ValidationRule,
)

from .naming import environment_variable_name


class ModuleConfigType(str, Enum):
    TEXT = "text"
    URL = "url"
    SECRET = "secret"
    BOOLEAN = "boolean"
    NUMBER = "number"
    DROPDOWN = "dropdown"
    TEXTAREA = "textarea"


class ModuleConfigItem(BaseModel):
    key: str = Field(..., description="Key inside the module configuration")
    display_name: str = Field(..., description="Operator facing name")
    description: str = Field("", description="Operator facing description")
    type: ModuleConfigType = Field(ModuleConfigType.TEXT, description="Kind of value")
    is_required: bool = Field(False, description="Module cannot be enabled without a value")
    is_secret: bool = Field(False, description="Encrypted at rest and masked in logs")
    default_value: Optional[str] = Field(None, description="Value used when nothing else is set")
    validation_pattern: Optional[str] = Field(None, description="Pattern the value must match")
    validation_error_message: Optional[str] = Field(None, description="Message shown when the pattern fails")
    dropdown_options: Optional[List[str]] = Field(None, description="Accepted values for dropdowns")
    display_order: int = Field(0, description="Position on settings screens")

    def to_binding(self, module_id: str) -> ModuleKeyBinding:
        variable = environment_variable_name(module_id, self.key)
        rule = ValidationRule(
            must_be_url=self.type == ModuleConfigType.URL,
            allowed_values=tuple(self.dropdown_options) if self.dropdown_options else None,
            regex_pattern=self.validation_pattern,
        )
        descriptor = SettingDescriptor(
            key=variable,
            display_name=self.display_name,
            description=self.description,
            category=module_id,
            value_type=SettingType.STRING,
            default_value=self.default_value,
            environment_variable=variable,
            is_secret=self.is_secret or self.type == ModuleConfigType.SECRET,
            validation=rule,
        )
        return ModuleKeyBinding(module_id=module_id, setting_key=self.key, descriptor=descriptor)


class SyncReport(BaseModel):
    """Outcome of one reconciliation pass for one module."""

    module_id: str = Field(..., description="Module that was reconciled")
    created: int = Field(0, description="Setting records created")
    updated: int = Field(0, description="Setting records updated")
    deleted: int = Field(0, description="Duplicate setting records removed")
    module_written: bool = Field(False, description="Module record was written")
    enabled: bool = Field(False, description="Module enabled after the pass")
    configured: bool = Field(False, description="Module configured after the pass")
    locked: bool = Field(False, description="Enabled state is held by an environment variable")
    missing_required: List[str] = Field(default_factory=list, description="Required keys without a value")
    error: Optional[str] = Field(None, description="Failure that stopped this module's pass")

    @property
    def writes(self) -> int:
        return self.created + self.updated + self.deleted + int(self.module_written)


class ModuleValidationResult(BaseModel):
    errors: Dict[str, List[str]] = Field(default_factory=dict, description="Violations per key")
    warnings: Dict[str, List[str]] = Field(default_factory=dict, description="Non-blocking problems per key")

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def add_error(self, key: str, message: str) -> None:
        self.errors.setdefault(key, []).append(message)

    def add_warning(self, key: str, message: str) -> None:
        self.warnings.setdefault(key, []).append(message)

    def messages(self) -> List[str]:
        return [f"{key}: {message}" for key, messages in self.errors.items() for message in messages]
