import re
from typing import Dict, Iterable, Optional

from services.config_manager_service.src.validator import is_http_url

from .schemas import ModuleConfigItem, ModuleConfigType, ModuleValidationResult

MAX_TEXT_LENGTH = 10000

BOOLEAN_WORDS = ("true", "false", "1", "0", "yes", "no")


def _validate_url(item: ModuleConfigItem, value: str, result: ModuleValidationResult) -> None:
    if not is_http_url(value):
        result.add_error(item.key, f"{item.display_name} must be a valid HTTP or HTTPS URL")


def _validate_number(item: ModuleConfigItem, value: str, result: ModuleValidationResult) -> None:
    try:
        float(value.strip())
    except ValueError:
        result.add_error(item.key, f"{item.display_name} must be a valid number")


def _validate_boolean(item: ModuleConfigItem, value: str, result: ModuleValidationResult) -> None:
    if value.strip().lower() not in BOOLEAN_WORDS:
        result.add_error(item.key, f"{item.display_name} must be true or false")


def _validate_text(item: ModuleConfigItem, value: str, result: ModuleValidationResult) -> None:
    if len(value) > MAX_TEXT_LENGTH:
        result.add_error(item.key, f"{item.display_name} is too long (maximum {MAX_TEXT_LENGTH} characters)")


def _validate_dropdown(item: ModuleConfigItem, value: str, result: ModuleValidationResult) -> None:
    if item.dropdown_options and value not in item.dropdown_options:
        result.add_error(item.key, f"{item.display_name} must be one of: {', '.join(item.dropdown_options)}")


def _validate_pattern(item: ModuleConfigItem, value: str, result: ModuleValidationResult) -> None:
    try:
        matched = re.search(item.validation_pattern, value)
    except re.error:
        result.add_warning(item.key, f"Invalid validation pattern for {item.display_name}")
        return
    if not matched:
        result.add_error(item.key, item.validation_error_message or f"{item.display_name} format is invalid")


TYPE_CHECKS = {
    ModuleConfigType.URL: _validate_url,
    ModuleConfigType.NUMBER: _validate_number,
    ModuleConfigType.BOOLEAN: _validate_boolean,
    ModuleConfigType.TEXT: _validate_text,
    ModuleConfigType.SECRET: _validate_text,
    ModuleConfigType.TEXTAREA: _validate_text,
    ModuleConfigType.DROPDOWN: _validate_dropdown,
}


class ModuleConfigValidator:
    """Checks module configuration values against the module's declared schema."""

    @staticmethod
    def validate(
        configuration: Dict[str, Optional[str]],
        schema: Iterable[ModuleConfigItem],
    ) -> ModuleValidationResult:
        result = ModuleValidationResult()
        for item in schema:
            value = configuration.get(item.key)
            if value is None or not value.strip():
                if item.is_required:
                    result.add_error(item.key, f"{item.display_name} is required")
                continue

            TYPE_CHECKS[item.type](item, value, result)
            if item.validation_pattern:
                _validate_pattern(item, value, result)
        return result
