import re
from typing import Any, List, Optional, Union
from urllib.parse import urlparse

from .schemas import NotFound, SettingDescriptor, ValidationResult, ValidationRule


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_numeric_range(display_name: str, rule: ValidationRule, value: Any) -> List[str]:
    if rule.min_value is None and rule.max_value is None:
        return []
    if isinstance(value, bool):
        return [f"{display_name} must be a number"]
    try:
        number = int(_as_text(value).strip())
    except ValueError:
        return [f"{display_name} must be a number"]

    errors = []
    if rule.min_value is not None and number < rule.min_value:
        errors.append(f"{display_name} must be at least {rule.min_value}")
    if rule.max_value is not None and number > rule.max_value:
        errors.append(f"{display_name} must be at most {rule.max_value}")
    return errors


def validate_allowed_values(display_name: str, rule: ValidationRule, value: Any) -> List[str]:
    if not rule.allowed_values:
        return []
    text = _as_text(value).lower()
    if any(text == allowed.lower() for allowed in rule.allowed_values):
        return []
    return [f"{display_name} must be one of: {', '.join(rule.allowed_values)}"]


def validate_url(display_name: str, rule: ValidationRule, value: Any) -> List[str]:
    text = _as_text(value)
    if not rule.must_be_url or not text:
        return []
    if is_http_url(text):
        return []
    return [f"{display_name} must be a valid HTTP/HTTPS URL"]


def validate_string_pattern(display_name: str, rule: ValidationRule, value: Any) -> List[str]:
    text = _as_text(value)
    if not rule.regex_pattern or not text:
        return []
    if re.search(rule.regex_pattern, text):
        return []
    return [f"{display_name} does not match the required pattern"]


RULE_CHECKS = (
    validate_numeric_range,
    validate_allowed_values,
    validate_url,
    validate_string_pattern,
)


def rule_violations(display_name: str, rule: Optional[ValidationRule], value: Any) -> List[str]:
    """Run every check of a rule and collect all violations."""
    if rule is None:
        return []
    errors: List[str] = []
    for check in RULE_CHECKS:
        errors.extend(check(display_name, rule, value))
    return errors


def validate_setting(descriptor: Union[SettingDescriptor, NotFound], value: Any) -> ValidationResult:
    if isinstance(descriptor, NotFound):
        return ValidationResult.failure([f"Unknown configuration key: {descriptor.key}"])
    errors = rule_violations(descriptor.display_name, descriptor.validation, value)
    if errors:
        return ValidationResult.failure(errors)
    return ValidationResult.success()
