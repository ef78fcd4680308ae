import os
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, Optional

from dotenv import load_dotenv, find_dotenv

from .exceptions import TypeConversionFailure

TRUTHY = ("true", "1", "yes")
FALSY = ("false", "0", "no")

_dotenv_loaded = False


def load_environment(dotenv_path: Optional[str] = None) -> bool:
    """Load a .env file once per process. Real environment variables are never overridden."""
    global _dotenv_loaded
    if _dotenv_loaded:
        return False
    path = dotenv_path or find_dotenv(usecwd=True)
    _dotenv_loaded = True
    if not path:
        return False
    return load_dotenv(dotenv_path=path, override=False)


def parse_bool(raw_value: str) -> bool:
    return raw_value.strip().lower() in TRUTHY


def parse_switch(raw_value: Optional[str]) -> Optional[bool]:
    """True/False for a recognised on/off value, None for anything else."""
    if raw_value is None:
        return None
    val_lower = raw_value.strip().lower()
    if val_lower in TRUTHY:
        return True
    if val_lower in FALSY:
        return False
    return None


def convert_value(raw_value: str, value_type: str) -> Any:
    """Convert a raw environment string to the declared setting type."""
    if value_type == "string":
        return raw_value
    if value_type == "boolean":
        return parse_bool(raw_value)

    text = raw_value.strip()
    try:
        if value_type == "integer":
            return int(text)
        if value_type == "float":
            return float(text)
        if value_type == "decimal":
            return Decimal(text)
    except (ValueError, InvalidOperation):
        raise TypeConversionFailure(raw_value, value_type)
    raise TypeError(f"Unsupported setting type '{value_type}'")


class EnvironmentReader:
    """Read access to process environment variables. Empty values count as unset."""

    def __init__(self, environ: Optional[Mapping[str, str]] = None) -> None:
        self._environ = environ

    @property
    def environ(self) -> Mapping[str, str]:
        return os.environ if self._environ is None else self._environ

    def get(self, name: str) -> Optional[str]:
        raw_value = self.environ.get(name)
        if raw_value is None or raw_value == "":
            return None
        return raw_value

    def is_set(self, name: str) -> bool:
        return self.get(name) is not None
