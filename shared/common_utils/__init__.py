from .logger import logger, mask_value
from .env_settings import EnvironmentReader, load_environment
from .secret_encryption import SecretEncryptionService
from . import exceptions

__all__ = ["logger", "mask_value", "EnvironmentReader", "load_environment", "SecretEncryptionService", "exceptions"]
