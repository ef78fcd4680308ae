import base64
import hashlib
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from .exceptions import DecryptFailure
from .logger import logger

ENCRYPTED_PREFIX = "ENC:"


def derive_key(secret: str) -> bytes:
    """Turn an operator-supplied passphrase into a Fernet key.

    A value that already is a valid Fernet key is used as-is.
    """
    raw = secret.encode("utf-8")
    try:
        if len(base64.urlsafe_b64decode(raw)) == 32:
            return raw
    except ValueError:
        pass
    return base64.urlsafe_b64encode(hashlib.sha256(raw).digest())


class SecretEncryptionService:
    """Encrypts secret setting values before they reach the store.

    Encrypted payloads carry the ``ENC:`` prefix so plain values written by
    an older deployment can still be told apart and re-encrypted.
    """

    def __init__(self, key: Optional[str] = None):
        if key:
            self._fernet = Fernet(derive_key(key))
        else:
            logger.warning(
                "No encryption key configured, generating an ephemeral key. "
                "Secrets stored in this process cannot be read after a restart."
            )
            self._fernet = Fernet(Fernet.generate_key())

    def encrypt(self, plain_text: str) -> str:
        if plain_text is None or plain_text == "":
            return plain_text
        token = self._fernet.encrypt(plain_text.encode("utf-8")).decode("ascii")
        return f"{ENCRYPTED_PREFIX}{token}"

    def decrypt(self, cipher_text: str) -> str:
        if cipher_text is None or cipher_text == "":
            return cipher_text
        if not self.is_encrypted(cipher_text):
            raise DecryptFailure("Value is not in the encrypted format")
        try:
            payload = cipher_text[len(ENCRYPTED_PREFIX):].encode("ascii")
            return self._fernet.decrypt(payload).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            logger.error(f"Failed to decrypt value: {type(e).__name__}")
            raise DecryptFailure("Failed to decrypt value") from e

    def is_encrypted(self, value: Optional[str]) -> bool:
        return bool(value) and value.startswith(ENCRYPTED_PREFIX)

    def encrypt_if_needed(self, value: Optional[str]) -> Optional[str]:
        if not value or self.is_encrypted(value):
            return value
        return self.encrypt(value)

    def decrypt_if_needed(self, value: Optional[str]) -> Optional[str]:
        if not value or not self.is_encrypted(value):
            return value
        return self.decrypt(value)
