"""
Security utilities - at-rest encryption for stored OAuth secrets.

Uses Fernet (AES-128-CBC + HMAC-SHA256) from the ``cryptography`` library, so
stored values are both confidential and authenticated: a tampered or foreign
ciphertext fails to decrypt instead of yielding garbage.

The key is server-held (env var ``TOKEN_ENCRYPTION_KEY``). Generate one with::

    python -c "from cryptography.fernet import Fernet; print(Fernet.generate_key().decode())"

Unlike a plain reversible encoding, there is no plaintext fallback: without a
key every encrypt/decrypt raises MissingConfiguration.
"""

import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from practice_connect.environments.base import CredentialCorrupted, MissingConfiguration


logger = logging.getLogger("practice_connect.core.security")


class TokenCipher:
    """
    Encrypts and decrypts credential values for database storage.

    The Fernet instance is built lazily so the application can start (and
    report the problem on first use) when the key is not configured.

    Example:
        cipher = TokenCipher(settings.TOKEN_ENCRYPTION_KEY)
        stored = cipher.encrypt("ya29.xxx")
        cipher.decrypt(stored)  # "ya29.xxx"
    """

    def __init__(self, key: Optional[str]):
        self._key = key or ""
        self._fernet: Optional[Fernet] = None

    @property
    def is_configured(self) -> bool:
        return bool(self._key)

    def _get_fernet(self) -> Fernet:
        if self._fernet is not None:
            return self._fernet

        if not self._key:
            logger.error("TOKEN_ENCRYPTION_KEY is not set - refusing to store or read credentials")
            raise MissingConfiguration("Credential encryption key is not configured")

        try:
            self._fernet = Fernet(self._key.encode())
        except (ValueError, TypeError) as e:
            logger.error(f"TOKEN_ENCRYPTION_KEY is not a valid Fernet key: {e}")
            raise MissingConfiguration("Credential encryption key is invalid") from e

        return self._fernet

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a secret; returns URL-safe base64 ciphertext."""
        return self._get_fernet().encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt a stored secret.

        Raises:
            CredentialCorrupted: If the value was tampered with or was
                encrypted under a different key
        """
        try:
            return self._get_fernet().decrypt(ciphertext.encode("ascii")).decode("utf-8")
        except (InvalidToken, UnicodeError) as e:
            raise CredentialCorrupted("Stored credential failed integrity check") from e

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("ascii")
