"""
Symmetric encryption of setting values with Fernet.

ENCRYPTION_KEYS holds one or more Fernet keys separated by commas:
- the first key encrypts new values,
- every key is tried when decrypting, so old keys can be rotated out.
"""

from typing import List, Optional

from cryptography.fernet import Fernet, InvalidToken, MultiFernet

from appsettings.core.config import get_config
from appsettings.core.exceptions import SettingConfigError
from appsettings.core.logging import get_logger

logger = get_logger(__name__)

__all__ = ["Encrypter", "InvalidToken", "encrypter"]


class Encrypter:

    def __init__(self, keys: Optional[List[str]] = None):
        self._keys = keys
        self._fernet: Optional[MultiFernet] = None

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("ascii")

    def _load(self) -> MultiFernet:
        if self._fernet is not None:
            return self._fernet

        config = get_config()
        keys = self._keys if self._keys is not None else config.encryption_key_list

        if not keys:
            if config.settings_mode != "local":
                raise SettingConfigError("ENCRYPTION_KEYS must be set to store encrypted settings")
            # Values encrypted with this key are unreadable after a restart
            keys = [self.generate_key()]
            logger.warning("encryption_key_generated", mode=config.settings_mode)

        try:
            self._fernet = MultiFernet([Fernet(k.encode("ascii")) for k in keys])
        except ValueError as e:
            raise SettingConfigError(f"Invalid encryption key: {e}") from e
        return self._fernet

    def encrypt(self, value: str) -> str:
        return self._load().encrypt(value.encode("utf-8")).decode("ascii")

    def decrypt(self, token: str) -> str:
        """Raises InvalidToken when no key can decrypt the value."""
        return self._load().decrypt(token.encode("utf-8")).decode("utf-8")


# Singleton instance
encrypter = Encrypter()
