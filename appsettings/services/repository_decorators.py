"""
Decorators wrapped around the persistence repository.

Composed outermost first (see services/factory.py):

    SerializationDecorator -> EncryptionDecorator -> CacheDecorator -> database

so the cache and the database only ever hold serialized, and where
required encrypted, strings.
"""

import json
from typing import Any, Optional

from pydantic_core import to_jsonable_python

from appsettings.core.exceptions import PersistedSettingNotFound
from appsettings.core.logging import get_logger
from appsettings.models.setting import Setting
from appsettings.services.encryption import Encrypter, InvalidToken
from appsettings.services.redis_service import RedisService
from appsettings.services.setting_db import PersistedSettingRepository

logger = get_logger(__name__)

# Every Fernet token starts with the base64 of its 0x80 version byte and timestamp
FERNET_TOKEN_PREFIX = "gAAAAA"


class RepositoryDecorator(PersistedSettingRepository):
    """Passes every call through to the wrapped repository."""

    def __init__(self, base: PersistedSettingRepository):
        self.base = base

    async def get_value_with_id(self, setting: Setting, model_id: str):
        return await self.base.get_value_with_id(setting, model_id)

    async def get_default_value(self, setting: Setting):
        return await self.base.get_default_value(setting)

    async def set_value(self, setting: Setting, value, model_id: str) -> None:
        await self.base.set_value(setting, value, model_id)

    async def set_default_value(self, setting: Setting, value) -> None:
        await self.base.set_default_value(setting, value)

    async def forget_value(self, setting: Setting, model_id: Optional[str]) -> bool:
        return await self.base.forget_value(setting, model_id)


class SerializationDecorator(RepositoryDecorator):
    """Stores values as JSON text."""

    @staticmethod
    def serialize(value: Any) -> str:
        return json.dumps(to_jsonable_python(value))

    @staticmethod
    def unserialize(raw: Optional[str]) -> Any:
        return json.loads(raw) if raw is not None else None

    def _read(self, setting: Setting, raw: Optional[str], model_id: Optional[str]) -> Any:
        """A row that isn't JSON is treated as missing, so the read falls back."""
        try:
            return self.unserialize(raw)
        except json.JSONDecodeError:
            logger.warning("setting_value_unreadable", key=setting.key, model_id=model_id)
            raise PersistedSettingNotFound(setting.key, model_id) from None

    async def get_value_with_id(self, setting: Setting, model_id: str) -> Any:
        return self._read(setting, await self.base.get_value_with_id(setting, model_id), model_id)

    async def get_default_value(self, setting: Setting) -> Any:
        return self._read(setting, await self.base.get_default_value(setting), None)

    async def set_value(self, setting: Setting, value: Any, model_id: str) -> None:
        await self.base.set_value(setting, self.serialize(value), model_id)

    async def set_default_value(self, setting: Setting, value: Any) -> None:
        await self.base.set_default_value(setting, self.serialize(value))


class EncryptionDecorator(RepositoryDecorator):
    """
    Encrypts values of settings that ask for it.

    A setting's own `encrypted` flag wins over the encrypt_by_default config.
    """

    def __init__(self, base: PersistedSettingRepository, encrypter: Encrypter, encrypt_by_default: bool = True):
        super().__init__(base)
        self._encrypter = encrypter
        self._encrypt_by_default = encrypt_by_default

    def should_encrypt(self, setting: Setting) -> bool:
        if setting.encrypted is None:
            return self._encrypt_by_default
        return setting.encrypted

    def _decrypt(self, setting: Setting, raw: Optional[str], model_id: Optional[str]) -> Optional[str]:
        """
        Decrypt a stored row.

        Tokens are decrypted whatever the setting's current flag says, so
        turning encryption off keeps old rows readable. Plaintext written
        before encryption was turned on passes through unchanged. A token no
        configured key can open counts as a missing row.
        """
        if raw is None:
            return raw

        is_token = raw.startswith(FERNET_TOKEN_PREFIX)
        if not is_token and not self.should_encrypt(setting):
            return raw

        try:
            return self._encrypter.decrypt(raw)
        except InvalidToken:
            if is_token:
                logger.warning("setting_not_decryptable", key=setting.key, model_id=model_id)
                raise PersistedSettingNotFound(setting.key, model_id) from None
            logger.warning("setting_stored_unencrypted", key=setting.key, model_id=model_id)
            return raw

    def _encrypt(self, setting: Setting, value: Optional[str]) -> Optional[str]:
        if value is None or not self.should_encrypt(setting):
            return value
        return self._encrypter.encrypt(value)

    async def get_value_with_id(self, setting: Setting, model_id: str) -> Optional[str]:
        return self._decrypt(setting, await self.base.get_value_with_id(setting, model_id), model_id)

    async def get_default_value(self, setting: Setting) -> Optional[str]:
        return self._decrypt(setting, await self.base.get_default_value(setting), None)

    async def set_value(self, setting: Setting, value: Optional[str], model_id: str) -> None:
        await self.base.set_value(setting, self._encrypt(setting, value), model_id)

    async def set_default_value(self, setting: Setting, value: Optional[str]) -> None:
        await self.base.set_default_value(setting, self._encrypt(setting, value))


class CacheDecorator(RepositoryDecorator):
    """
    Read-through Redis cache.

    Value rows and default rows are cached under separate keys; every write
    forgets the key it touched. Misses (no stored row) are not cached.
    """

    def __init__(self, base: PersistedSettingRepository, cache: RedisService, ttl_seconds: Optional[int] = None):
        super().__init__(base)
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    def value_key(self, setting: Setting, model_id: str) -> str:
        return self._cache.make_key("value", setting.key, model_id)

    def default_key(self, setting: Setting) -> str:
        return self._cache.make_key("default", setting.key)

    async def _remember(self, cache_key: str, setting: Setting, load) -> Optional[str]:
        if not setting.cached:
            return await load()

        cached = await self._cache.get(cache_key)
        if cached is not None:
            logger.debug("setting_cache_hit", key=setting.key)
            return cached

        value = await load()
        if value is not None:
            await self._cache.put(cache_key, value, self._ttl_seconds)
        return value

    async def get_value_with_id(self, setting: Setting, model_id: str) -> Optional[str]:
        return await self._remember(
            self.value_key(setting, model_id),
            setting,
            lambda: self.base.get_value_with_id(setting, model_id),
        )

    async def get_default_value(self, setting: Setting) -> Optional[str]:
        return await self._remember(
            self.default_key(setting),
            setting,
            lambda: self.base.get_default_value(setting),
        )

    async def set_value(self, setting: Setting, value: Optional[str], model_id: str) -> None:
        await self.base.set_value(setting, value, model_id)
        await self._cache.forget(self.value_key(setting, model_id))

    async def set_default_value(self, setting: Setting, value: Optional[str]) -> None:
        await self.base.set_default_value(setting, value)
        await self._cache.forget(self.default_key(setting))

    async def forget_value(self, setting: Setting, model_id: Optional[str]) -> bool:
        deleted = await self.base.forget_value(setting, model_id)
        if model_id is None:
            await self._cache.forget(self.default_key(setting))
        else:
            await self._cache.forget(self.value_key(setting, model_id))
        return deleted
