"""
Decorators wrapped around the settings service, one concern each.

Composed outermost first (see services/factory.py):

    RedirectDynamicCallsDecorator
      -> AppNotBootedDecorator
        -> SettingExistsDecorator
          -> PermissionDecorator
            -> ValidationDecorator
              -> SettingService
"""

from typing import Any, Optional

from pydantic import ValidationError

from appsettings.core.context import current_user
from appsettings.core.exceptions import (
    AppNotBooted,
    SettingNotRegistered,
    SettingUnauthorized,
    SettingValidationError,
)
from appsettings.core.logging import get_logger
from appsettings.models.setting import is_code_or_superuser
from appsettings.services.setting_service import SettingServiceContract
from appsettings.services.setting_store import SettingStore

logger = get_logger(__name__)


class SettingServiceDecorator(SettingServiceContract):
    """Passes every call through to the wrapped service."""

    def __init__(self, base: SettingServiceContract):
        self.base = base

    @property
    def store(self) -> SettingStore:
        return self.base.store

    async def get(self, key: str, id: Optional[Any] = None) -> Any:
        return await self.base.get(key, id)

    async def set(self, key: str, value: Any, id: Optional[Any] = None) -> None:
        await self.base.set(key, value, id)

    async def set_default_value(self, key: str, value: Any) -> None:
        await self.base.set_default_value(key, value)

    async def forget(self, key: str, id: Optional[Any] = None) -> bool:
        return await self.base.forget(key, id)


class ValidationDecorator(SettingServiceDecorator):
    """Checks values against the setting's rules and passes the coerced value on."""

    def _validate(self, key: str, value: Any) -> Any:
        setting = self.store.get(key)
        try:
            return setting.validate(value)
        except ValidationError as e:
            logger.info("setting_value_invalid", key=setting.key, error_count=e.error_count())
            raise SettingValidationError(
                setting.key, e.errors(include_url=False, include_context=False)
            ) from e

    async def set(self, key: str, value: Any, id: Optional[Any] = None) -> None:
        await self.base.set(key, self._validate(key, value), id)

    async def set_default_value(self, key: str, value: Any) -> None:
        await self.base.set_default_value(key, self._validate(key, value))


class PermissionDecorator(SettingServiceDecorator):
    """
    Asks the setting whether the acting user may read or write it.

    Default rows are read by every tenant, so changing them additionally
    needs a code caller or a superuser.
    """

    async def get(self, key: str, id: Optional[Any] = None) -> Any:
        setting = self.store.get(key)
        if not setting.can_read(current_user()):
            raise SettingUnauthorized(setting.key, "read")
        return await self.base.get(key, id)

    async def set(self, key: str, value: Any, id: Optional[Any] = None) -> None:
        setting = self.store.get(key)
        if not setting.can_write(current_user()):
            raise SettingUnauthorized(setting.key, "write")
        await self.base.set(key, value, id)

    async def set_default_value(self, key: str, value: Any) -> None:
        setting = self.store.get(key)
        user = current_user()
        if not (setting.can_write(user) and is_code_or_superuser(user)):
            raise SettingUnauthorized(setting.key, "write")
        await self.base.set_default_value(key, value)

    async def forget(self, key: str, id: Optional[Any] = None) -> bool:
        setting = self.store.get(key)
        if not setting.can_write(current_user()):
            raise SettingUnauthorized(setting.key, "write")
        return await self.base.forget(key, id)


class SettingExistsDecorator(SettingServiceDecorator):

    def _ensure_registered(self, key: str) -> None:
        if not self.store.has(key):
            raise SettingNotRegistered(key)

    async def get(self, key: str, id: Optional[Any] = None) -> Any:
        self._ensure_registered(key)
        return await self.base.get(key, id)

    async def set(self, key: str, value: Any, id: Optional[Any] = None) -> None:
        self._ensure_registered(key)
        await self.base.set(key, value, id)

    async def set_default_value(self, key: str, value: Any) -> None:
        self._ensure_registered(key)
        await self.base.set_default_value(key, value)

    async def forget(self, key: str, id: Optional[Any] = None) -> bool:
        self._ensure_registered(key)
        return await self.base.forget(key, id)


class AppNotBootedDecorator(SettingServiceDecorator):
    """
    Refuses reads and writes until startup has finished, when every setting
    from the definitions file is registered.
    """

    booted: bool = False

    def _ensure_booted(self, key: str) -> None:
        if not AppNotBootedDecorator.booted:
            raise AppNotBooted(key)

    async def get(self, key: str, id: Optional[Any] = None) -> Any:
        self._ensure_booted(key)
        return await self.base.get(key, id)

    async def set(self, key: str, value: Any, id: Optional[Any] = None) -> None:
        self._ensure_booted(key)
        await self.base.set(key, value, id)

    async def set_default_value(self, key: str, value: Any) -> None:
        self._ensure_booted(key)
        await self.base.set_default_value(key, value)

    async def forget(self, key: str, id: Optional[Any] = None) -> bool:
        self._ensure_booted(key)
        return await self.base.forget(key, id)


class RedirectDynamicCallsDecorator(SettingServiceDecorator):
    """
    Turns get_<key>() and set_<key>(value) into get/set calls.

        await setting_service.get_site_name()       # get("site_name")
        await setting_service.set_site_name("Acme")  # set("site_name", "Acme")
    """

    def __getattr__(self, name: str):
        if name.startswith("get_") and len(name) > 4:
            key = name[4:]

            async def dynamic_get(id: Optional[Any] = None) -> Any:
                return await self.get(key, id)

            return dynamic_get

        if name.startswith("set_") and len(name) > 4:
            key = name[4:]

            async def dynamic_set(value: Any, id: Optional[Any] = None) -> None:
                await self.set(key, value, id)

            return dynamic_set

        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")
