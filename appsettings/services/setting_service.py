"""
The settings service: get and set setting values.

SettingService holds the lookup rules. The behaviour around them
(existence, permissions, validation...) is layered on by the decorators in
services/decorators.py, all sharing SettingServiceContract.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Iterable, Optional, Union

from appsettings.core.exceptions import PersistedSettingNotFound, SettingScopeError
from appsettings.core.logging import get_logger
from appsettings.models.setting import FieldOptions, Setting, SettingGroup
from appsettings.services.anonymous import AnonymousSettingFactory
from appsettings.services.setting_db import PersistedSettingRepository
from appsettings.services.setting_store import SettingStore
from appsettings.services.share import LoadedSettings

logger = get_logger(__name__)


class SettingServiceContract(ABC):

    @property
    @abstractmethod
    def store(self) -> SettingStore:
        ...

    @abstractmethod
    async def get(self, key: str, id: Optional[Any] = None) -> Any:
        """Value of a setting for the given id, or for the acting user's id."""

    @abstractmethod
    async def set(self, key: str, value: Any, id: Optional[Any] = None) -> None:
        ...

    @abstractmethod
    async def set_default_value(self, key: str, value: Any) -> None:
        """Override the declared default for every id."""

    @abstractmethod
    async def forget(self, key: str, id: Optional[Any] = None) -> bool:
        """Drop a stored value so reads fall back to the default again."""

    async def get_many(self, keys: Iterable[str], id: Optional[Any] = None) -> Dict[str, Any]:
        return {key: await self.get(key, id) for key in keys}

    def register(self, setting: Union[Setting, Iterable[Setting]], extra_groups: Iterable[str] = ()) -> None:
        self.store.register(setting, extra_groups)

    def create(
        self,
        type: str,
        key: str,
        default_value: Any,
        field: Optional[FieldOptions] = None,
        groups: Iterable[str] = (),
        rules: Any = Any,
        encrypted: Optional[bool] = None,
        cached: bool = True,
    ) -> Setting:
        """Define and register a setting without writing a Setting subclass."""
        setting = AnonymousSettingFactory.make(
            type, key, default_value, field=field, groups=groups, rules=rules, encrypted=encrypted, cached=cached,
        )
        self.register(setting)
        return setting

    def register_group(self, key: str, title: Optional[str] = None, subtitle: Optional[str] = None) -> SettingGroup:
        return self.store.register_group(key, title, subtitle)

    def alias(self, alias: str, key: str) -> None:
        self.store.alias(alias, key)


class SettingService(SettingServiceContract):
    """
    Reads fall back from the id's row, to the default row, to the declared
    default. Writes go to the id's row, or the default row for global
    settings with no id.
    """

    def __init__(self, store: SettingStore, repository: PersistedSettingRepository, loaded: LoadedSettings):
        self._store = store
        self._repository = repository
        self._loaded = loaded

    @property
    def store(self) -> SettingStore:
        return self._store

    async def get(self, key: str, id: Optional[Any] = None) -> Any:
        setting = self._store.get(key)
        model_id = id if id is not None else setting.resolve_id()
        self._loaded.track(setting.key)

        if model_id is not None:
            try:
                return await self._repository.get_value_with_id(setting, str(model_id))
            except PersistedSettingNotFound:
                pass

        try:
            return await self._repository.get_default_value(setting)
        except PersistedSettingNotFound:
            return setting.default_value

    async def set(self, key: str, value: Any, id: Optional[Any] = None) -> None:
        setting = self._store.get(key)
        model_id = id if id is not None else setting.resolve_id()

        if model_id is None:
            if setting.type != "global":
                raise SettingScopeError(setting.key, setting.type)
            await self._repository.set_default_value(setting, value)
        else:
            await self._repository.set_value(setting, value, str(model_id))

        logger.info("setting_updated", key=setting.key, model_id=model_id)

    async def set_default_value(self, key: str, value: Any) -> None:
        setting = self._store.get(key)
        await self._repository.set_default_value(setting, value)
        logger.info("setting_default_updated", key=setting.key)

    async def forget(self, key: str, id: Optional[Any] = None) -> bool:
        setting = self._store.get(key)
        model_id = id if id is not None else setting.resolve_id()

        if model_id is None and setting.type != "global":
            raise SettingScopeError(setting.key, setting.type)
        return await self._repository.forget_value(setting, None if model_id is None else str(model_id))
