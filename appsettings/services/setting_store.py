"""
In-memory registry of the settings the application knows about.

Values are not kept here, only definitions, aliases and groups.
"""

from typing import Dict, Iterable, List, Optional, Union

from appsettings.core.exceptions import SettingConfigError, SettingNotRegistered
from appsettings.core.logging import get_logger
from appsettings.models.setting import Setting, SettingGroup

logger = get_logger(__name__)


class SettingStore:

    def __init__(self):
        self._settings: Dict[str, Setting] = {}
        self._aliases: Dict[str, str] = {}
        self._groups: Dict[str, SettingGroup] = {}

    def register(self, setting: Union[Setting, Iterable[Setting]], extra_groups: Iterable[str] = ()) -> None:
        """
        Register one or more settings.

        extra_groups are added to each setting's own groups. Registering a key
        twice replaces the earlier definition.
        """
        settings = [setting] if isinstance(setting, Setting) else list(setting)
        extra_groups = tuple(extra_groups)

        for item in settings:
            if not item.key:
                raise SettingConfigError(f"{item!r} has no key")
            if ":" in item.key:
                # ":" separates the parts of cache keys
                raise SettingConfigError(f"Setting key '{item.key}' must not contain ':'")
            if extra_groups:
                item.groups = tuple(dict.fromkeys((*item.groups, *extra_groups)))
            if item.key in self._settings:
                logger.warning("setting_replaced", key=item.key)
            self._settings[item.key] = item
            logger.debug("setting_registered", key=item.key, type=item.type)

    def resolve_key(self, key: str) -> str:
        """Follow an alias to the real key. Unknown names are returned unchanged."""
        return self._aliases.get(key, key)

    def has(self, key: str) -> bool:
        return self.resolve_key(key) in self._settings

    def get(self, key: str) -> Setting:
        try:
            return self._settings[self.resolve_key(key)]
        except KeyError:
            raise SettingNotRegistered(key) from None

    def all(self) -> List[Setting]:
        return list(self._settings.values())

    def alias(self, alias: str, key: str) -> None:
        self._aliases[alias] = key

    def aliases(self) -> Dict[str, str]:
        return dict(self._aliases)

    def register_group(self, key: str, title: Optional[str] = None, subtitle: Optional[str] = None) -> SettingGroup:
        group = SettingGroup(key=key, title=title, subtitle=subtitle)
        self._groups[key] = group
        return group

    def group(self, key: str) -> SettingGroup:
        """A registered group, or a bare one for groups only named by settings."""
        return self._groups.get(key, SettingGroup(key=key))

    def groups(self) -> List[SettingGroup]:
        """Registered groups followed by groups only referenced by settings."""
        keys = list(self._groups)
        for setting in self._settings.values():
            for group in setting.groups:
                if group not in keys:
                    keys.append(group)
        return [self.group(key) for key in keys]

    def search(self, group: Optional[str] = None, type: Optional[str] = None) -> List[Setting]:
        return [
            setting
            for setting in self._settings.values()
            if (group is None or group in setting.groups)
            and (type is None or setting.type == type)
        ]

    def clear(self) -> None:
        self._settings.clear()
        self._aliases.clear()
        self._groups.clear()


# Singleton instance
setting_store = SettingStore()
