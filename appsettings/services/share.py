"""
Sharing settings with the front end.

The front end receives one script defining window.ESSettings:

    window.ESSettings = {"settings": {"site_name": "My App"}, "config": {"api_url": "/api/settings"}};

It holds every setting read while handling the request, the keys listed in
JS_AUTOLOAD, and any keys asked for explicitly.
"""

import json
from contextvars import ContextVar
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Set

from pydantic_core import to_jsonable_python

from appsettings.core.exceptions import SettingNotRegistered, SettingUnauthorized
from appsettings.core.logging import get_logger

if TYPE_CHECKING:
    from appsettings.services.setting_service import SettingServiceContract

logger = get_logger(__name__)

_loaded: ContextVar[Optional[Set[str]]] = ContextVar("loaded_settings", default=None)


class LoadedSettings:
    """Keys of the settings read in the current request."""

    def start(self) -> None:
        """Begin a fresh request scope."""
        _loaded.set(set())

    def track(self, key: str) -> None:
        keys = _loaded.get()
        if keys is None:
            keys = set()
            _loaded.set(keys)
        keys.add(key)

    def keys(self) -> List[str]:
        return sorted(_loaded.get() or ())


class ShareConfig:
    """Extra values shared alongside the settings, e.g. the API location."""

    def __init__(self):
        self._values: Dict[str, Any] = {}

    def add(self, key: str, value: Any) -> None:
        self._values[key] = value

    def all(self) -> Dict[str, Any]:
        return dict(self._values)


class ShareJavaScript:

    def __init__(
        self,
        service: "SettingServiceContract",
        loaded: LoadedSettings,
        share_config: ShareConfig,
        autoload: Iterable[str] = (),
    ):
        self._service = service
        self._loaded = loaded
        self._share_config = share_config
        self._autoload = list(autoload)

    async def settings(self, extra_keys: Iterable[str] = ()) -> Dict[str, Any]:
        """
        Values of every shareable key the acting user may read.

        Unknown and unreadable keys are left out rather than failing the page.
        """
        keys = list(dict.fromkeys([*self._autoload, *self._loaded.keys(), *extra_keys]))
        values: Dict[str, Any] = {}
        for key in keys:
            try:
                values[key] = await self._service.get(key)
            except (SettingNotRegistered, SettingUnauthorized) as e:
                logger.debug("setting_not_shared", key=key, reason=type(e).__name__)
        return values

    async def to_string(self, extra_keys: Iterable[str] = ()) -> str:
        payload = {
            "settings": await self.settings(extra_keys),
            "config": self._share_config.all(),
        }
        # Escape "</" so a value can never close the surrounding script tag
        data = json.dumps(to_jsonable_python(payload)).replace("</", "<\\/")
        return f"window.ESSettings = {data};"

    async def to_script_tag(self, extra_keys: Iterable[str] = ()) -> str:
        return f"<script>{await self.to_string(extra_keys)}</script>"


# Singleton instances
loaded_settings = LoadedSettings()
share_config = ShareConfig()
