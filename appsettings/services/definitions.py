"""
Load groups, aliases and settings from a JSON definitions file.

    {
        "groups": {"branding": {"title": "Branding", "subtitle": "How the site looks"}},
        "aliases": {"siteName": "site_name"},
        "settings": [
            "myapp.settings:SiteName",
            {
                "type": "user",
                "key": "theme",
                "default_value": "light",
                "groups": ["appearance"],
                "rules": {"type": "str", "choices": ["light", "dark"]},
                "field": {"type": "select", "label": "Theme", "options": ["light", "dark"]},
                "encrypted": false
            }
        ]
    }

A string entry is an import path to a Setting subclass (or instance); a
mapping defines an anonymous setting and needs type, key and default_value.
"""

import importlib
import json
from pathlib import Path
from typing import Any, Dict, Union

from pydantic import ValidationError

from appsettings.core.exceptions import SettingConfigError
from appsettings.core.logging import get_logger
from appsettings.models.rules import build_rule
from appsettings.models.setting import FieldOptions, Setting
from appsettings.services.setting_service import SettingServiceContract

logger = get_logger(__name__)

REQUIRED_KEYS = ("type", "key", "default_value")


JSON_TYPE_NAMES = {dict: "object", list: "array"}


def _section(definitions: Dict[str, Any], name: str, expected: type) -> Any:
    """A top level section of the document, empty when left out."""
    section = definitions.get(name)
    if section is None:
        return expected()
    if not isinstance(section, expected):
        raise SettingConfigError(f"Setting definitions '{name}' must be a JSON {JSON_TYPE_NAMES[expected]}")
    return section


def import_setting(path: str) -> Setting:
    """Resolve "package.module:Name" to a Setting instance."""
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise SettingConfigError(f"Setting [{path}] must be given as 'package.module:ClassName'")

    try:
        target = getattr(importlib.import_module(module_name), attr)
    except (ImportError, AttributeError) as e:
        raise SettingConfigError(f"Setting [{path}] could not be imported: {e}") from e

    setting = target() if isinstance(target, type) else target
    if not isinstance(setting, Setting):
        raise SettingConfigError(f"Setting [{path}] is not a Setting")
    return setting


def create_setting(service: SettingServiceContract, data: Dict[str, Any]) -> Setting:
    if not all(name in data for name in REQUIRED_KEYS):
        raise SettingConfigError(
            f"Setting [{json.dumps(data)}] does not have type, key and default_value defined"
        )

    field = None
    if data.get("field") is not None:
        try:
            field = FieldOptions.model_validate(data["field"])
        except ValidationError as e:
            raise SettingConfigError(f"Setting [{data['key']}] has an invalid field: {e}") from e

    groups = data.get("groups", [])
    if not isinstance(groups, list) or not all(isinstance(group, str) for group in groups):
        raise SettingConfigError(f"Setting [{data['key']}] groups must be a list of group keys")

    return service.create(
        data["type"],
        data["key"],
        data["default_value"],
        field=field,
        groups=groups,
        rules=build_rule(data.get("rules")),
        encrypted=data.get("encrypted"),
        cached=data.get("cached", True),
    )


def register_definitions(service: SettingServiceContract, definitions: Any) -> int:
    """Register everything in an already parsed definitions document. Returns the setting count."""
    if not isinstance(definitions, dict):
        raise SettingConfigError("Setting definitions must be a JSON object")

    groups = _section(definitions, "groups", dict)
    aliases = _section(definitions, "aliases", dict)
    settings = _section(definitions, "settings", list)

    for group, data in groups.items():
        data = data or {}
        if not isinstance(data, dict):
            raise SettingConfigError(f"Group [{group}] must be an object with title and subtitle")
        service.register_group(group, data.get("title"), data.get("subtitle"))

    for alias, key in aliases.items():
        if not isinstance(key, str):
            raise SettingConfigError(f"Alias [{alias}] must name a setting key")
        service.alias(alias, key)

    count = 0
    for entry in settings:
        if isinstance(entry, str):
            service.register(import_setting(entry))
        elif isinstance(entry, dict):
            create_setting(service, entry)
        else:
            raise SettingConfigError(f"Setting [{entry!r}] must be an import path or a mapping")
        count += 1
    return count


def load_definitions(path: Union[str, Path], service: SettingServiceContract) -> int:
    path = Path(path)
    try:
        definitions = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise SettingConfigError(f"Could not read setting definitions from {path}: {e}") from e

    count = register_definitions(service, definitions)
    logger.info("setting_definitions_loaded", path=str(path), settings=count)
    return count
