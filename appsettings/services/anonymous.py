"""
Settings defined from data rather than by subclassing Setting.

Each setting type maps to a resolver returning the row id for the acting
user, and optionally to a write policy. New types (e.g. "team") are added
with AnonymousSettingFactory.map_type.
"""

from typing import Any, Callable, Dict, Iterable, NamedTuple, Optional, TYPE_CHECKING

from appsettings.core.context import current_tenant_id, current_user_id
from appsettings.core.exceptions import SettingConfigError
from appsettings.models.setting import FieldOptions, Setting, is_code_or_superuser, is_tenant_admin

if TYPE_CHECKING:
    from appsettings.core.auth import User

IdResolver = Callable[[], Optional[str]]
WritePolicy = Callable[[Optional["User"]], bool]


class TypeMapping(NamedTuple):
    resolver: IdResolver
    can_write: WritePolicy


class AnonymousSetting(Setting):

    def __init__(
        self,
        type: str,
        key: str,
        default_value: Any,
        mapping: TypeMapping,
        field: Optional[FieldOptions] = None,
        groups: Iterable[str] = (),
        rules: Any = Any,
        encrypted: Optional[bool] = None,
        cached: bool = True,
    ):
        self.type = type
        self.key = key
        self.default_value = default_value
        self.field = field
        self.groups = tuple(groups)
        self.rules = rules
        self.encrypted = encrypted
        self.cached = cached
        self._mapping = mapping

    def resolve_id(self) -> Optional[str]:
        return self._mapping.resolver()

    def can_write(self, user: Optional["User"]) -> bool:
        return self._mapping.can_write(user)


class AnonymousSettingFactory:
    """Builds AnonymousSetting instances for the registered setting types."""

    _types: Dict[str, TypeMapping] = {}

    @classmethod
    def map_type(cls, type: str, resolver: IdResolver, can_write: Optional[WritePolicy] = None) -> None:
        """Register a setting type. Writes default to code callers and superusers."""
        cls._types[type] = TypeMapping(resolver, can_write or is_code_or_superuser)

    @classmethod
    def has_type(cls, type: str) -> bool:
        return type in cls._types

    @classmethod
    def make(
        cls,
        type: str,
        key: str,
        default_value: Any,
        field: Optional[FieldOptions] = None,
        groups: Iterable[str] = (),
        rules: Any = Any,
        encrypted: Optional[bool] = None,
        cached: bool = True,
    ) -> AnonymousSetting:
        if type not in cls._types:
            raise SettingConfigError(
                f"Setting type '{type}' for setting '{key}' has not been mapped. Known types: {sorted(cls._types)}"
            )
        return AnonymousSetting(
            type=type,
            key=key,
            default_value=default_value,
            mapping=cls._types[type],
            field=field,
            groups=groups,
            rules=rules,
            encrypted=encrypted,
            cached=cached,
        )


AnonymousSettingFactory.map_type("global", lambda: None)
AnonymousSettingFactory.map_type("user", current_user_id, can_write=lambda user: True)
AnonymousSettingFactory.map_type("tenant", current_tenant_id, can_write=is_tenant_admin)
