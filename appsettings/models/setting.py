"""
Setting definitions.

A setting is declared by subclassing one of GlobalSetting, UserSetting or
TenantSetting:

    class SiteName(GlobalSetting):
        key = "site_name"
        default_value = "My App"
        rules = Annotated[str, Field(min_length=1, max_length=60)]
        field = FieldOptions(type="text", label="Site name")
        groups = ("branding",)

Settings built from data instead live in services/anonymous.py.
"""

from functools import cached_property
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from appsettings.core.context import current_tenant_id, current_user_id

if TYPE_CHECKING:
    from appsettings.core.auth import User


class FieldOptions(BaseModel):
    """
    Descriptor the front-end form builder renders an input from.

    Unknown keys are kept, so builder specific options pass straight through.
    """

    model_config = ConfigDict(extra="allow")

    type: str = "text"
    label: Optional[str] = None
    hint: Optional[str] = None
    options: List[Any] = Field(default_factory=list)
    attributes: Dict[str, Any] = Field(default_factory=dict)


class SettingGroup(BaseModel):
    key: str
    title: Optional[str] = None
    subtitle: Optional[str] = None


class Setting:
    """Base class of every setting."""

    key: str = ""
    type: str = "global"
    default_value: Any = None
    groups: Sequence[str] = ()
    rules: Any = Any
    field: Optional[FieldOptions] = None
    # None falls back to the encrypt_by_default config value
    encrypted: Optional[bool] = None
    cached: bool = True

    def resolve_id(self) -> Optional[str]:
        """The row id values are read from and written to, None for the default row."""
        raise NotImplementedError

    def can_read(self, user: Optional["User"]) -> bool:
        return True

    def can_write(self, user: Optional["User"]) -> bool:
        return True

    @cached_property
    def _adapter(self) -> TypeAdapter:
        return TypeAdapter(self.rules)

    def validate(self, value: Any) -> Any:
        """
        Check a value against the setting's rules.

        Returns the coerced value. Raises pydantic.ValidationError.
        """
        return self._adapter.validate_python(value)

    def describe(self) -> Dict[str, Any]:
        """Everything the form builder needs about this setting, apart from its value."""
        return {
            "key": self.key,
            "type": self.type,
            "groups": list(self.groups),
            "default_value": self.default_value,
            "field": self.field.model_dump() if self.field is not None else None,
        }

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.key} ({self.type})>"


def is_code_or_superuser(user: Optional["User"]) -> bool:
    """Code callers (no user) and superusers may change rows every tenant reads."""
    return user is None or user.is_superuser


def is_tenant_admin(user: Optional["User"]) -> bool:
    """Tenant administrators may change their own tenant's rows."""
    return is_code_or_superuser(user) or user.is_admin


class GlobalSetting(Setting):
    """One value shared by everyone."""

    type = "global"

    def resolve_id(self) -> Optional[str]:
        return None

    def can_write(self, user: Optional["User"]) -> bool:
        return is_code_or_superuser(user)


class UserSetting(Setting):
    """A value per user, falling back to the default row."""

    type = "user"

    def resolve_id(self) -> Optional[str]:
        return current_user_id()


class TenantSetting(Setting):
    """A value per tenant, changed by that tenant's administrators."""

    type = "tenant"

    def resolve_id(self) -> Optional[str]:
        return current_tenant_id()

    def can_write(self, user: Optional["User"]) -> bool:
        return is_tenant_admin(user)
