"""
The user the current request (or code block) is acting as.

Setting id resolvers and permission checks read the user from here instead
of having it threaded through every get/set call.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING, Iterator, Optional

if TYPE_CHECKING:
    from appsettings.core.auth import User

_current_user: ContextVar[Optional["User"]] = ContextVar("current_user", default=None)


def current_user() -> Optional["User"]:
    """The acting user, or None for code running outside a request."""
    return _current_user.get()


@contextmanager
def acting_as(user: Optional["User"]) -> Iterator[Optional["User"]]:
    """
    Run a block as the given user.

    Usage:
        with acting_as(user):
            await setting_service.get("theme")
    """
    token = _current_user.set(user)
    try:
        yield user
    finally:
        _current_user.reset(token)


def current_user_id() -> Optional[str]:
    """Row id for per-user settings. Guests and code callers have none."""
    user = current_user()
    if user is None or user.is_guest:
        return None
    return user.id


def current_tenant_id() -> Optional[str]:
    """Row id for per-tenant settings. Guests and code callers have none."""
    user = current_user()
    if user is None or user.is_guest:
        return None
    return user.tenant_id
