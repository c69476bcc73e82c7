"""
Authentication and authorization

Uses API key authentication. Users belong to an optional tenant and may be
administrators of that tenant. Superusers manage what every tenant shares:
global settings and default values.
"""

from fastapi import HTTPException, Security, Depends
from fastapi.security import APIKeyHeader
from typing import Optional
from pydantic import BaseModel

from appsettings.core.logging import bind_user
from appsettings.services.user_db import user_db

class User(BaseModel):
    """
    Authenticated user with tenant information.
    """
    id: str
    tenant_id: Optional[str] = None
    is_admin: bool = False
    is_superuser: bool = False
    is_guest: bool = False

# Anonymous visitors: never an administrator or superuser and never owner of a row
GUEST = User(id="guest", is_guest=True)

# Define where to look for the API Key
api_key_header = APIKeyHeader(
    name="X-API-Key",
    auto_error=False, # We'll handle missing keys ourselves
)

async def _lookup_user(api_key: str) -> User:
    user_data = await user_db.get_user_by_api_key(api_key)

    if user_data is None:
        raise HTTPException(
            status_code=401,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    bind_user(user_data["id"])
    return User(
        id=user_data["id"],
        tenant_id=user_data["tenant_id"],
        is_admin=user_data["is_admin"],
        is_superuser=user_data["is_superuser"],
    )

async def get_current_user(api_key: Optional[str] = Security(api_key_header),) -> User:
    """
    Dependency that extracts and validates the API key.

    Usage in route:
        @router.get("/setting")
            async def read_settings(user: User = Depends(get_current_user)):
                ...
    """

    if api_key is None:
        raise HTTPException(
            status_code=401,
            detail="Missing API key. Include 'X-API-Key' in header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return await _lookup_user(api_key)

async def get_optional_user(api_key: Optional[str] = Security(api_key_header),) -> User:
    """
    Like get_current_user, but anonymous requests are let through as GUEST.
    A key that is present must still be valid.
    """
    if api_key is None:
        return GUEST
    return await _lookup_user(api_key)

async def require_superuser(user: User = Depends(get_current_user),) -> User:
    """
    Dependency that requires a superuser.
    """
    if not user.is_superuser:
        raise HTTPException(
            status_code=403,
            detail="This action requires a superuser",
        )
    return user
