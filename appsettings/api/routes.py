"""
HTTP API for reading and writing settings.

Mounted under config.api_prefix (default /api/settings) when
config.api_enabled is set. SettingErrors raised by the service propagate
to the exception handler registered in main.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from appsettings.core.auth import User, get_current_user, require_superuser
from appsettings.core.context import acting_as
from appsettings.core.logging import get_logger
from appsettings.models.rules import SettingKeyIsValidRule
from appsettings.models.schemas import (
    SettingDescriptor,
    SettingSchemaResponse,
    SettingsUpdateRequest,
    SettingValuesResponse,
)
from appsettings.services.factory import get_setting_service
from appsettings.services.setting_service import SettingServiceContract

logger = get_logger(__name__)

router = APIRouter(tags=["settings"])


def ensure_keys_exist(service: SettingServiceContract, keys: List[str]) -> None:
    """Reject the whole request with 422 if any key is unknown."""
    rule = SettingKeyIsValidRule(service.store)
    invalid = [key for key in keys if not rule.passes(key)]

    if invalid:
        raise HTTPException(
            status_code=422,
            detail=[
                {"loc": ["settings", key], "msg": rule.message(key), "type": "setting_key_invalid"}
                for key in invalid
            ],
        )


@router.get("/setting", response_model=SettingValuesResponse)
async def read_settings(
    settings: List[str] = Query(..., description="Setting keys to read"),
    user: User = Depends(get_current_user),
    service: SettingServiceContract = Depends(get_setting_service),
):
    """
    Read one or more settings for the authenticated user.

    GET /setting?settings=site_name&settings=theme
    """
    ensure_keys_exist(service, settings)

    with acting_as(user):
        values = await service.get_many(settings)

    return SettingValuesResponse(settings=values)


@router.post("/setting", response_model=SettingValuesResponse)
async def update_settings(
    request: SettingsUpdateRequest,
    user: User = Depends(get_current_user),
    service: SettingServiceContract = Depends(get_setting_service),
):
    """
    Update settings for the authenticated user (or tenant, or globally,
    depending on each setting's type). Returns the values now in effect.
    """
    keys = list(request.settings)
    ensure_keys_exist(service, keys)

    with acting_as(user):
        for key, value in request.settings.items():
            await service.set(key, value)
        values = await service.get_many(keys)

    logger.info("settings_updated_via_api", keys=keys)
    return SettingValuesResponse(settings=values)


@router.post("/setting/default", status_code=204)
async def update_default_settings(
    request: SettingsUpdateRequest,
    user: User = Depends(require_superuser),
    service: SettingServiceContract = Depends(get_setting_service),
):
    """Change the values everyone without their own value falls back to."""
    keys = list(request.settings)
    ensure_keys_exist(service, keys)

    with acting_as(user):
        for key, value in request.settings.items():
            await service.set_default_value(key, value)

    logger.info("setting_defaults_updated_via_api", keys=keys)
    return None  # 204 No Content


@router.delete("/setting/{key}", status_code=204)
async def reset_setting(
    key: str,
    user: User = Depends(get_current_user),
    service: SettingServiceContract = Depends(get_setting_service),
):
    """Remove the stored value so the setting falls back to its default."""
    ensure_keys_exist(service, [key])

    with acting_as(user):
        deleted = await service.forget(key)

    if not deleted:
        raise HTTPException(
            status_code=404,
            detail=f"No stored value for setting '{key}'",
        )

    return None  # 204 No Content


@router.get("/setting/schema", response_model=SettingSchemaResponse)
async def settings_schema(
    group: Optional[str] = Query(None, description="Only settings in this group"),
    user: User = Depends(get_current_user),
    service: SettingServiceContract = Depends(get_setting_service),
):
    """
    Groups and setting descriptors, with current values, for the form builder.
    Settings the user may not read are left out.
    """
    store = service.store
    descriptors = []

    with acting_as(user):
        for setting in store.search(group=group):
            if not setting.can_read(user):
                continue
            value = await service.get(setting.key)
            descriptors.append(SettingDescriptor(**setting.describe(), value=value))

    if group is not None:
        groups = [store.group(group)]
    else:
        groups = store.groups()

    return SettingSchemaResponse(groups=groups, settings=descriptors)
