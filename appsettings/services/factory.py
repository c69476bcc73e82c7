"""
Wiring of the settings service and its repository.

The module level setting_service is what the API and application code use.
Tests build their own chains with the same functions.
"""

from typing import Optional

from appsettings.core.config import get_config
from appsettings.services.decorators import (
    AppNotBootedDecorator,
    PermissionDecorator,
    RedirectDynamicCallsDecorator,
    SettingExistsDecorator,
    ValidationDecorator,
)
from appsettings.services.encryption import Encrypter, encrypter
from appsettings.services.redis_service import RedisService, redis_service
from appsettings.services.repository_decorators import (
    CacheDecorator,
    EncryptionDecorator,
    SerializationDecorator,
)
from appsettings.services.setting_db import PersistedSettingRepository, setting_db
from appsettings.services.setting_service import SettingService, SettingServiceContract
from appsettings.services.setting_store import SettingStore, setting_store
from appsettings.services.share import LoadedSettings, loaded_settings


def build_repository(
    base: PersistedSettingRepository,
    cache: Optional[RedisService] = None,
    value_encrypter: Optional[Encrypter] = None,
) -> PersistedSettingRepository:
    """
    serialization -> encryption -> cache -> base

    Passing cache=None leaves the cache out.
    """
    config = get_config()

    repository = base
    if cache is not None:
        repository = CacheDecorator(repository, cache, config.cache_ttl_seconds)
    repository = EncryptionDecorator(repository, value_encrypter or encrypter, config.encrypt_by_default)
    repository = SerializationDecorator(repository)
    return repository


def build_setting_service(
    store: SettingStore,
    repository: PersistedSettingRepository,
    loaded: Optional[LoadedSettings] = None,
) -> RedirectDynamicCallsDecorator:
    service: SettingServiceContract = SettingService(store, repository, loaded or loaded_settings)
    service = ValidationDecorator(service)
    service = PermissionDecorator(service)
    service = SettingExistsDecorator(service)
    service = AppNotBootedDecorator(service)
    return RedirectDynamicCallsDecorator(service)


setting_service = build_setting_service(
    setting_store,
    build_repository(setting_db, redis_service if get_config().cache_enabled else None),
)


def get_setting_service() -> SettingServiceContract:
    """FastAPI dependency returning the application's settings service."""
    return setting_service
