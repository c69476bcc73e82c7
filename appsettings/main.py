"""
appsettings - settings management service
Main application entry point
"""

from contextlib import asynccontextmanager
from typing import List

from fastapi import FastAPI, Depends, Query, Request
from fastapi.responses import JSONResponse, Response
from pydantic_core import to_jsonable_python

from appsettings.api.routes import router as settings_router
from appsettings.core.auth import User, get_optional_user
from appsettings.core.config import get_config
from appsettings.core.context import acting_as
from appsettings.core.exceptions import SettingError, SettingValidationError
from appsettings.core.logging import setup_logging, get_logger
from appsettings.core.middleware import LoadedSettingsMiddleware, PayloadSizeMiddleware
from appsettings.models.schemas import ErrorResponse
from appsettings.services.decorators import AppNotBootedDecorator
from appsettings.services.definitions import load_definitions
from appsettings.services.factory import get_setting_service
from appsettings.services.redis_service import redis_service
from appsettings.services.setting_db import setting_db
from appsettings.services.setting_service import SettingServiceContract
from appsettings.services.share import ShareJavaScript, loaded_settings, share_config
from appsettings.services.user_db import user_db

logger = get_logger(__name__)

# Get config instance
config = get_config()

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifecycle manager for the FastAPI application.

    Code before 'yield' runs at startup
    Code after 'yield' runs at shutdown
    """
    # startup
    setup_logging()
    logger.info("application_starting", mode=config.settings_mode)
    await user_db.connect()
    await setting_db.connect()
    if config.cache_enabled:
        await redis_service.connect()

    if config.definitions_file:
        load_definitions(config.definitions_file, get_setting_service())

    if config.api_enabled:
        share_config.add("api_url", config.api_prefix)

    # Seed demo users in local mode
    if config.settings_mode == "local":
        demo_keys = await user_db.seed_demo_users()
        for user_id, key in demo_keys.items():
            logger.info("demo_user_created", user_id=user_id, api_key=key)

    AppNotBootedDecorator.booted = True
    logger.info("application_booted")

    yield # Application runs here
    # shutdown
    logger.info("application_stopping")
    AppNotBootedDecorator.booted = False
    await redis_service.disconnect()
    await setting_db.disconnect()
    await user_db.disconnect()

app = FastAPI(
    title="appsettings",
    description="Global, per-user and per-tenant application settings",
    version="0.1.0",
    lifespan=lifespan,
)

# Middleware
app.add_middleware(PayloadSizeMiddleware)
app.add_middleware(LoadedSettingsMiddleware)

if config.api_enabled:
    app.include_router(settings_router, prefix=config.api_prefix)

@app.exception_handler(SettingError)
async def setting_error_handler(request: Request, exc: SettingError):
    """Render any SettingError as an ErrorResponse with its status code."""
    body = ErrorResponse(
        error=exc.error,
        detail=str(exc),
        errors=exc.errors if isinstance(exc, SettingValidationError) else None,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=to_jsonable_python(body.model_dump(exclude_none=True)),
    )

@app.get("/")
async def root():
    """
    Status endpoint.
    Returns a simple message to confirm the API is running
    """
    return {
        "status": "ok",
        "message": "appsettings is running",
        "mode": config.settings_mode,
    }

@app.get("/settings.js")
async def settings_js(
    settings: List[str] = Query([], description="Extra setting keys to share"),
    user: User = Depends(get_optional_user),
    service: SettingServiceContract = Depends(get_setting_service),
):
    """
    JavaScript defining window.ESSettings, to be included by the front end.
    """
    share = ShareJavaScript(service, loaded_settings, share_config, config.js_autoload)
    with acting_as(user):
        script = await share.to_string(settings)
    return Response(content=script, media_type="application/javascript")

@app.get("/health")
async def health_check():
    """Detailed health check endpoint."""

    try:
        redis_status = "connected" if await redis_service.ping() else "disconnected"
    except Exception:
        redis_status = "disconnected"

    try:
        db_status = "connected" if await setting_db.ping() else "disconnected"
    except Exception:
        db_status = "disconnected"

    try:
        user_db_status = "connected" if await user_db.ping() else "disconnected"
    except Exception:
        user_db_status = "disconnected"

    return {
        "status": "healthy",
        "version": app.version,
        "mode": config.settings_mode,
        "checks": {
            "redis": redis_status,
            "setting_db": db_status,
            "user_db": user_db_status,
        }
    }
