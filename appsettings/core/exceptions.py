"""
Exceptions raised by the settings service.

Every SettingError carries the HTTP status code the API answers with, so
route handlers can let them propagate to the exception handler in main.
"""

from typing import Any, List, Optional


class SettingError(Exception):
    """Base class for all settings errors."""

    status_code: int = 500
    error: str = "Setting Error"


class SettingNotRegistered(SettingError):
    status_code = 404
    error = "Setting Not Registered"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Setting '{key}' has not been registered.")


class SettingUnauthorized(SettingError):
    status_code = 403
    error = "Forbidden"

    def __init__(self, key: str, action: str):
        self.key = key
        self.action = action
        super().__init__(f"You do not have permission to {action} the '{key}' setting.")


class SettingValidationError(SettingError):
    """The value given for a setting did not pass its rules."""

    status_code = 422
    error = "Invalid Setting Value"

    def __init__(self, key: str, errors: Optional[List[Any]] = None):
        self.key = key
        self.errors = errors or []
        super().__init__(f"The value for setting '{key}' is invalid.")


class SettingScopeError(SettingError):
    status_code = 400
    error = "Setting Scope Error"

    def __init__(self, key: str, setting_type: str):
        self.key = key
        super().__init__(
            f"Setting '{key}' is a {setting_type} setting and no {setting_type} id could be resolved."
        )


class AppNotBooted(SettingError):
    status_code = 503
    error = "Service Unavailable"

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Setting '{key}' was accessed before the application finished booting.")


class SettingConfigError(SettingError):
    status_code = 500
    error = "Settings Misconfigured"


class PersistedSettingNotFound(SettingError):
    """No stored row exists. Handled inside the service, never sent to clients."""

    status_code = 404
    error = "Setting Value Not Found"

    def __init__(self, key: str, model_id: Optional[str] = None):
        self.key = key
        self.model_id = model_id
        super().__init__(f"No stored value for setting '{key}' (id={model_id}).")
