"""
Pydantic models for request/response validation.

These models serve 3 purposes:
1. Validate incoming request data
2. Serialize outgoing response data
3. Generate OpenAPI documentation automatically.
"""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional

from appsettings.models.setting import FieldOptions, SettingGroup

# ============================================================
# REQUEST MODELS (what the client sends to us)
# ============================================================

class SettingsUpdateRequest(BaseModel):
    """
    Request body for POST /setting and POST /setting/default

    Example:
    {
        "settings": {"site_name": "Acme", "theme": "dark"}
    }
    """

    settings: Dict[str, Any] = Field(
        ...,
        description="Setting keys (or aliases) mapped to their new values"
    )

    @field_validator("settings")
    @classmethod
    def settings_must_not_be_empty(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        if not v:
            raise ValueError("At least one setting must be given")
        return v

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "settings": {
                        "site_name": "Acme",
                        "theme": "dark",
                    }
                }
            ]
        }
    }

# ============================================================
# RESPONSE MODELS (what we send back to the client)
# ============================================================

class SettingValuesResponse(BaseModel):
    """
    Current values of the requested settings.
    """

    settings: Dict[str, Any] = Field(..., description="Setting keys mapped to their values")

class SettingDescriptor(BaseModel):
    """
    A setting as the form builder sees it.
    """

    key: str = Field(..., description="The setting key")
    type: str = Field(..., description="global, user, tenant or a custom type")
    groups: List[str] = Field(default_factory=list)
    default_value: Any = Field(None, description="Declared default")
    field: Optional[FieldOptions] = Field(None, description="Form field descriptor")
    value: Any = Field(None, description="Current value for the requesting user")

class SettingSchemaResponse(BaseModel):
    """
    Everything needed to render a settings form.
    """

    groups: List[SettingGroup]
    settings: List[SettingDescriptor]

class ErrorResponse(BaseModel):
    """
    Standard error response format.
    """

    error: str = Field(..., description="Error Type")
    detail: str = Field(..., description="Human-readable error message")
    errors: Optional[List[Any]] = Field(None, description="Per-field validation errors")
