from fastapi import APIRouter, HTTPException
from pydantic import BaseModel
from typing import Optional
import os

from app.core.config import (
    COLLISION_POLICIES,
    save_settings_to_file,
    reload_settings,
    load_settings_from_file,
)
from app.core import config

router = APIRouter(prefix="/settings", tags=["settings"])


class SettingsUpdate(BaseModel):
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    openai_model: Optional[str] = None
    inference_url: Optional[str] = None
    context_window: Optional[int] = None
    artifact_collision_policy: Optional[str] = None
    preview_row_limit: Optional[int] = None


class SettingsResponse(BaseModel):
    openai_api_key: str  # masked
    openai_base_url: str
    openai_model: str
    inference_url: str
    context_window: int
    artifact_collision_policy: str
    preview_row_limit: int


# TODO: [SECURITY] Add authentication middleware before production deployment
# See: https://fastapi.tiangolo.com/tutorial/security/
@router.get("", response_model=SettingsResponse)
async def get_settings():
    """Retrieve current settings with masked sensitive values."""
    return config.settings.get_effective_settings()


# TODO: [SECURITY] Add authentication middleware before production deployment
# See: https://fastapi.tiangolo.com/tutorial/security/
@router.post("", response_model=SettingsResponse)
async def update_settings(update: SettingsUpdate):
    """Update settings and save to local file. Open workspaces keep their settings."""
    # Load existing settings
    current = load_settings_from_file()

    if update.openai_api_key is not None:
        current["openai_api_key"] = update.openai_api_key
        # Also set environment variable for immediate use
        os.environ["OPENAI_API_KEY"] = update.openai_api_key

    if update.openai_base_url is not None:
        current["openai_base_url"] = update.openai_base_url
        os.environ["OPENAI_BASE_URL"] = update.openai_base_url

    if update.openai_model is not None:
        current["openai_model"] = update.openai_model

    if update.inference_url is not None:
        current["inference_url"] = update.inference_url

    if update.context_window is not None:
        if update.context_window < 0:
            raise HTTPException(status_code=400, detail="context_window must be >= 0")
        current["context_window"] = update.context_window

    if update.artifact_collision_policy is not None:
        if update.artifact_collision_policy not in COLLISION_POLICIES:
            raise HTTPException(
                status_code=400,
                detail=f"artifact_collision_policy must be one of {list(COLLISION_POLICIES)}",
            )
        current["artifact_collision_policy"] = update.artifact_collision_policy

    if update.preview_row_limit is not None:
        if update.preview_row_limit < 1:
            raise HTTPException(status_code=400, detail="preview_row_limit must be >= 1")
        current["preview_row_limit"] = update.preview_row_limit

    # Save to file
    save_settings_to_file(current)

    # Reload settings
    new_settings = reload_settings()

    return new_settings.get_effective_settings()
