"""Message effects settings routes."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ui.auth import verify_basic_auth

router = APIRouter(prefix="/api/v1/settings", tags=["settings"])

# These will be set by app.py
_settings = None
_file_logger = None


def init(settings, file_logger):
    global _settings, _file_logger
    _settings = settings
    _file_logger = file_logger


class SettingsUpdate(BaseModel):
    enabled: Optional[bool] = None
    auto_play: Optional[bool] = None
    replay_on_scroll: Optional[bool] = None
    disable_on_low_battery: Optional[bool] = None
    low_battery_threshold: Optional[int] = None
    reduce_motion: Optional[bool] = None


@router.get("/effects")
async def get_effect_settings():
    return _settings.to_dict()


@router.put("/effects")
async def update_effect_settings(update: SettingsUpdate, username=Depends(verify_basic_auth)):
    """Apply a partial settings change (requires basic auth)."""
    changes = {key: value for key, value in update.model_dump().items() if value is not None}
    _settings.update(**changes)
    _file_logger.try_log("settings", {"changed": changes, "by": username})
    return _settings.to_dict()
