"""Screen effect launch and playback control routes."""

from typing import Literal, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from effects.screen import available_effects
from ui.auth import verify_basic_auth

router = APIRouter(prefix="/api/v1/effects", tags=["effects"])

# These will be set by app.py
_driver = None


def init(driver):
    """Initialize with the effect driver."""
    global _driver
    _driver = driver


class LaunchRequest(BaseModel):
    width: Optional[float] = Field(default=None, gt=0)
    height: Optional[float] = Field(default=None, gt=0)
    battery_level: Optional[int] = Field(default=None, ge=0, le=100)
    trigger: Literal["manual", "message", "scroll"] = "manual"


@router.get("")
async def list_effects():
    """Available effects and the runs currently playing."""
    return {
        "effects": available_effects(),
        "active": _driver.active_runs,
        "state": _driver.state,
    }


@router.post("/pause")
async def pause(username=Depends(verify_basic_auth)):
    """Freeze all running effects (requires basic auth)."""
    await _driver.pause()
    return {"ok": True, "state": _driver.state}


@router.post("/resume")
async def resume(username=Depends(verify_basic_auth)):
    """Resume playback (requires basic auth)."""
    await _driver.resume()
    return {"ok": True, "state": _driver.state}


@router.delete("/runs/{run_id}")
async def cancel(run_id: str, username=Depends(verify_basic_auth)):
    """Stop a run early and return its particles to the pool (requires basic auth)."""
    cancelled = await _driver.cancel(run_id)
    return {"ok": cancelled, "id": run_id}


@router.post("/{name}", status_code=202)
async def launch(name: str, request: Optional[LaunchRequest] = None, username=Depends(verify_basic_auth)):
    """Start a screen effect (requires basic auth)."""
    request = request or LaunchRequest()
    run = await _driver.launch(name, width=request.width, height=request.height,
                               battery_level=request.battery_level, trigger=request.trigger)
    return {
        "id": run.id,
        "effect": run.name,
        "mode": "indicator" if run.finished else "animated",
    }
