"""API routes for stats, subscribers and the diagnostics event log."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from utils.timestamp import format_timestamp
from ui.auth import verify_basic_auth

router = APIRouter(prefix="/api/v1", tags=["api"])

# These will be set by app.py
_driver = None
_pool = None
_bus = None
_file_logger = None


def init(driver, pool, bus, file_logger):
    """Initialize with driver, pool, bus, and logger references."""
    global _driver, _pool, _bus, _file_logger
    _driver = driver
    _pool = pool
    _bus = bus
    _file_logger = file_logger


@router.get("/stats")
async def stats(username=Depends(verify_basic_auth)):
    """Return driver, pool, bus and logger statistics (requires basic auth)."""
    return {
        "timestamp": format_timestamp(),
        "driver": _driver.get_stats(),
        "pool": _pool.get_stats(),
        "bus": _bus.get_stats(),
        "logger": _file_logger.get_stats(),
    }


@router.get("/subscribers")
async def subscribers(username=Depends(verify_basic_auth)):
    """Return info about all current subscribers (requires basic auth)."""
    return await _bus.get_subscriber_info()


@router.get("/events/log")
async def event_log(limit: int = Query(50, ge=1, le=500), kind: Optional[str] = None,
                    username=Depends(verify_basic_auth)):
    """Most recent event-log records, newest first (requires basic auth)."""
    return {"events": _file_logger.recent(limit, kind)}
