"""Microsecond timestamp utilities."""

import time
from datetime import datetime, timezone


def now_micros():
    """Current time in microseconds since Unix epoch."""
    return int(time.time() * 1_000_000)


def format_timestamp(epoch_us=None):
    """ISO 8601 UTC with microseconds, e.g. 2024-01-01T00:00:00.000000Z."""
    if epoch_us is None:
        epoch_us = now_micros()
    moment = datetime.fromtimestamp(epoch_us / 1_000_000, tz=timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.%f") + "Z"
