"""Crash reports for unhandled exceptions (sync excepthook and asyncio loop)."""

import json
import os
import sys
import traceback

from utils.ksuid import generate_ksuid
from utils.timestamp import format_timestamp

# Overridden by configure() from LoggingConfig.crash_file
_crash_log = "logs/crash.log"


def configure(crash_file):
    """Set crash log file path from config."""
    global _crash_log
    _crash_log = crash_file


def build_record(exc_name, exc_msg, tb, context=None):
    record = {
        "id": generate_ksuid(),
        "timestamp": format_timestamp(),
        "type": exc_name,
        "msg": exc_msg,
        "traceback": tb,
    }
    if context:
        record["context"] = context
    return record


def _write_crash(record):
    """Append one JSON line. Never raises."""
    try:
        log_dir = os.path.dirname(_crash_log)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        with open(_crash_log, "a") as file:
            file.write(json.dumps(record, default=str) + "\n")
    except Exception:
        pass


def log_crash(exc_type, exc_value, exc_tb):
    """sys.excepthook replacement. Never raises."""
    exc_name = exc_type.__name__ if exc_type else "Unknown"
    tb = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
    record = build_record(exc_name, str(exc_value) if exc_value else "", tb)

    sys.stderr.write(f"\n{'=' * 60}\nCRASH [{record['id']}] {record['timestamp']}\n{'=' * 60}\n")
    sys.stderr.write(f"{exc_name}: {record['msg']}\n{'-' * 60}\n{tb}{'=' * 60}\n\n")
    _write_crash(record)
    return record


def log_async_crash(exc, context_dict, logger=None):
    """Record an exception reported by the event loop. Never raises."""
    if exc is not None:
        exc_name = type(exc).__name__
        exc_msg = str(exc)
        tb = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    else:
        exc_name, exc_msg, tb = "AsyncError", context_dict.get("message", "Unknown"), None

    record = build_record(exc_name, exc_msg, tb, {k: str(v) for k, v in context_dict.items() if k != "exception"})
    if logger:
        logger.error("async exception", error=exc_msg, crash_id=record["id"],
                     task=str(context_dict.get("future", "unknown")))
    _write_crash(record)
    return record


def create_async_handler(logger=None):
    """Exception handler for loop.set_exception_handler."""
    def handler(loop, context):
        log_async_crash(context.get("exception"), context, logger)
    return handler


def install_crash_handler():
    """Install global sync exception handler."""
    sys.excepthook = log_crash
