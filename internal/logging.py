import asyncio
import json
import os
import sys
import threading
from collections import deque
from enum import IntEnum
from utils.timestamp import format_timestamp

class LogLevel(IntEnum):
    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40

    @classmethod
    def parse(cls, name):
        name = str(name).upper()
        if name == "WARNING":
            name = "WARN"
        return cls[name]

_logger = None
_logger_lock = threading.Lock()

class StructuredLogger:
    def __init__(self, level=LogLevel.INFO, component=None, parent=None):
        self.level = level
        self.component = component
        self._parent = parent

    @property
    def effective_level(self):
        return self._parent.effective_level if self._parent else self.level

    def bind(self, component):
        """Child logger tagging every record with `component`; follows this logger's level."""
        return StructuredLogger(component=component, parent=self)

    def _emit(self, level, message, error=None, **kwargs):
        if level < self.effective_level:
            return
        try:
            record = {"timestamp": format_timestamp(), "level": level.name, "msg": message}
            if self.component:
                record["component"] = self.component
            record.update(kwargs)
            if error:
                record["err"] = str(error)
            print(json.dumps(record, default=str), file=sys.stderr, flush=True)
        except Exception:
            pass

    def debug(self, message, **kwargs):
        self._emit(LogLevel.DEBUG, message, **kwargs)

    def info(self, message, **kwargs):
        self._emit(LogLevel.INFO, message, **kwargs)

    def warn(self, message, error=None, **kwargs):
        self._emit(LogLevel.WARN, message, error, **kwargs)

    def error(self, message, error=None, **kwargs):
        self._emit(LogLevel.ERROR, message, error, **kwargs)

    @classmethod
    def configure(cls, min_level=LogLevel.INFO):
        """Set the process-wide level. Bound children pick it up immediately."""
        global _logger
        with _logger_lock:
            if _logger is None:
                _logger = cls(min_level)
            else:
                _logger.level = min_level
        return _logger

def get_logger(component=None):
    global _logger
    if _logger is None:
        with _logger_lock:
            if _logger is None:
                _logger = StructuredLogger()
    return _logger.bind(component) if component else _logger


class AsyncFileLogger:
    """Event-log writer: bounded queue drained to a JSON-lines file, with a
    short in-memory history for the diagnostics event log."""

    def __init__(self, file_path, queue_size=1000, history=200):
        self.path = file_path
        self.queue = asyncio.Queue(maxsize=queue_size)
        self._history = deque(maxlen=history)
        self._task = None
        self._stop = asyncio.Event()
        self._log = get_logger("event-log")
        self.written = 0
        self.dropped = 0

    def try_log(self, kind, data):
        record = {"timestamp": format_timestamp(), "kind": kind, "data": data}
        self._history.append(record)
        try:
            self.queue.put_nowait(record)
            return True
        except asyncio.QueueFull:
            self.dropped += 1
        return False

    def recent(self, limit=50, kind=None):
        """Most recent records first, optionally filtered by kind."""
        records = [r for r in reversed(self._history) if kind is None or r["kind"] == kind]
        return records[:limit]

    async def start(self):
        if self._task:
            return
        dir_path = os.path.dirname(self.path)
        if dir_path:
            os.makedirs(dir_path, exist_ok=True)
        self._stop.clear()
        self._task = asyncio.create_task(self._run())

    async def stop(self):
        self._stop.set()
        if self._task:
            await self._task
            self._task = None

    @property
    def running(self):
        return self._task is not None and not self._task.done()

    def get_stats(self):
        return {
            "queued": self.queue.qsize(),
            "written": self.written,
            "dropped": self.dropped,
            "history": len(self._history),
        }

    async def _run(self):
        file = open(self.path, "a")
        missing_logged = False
        try:
            while not self._stop.is_set():
                try:
                    record = await asyncio.wait_for(self.queue.get(), timeout=0.5)
                except asyncio.TimeoutError:
                    continue
                # Log file removed underneath us: keep draining so the queue can't fill up
                if not os.path.exists(self.path):
                    if not missing_logged:
                        self._log.warn("event log file deleted, writes disabled", path=self.path)
                        missing_logged = True
                    self.dropped += 1
                    continue
                try:
                    file.write(json.dumps(record, default=str) + "\n")
                    file.flush()
                    self.written += 1
                except (OSError, TypeError, ValueError) as exc:
                    self.dropped += 1
                    self._log.warn("event log write failed", error=exc)
            while not self.queue.empty():
                file.write(json.dumps(self.queue.get_nowait(), default=str) + "\n")
                self.written += 1
            file.flush()
        finally:
            file.close()
