import asyncio
import time
from enum import Enum
from utils.timestamp import format_timestamp

class Status(Enum):
    OK = "healthy"
    DEGRADED = "degraded"
    FAIL = "unhealthy"

class CheckResult:
    __slots__ = ("name", "status", "msg")

    def __init__(self, name, status, msg=""):
        self.name = name
        self.status = status
        self.msg = msg

    def to_dict(self):
        return {"name": self.name,
                "status": self.status.value,
                "msg": self.msg}

class HealthReport:
    __slots__ = ("status", "checks", "uptime", "timestamp")

    def __init__(self, status, checks, uptime=0):
        self.status = status
        self.checks = checks
        self.uptime = uptime
        self.timestamp = format_timestamp()

    def to_dict(self):
        return {"status": self.status.value,
                "timestamp": self.timestamp,
                "uptime": round(self.uptime, 1),
                "checks": [check.to_dict() for check in self.checks]}

class HealthChecker:
    def __init__(self, ttl=1.0, timeout=5.0):
        self._checks = {}
        self._cache = None
        self._cache_time = 0
        self._ttl = ttl
        self._timeout = timeout
        self._start_time = time.time()

    def register(self, name, check_fn, critical=True):
        self._checks[name] = (check_fn, critical)

    @property
    def uptime(self):
        return time.time() - self._start_time

    async def check(self):
        now = time.time()
        if self._cache and now - self._cache_time < self._ttl:
            return self._cache

        results = []
        for name, (check_fn, is_critical) in self._checks.items():
            try:
                result = await asyncio.wait_for(check_fn(), timeout=self._timeout)
            except asyncio.TimeoutError:
                result = CheckResult(name, Status.FAIL, "timeout")
            except Exception as exc:
                result = CheckResult(name, Status.FAIL, str(exc))
            results.append((result, is_critical))

        status = Status.OK
        for result, is_critical in results:
            if result.status == Status.FAIL and is_critical:
                status = Status.FAIL
            elif result.status != Status.OK and status == Status.OK:
                status = Status.DEGRADED

        self._cache = HealthReport(status, [result for result, _ in results], now - self._start_time)
        self._cache_time = now
        return self._cache

# Checks
async def check_event_loop():
    await asyncio.sleep(0)
    return CheckResult("loop", Status.OK)

def create_bus_check(bus, max_drop_ratio=0.1):
    async def check():
        stats = bus.get_stats()
        # Frames lost to slow consumers
        if stats["total_published"] > 0 and stats["total_dropped"] / stats["total_published"] > max_drop_ratio:
            return CheckResult("bus", Status.DEGRADED, "drops")
        return CheckResult("bus", Status.OK, f"{stats['subscriber_count']}sub")
    return check

def create_driver_check(driver, threshold=5.0):
    last_state = [None, time.time()]

    async def check():
        snapshot = await driver.get_snapshot()
        now = time.time()
        state = driver.state

        if state == "stopped":
            return CheckResult("driver", Status.DEGRADED, "stopped")

        if state == "paused":
            last_state[0], last_state[1] = snapshot.frame, now
            return CheckResult("driver", Status.OK, f"paused@{snapshot.frame}")

        if last_state[0] is not None and snapshot.frame == last_state[0] and now - last_state[1] > threshold:
            return CheckResult("driver", Status.FAIL, f"stuck@{snapshot.frame}")

        last_state[0], last_state[1] = snapshot.frame, now
        return CheckResult("driver", Status.OK, f"f{snapshot.frame} runs={len(snapshot.runs)}")
    return check

def create_pool_check(pool, max_drop_ratio=0.5):
    async def check():
        stats = pool.get_stats()
        returned = stats["released"] + stats["dropped"]
        # Most releases overflowing means max_size is too small for the effects being played
        if returned and stats["dropped"] / returned > max_drop_ratio:
            return CheckResult("pool", Status.DEGRADED, f"dropped {stats['dropped']}/{returned}")
        return CheckResult("pool", Status.OK, f"{stats['available']}/{stats['max_size']}")
    return check

def create_logger_check(logger):
    async def check():
        if not logger.running:
            return CheckResult("log", Status.DEGRADED, "not running")

        queue_size, max_size = logger.queue.qsize(), logger.queue.maxsize
        if queue_size / max_size > 0.9:
            return CheckResult("log", Status.DEGRADED, f"{queue_size}/{max_size}")

        return CheckResult("log", Status.OK)
    return check
