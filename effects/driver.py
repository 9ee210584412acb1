import asyncio
import random
import time
from communication.bus import TOPIC_EVENT, TOPIC_FRAME
from config import TRIGGER_MANUAL, EffectSettings, load_config
from core.errors import EffectSuppressedError, TooManyEffectsError
from effects.screen import create_effect
from effects.state import FrameSnapshot, RunState
from internal.logging import get_logger
from utils.ksuid import generate_ksuid

class DriverState:
    STOPPED = "stopped"
    RUNNING = "running"
    PAUSED = "paused"

class EffectRun:
    """One playing screen effect and the particles it currently owns."""

    __slots__ = ("id", "effect", "particles", "elapsed", "finished")

    def __init__(self, effect, id=None):
        self.id = id or generate_ksuid()
        self.effect = effect
        self.particles = []
        self.elapsed = 0.0
        self.finished = False

    @property
    def name(self):
        return self.effect.name

    def frame(self, pool, dt):
        """Spawn, advance, and hand expired particles back to the pool."""
        self.elapsed += dt
        spawned = self.effect.emit(pool, self.elapsed, dt, len(self.particles))
        alive, dead = [], []
        for particle in self.particles:
            self.effect.advance(particle, dt)
            (alive if particle.is_alive else dead).append(particle)
        self.particles = alive + spawned
        pool.release_all(dead)
        if self.effect.is_finished(self.elapsed, len(self.particles)):
            self.finish(pool)

    def finish(self, pool):
        pool.release_all(self.particles)
        self.particles = []
        self.finished = True

    def to_state(self):
        return RunState(self.id, self.name, self.elapsed, [p.to_state() for p in self.particles])

    def summary(self):
        return {"id": self.id, "effect": self.name, "elapsed_s": round(self.elapsed, 3),
                "particles": len(self.particles)}

class EffectDriver:
    """Per-frame animation loop for screen effects.

    Owns the active runs; particles come from and go back to the injected pool.
    """

    def __init__(self, bus, pool, config=None, settings=None, rng=None):
        self.bus = bus
        self.pool = pool
        self.config = config or load_config().effects
        self.settings = settings or EffectSettings()
        self._rng = rng or random.Random()
        self._lock = asyncio.Lock()
        self._log = get_logger("driver")
        self._runs = {}
        self._state = DriverState.STOPPED
        self._task = None
        self._stop = asyncio.Event()
        self._last_publish_frame = -1
        self.frame = 0
        self.time = 0.0
        self.completed = 0

    @property
    def paused(self):
        return self._state == DriverState.PAUSED

    @property
    def state(self):
        return self._state

    @property
    def active_runs(self):
        return [run.summary() for run in self._runs.values()]

    async def launch(self, name, width=None, height=None, battery_level=None, trigger=TRIGGER_MANUAL):
        reason = self.settings.playback_block_reason(battery_level, trigger)
        if reason:
            self._log.info("effect suppressed", effect=name, reason=reason, trigger=trigger)
            raise EffectSuppressedError(reason, effect_name=name)

        effect = create_effect(name, width or self.config.width, height or self.config.height,
                               random.Random(self._rng.random()))
        run = EffectRun(effect)

        if self.settings.reduce_motion:
            # Indicator only: the client shows a static hint instead of an animation
            run.finished = True
            await self.bus.publish({"kind": "effect_indicator", "id": run.id, "effect": name}, TOPIC_EVENT)
            return run

        async with self._lock:
            if len(self._runs) >= self.config.max_active_runs:
                raise TooManyEffectsError(self.config.max_active_runs)
            self._runs[run.id] = run

        self._log.info("effect started", effect=name, run=run.id, trigger=trigger)
        await self.bus.publish({"kind": "effect_started", "id": run.id, "effect": name}, TOPIC_EVENT)
        return run

    async def cancel(self, run_id):
        async with self._lock:
            run = self._runs.pop(run_id, None)
            if run is None:
                return False
            run.finish(self.pool)
        self._log.info("effect cancelled", effect=run.name, run=run_id)
        await self.bus.publish({"kind": "effect_cancelled", "id": run_id, "effect": run.name}, TOPIC_EVENT)
        return True

    async def step(self, dt):
        """Advance every run by one frame of dt seconds and return the resulting snapshot."""
        async with self._lock:
            events = self._advance(dt)
            snapshot = self._snapshot()
        for event in events:
            await self.bus.publish(event, TOPIC_EVENT)
        return snapshot

    def _advance(self, dt):
        events = []
        for run in list(self._runs.values()):
            try:
                run.frame(self.pool, dt)
            except Exception as exc:
                # A broken effect must not take the others down with it
                self._log.error("effect frame failed", error=exc, effect=run.name, run=run.id)
                run.finish(self.pool)
            if run.finished:
                del self._runs[run.id]
                self.completed += 1
                events.append({"kind": "effect_complete", "id": run.id, "effect": run.name,
                               "elapsed_s": round(run.elapsed, 3)})
        self.frame += 1
        self.time += dt
        return events

    def _snapshot(self):
        return FrameSnapshot(self.frame, self.time, [run.to_state() for run in self._runs.values()])

    async def start(self):
        if self._task:
            return
        self._stop.clear()
        self._state = DriverState.RUNNING
        self._task = asyncio.create_task(self._loop())

    async def stop(self):
        self._stop.set()
        if self._task:
            await self._task
            self._task = None
        self._state = DriverState.STOPPED
        async with self._lock:
            for run in self._runs.values():
                run.finish(self.pool)
            self._runs.clear()
        await self.bus.publish({"kind": "driver_stopped", "frame": self.frame}, TOPIC_EVENT)

    async def pause(self):
        async with self._lock:
            self._state = DriverState.PAUSED
            self._log.info("driver paused", frame=self.frame)

    async def resume(self):
        async with self._lock:
            self._state = DriverState.RUNNING
            self._log.info("driver resumed", frame=self.frame)

    async def get_snapshot(self):
        async with self._lock:
            return self._snapshot()

    def get_stats(self):
        return {
            "state": self._state,
            "frame": self.frame,
            "time_s": round(self.time, 3),
            "active_runs": len(self._runs),
            "active_particles": sum(len(run.particles) for run in self._runs.values()),
            "completed": self.completed,
        }

    async def _loop(self):
        frame_interval = self.config.frame_interval
        next_frame_time = time.perf_counter()
        self._log.info("driver start", dt=frame_interval)

        while not self._stop.is_set():
            wait_time = next_frame_time - time.perf_counter()
            if wait_time > 0:
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=wait_time)
                    break
                except asyncio.TimeoutError:
                    pass
            next_frame_time += frame_interval

            events = []
            try:
                async with self._lock:
                    if self._state == DriverState.RUNNING:
                        had_runs = bool(self._runs)
                        events = self._advance(frame_interval)
                        # Idle frames carry nothing worth sending
                        changed = had_runs or bool(events)
                    else:
                        changed = False
                    snapshot = self._snapshot() if changed else None
            except Exception as exc:
                self._log.error("frame fail", error=exc, frame=self.frame)
                continue

            for event in events:
                await self.bus.publish(event, TOPIC_EVENT)
            if snapshot is not None and self.frame != self._last_publish_frame:
                await self.bus.publish(snapshot, TOPIC_FRAME)
                self._last_publish_frame = self.frame

        self._log.info("driver stop", frame=self.frame)
