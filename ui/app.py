"""FastAPI application factory."""

import asyncio
import json
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse

from communication.bus import TOPIC_EVENT, TOPIC_FRAME, FrameBus
from config import load_config
from core.errors import BaseEffectError
from core.health import (
    HealthChecker,
    check_event_loop,
    create_bus_check,
    create_driver_check,
    create_logger_check,
    create_pool_check,
)
from effects.driver import EffectDriver
from effects.pool import ParticlePool
from effects.state import FrameSnapshot
from internal.logging import get_logger, LogLevel, StructuredLogger, AsyncFileLogger
from utils.crash import create_async_handler
from ui.routes import api, effects, health, settings

VERSION = "1.0.0"


def create_app(config=None):
    """Create and configure the FastAPI application."""
    config = config or load_config()

    StructuredLogger.configure(min_level=LogLevel.parse(config.logging.level))
    logger_instance = get_logger("app")

    # One pool for the life of the process, shared by every effect run
    pool = ParticlePool(initial_size=config.pool.initial_size, max_size=config.pool.max_size,
                        strict=config.pool.strict)
    bus = FrameBus(queue_size=100)
    driver = EffectDriver(bus=bus, pool=pool, config=config.effects, settings=config.settings)
    file_logger = AsyncFileLogger(file_path=config.logging.file)
    health_checker = HealthChecker()

    health_checker.register("event_loop", check_event_loop, critical=True)
    health_checker.register("frame_bus", create_bus_check(bus), critical=False)
    health_checker.register("effect_driver", create_driver_check(driver), critical=True)
    health_checker.register("particle_pool", create_pool_check(pool), critical=False)
    health_checker.register("event_log", create_logger_check(file_logger), critical=False)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger_instance.info("Application starting", version=VERSION)
        loop = asyncio.get_running_loop()
        loop.set_exception_handler(create_async_handler(logger_instance))

        await file_logger.start()
        # Effect lifecycle events only; frames are far too chatty for the event log
        log_sub = await bus.subscribe("event-log", max_queue_size=200, topics=[TOPIC_EVENT])

        async def log_worker():
            while True:
                item = await log_sub.queue.get()
                file_logger.try_log(item.get("kind", "event"), item)

        app.state.log_worker = asyncio.create_task(log_worker())

        await driver.start()
        logger_instance.info("Application started successfully", pool=pool.get_stats())

        yield

        logger_instance.info("Application shutting down")
        await driver.stop()
        app.state.log_worker.cancel()
        try:
            await app.state.log_worker
        except asyncio.CancelledError:
            pass
        await bus.unsubscribe("event-log")
        await file_logger.stop()
        pool.clear()
        logger_instance.info("Application shutdown complete")

    app = FastAPI(
        title="Screen Effects",
        version=VERSION,
        description="particle-based message screen effects",
        lifespan=lifespan,
    )
    app.state.pool = pool
    app.state.driver = driver
    app.state.bus = bus

    @app.exception_handler(BaseEffectError)
    async def effect_error_handler(request: Request, exc: BaseEffectError):
        logger_instance.warn("request failed", error=exc, path=request.url.path, error_id=exc.error_id)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    # Initialize route modules with dependencies
    effects.init(driver)
    settings.init(config.settings, file_logger)
    api.init(driver, pool, bus, file_logger)
    health.init(driver, health_checker)

    app.include_router(effects.router)
    app.include_router(settings.router)
    app.include_router(api.router)
    app.include_router(health.router)

    @app.get("/events")
    async def events(request: Request):
        """SSE endpoint - streams frames and effect events to a viewer."""
        subscriber_name = f"ui-{uuid.uuid4().hex[:8]}"
        # Stale frames may be skipped; lifecycle events never are
        frames = await bus.subscribe(subscriber_name, max_queue_size=10, topics=[TOPIC_FRAME],
                                     latest_only=True)
        lifecycle = await bus.subscribe(f"{subscriber_name}-events", max_queue_size=100,
                                        topics=[TOPIC_EVENT])

        async def event_generator():
            try:
                snapshot = await driver.get_snapshot()
                yield format_sse(TOPIC_FRAME, snapshot.to_dict())

                while True:
                    if await request.is_disconnected():
                        break

                    items = await next_items(lifecycle.queue, frames.queue, timeout=1.0)
                    if not items:
                        yield ": keep-alive\n\n"
                        continue

                    for topic, item in items:
                        if isinstance(item, FrameSnapshot):
                            item = item.to_dict()
                        yield format_sse(topic, item)
            finally:
                await bus.unsubscribe(subscriber_name)
                await bus.unsubscribe(f"{subscriber_name}-events")

        return StreamingResponse(event_generator(), media_type="text/event-stream")

    return app


async def next_items(event_queue, frame_queue, timeout):
    """Wait for queued events or frames; events come first. Empty list on timeout."""
    items = [(TOPIC_EVENT, event_queue.get_nowait()) for _ in range(event_queue.qsize())]
    if not frame_queue.empty():
        items.append((TOPIC_FRAME, frame_queue.get_nowait()))
    if items:
        return items

    getters = {
        asyncio.ensure_future(event_queue.get()): TOPIC_EVENT,
        asyncio.ensure_future(frame_queue.get()): TOPIC_FRAME,
    }
    try:
        await asyncio.wait(getters, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in getters:
            if not task.done():
                task.cancel()
    for topic in (TOPIC_EVENT, TOPIC_FRAME):
        items.extend((topic, task.result()) for task, wanted in getters.items()
                     if wanted == topic and task.done() and not task.cancelled())
    return items


def format_sse(event, data):
    """Format data as Server-Sent Event."""
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"
