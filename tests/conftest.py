"""Pytest fixtures for all tests."""

import random

import pytest
from httpx import AsyncClient, ASGITransport

from communication.bus import FrameBus
from config import Config, EffectsConfig, EffectSettings, LoggingConfig, PoolConfig
from effects.driver import EffectDriver
from effects.particle import Particle
from effects.pool import ParticlePool
from ui.app import create_app


@pytest.fixture
def particle():
    """Create a test particle."""
    return Particle()


@pytest.fixture
def pool():
    """Create a small test pool."""
    return ParticlePool(initial_size=4, max_size=16)


@pytest.fixture
def effects_config():
    """Small screen, fast frames."""
    return EffectsConfig(frame_interval=0.01, width=400, height=800, max_active_runs=2)


@pytest.fixture
def effect_settings():
    return EffectSettings()


@pytest.fixture
async def bus():
    """Create test frame bus."""
    return FrameBus(queue_size=10)


@pytest.fixture
async def driver(bus, effects_config, effect_settings):
    """Create test effect driver with its own pool."""
    drv = EffectDriver(bus=bus, pool=ParticlePool(max_size=4096), config=effects_config,
                       settings=effect_settings, rng=random.Random(7))
    yield drv
    if drv._task:
        await drv.stop()


@pytest.fixture
def app_config(tmp_path):
    return Config(
        effects=EffectsConfig(frame_interval=0.01, width=400, height=800),
        pool=PoolConfig(initial_size=8, max_size=2048),
        logging=LoggingConfig(file=str(tmp_path / "effects.log"), crash_file=str(tmp_path / "crash.log")),
    )


@pytest.fixture
async def app(app_config):
    """Create test FastAPI app."""
    return create_app(app_config)


@pytest.fixture
async def client(app):
    """Create async test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
