"""Unit tests for ParticlePool."""

import random
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from core.errors import DoubleReleaseError, PoolConfigError
from effects.particle import Particle
from effects.pool import ParticlePool


class TestPoolCreation:
    """Tests for pool construction."""

    def test_prepopulates(self):
        """initial_size particles are available immediately."""
        pool = ParticlePool(initial_size=5, max_size=10)
        assert pool.available_count == 5
        assert pool.get_stats()["created"] == 5

    def test_empty_by_default(self):
        """No initial size means an empty free list."""
        assert ParticlePool(max_size=3).available_count == 0

    @pytest.mark.parametrize("initial, maximum", [(-1, 4), (0, -1), (5, 4)])
    def test_invalid_sizes_rejected(self, initial, maximum):
        """Negative sizes and initial > max raise PoolConfigError."""
        with pytest.raises(PoolConfigError) as info:
            ParticlePool(initial_size=initial, max_size=maximum)
        assert info.value.context["max_size"] == maximum

    def test_custom_factory(self):
        """Factory is used for pre-population and empty-pool allocation."""
        calls = []

        def factory():
            calls.append(1)
            return Particle()

        pool = ParticlePool(initial_size=2, max_size=4, factory=factory)
        pool.acquire()
        pool.acquire()
        pool.acquire()
        assert len(calls) == 3

    def test_failing_factory_not_counted(self):
        """A factory error propagates and leaves the pool stats untouched."""
        def factory():
            raise RuntimeError("out of memory")

        pool = ParticlePool(max_size=4, factory=factory)
        with pytest.raises(RuntimeError):
            pool.acquire()
        assert pool.get_stats()["created"] == 0


class TestAcquireRelease:
    """Tests for acquire/release."""

    def test_reuse_scenario(self):
        """Released particle comes back on the next acquire."""
        pool = ParticlePool(max_size=2)
        p1 = pool.acquire()
        assert pool.available_count == 0

        assert pool.release(p1) is True
        assert pool.available_count == 1

        again = pool.acquire()
        assert again is p1
        assert pool.available_count == 0

    def test_overflow_dropped(self):
        """A full pool silently drops extra releases."""
        pool = ParticlePool(max_size=1)
        p1, p2 = Particle(), Particle()

        assert pool.release(p1) is True
        assert pool.release(p2) is False
        assert pool.available_count == 1
        assert pool.acquire() is p1
        assert pool.get_stats()["dropped"] == 1

    def test_zero_capacity_pool(self):
        """max_size=0 never retains anything but still hands out particles."""
        pool = ParticlePool(max_size=0)
        particle = pool.acquire()
        assert pool.release(particle) is False
        assert pool.available_count == 0

    def test_acquire_returns_clean_state(self):
        """Reused particles carry no stale data."""
        pool = ParticlePool(max_size=4)
        p = pool.acquire()
        p.x, p.vy, p.rotation, p.scale = 50.0, -3.0, 2.0, 0.4
        p.lifetime = 0.5
        p.color = (1, 2, 3)
        p.init_trail(3)
        p.record_trail()
        p.update(0.3, gravity=10.0)
        pool.release(p)

        reused = pool.acquire()
        assert reused is p
        assert (reused.x, reused.y, reused.vx, reused.vy) == (0.0, 0.0, 0.0, 0.0)
        assert reused.rotation == 0.0
        assert reused.scale == 1.0
        assert reused.alpha == 1.0
        assert reused.age == 0.0
        assert reused.color == (255, 255, 255)
        assert len(reused.trail) == 0

    def test_foreign_particle_accepted(self):
        """Particles not created by the pool can be released into it."""
        pool = ParticlePool(max_size=2)
        assert pool.release(Particle()) is True
        assert pool.available_count == 1

    def test_permissive_double_release(self):
        """Default pool does not detect a double release."""
        pool = ParticlePool(max_size=4)
        p = pool.acquire()
        pool.release(p)
        pool.release(p)
        assert pool.available_count == 2

    def test_strict_double_release_raises(self):
        """Strict pool rejects releasing a particle that is already pooled."""
        pool = ParticlePool(max_size=4, strict=True)
        p = pool.acquire()
        pool.release(p)
        with pytest.raises(DoubleReleaseError):
            pool.release(p)
        assert pool.available_count == 1

    def test_strict_release_after_reacquire(self):
        """Strict tracking forgets a particle once it is acquired again."""
        pool = ParticlePool(initial_size=1, max_size=4, strict=True)
        p = pool.acquire()
        assert pool.release(p) is True
        assert pool.acquire() is p
        assert pool.release(p) is True

    def test_stats_counters(self):
        """Stats track creations, reuse, releases and drops."""
        pool = ParticlePool(initial_size=1, max_size=1)
        a = pool.acquire()
        b = pool.acquire()
        pool.release(a)
        pool.release(b)
        stats = pool.get_stats()
        assert stats == {"available": 1, "max_size": 1, "created": 2, "reused": 1,
                         "released": 1, "dropped": 1}


class TestReleaseAllAndClear:
    """Tests for batch release and clear."""

    def test_release_all_respects_capacity(self):
        """release_all retains up to max_size and reports how many."""
        pool = ParticlePool(max_size=3)
        particles = [pool.acquire() for _ in range(5)]
        assert pool.release_all(particles) == 3
        assert pool.available_count == 3

    def test_release_all_accepts_generator(self):
        """Any iterable works."""
        pool = ParticlePool(max_size=8)
        assert pool.release_all(Particle() for _ in range(4)) == 4

    def test_clear_empties_free_list(self):
        """clear() drops pooled particles."""
        pool = ParticlePool(initial_size=6, max_size=8)
        assert pool.clear() == 6
        assert pool.available_count == 0

    def test_clear_leaves_acquired_particles_alone(self):
        """Particles held by callers keep their state across clear()."""
        pool = ParticlePool(initial_size=2, max_size=4)
        held = pool.acquire()
        held.x = 42.0
        pool.clear()
        assert held.x == 42.0
        assert pool.release(held) is True


class TestPoolConcurrency:
    """Tests for concurrent access."""

    def test_interleaved_threads_respect_capacity(self):
        """10,000 acquire/release calls across threads never fail or overfill."""
        pool = ParticlePool(initial_size=8, max_size=32)
        observed = []
        lock = threading.Lock()

        def worker(seed):
            rng = random.Random(seed)
            held = []
            for _ in range(1250):
                if held and rng.random() < 0.5:
                    pool.release(held.pop())
                else:
                    held.append(pool.acquire())
                with lock:
                    observed.append(pool.available_count)
            pool.release_all(held)

        with ThreadPoolExecutor(max_workers=8) as executor:
            list(executor.map(worker, range(8)))

        assert all(0 <= count <= 32 for count in observed)
        assert 0 <= pool.available_count <= 32

    def test_no_particle_handed_out_twice(self):
        """Concurrent acquirers never receive the same pooled particle."""
        pool = ParticlePool(initial_size=200, max_size=200)
        barrier = threading.Barrier(4)

        def grab(_):
            barrier.wait()
            return [pool.acquire() for _ in range(50)]

        with ThreadPoolExecutor(max_workers=4) as executor:
            batches = list(executor.map(grab, range(4)))

        ids = [id(p) for batch in batches for p in batch]
        assert len(set(ids)) == len(ids) == 200
        assert pool.available_count == 0
