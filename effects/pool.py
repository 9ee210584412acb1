"""Bounded free-list recycler for particles.

Screen effects spawn hundreds of particles per burst and drop them a second
or two later. The pool keeps up to `max_size` spent particles around for
reuse; anything released beyond that is left to the garbage collector.

All free-list access goes through a single threading.Lock so the pool can be
shared between the event loop and worker threads. The lock is only ever held
for list manipulation.
"""

import threading

from core.errors import DoubleReleaseError, PoolConfigError
from effects.particle import Particle
from internal.logging import get_logger

DEFAULT_MAX_SIZE = 1024


class ParticlePool:

    def __init__(self, initial_size=0, max_size=DEFAULT_MAX_SIZE, factory=Particle, strict=False):
        """
        Args:
            initial_size: particles created up front.
            max_size: most particles retained in the free list.
            factory: no-argument callable returning a fresh Particle.
            strict: reject releasing a particle that is already pooled.
        """
        if initial_size < 0 or max_size < 0:
            raise PoolConfigError("pool sizes must be non-negative",
                                  initial_size=initial_size, max_size=max_size)
        if initial_size > max_size:
            raise PoolConfigError("initial_size exceeds max_size",
                                  initial_size=initial_size, max_size=max_size)
        self.max_size = max_size
        self.strict = strict
        self._factory = factory
        self._lock = threading.Lock()
        self._free = [factory() for _ in range(initial_size)]
        # ids of pooled particles; only maintained in strict mode
        self._pooled = {id(p) for p in self._free} if strict else None
        self._log = get_logger("pool")
        self.created = initial_size
        self.reused = 0
        self.released = 0
        self.dropped = 0

    def acquire(self):
        """Take a particle in canonical state. Allocates when the free list is empty."""
        with self._lock:
            if self._free:
                particle = self._free.pop()
                if self._pooled is not None:
                    self._pooled.discard(id(particle))
                self.reused += 1
            else:
                particle = None
        if particle is None:
            particle = self._factory()
            with self._lock:
                self.created += 1
        particle.reset()
        return particle

    def release(self, particle):
        """Return a particle. Returns False if the pool was full and it was dropped."""
        particle.reset()
        with self._lock:
            if self._pooled is not None and id(particle) in self._pooled:
                raise DoubleReleaseError("particle released twice",
                                         context={"available": len(self._free)})
            if len(self._free) >= self.max_size:
                self.dropped += 1
                return False
            self._free.append(particle)
            if self._pooled is not None:
                self._pooled.add(id(particle))
            self.released += 1
            return True

    def release_all(self, particles):
        """Release each particle; returns how many were retained."""
        return sum(1 for particle in particles if self.release(particle))

    def clear(self):
        """Drop every pooled particle. Particles held by callers are untouched."""
        with self._lock:
            count = len(self._free)
            self._free.clear()
            if self._pooled is not None:
                self._pooled.clear()
        self._log.debug("pool cleared", dropped=count)
        return count

    @property
    def available_count(self):
        with self._lock:
            return len(self._free)

    def get_stats(self):
        with self._lock:
            return {
                "available": len(self._free),
                "max_size": self.max_size,
                "created": self.created,
                "reused": self.reused,
                "released": self.released,
                "dropped": self.dropped,
            }
