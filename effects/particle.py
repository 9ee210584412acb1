from collections import deque

from effects.state import ParticleState

DEFAULT_LIFETIME = 1.0
DEFAULT_COLOR = (255, 255, 255)
DEFAULT_SIZE = 1.0
# Shared by every particle without a trail; maxlen 0 keeps it empty
NO_TRAIL = deque(maxlen=0)


class Particle:
    """One animated visual element of a screen effect.

    Particles are recycled through a ParticlePool, so all state lives in
    mutable slots and reset() restores the canonical defaults in place.
    """

    __slots__ = ("x", "y", "vx", "vy", "rotation", "rotation_speed", "scale", "alpha",
                 "color", "lifetime", "age", "size", "trail")

    def __init__(self):
        self.reset()

    def reset(self):
        """Restore canonical defaults: origin, at rest, full scale and opacity, age 0."""
        self.x = 0.0
        self.y = 0.0
        self.vx = 0.0
        self.vy = 0.0
        self.rotation = 0.0
        self.rotation_speed = 0.0
        self.scale = 1.0
        self.alpha = 1.0
        self.color = DEFAULT_COLOR
        self.lifetime = DEFAULT_LIFETIME
        self.age = 0.0
        self.size = DEFAULT_SIZE
        self.trail = NO_TRAIL

    def update(self, dt, gravity=0.0):
        """Advance by dt seconds. dt must be >= 0; callers stop updating dead particles."""
        self.age += dt
        # Position uses the velocity from before gravity is applied
        self.x += self.vx * dt
        self.y += self.vy * dt
        self.vy += gravity * dt
        self.rotation += self.rotation_speed * dt
        if self.lifetime > 0:
            self.alpha = 1.0 - self.age / self.lifetime
        else:
            self.alpha = 0.0

    @property
    def is_alive(self):
        return self.age < self.lifetime

    def init_trail(self, length):
        self.trail = deque(maxlen=length)

    def record_trail(self):
        """Remember the current position; the oldest point falls off when full."""
        if self.trail.maxlen:
            self.trail.append((self.x, self.y))

    def to_state(self):
        """Immutable copy for publishing; the particle itself goes back to the pool."""
        return ParticleState(self.x, self.y, self.rotation, self.scale, self.alpha,
                             self.color, self.size, tuple(self.trail))

    def __repr__(self):
        return (f"Particle(x={self.x:.1f}, y={self.y:.1f}, age={self.age:.3f}/"
                f"{self.lifetime:.3f}, alpha={self.alpha:.2f})")
