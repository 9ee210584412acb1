"""Full-screen message effects.

Effect tuning constants come from the legacy per-frame animations and are
converted to per-second rates against a 60 Hz reference frame, so effects
play at the same speed whatever frame interval the driver runs at.
"""

import colorsys
import math
import random

from core.errors import EffectNotFoundError

REFERENCE_FPS = 60
EXPLOSION_PARTICLES = 96


def hsv_color(hue, saturation, value):
    """Hue in degrees, saturation/value in 0..1 -> RGB tuple of 0..255 ints."""
    r, g, b = colorsys.hsv_to_rgb((hue % 360.0) / 360.0, saturation, value)
    return (round(r * 255), round(g * 255), round(b * 255))


def fade_lifetime(decay_per_frame):
    """Seconds for alpha to reach zero when losing decay_per_frame each reference frame."""
    return 1.0 / (decay_per_frame * REFERENCE_FPS)


class ScreenEffect:
    """Base effect: spawns particles from a pool and advances their physics.

    Subclasses override spawn() and, where the legacy effect has a custom end
    condition, is_finished().
    """

    name = None
    max_duration = 4.0
    gravity = 0.0          # px/s^2
    friction = 1.0         # velocity multiplier per reference frame
    trail_length = 0

    def __init__(self, width, height, rng=None):
        self.width = width
        self.height = height
        self.rng = rng or random.Random()

    def emit(self, pool, elapsed, dt, active_count):
        """Particles spawned this frame. A burst that fails part way goes back to the pool."""
        spawned = []
        try:
            self.spawn(pool, spawned, elapsed, dt, active_count)
        except Exception:
            pool.release_all(spawned)
            raise
        return spawned

    def spawn(self, pool, out, elapsed, dt, active_count):
        """Append this frame's new particles to out."""

    def advance(self, particle, dt):
        particle.record_trail()
        if self.friction != 1.0:
            damping = self.friction ** (dt * REFERENCE_FPS)
            particle.vx *= damping
            particle.vy *= damping
        particle.update(dt, self.gravity)

    def is_finished(self, elapsed, active_count):
        return elapsed >= self.max_duration

    def _spawn(self, pool, x, y, speed, color, size, lifetime):
        """Acquire a particle flying off at a random angle; speed in px per reference frame."""
        angle = self.rng.random() * math.pi * 2
        particle = pool.acquire()
        particle.x, particle.y = x, y
        particle.vx = math.cos(angle) * speed * REFERENCE_FPS
        particle.vy = math.sin(angle) * speed * REFERENCE_FPS
        particle.color = color
        particle.size = size
        particle.lifetime = lifetime
        particle.init_trail(self.trail_length)
        return particle


class Rocket:
    __slots__ = ("x", "y", "vy", "hue", "burst_y", "exploded")

    def __init__(self, x, y, vy, hue, burst_y):
        self.x, self.y, self.vy = x, y, vy
        self.hue = hue
        self.burst_y = burst_y
        self.exploded = False


class FireworksEffect(ScreenEffect):
    """3-5 rockets launch from below the screen and burst into sparks."""

    name = "fireworks"
    max_duration = 4.0
    min_duration = 2.0
    friction = 0.96
    gravity = 2.35 * 0.016 * REFERENCE_FPS ** 2
    trail_length = 2
    acceleration = 1.025   # rocket speed multiplier per reference frame

    def __init__(self, width, height, rng=None):
        super().__init__(width, height, rng)
        self.rockets = [
            Rocket(
                x=width * (0.2 + self.rng.random() * 0.6),
                y=height + i * 100.0,
                vy=-(self.rng.random() * 3 + 8) * REFERENCE_FPS,
                hue=self.rng.random() * 360.0,
                burst_y=height * (0.3 + self.rng.random() * 0.3),
            )
            for i in range(self.rng.randint(3, 5))
        ]

    def spawn(self, pool, out, elapsed, dt, active_count):
        frames = dt * REFERENCE_FPS
        for rocket in self.rockets:
            if rocket.exploded:
                continue
            rocket.y += rocket.vy * dt
            rocket.vy *= self.acceleration ** frames
            if rocket.y < rocket.burst_y:
                rocket.exploded = True
                self._explode(pool, rocket, out)

    def _explode(self, pool, rocket, out):
        rng = self.rng
        for _ in range(EXPLOSION_PARTICLES):
            out.append(self._spawn(
                pool, rocket.x, rocket.y,
                speed=rng.random() * 12 + 1,
                color=hsv_color(rocket.hue + rng.random() * 60 - 30,
                                0.8 + rng.random() * 0.2, 0.9 + rng.random() * 0.1),
                size=rng.random() * 3 + 2,
                lifetime=fade_lifetime(rng.random() * 0.007 + 0.013),
            ))

    def is_finished(self, elapsed, active_count):
        if elapsed > self.max_duration:
            return True
        return (elapsed > self.min_duration and active_count == 0
                and all(rocket.exploded for rocket in self.rockets))


class CelebrationEffect(ScreenEffect):
    """Gold sparkle bursts sprayed from the top-right corner."""

    name = "celebration"
    max_duration = 5.0
    spawn_window = 2.0
    bursts = 10
    hue = 28.0
    friction = 0.96
    gravity = 2.35 * REFERENCE_FPS ** 2
    trail_length = 2

    def __init__(self, width, height, rng=None):
        super().__init__(width, height, rng)
        self.spawned = False

    def spawn(self, pool, out, elapsed, dt, active_count):
        # Respawn whenever the previous wave has burnt out
        if elapsed >= self.spawn_window or active_count:
            return
        self.spawned = True
        rng = self.rng
        for _ in range(self.bursts * EXPLOSION_PARTICLES):
            particle = self._spawn(
                pool, float(self.width), 0.0,
                speed=rng.random() * 50 + 1,
                color=hsv_color(self.hue, 0.5, 0.5 + rng.random() * 0.3),
                size=rng.random() * 10,
                lifetime=fade_lifetime(rng.random() * 0.007 + 0.013),
            )
            particle.rotation_speed = (rng.random() * 2 - 1) * math.pi * 2
            out.append(particle)

    def is_finished(self, elapsed, active_count):
        if elapsed > self.max_duration:
            return True
        return elapsed >= self.spawn_window and self.spawned and active_count == 0


SCREEN_EFFECTS = {cls.name: cls for cls in (FireworksEffect, CelebrationEffect)}


def available_effects():
    return sorted(SCREEN_EFFECTS)


def create_effect(name, width, height, rng=None):
    try:
        effect_cls = SCREEN_EFFECTS[name]
    except KeyError:
        raise EffectNotFoundError(name) from None
    return effect_cls(width, height, rng)
