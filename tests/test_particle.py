"""Unit tests for Particle and its snapshot."""

import math

import pytest
from effects.particle import DEFAULT_COLOR, DEFAULT_LIFETIME, DEFAULT_SIZE, Particle
from effects.state import ParticleState


def assert_canonical(p):
    assert (p.x, p.y) == (0.0, 0.0)
    assert (p.vx, p.vy) == (0.0, 0.0)
    assert p.rotation == 0.0
    assert p.rotation_speed == 0.0
    assert p.scale == 1.0
    assert p.alpha == 1.0
    assert p.age == 0.0
    assert p.lifetime == DEFAULT_LIFETIME
    assert p.color == DEFAULT_COLOR
    assert p.size == DEFAULT_SIZE
    assert len(p.trail) == 0


class TestParticleReset:
    """Tests for Particle.reset()."""

    def test_new_particle_is_canonical(self, particle):
        """A fresh particle starts in the default state."""
        assert_canonical(particle)

    def test_reset_restores_defaults(self, particle):
        """reset() wipes every field touched by an effect."""
        particle.x, particle.y = 12.0, -4.0
        particle.vx, particle.vy = 3.0, 9.0
        particle.rotation, particle.rotation_speed = 1.2, 4.0
        particle.scale = 2.5
        particle.color = (10, 20, 30)
        particle.lifetime = 3.0
        particle.size = 7.0
        particle.init_trail(2)
        particle.record_trail()
        particle.update(0.5, gravity=9.8)

        particle.reset()

        assert_canonical(particle)

    def test_reset_particle_is_alive(self, particle):
        """Default lifetime is positive so a reset particle is alive."""
        particle.update(0.3)
        particle.reset()
        assert particle.is_alive


class TestParticleUpdate:
    """Tests for Particle.update()."""

    def test_fade_scenario(self):
        """lifetime 2s: half faded after 1s, dead after 2s."""
        p = Particle()
        p.lifetime = 2.0

        p.update(1.0)
        assert p.age == 1.0
        assert p.alpha == 0.5
        assert p.is_alive

        p.update(1.0)
        assert p.age == 2.0
        assert p.alpha == 0.0
        assert not p.is_alive

    def test_gravity_applies_after_position(self):
        """Position moves with the old velocity, gravity only touches vy."""
        p = Particle()
        p.vx, p.vy = 10.0, 0.0

        p.update(1.0, gravity=5.0)

        assert (p.x, p.y) == (10.0, 0.0)
        assert p.vx == 10.0
        assert p.vy == 5.0

    def test_gravity_accumulates(self):
        """Second step moves with the gravity-updated velocity."""
        p = Particle()
        p.lifetime = 10.0
        p.update(1.0, gravity=5.0)
        p.update(1.0, gravity=5.0)
        assert p.y == 5.0
        assert p.vy == 10.0

    def test_rotation_advances(self):
        """Rotation integrates rotation_speed."""
        p = Particle()
        p.rotation_speed = math.pi
        p.update(0.5)
        assert p.rotation == pytest.approx(math.pi / 2)

    def test_alpha_strictly_decreasing_while_alive(self):
        """Linear fade: every step lowers alpha."""
        p = Particle()
        p.lifetime = 1.5
        previous = p.alpha
        while True:
            p.update(0.1)
            if not p.is_alive:
                break
            assert p.alpha < previous
            previous = p.alpha

    def test_alive_iff_elapsed_below_lifetime(self):
        """is_alive tracks summed dt against lifetime."""
        p = Particle()
        p.lifetime = 1.0
        elapsed = 0.0
        for dt in (0.25, 0.25, 0.25, 0.125, 0.125):
            p.update(dt)
            elapsed += dt
            assert p.is_alive == (elapsed < 1.0)

    def test_alpha_goes_negative_past_death(self):
        """Updating a dead particle keeps fading below zero."""
        p = Particle()
        p.lifetime = 1.0
        p.update(1.5)
        assert p.alpha == pytest.approx(-0.5)

    @pytest.mark.parametrize("lifetime", [0.0, -1.0])
    def test_non_positive_lifetime_is_dead(self, lifetime):
        """Zero or negative lifetime never divides and is never alive."""
        p = Particle()
        p.lifetime = lifetime
        assert not p.is_alive
        p.update(0.016)
        assert p.alpha == 0.0
        assert math.isfinite(p.alpha)
        assert not p.is_alive

    def test_zero_dt_is_noop_for_motion(self):
        """dt=0 leaves position and age unchanged."""
        p = Particle()
        p.vx = 100.0
        p.update(0.0, gravity=50.0)
        assert p.x == 0.0
        assert p.vy == 0.0
        assert p.age == 0.0


class TestParticleTrail:
    """Tests for trail recording."""

    def test_trail_disabled_by_default(self, particle):
        """record_trail is a no-op until init_trail."""
        particle.record_trail()
        assert len(particle.trail) == 0

    def test_trail_keeps_latest_points(self, particle):
        """Oldest point falls off when the trail is full."""
        particle.init_trail(2)
        for x in (1.0, 2.0, 3.0):
            particle.x = x
            particle.record_trail()
        assert list(particle.trail) == [(2.0, 0.0), (3.0, 0.0)]


class TestParticleState:
    """Tests for ParticleState snapshots."""

    def test_to_state_copies_values(self, particle):
        """Snapshot is detached from the live particle."""
        particle.x, particle.y = 5.0, 6.0
        particle.init_trail(2)
        particle.record_trail()
        state = particle.to_state()
        particle.reset()

        assert isinstance(state, ParticleState)
        assert (state.x, state.y) == (5.0, 6.0)
        assert state.trail == ((5.0, 6.0),)

    def test_to_dict_clamps_alpha(self, particle):
        """Serialized alpha stays within [0, 1]."""
        particle.update(2.0)
        assert particle.to_state().to_dict()["alpha"] == 0.0

    def test_uses_slots(self):
        """Particle and ParticleState use __slots__."""
        assert hasattr(Particle, "__slots__")
        assert hasattr(ParticleState, "__slots__")

    def test_reset_shares_empty_trail(self):
        """Particles without a trail share one empty deque."""
        a, b = Particle(), Particle()
        assert a.trail is b.trail
        a.init_trail(3)
        a.record_trail()
        a.reset()
        assert a.trail is b.trail
        a.record_trail()
        assert len(b.trail) == 0
