from utils.ksuid import generate_ksuid
from utils.timestamp import format_timestamp


class ParticleState:
    __slots__ = ("x", "y", "rotation", "scale", "alpha", "color", "size", "trail")

    def __init__(self, x, y, rotation, scale, alpha, color, size, trail=()):
        self.x, self.y = x, y
        self.rotation, self.scale = rotation, scale
        self.alpha, self.color, self.size = alpha, color, size
        self.trail = trail

    def to_dict(self):
        return {
            "x": round(self.x, 2),
            "y": round(self.y, 2),
            "rotation": round(self.rotation, 3),
            "scale": self.scale,
            # dead-but-not-yet-released particles can fade below zero
            "alpha": round(min(max(self.alpha, 0.0), 1.0), 3),
            "color": list(self.color),
            "size": round(self.size, 2),
            "trail": [[round(x, 2), round(y, 2)] for x, y in self.trail],
        }


class RunState:
    __slots__ = ("id", "effect", "elapsed", "particles")

    def __init__(self, id, effect, elapsed, particles):
        self.id, self.effect, self.elapsed, self.particles = id, effect, elapsed, particles

    def to_dict(self):
        return {
            "id": self.id,
            "effect": self.effect,
            "elapsed_s": round(self.elapsed, 4),
            "particles": [p.to_dict() for p in self.particles],
        }


class FrameSnapshot:
    __slots__ = ("id", "timestamp", "frame", "time", "runs")

    def __init__(self, frame, time, runs, id=None, timestamp=None):
        self.id = id or generate_ksuid()
        self.timestamp = timestamp or format_timestamp()
        self.frame = frame
        self.time = time
        self.runs = runs

    @property
    def particle_count(self):
        return sum(len(run.particles) for run in self.runs)

    def to_dict(self):
        return {
            "id": self.id,
            "timestamp": self.timestamp,
            "frame": self.frame,
            "time_s": self.time,
            "particle_count": self.particle_count,
            "runs": [run.to_dict() for run in self.runs],
        }
