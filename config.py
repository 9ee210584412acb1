import json
from pathlib import Path

from core.errors import SettingsError

_DEFAULT_CONFIG = Path(__file__).parent / "config.json"

# What caused an effect launch: an explicit replay, an arriving message, or scrolling back to one
TRIGGER_MANUAL = "manual"
TRIGGER_MESSAGE = "message"
TRIGGER_SCROLL = "scroll"
TRIGGERS = (TRIGGER_MANUAL, TRIGGER_MESSAGE, TRIGGER_SCROLL)


class EffectsConfig:
    __slots__ = ("frame_interval", "width", "height", "max_active_runs")

    def __init__(self, frame_interval=1 / 60, width=1080, height=1920, max_active_runs=4):
        self.frame_interval = frame_interval
        self.width = width
        self.height = height
        self.max_active_runs = max_active_runs


class PoolConfig:
    __slots__ = ("initial_size", "max_size", "strict")

    def __init__(self, initial_size=64, max_size=1024, strict=False):
        self.initial_size = initial_size
        self.max_size = max_size
        self.strict = strict


class EffectSettings:
    """User-facing message effect preferences."""

    __slots__ = ("enabled", "auto_play", "replay_on_scroll", "disable_on_low_battery",
                 "low_battery_threshold", "reduce_motion")

    MIN_BATTERY_THRESHOLD = 5
    MAX_BATTERY_THRESHOLD = 50

    def __init__(self, enabled=True, auto_play=True, replay_on_scroll=False,
                 disable_on_low_battery=False, low_battery_threshold=20, reduce_motion=False):
        self.enabled = enabled
        self.auto_play = auto_play
        self.replay_on_scroll = replay_on_scroll
        self.disable_on_low_battery = disable_on_low_battery
        self.low_battery_threshold = self._check_threshold(low_battery_threshold)
        self.reduce_motion = reduce_motion

    @classmethod
    def _check_threshold(cls, value):
        if isinstance(value, bool) or not isinstance(value, int):
            raise SettingsError("low_battery_threshold must be an integer", field="low_battery_threshold")
        if not cls.MIN_BATTERY_THRESHOLD <= value <= cls.MAX_BATTERY_THRESHOLD:
            raise SettingsError(
                f"low_battery_threshold must be within "
                f"{cls.MIN_BATTERY_THRESHOLD}..{cls.MAX_BATTERY_THRESHOLD}",
                field="low_battery_threshold",
            )
        return value

    def update(self, **changes):
        """Apply a partial change. Nothing is applied if any key or value is invalid."""
        for key, value in changes.items():
            if key not in self.__slots__:
                raise SettingsError(f"unknown setting: {key}", field=key)
            if key == "low_battery_threshold":
                self._check_threshold(value)
            elif not isinstance(value, bool):
                raise SettingsError(f"{key} must be a boolean", field=key)
        for key, value in changes.items():
            setattr(self, key, value)
        return self

    def playback_block_reason(self, battery_level=None, trigger=TRIGGER_MANUAL):
        """Why an effect must not play right now, or None if it may."""
        if trigger not in TRIGGERS:
            raise SettingsError(f"unknown trigger: {trigger}", field="trigger")
        if not self.enabled:
            return "disabled"
        if trigger == TRIGGER_MESSAGE and not self.auto_play:
            return "auto_play_off"
        if trigger == TRIGGER_SCROLL and not self.replay_on_scroll:
            return "replay_off"
        if (self.disable_on_low_battery and battery_level is not None
                and battery_level < self.low_battery_threshold):
            return "low_battery"
        return None

    def to_dict(self):
        return {key: getattr(self, key) for key in self.__slots__}


class ServerConfig:
    __slots__ = ("host", "port")

    def __init__(self, host="127.0.0.1", port=8080):
        self.host = host
        self.port = port


class LoggingConfig:
    __slots__ = ("level", "file", "crash_file")

    def __init__(self, level="INFO", file="logs/effects.log", crash_file="logs/crash.log"):
        self.level = level
        self.file = file
        self.crash_file = crash_file


class Config:
    __slots__ = ("effects", "pool", "settings", "server", "logging")

    def __init__(self, effects=None, pool=None, settings=None, server=None, logging=None):
        self.effects = effects or EffectsConfig()
        self.pool = pool or PoolConfig()
        self.settings = settings or EffectSettings()
        self.server = server or ServerConfig()
        self.logging = logging or LoggingConfig()

    @classmethod
    def from_dict(cls, d):
        return cls(
            EffectsConfig(**d.get("effects", {})),
            PoolConfig(**d.get("pool", {})),
            EffectSettings(**d.get("settings", {})),
            ServerConfig(**d.get("server", {})),
            LoggingConfig(**d.get("logging", {})),
        )


def load_config(path=None):
    config_path = Path(path) if path else _DEFAULT_CONFIG

    if not config_path.exists():
        return Config()

    with open(config_path) as file:
        return Config.from_dict(json.load(file))
