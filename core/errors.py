"""Custom errors with tracking IDs."""

from utils.timestamp import format_timestamp
from utils.ksuid import generate_ksuid


class BaseEffectError(Exception):
    """Base error with unique ID and timestamp for tracking."""

    status_code = 500

    def __init__(self, message, context=None, cause=None):
        super().__init__(message)
        self.message = message
        self.error_id = generate_ksuid()
        self.timestamp = format_timestamp()
        self.context = context or {}
        self.cause = cause

    def __str__(self):
        return f"[{self.error_id}] {super().__str__()}"

    def to_dict(self):
        return {"detail": self.message, "error_id": self.error_id, **self.context}


class PoolConfigError(BaseEffectError):
    """Invalid pool sizing."""

    def __init__(self, message, initial_size=None, max_size=None, **kwargs):
        context = kwargs.pop("context", {})
        context.update(initial_size=initial_size, max_size=max_size)
        super().__init__(message, context=context, **kwargs)


class DoubleReleaseError(BaseEffectError):
    """A particle already sitting in a strict pool was released again."""

    status_code = 409


class EffectNotFoundError(BaseEffectError):
    status_code = 404

    def __init__(self, effect_name, **kwargs):
        context = kwargs.pop("context", {})
        context["effect"] = effect_name
        super().__init__(f"unknown effect: {effect_name}", context=context, **kwargs)


class EffectSuppressedError(BaseEffectError):
    """Playback refused by the effects settings (disabled, low battery)."""

    status_code = 409

    def __init__(self, reason, effect_name=None, **kwargs):
        context = kwargs.pop("context", {})
        context["reason"] = reason
        if effect_name:
            context["effect"] = effect_name
        super().__init__(f"effect playback suppressed: {reason}", context=context, **kwargs)
        self.reason = reason


class TooManyEffectsError(BaseEffectError):
    status_code = 429

    def __init__(self, limit, **kwargs):
        context = kwargs.pop("context", {})
        context["limit"] = limit
        super().__init__(f"too many active effects (limit {limit})", context=context, **kwargs)


class SettingsError(BaseEffectError):
    status_code = 422

    def __init__(self, message, field=None, **kwargs):
        context = kwargs.pop("context", {})
        if field:
            context["field"] = field
        super().__init__(message, context=context, **kwargs)
