"""Config – errors raised while loading or validating settings.

Configuration problems are operator mistakes, not client mistakes, so the
whole family maps to HTTP 500 if one ever escapes a request.
"""
from __future__ import annotations

from bff_commons.kernel.errors import ApplicationError


class ConfigError(ApplicationError):
    """Settings could not be loaded."""

    default_code = "config_error"
    status_code = 500


class MissingRequiredSettingError(ConfigError):
    """An environment variable without a default is not set."""

    default_code = "missing_required_setting"

    def __init__(self, setting_name: str) -> None:
        super().__init__(
            f"Required setting '{setting_name}' is missing",
            detail={"setting": setting_name},
        )
        self.setting_name = setting_name


class InvalidSettingValueError(ConfigError):
    """An environment variable is set but cannot be coerced or fails a bound.

    Raised both by :class:`EnvSettingsLoader` (type coercion) and by the
    settings classes themselves (e.g. ``OUTBOX_BATCH_SIZE=0``).
    """

    default_code = "invalid_setting_value"

    def __init__(self, setting_name: str, value: object, reason: str) -> None:
        super().__init__(
            f"{setting_name}={value!r} is invalid: {reason}",
            detail={"setting": setting_name, "value": repr(value), "reason": reason},
        )
        self.setting_name = setting_name
        self.value = value
        self.reason = reason


__all__ = ["ConfigError", "InvalidSettingValueError", "MissingRequiredSettingError"]
