"""Config – 12-factor settings and loaders."""

from bff_commons.config.outbox import IdempotencySettings, OutboxSettings
from bff_commons.config.settings import DotenvSettingsLoader, EnvSettingsLoader, Settings, SettingsLoader
from bff_commons.config.errors import ConfigError, InvalidSettingValueError, MissingRequiredSettingError

__all__ = [
    "ConfigError",
    "DotenvSettingsLoader",
    "EnvSettingsLoader",
    "IdempotencySettings",
    "InvalidSettingValueError",
    "MissingRequiredSettingError",
    "OutboxSettings",
    "Settings",
    "SettingsLoader",
]
