"""Config settings – 12-factor env-based configuration."""
from bff_commons.config.settings.base import Settings
from bff_commons.config.settings.loaders import DotenvSettingsLoader, EnvSettingsLoader, SettingsLoader

__all__ = ["DotenvSettingsLoader", "EnvSettingsLoader", "Settings", "SettingsLoader"]
