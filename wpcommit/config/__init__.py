"""Configuration module for wpcommit."""

from .logging import JSONFormatter, init_logging, pass_id
from .settings import AppSettings, SettingsValidationError, load_settings

__all__ = [
    "AppSettings",
    "JSONFormatter",
    "SettingsValidationError",
    "init_logging",
    "load_settings",
    "pass_id",
]
