"""Configuration loading for ciscout."""

from ciscout.config.ignore import IgnorePatterns
from ciscout.config.loader import ConfigError, load_config
from ciscout.config.models import CIScoutConfig

__all__ = [
    "CIScoutConfig",
    "ConfigError",
    "IgnorePatterns",
    "load_config",
]
