"""
Configuration management package.

Provides the Config class for loading YAML configuration files with
environment variable overrides.
"""

from .config import Config
from .constants import CONFIG_FILE_ENV, ENV_PREFIX, MAX_CONFIG_SIZE_BYTES

__all__ = [
    "Config",
    "CONFIG_FILE_ENV",
    "ENV_PREFIX",
    "MAX_CONFIG_SIZE_BYTES",
]
