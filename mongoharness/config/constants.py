"""
Configuration-related constants and resource limits.
"""

# Maximum config file size (1MB); harness configs are a few lines long
MAX_CONFIG_SIZE_BYTES = 1024 * 1024

# Prefix for environment variable overrides (MONGOHARNESS_MONGO_URI, ...)
ENV_PREFIX = "MONGOHARNESS_"

# Environment variable naming a config file to load
CONFIG_FILE_ENV = "MONGOHARNESS_CONFIG"
