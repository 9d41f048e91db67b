"""
Configuration loading for the harness.

Provides a Config class that extends DotDict to handle YAML configuration
files with ${variable} substitution and environment variable overrides.
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from ..dot_dict import DotDict, DotDictPathNotFoundError
from ..exceptions import ConfigError
from .constants import CONFIG_FILE_ENV, ENV_PREFIX, MAX_CONFIG_SIZE_BYTES


def _check_file_size(fname_path: Path) -> None:
    """Check file size limit before parsing."""
    file_size = os.path.getsize(fname_path)
    if file_size > MAX_CONFIG_SIZE_BYTES:
        raise ConfigError(
            "configuration file too large",
            path=str(fname_path),
            size=file_size,
            limit=MAX_CONFIG_SIZE_BYTES,
        )


def _load_yaml(fname_path: Path) -> dict[str, Any]:
    """Load a YAML mapping from disk."""
    with open(fname_path) as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError("invalid YAML", path=str(fname_path)) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError("configuration root must be a mapping", path=str(fname_path))
    return data


def _convert_env_value(value: str) -> bool | int | float | str | list[Any] | None:
    """
    Convert environment variable string to appropriate type.

    Args:
        value: Environment variable value as string

    Returns:
        Converted value with appropriate type
    """
    if value.lower() in ("null", "none", ""):
        return None

    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    # Comma-separated lists, but not inside URIs (mongodb://h1,h2/)
    if "," in value and "://" not in value:
        return [_convert_env_value(v.strip()) for v in value.split(",")]

    try:
        if "." in value:
            return float(value)
        return int(value)
    except ValueError:
        pass

    return value


class Config(DotDict):
    """
    Configuration class that loads YAML files and resolves variable substitutions.

    Supports variable substitution using ${variable_name} syntax in YAML values
    and environment variable overrides using the MONGOHARNESS_ prefix.

    Environment Variable Override Format:
        MONGOHARNESS_<SECTION>_<KEY>=value

    Underscores inside existing key names are matched against the loaded
    configuration, so MONGOHARNESS_MONGO_SERVER_SELECTION_TIMEOUT_MS sets
    ``mongo.server_selection_timeout_ms`` when that key exists.

    Examples:
        MONGOHARNESS_LOGGING_LEVEL=debug
        MONGOHARNESS_MONGO_URI=mongodb://localhost:27018/?replicaSet=rs0

    Example:
        config = Config("etc/mongoharness.yaml")
        uri = config.get("mongo.uri")
    """

    def __init__(
        self,
        fname: str | None = None,
        data: dict[str, Any] | None = None,
        enable_env_overrides: bool = True,
        env_prefix: str = ENV_PREFIX,
    ):
        """
        Initialize configuration from a YAML file or a mapping.

        Args:
            fname: Path to the YAML configuration file
            data: Configuration mapping used when no file is given
            enable_env_overrides: Whether to apply environment variable overrides
            env_prefix: Prefix for environment variables
        """
        super().__init__()
        self._enable_env_overrides = enable_env_overrides
        self._env_prefix = env_prefix
        self._config_path: Path | None = None

        if fname is not None:
            config_data = self._read(fname)
        else:
            config_data = dict(data or {})
        self._apply(config_data)

    @classmethod
    def from_env(cls, default: dict[str, Any] | None = None) -> "Config":
        """
        Load the file named by MONGOHARNESS_CONFIG, or fall back to a mapping.

        Args:
            default: Configuration mapping used when the variable is unset

        Returns:
            Loaded configuration (env overrides applied in both cases)
        """
        fname = os.environ.get(CONFIG_FILE_ENV)
        if fname:
            return cls(fname)
        return cls(data=default)

    def _read(self, fname: str) -> dict[str, Any]:
        fname_path = Path(fname).resolve()
        if not fname_path.is_file():
            raise ConfigError("configuration file not found", path=str(fname_path))
        _check_file_size(fname_path)
        self._config_path = fname_path
        return _load_yaml(fname_path)

    def _apply(self, config_data: dict[str, Any]) -> None:
        if self._enable_env_overrides:
            config_data = self._apply_env_overrides(config_data)

        self.set(**config_data)
        self.set(**self._resolve(self.to_dict()))

    @property
    def path(self) -> Path | None:
        """Path of the loaded file, or None for mapping-based configs."""
        return self._config_path

    def _resolve(self, content: Any) -> Any:
        """
        Recursively resolve ${variable_name} substitutions.

        Args:
            content: Configuration content (dict, list, str, or other)

        Returns:
            Resolved content with variable substitutions applied
        """
        if isinstance(content, dict):
            for k in list(content.keys()):
                content[k] = self._resolve(content[k])
        elif isinstance(content, list):
            return [self._resolve(v) for v in content]
        elif isinstance(content, str):
            # Restrict to valid config keys to prevent ReDoS
            return re.sub(r"\$\{([a-zA-Z0-9_.]+)\}", self._substitute_var, content)
        return content

    def _substitute_var(self, match: re.Match) -> str:
        var_name = match.group(1)
        if not self.has(var_name):
            raise ConfigError(
                "undefined configuration variable", variable=var_name
            ) from DotDictPathNotFoundError(self, var_name)
        return str(self.get(var_name))

    def _apply_env_overrides(self, config_data: dict[str, Any]) -> dict[str, Any]:
        for env_key, env_value in self._collect_env_vars().items():
            path = self._env_key_to_path(env_key, config_data)
            self._set_nested_value(config_data, path, _convert_env_value(env_value))
        return config_data

    def _collect_env_vars(self) -> dict[str, str]:
        """Collect environment variables with the configured prefix."""
        return {
            key: value
            for key, value in os.environ.items()
            if key.startswith(self._env_prefix) and key != CONFIG_FILE_ENV
        }

    def _env_key_to_path(self, env_key: str, data: dict[str, Any]) -> list[str]:
        """
        Convert an environment variable key to a configuration path.

        At each level the longest run of underscore-separated parts naming an
        existing key wins; unknown parts become single-word keys.
        """
        parts = env_key[len(self._env_prefix) :].lower().split("_")
        path: list[str] = []
        current: Any = data
        i = 0
        while i < len(parts):
            take = 1
            if isinstance(current, dict):
                for n in range(len(parts) - i, 1, -1):
                    if "_".join(parts[i : i + n]) in current:
                        take = n
                        break
            key = "_".join(parts[i : i + take])
            path.append(key)
            current = current.get(key) if isinstance(current, dict) else None
            i += take
        return path

    def _set_nested_value(self, data: dict, path: list[str], value: Any) -> None:
        current = data
        for part in path[:-1]:
            if not isinstance(current.get(part), dict):
                current[part] = {}
            current = current[part]
        current[path[-1]] = value

    def get_env_overrides(self) -> dict[str, Any]:
        """
        Get all environment variable overrides that would be applied.

        Returns:
            Mapping of dotted config path to converted value
        """
        if not self._enable_env_overrides:
            return {}

        data = self.to_dict()
        return {
            ".".join(self._env_key_to_path(k, data)): _convert_env_value(v)
            for k, v in self._collect_env_vars().items()
        }
