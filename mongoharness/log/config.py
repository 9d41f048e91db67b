"""
Configuration for the logging system.

LogConfig is immutable so a logger's configuration cannot drift while a test
session is running.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class LogConfig:
    """
    Immutable configuration for loggers.

    Attributes:
        level: Numeric level, or False to disable logging
        location: Show the calling file:line when non-zero
        micros: Show microsecond precision in timestamps
        colors: Enable ANSI colored output
    """

    level: int | bool = logging.INFO
    location: int = 0
    micros: bool = False
    colors: bool = True

    @staticmethod
    def _resolve_level(level: str | int | bool) -> int | bool:
        """Resolve level parameter to int or False."""
        from .constants import LogConstants
        from .exceptions import InvalidLogLevelError

        if isinstance(level, bool):
            return False if not level else logging.INFO
        if isinstance(level, str):
            if level.isnumeric():
                return int(level)
            if level.lower() in LogConstants.LEVEL_NAMES:
                return LogConstants.LEVEL_NAMES[level.lower()]
            raise InvalidLogLevelError(level)
        return level

    @classmethod
    def from_params(
        cls,
        level: str | int | bool,
        location: bool | int = 0,
        micros: bool = False,
        colors: bool = True,
    ) -> LogConfig:
        """
        Create LogConfig from individual parameters.

        Args:
            level: Log level (string name, numeric value, or False to disable logging)
            location: Location display (bool or int)
            micros: Whether to show microsecond precision
            colors: Whether to enable colored output

        Returns:
            LogConfig instance
        """
        resolved_location = (
            1 if location is True else (0 if location is False else int(location))
        )
        return cls(
            level=cls._resolve_level(level),
            location=resolved_location,
            micros=micros,
            colors=colors,
        )

    @classmethod
    def from_config(cls, config: Any, section: str = "logging") -> LogConfig:
        """
        Create LogConfig from a configuration object.

        Args:
            config: Config/DotDict instance or plain dictionary
            section: Dotted path of the logging section

        Returns:
            LogConfig instance

        Example:
            config = Config("etc/mongoharness.yaml")
            log_config = LogConfig.from_config(config)
        """
        current: Any = config
        for part in section.split("."):
            current = current.get(part) if current is not None else None
        if current is None:
            current = {}

        level = current.get("level", "info")
        if level == "false":
            level = False

        return cls.from_params(
            level=level,
            location=current.get("location", 0),
            micros=current.get("micros", False),
            colors=current.get("colors", True),
        )
