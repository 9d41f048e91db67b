"""
Logging module extending Python's standard logging.

Adds:
- Custom TRACE and TRACE2 log levels for detailed debugging
- Structured logging with extra fields rendered as [key:value]
- Derived loggers sharing the root's handlers
- Complete logging disable (level=False or level="false")
"""

import logging

from .colors import ColorManager
from .config import LogConfig
from .constants import LogConstants
from .exceptions import InvalidLogLevelError, LogError
from .factory import LoggerFactory
from .formatters import LogFormatter
from .logger import Logger

logging.TRACE = LogConstants.CUSTOM_LEVELS["TRACE"]  # type: ignore[attr-defined]
logging.addLevelName(logging.TRACE, "TRACE")  # type: ignore[attr-defined]

logging.TRACE2 = LogConstants.CUSTOM_LEVELS["TRACE2"]  # type: ignore[attr-defined]
logging.addLevelName(logging.TRACE2, "TRACE2")  # type: ignore[attr-defined]

LogConstants.LEVEL_NAMES.update(
    {
        "trace": logging.TRACE,  # type: ignore[attr-defined]
        "trace2": logging.TRACE2,  # type: ignore[attr-defined]
    }
)

ColorManager.add_custom_level_colors()


def resolve_level(s: str | int | bool) -> int | bool:
    """
    Resolve log level from string, numeric value, or boolean.

    Args:
        s: Log level as string name, numeric value, or False to disable logging

    Returns:
        Numeric log level or False to disable logging

    Raises:
        InvalidLogLevelError: If the log level is invalid
    """
    if isinstance(s, bool):
        return s
    if isinstance(s, int):
        return s
    if s.isnumeric():
        return int(s)
    if s.lower() in LogConstants.LEVEL_NAMES:
        return LogConstants.LEVEL_NAMES[s.lower()]
    raise InvalidLogLevelError(s)


def create_root_lg(
    level: str | int = "info",
    location: bool | int = False,
    micros: bool = False,
    colors: bool = True,
) -> Logger:
    """
    Create a root logger with the specified configuration.

    Example:
        >>> lg = create_root_lg("debug", colors=False)
    """
    config = LogConfig.from_params(level, location, micros, colors)
    return LoggerFactory.create_root(config)


def derive_lg(lg: Logger, tags: str | list[str]) -> Logger:
    """Derive a logger with tags from a parent logger."""
    return LoggerFactory.derive(lg, tags)


__all__ = [
    "Logger",
    "LoggerFactory",
    "LogConfig",
    "LogConstants",
    "LogFormatter",
    "LogError",
    "InvalidLogLevelError",
    "resolve_level",
    "create_root_lg",
    "derive_lg",
]
