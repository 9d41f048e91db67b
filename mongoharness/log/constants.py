"""
Constants for the logging system.

Format strings, rule widths, and the custom TRACE/TRACE2 level numbers.
"""

import logging


class LogConstants:
    """Constants for the logging system."""

    DEFAULT_FORMAT: str = "[%(asctime)s] [%(levelname).1s] %(message)s"

    # Column at which extra fields start
    DEFAULT_RULE_WIDTH: int = 70
    MICRO_RULE_WIDTH: int = 74

    CUSTOM_LEVELS: dict[str, int] = {"TRACE": 5, "TRACE2": 4}

    # Populated with custom levels in log/__init__.py
    LEVEL_NAMES: dict[str, int | bool] = {
        "critical": logging.CRITICAL,
        "error": logging.ERROR,
        "warning": logging.WARNING,
        "info": logging.INFO,
        "debug": logging.DEBUG,
        "false": False,
    }

    RESET: str = "\x1b[0m"

    GRAY_BASE: int = 232
    GRAY_MAX_LEVELS: int = 24
