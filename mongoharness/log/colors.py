"""
ANSI color codes for log levels.
"""

import logging

from .constants import LogConstants


class ColorManager:
    """Centralized ANSI color code management."""

    RED = "\x1b[31"
    YELLOW = "\x1b[33"
    MAGENTA = "\x1b[35"
    CYAN = "\x1b[36"
    DEFAULT = "\x1b[38"

    RESET = LogConstants.RESET

    COLORS: dict[int, str] = {
        logging.DEBUG: "\x1b[38;5;32",
        logging.INFO: CYAN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: MAGENTA,
    }

    @staticmethod
    def get_color_for_level(level: int) -> str:
        """Get color for a log level, falling back to the default color."""
        return ColorManager.COLORS.get(level, ColorManager.DEFAULT)

    @staticmethod
    def create_gray_level(level: int) -> str:
        """
        Create gray color for trace levels and metadata.

        Args:
            level: Gray level (0-23 range, clamped)
        """
        level = max(0, min(level, LogConstants.GRAY_MAX_LEVELS - 1))
        return f"\x1b[38;5;{LogConstants.GRAY_BASE + level}"

    @staticmethod
    def add_custom_level_colors() -> None:
        """Register gray shades for TRACE and TRACE2."""
        ColorManager.COLORS[LogConstants.CUSTOM_LEVELS["TRACE"]] = (
            ColorManager.create_gray_level(12)
        )
        ColorManager.COLORS[LogConstants.CUSTOM_LEVELS["TRACE2"]] = (
            ColorManager.create_gray_level(8)
        )
