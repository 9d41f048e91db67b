"""
Log formatter rendering structured extra fields.

Output looks like:

    [12:34:56,789] [D] ran handshake              [after:4.210ms] [version:7.0.2] [1234] [/mongo/handshake]
"""

import collections
import logging
import os
import re
from typing import Any

from ..time import delta_str
from .colors import ColorManager
from .config import LogConfig
from .constants import LogConstants

_ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")

EXTRA_ATTR = "__harness__extra"


def _visual_len(text: str) -> int:
    """Calculate visual width of text, excluding ANSI escape codes."""
    if "\x1b" not in text:
        return len(text)
    return len(_ANSI_PATTERN.sub("", text))


def _ordered_items(extra: dict[str, Any]) -> list[tuple[str, Any]]:
    """Items with 'after' first, then sorted unless the mapping is ordered."""
    keys = list(extra.keys())
    if not isinstance(extra, collections.OrderedDict):
        keys = sorted(keys)
    if "after" in keys:
        keys.remove("after")
        keys.insert(0, "after")
    return [(k, extra[k]) for k in keys]


def _render_value(name: str, value: Any, micros: bool) -> str:
    if name == "after" and isinstance(value, float):
        return delta_str(value, precise=micros)
    if isinstance(value, BaseException):
        return f"{value.__class__.__name__}: {value}"
    if isinstance(value, (list, tuple)):
        return ",".join(str(v) for v in value)
    return str(value)


class LogFormatter(logging.Formatter):
    """
    Console formatter with optional colors and structured field rendering.

    Extra fields passed with ``extra=`` are rendered as ``[key:value]`` after
    the message, aligned to a fixed rule width.
    """

    def __init__(self, config: LogConfig) -> None:
        super().__init__(LogConstants.DEFAULT_FORMAT)
        self._config = config

    @property
    def config(self) -> LogConfig:
        return self._config

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        s = super().formatTime(record, datefmt)
        if self._config.micros:
            micros = int((record.created % 1) * 1000000) % 1000
            s += f".{micros:03d}"
        return s

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        rule = (
            LogConstants.MICRO_RULE_WIDTH
            if self._config.micros
            else LogConstants.DEFAULT_RULE_WIDTH
        )
        pad = " " * max(1, rule - _visual_len(base.split("\n", 1)[0]))

        fields = self._format_fields(record)
        meta = f"[{record.process}] [{record.name}]"
        location = self._format_location(record)

        if not self._config.colors:
            return base + pad + fields + meta + location

        col = ColorManager.get_color_for_level(record.levelno) + "m"
        gray = ColorManager.create_gray_level(9) + "m"
        return (
            col
            + base
            + pad
            + fields
            + gray
            + meta
            + location
            + ColorManager.RESET
        )

    def _format_fields(self, record: logging.LogRecord) -> str:
        extra = getattr(record, EXTRA_ATTR, None)
        if not extra:
            return ""
        parts = []
        for name, value in _ordered_items(extra):
            rendered = _render_value(name, value, self._config.micros)
            parts.append(f"[{rendered}]" if name == "after" else f"[{name}:{rendered}]")
        return " ".join(parts) + " "

    def _format_location(self, record: logging.LogRecord) -> str:
        if not self._config.location:
            return ""
        return f" [./{os.path.relpath(record.pathname, os.getcwd())}:{record.lineno}]"
