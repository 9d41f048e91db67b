"""
Logger class for the logging system.

Extends the standard Python logger with TRACE/TRACE2 levels, pre-populated
extra fields, and derived "view" loggers that share the root's handlers.
"""

import logging
import sys
from typing import Any

from .config import LogConfig
from .constants import LogConstants
from .formatters import EXTRA_ATTR


class Logger(logging.Logger):
    """
    Enhanced logger with structured extra fields.

    Extends the standard Python logger with:
    - Pre-populated extra fields merged into every record
    - Custom trace and trace2 methods
    - Handler sharing for derived loggers
    - Complete disabling with level=False
    """

    def __init__(
        self,
        name: str,
        config: LogConfig | None = None,
        extra: dict[str, Any] | None = None,
    ):
        """
        Initialize the enhanced logger.

        Args:
            name: Logger name
            config: Logger configuration (defaults to info level)
            extra: Pre-populated extra fields to include in all log records
        """
        if config is None:
            config = LogConfig.from_params("info")

        if config.level is False:
            super().__init__(name, logging.CRITICAL + 1)
            self._logging_disabled = True
        else:
            super().__init__(name, config.level)
            self._logging_disabled = False

        self._config = config
        self._extra = dict(extra or {})
        self._root_logger: Logger | None = None

    @property
    def config(self) -> LogConfig:
        return self._config

    @property
    def disabled(self) -> bool:  # type: ignore[override]
        """Check if logging is disabled."""
        return self._logging_disabled

    @disabled.setter
    def disabled(self, value: bool) -> None:
        self._logging_disabled = value

    @property
    def extra(self) -> dict[str, Any]:
        return dict(self._extra)

    def get_level(self) -> int | bool:
        """Get configured log level."""
        return self._config.level

    def isEnabledFor(self, level: int) -> bool:
        """Check if enabled, respecting parent loggers created by the factory."""
        if self._logging_disabled or not super().isEnabledFor(level):
            return False
        if isinstance(self.parent, Logger):
            return self.parent.isEnabledFor(level)
        return True

    def setLevel(self, level: int | str) -> None:
        super().setLevel(level)
        # Not necessarily registered in loggerDict, so clear our own cache
        self._cache.clear()  # type: ignore[attr-defined]

    def makeRecord(  # type: ignore[override]
        self,
        name: str,
        level: int,
        fn: str,
        lno: int,
        msg: str,
        args: Any,
        exc_info: Any,
        func: str | None = None,
        extra: dict[str, Any] | None = None,
        sinfo: str | None = None,
    ) -> logging.LogRecord:
        """Create log record with pre-populated extra fields merged in."""
        merged = self._extra.copy()
        if extra:
            merged.update(extra)
        # Kept on one attribute so keys like "name" or "msg" cannot clash
        record = super().makeRecord(
            name, level, fn, lno, msg, args, exc_info, func=func, sinfo=sinfo
        )
        setattr(record, EXTRA_ATTR, merged)
        return record

    def trace(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """
        Log a TRACE level message.

        Args:
            msg: Log message
            *args: Message format arguments
            **kwargs: Additional keyword arguments including 'extra' for structured data
        """
        level = LogConstants.CUSTOM_LEVELS["TRACE"]
        if self.isEnabledFor(level):
            self._log(level, msg, args, **kwargs)

    def trace2(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log a TRACE2 level message (most verbose level)."""
        level = LogConstants.CUSTOM_LEVELS["TRACE2"]
        if self.isEnabledFor(level):
            self._log(level, msg, args, **kwargs)

    def _log(self, level: int, msg: Any, args: Any, **kwargs: Any) -> None:  # type: ignore[override]
        if self._logging_disabled:
            return
        try:
            super()._log(level, msg, args, **kwargs)
        except (TypeError, ValueError) as e:
            # Format bugs go to stderr so they don't go unnoticed
            sys.stderr.write(
                f"LOG_FORMAT_ERROR [{self.name}]: {e.__class__.__name__}: {e} "
                f"| msg={str(msg)[:80]!r} args={args!r}\n"
            )

    def callHandlers(self, record: logging.LogRecord) -> None:
        """
        Pass a record to all relevant handlers.

        Derived loggers delegate to the root logger's handlers instead of
        owning any themselves.
        """
        if self._root_logger is not None:
            for handler in self._root_logger.handlers:
                if record.levelno >= handler.level:
                    handler.handle(record)
        else:
            super().callHandlers(record)
