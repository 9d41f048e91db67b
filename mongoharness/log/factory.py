"""
Factory for creating and configuring loggers.

Loggers are named by slash-separated paths: the root is "/", components derive
"/mongo", "/mongo/handshake" and so on.
"""

import logging
import sys
from typing import Any, cast

from .config import LogConfig
from .formatters import LogFormatter
from .logger import Logger


class LoggerFactory:
    """Factory for creating and configuring loggers."""

    @staticmethod
    def create_root(config: LogConfig, logger_class: type[Logger] = Logger) -> Logger:
        """
        Create a root logger with the specified configuration.

        Args:
            config: Logger configuration
            logger_class: Logger class to use

        Returns:
            Configured root logger

        Example:
            >>> config = LogConfig.from_params(level="info", colors=False)
            >>> lg = LoggerFactory.create_root(config)
            >>> lg.info("session started")
            [12:34:56,789] [I] session started             [1234] [/]
        """
        return LoggerFactory.create("/", config, logger_class)

    @staticmethod
    def create(
        name: str,
        config: LogConfig,
        logger_class: type[Logger] = Logger,
        extra: dict[str, Any] | None = None,
    ) -> Logger:
        """
        Create a logger with its own console handler.

        Returns the existing logger when one with the same name was already
        created.

        Args:
            name: Logger name
            config: Logger configuration
            logger_class: Logger class to use
            extra: Pre-populated extra fields to include in all log records

        Returns:
            Configured logger instance
        """
        existing = LoggerFactory._check_existing_logger(name)
        if existing:
            return existing

        lg = logger_class(name, config, extra)
        if config.level is not False:
            lg.setLevel(config.level)

        handler = logging.StreamHandler(sys.stdout)
        if config.level is not False:
            handler.setLevel(config.level)
        handler.setFormatter(LogFormatter(config))
        lg.addHandler(handler)
        lg.propagate = False
        lg.parent = logging.root

        logging.root.manager.loggerDict[name] = lg

        lg.trace2(
            "created logger",
            extra={"level": logging.getLevelName(lg.level), "location": config.location},
        )
        return lg

    @staticmethod
    def _check_existing_logger(name: str) -> Logger | None:
        """Return an existing factory-created logger with this name."""
        existing = logging.root.manager.loggerDict.get(name)
        if isinstance(existing, Logger):
            return existing
        return None

    @staticmethod
    def derive(parent: Logger, tags: str | list[str]) -> Logger:
        """
        Derive a "view" logger that delegates to root's handlers.

        The derived logger has its own name and inherits its level from the
        parent, while sharing the root's handlers.

        Examples:
            >>> lg = LoggerFactory.create_root(config)
            >>> LoggerFactory.derive(lg, "mongo").name
            '/mongo'
            >>> LoggerFactory.derive(lg, ["mongo", "failpoint"]).name
            '/mongo/failpoint'

        Args:
            parent: Parent logger instance
            tags: Single tag string or list of tags forming a hierarchy

        Returns:
            Derived logger instance
        """
        if isinstance(tags, str):
            tags = [tags]

        prefix = parent.name if parent.name == "/" else parent.name + "/"
        name = prefix + "/".join(tags)

        existing = LoggerFactory._check_existing_logger(name)
        if existing:
            return existing

        root = parent._root_logger if parent._root_logger else parent
        lg = parent.__class__(name, LogConfig(level=parent.get_level()), parent.extra)
        lg.setLevel(logging.NOTSET)
        lg._root_logger = root
        lg.parent = parent
        lg.propagate = False

        logging.root.manager.loggerDict[name] = lg
        lg.trace2("derived logger", extra={"root": root.name})
        return cast(Logger, lg)
