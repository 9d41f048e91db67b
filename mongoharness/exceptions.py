"""
Exception hierarchy for the harness.

Every harness-specific failure derives from HarnessError so test suites can
catch harness problems separately from driver errors. Driver errors raised
by fixture operations (pymongo.errors.OperationFailure) are propagated
unchanged and are not part of this hierarchy.
"""

from typing import Any


class HarnessError(Exception):
    """
    Base exception for all harness errors.

    Example:
        try:
            client = await TestClient.create()
        except HarnessError as e:
            lg.error("harness unusable", extra={"exception": e})
    """

    def __init__(self, message: str, **context: Any) -> None:
        """
        Initialize the exception with a message and optional context.

        Args:
            message: Human-readable error message
            **context: Additional context information (stored in self.context)
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """String representation with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} ({context_str})"
        return self.message


class ConfigError(HarnessError):
    """
    Configuration-related errors.

    Examples:
        - Config file not found
        - Invalid YAML syntax
        - Connection URI that cannot be parsed
    """

    pass


class BootstrapError(HarnessError):
    """
    The harness could not establish facts about the server.

    Raised when a handshake command fails, when its reply does not have the
    expected shape, or when the server version cannot be parsed. There is no
    retry: a harness that cannot see the server is unusable.
    """

    pass


class VersionParseError(BootstrapError):
    """Raised when a server version string is not major.minor.patch."""

    def __init__(self, version: str) -> None:
        super().__init__("invalid server version", version=version)
        self.version = version


class FailPointError(HarnessError):
    """Base class for fail point lifecycle errors."""

    def __init__(self, message: str, name: str, **context: Any) -> None:
        super().__init__(message, name=name, **context)
        self.name = name


class FailPointInstallError(FailPointError):
    """
    Installing a fail point failed.

    The fail point is not armed and nothing needs to be cleaned up.
    """

    pass


class FailPointReleaseError(FailPointError):
    """
    Turning a fail point off failed.

    The guard is disarmed regardless; the server may still have the fail
    point active.
    """

    pass
