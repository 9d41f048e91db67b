"""
Server-side fault injection with scoped cleanup.

A FailPoint describes a ``configureFailPoint`` directive. Enabling it installs
the directive on the server and returns an armed FailPointGuard; releasing the
guard turns the directive off with the same client that installed it.

Always release through a scoped construct, otherwise the fault stays active
on the server and leaks into later tests:

    async with await fp.enable(client, lg):
        ...

    # or, on a TestClient
    async with client.fail_point(fp) as guard:
        ...
"""

import warnings
from dataclasses import dataclass, field
from typing import Any

from pymongo.errors import PyMongoError

from .. import time as harnesstime
from ..exceptions import FailPointInstallError, FailPointReleaseError

FAIL_COMMAND = "failCommand"


@dataclass(frozen=True)
class FailPointMode:
    """
    Activation policy of a fail point.

    Use the constructors rather than building instances directly:
    always_on(), times(n), skip(n), activation_probability(p), off().
    """

    kind: str
    value: int | float | None = None

    @classmethod
    def always_on(cls) -> "FailPointMode":
        return cls("alwaysOn")

    @classmethod
    def times(cls, n: int) -> "FailPointMode":
        """Fire for the next n matching commands, then turn off."""
        if n < 1:
            raise ValueError(f"times must be positive, got {n}")
        return cls("times", n)

    @classmethod
    def skip(cls, n: int) -> "FailPointMode":
        """Let n matching commands through, then fire for every later one."""
        if n < 0:
            raise ValueError(f"skip must not be negative, got {n}")
        return cls("skip", n)

    @classmethod
    def activation_probability(cls, p: float) -> "FailPointMode":
        if not 0.0 <= p <= 1.0:
            raise ValueError(f"activation probability must be in [0, 1], got {p}")
        return cls("activationProbability", float(p))

    @classmethod
    def off(cls) -> "FailPointMode":
        return cls("off")

    def to_bson(self) -> str | dict[str, Any]:
        """Value of the ``mode`` field."""
        if self.value is None:
            return self.kind
        return {self.kind: self.value}


@dataclass(frozen=True)
class FailCommandOptions:
    """
    Behavior injected by the ``failCommand`` fail point.

    Attributes:
        error_code: Command error code to return
        close_connection: Close the connection instead of replying
        block_connection: Delay the reply by block_time_ms
        block_time_ms: Delay in milliseconds (requires block_connection)
        write_concern_error: writeConcernError document to return
        app_name: Only affect clients with this appName
        error_labels: Error labels to attach to the returned error
    """

    error_code: int | None = None
    close_connection: bool | None = None
    block_connection: bool | None = None
    block_time_ms: int | None = None
    write_concern_error: dict[str, Any] | None = None
    app_name: str | None = None
    error_labels: list[str] | None = None

    def __post_init__(self) -> None:
        if self.block_connection and self.block_time_ms is None:
            raise ValueError("block_connection requires block_time_ms")

    def to_document(self) -> dict[str, Any]:
        """Data fields for the fail point, without unset options."""
        doc: dict[str, Any] = {}
        if self.error_code is not None:
            doc["errorCode"] = self.error_code
        if self.close_connection is not None:
            doc["closeConnection"] = self.close_connection
        if self.block_connection is not None:
            doc["blockConnection"] = self.block_connection
        if self.block_time_ms is not None:
            doc["blockTimeMS"] = self.block_time_ms
        if self.write_concern_error is not None:
            doc["writeConcernError"] = dict(self.write_concern_error)
        if self.app_name is not None:
            doc["appName"] = self.app_name
        if self.error_labels is not None:
            doc["errorLabels"] = list(self.error_labels)
        return doc


@dataclass(frozen=True)
class FailPoint:
    """
    A configureFailPoint directive.

    Attributes:
        name: Fail point name (e.g. "failCommand")
        mode: Activation policy
        data: Behavior document passed as ``data``
    """

    name: str
    mode: FailPointMode
    data: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def fail_command(
        cls,
        fail_commands: list[str],
        mode: FailPointMode,
        options: FailCommandOptions | None = None,
    ) -> "FailPoint":
        """
        Build a ``failCommand`` fail point.

        Args:
            fail_commands: Command names the fail point applies to
            mode: Activation policy
            options: Injected behavior

        Example:
            >>> fp = FailPoint.fail_command(
            ...     ["insert"],
            ...     FailPointMode.times(1),
            ...     FailCommandOptions(error_code=11600),
            ... )
        """
        data: dict[str, Any] = {"failCommands": list(fail_commands)}
        if options is not None:
            data.update(options.to_document())
        return cls(FAIL_COMMAND, mode, data)

    def command(self) -> dict[str, Any]:
        """The configure-on command document."""
        cmd: dict[str, Any] = {"configureFailPoint": self.name, "mode": self.mode.to_bson()}
        if self.data:
            cmd["data"] = dict(self.data)
        return cmd

    def off_command(self) -> dict[str, Any]:
        return off_command(self.name)

    async def enable(self, client: Any, lg: Any) -> "FailPointGuard":
        """
        Install this fail point on the server.

        Args:
            client: Client to install with (anything with an ``admin`` database)
            lg: Logger for lifecycle events

        Returns:
            An armed guard owning the installed directive

        Raises:
            FailPointInstallError: If the server rejected the directive.
                Nothing is installed and no cleanup is needed.
        """
        start = harnesstime.start()
        try:
            await client.admin.command(self.command())
        except PyMongoError as e:
            lg.error(
                "failed to enable fail point",
                extra={"name": self.name, "exception": e},
            )
            raise FailPointInstallError(
                "failed to enable fail point", self.name, error=str(e)
            ) from e

        lg.debug(
            "enabled fail point",
            extra={
                "after": harnesstime.since(start),
                "name": self.name,
                "mode": self.mode.kind,
            },
        )
        return FailPointGuard(client, self.name, lg)


def off_command(name: str) -> dict[str, Any]:
    return {"configureFailPoint": name, "mode": FailPointMode.off().to_bson()}


class FailPointGuard:
    """
    Owns an installed fail point until released.

    States: armed from creation until release(), then released for good.
    release() is idempotent: only the first call talks to the server. As an
    async context manager the guard releases on block exit, including exit
    by exception; a release failure during such an exit is logged and the
    original exception propagates.

    Only create guards through FailPoint.enable().
    """

    def __init__(self, client: Any, name: str, lg: Any) -> None:
        self._client = client
        self._name = name
        self._lg = lg
        self._armed = True

    @property
    def name(self) -> str:
        return self._name

    @property
    def client(self) -> Any:
        return self._client

    @property
    def armed(self) -> bool:
        return self._armed

    async def release(self) -> None:
        """
        Turn the fail point off.

        Raises:
            FailPointReleaseError: If the off command failed. The guard is
                disarmed anyway and release is not retried.
        """
        if not self._armed:
            return
        self._armed = False

        start = harnesstime.start()
        try:
            await self._client.admin.command(off_command(self._name))
        except PyMongoError as e:
            self._lg.error(
                "failed to disable fail point",
                extra={"name": self._name, "exception": e},
            )
            raise FailPointReleaseError(
                "failed to disable fail point", self._name, error=str(e)
            ) from e

        self._lg.debug(
            "disabled fail point",
            extra={"after": harnesstime.since(start), "name": self._name},
        )

    async def __aenter__(self) -> "FailPointGuard":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if exc_type is None:
            await self.release()
            return
        try:
            await self.release()
        except FailPointReleaseError:
            # Already logged; the in-flight exception is the one to report
            self._lg.warning(
                "fail point left enabled while unwinding",
                extra={"name": self._name, "cause": exc_type.__name__},
            )

    def __del__(self) -> None:
        if getattr(self, "_armed", False):
            warnings.warn(
                f"fail point {self._name!r} was never released",
                ResourceWarning,
                stacklevel=2,
            )
