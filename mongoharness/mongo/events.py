"""
Command monitoring for assertions.

EventHandler is a pymongo CommandListener that records every command event
the client publishes. EventClient is a TestClient created with one.
"""

import threading
from dataclasses import dataclass
from typing import Any

from pymongo.monitoring import (
    CommandFailedEvent,
    CommandListener,
    CommandStartedEvent,
    CommandSucceededEvent,
)

from ..log import Logger
from .client import TestClient
from .options import ClientOptions

STARTED = "started"
SUCCEEDED = "succeeded"
FAILED = "failed"


@dataclass(frozen=True)
class CommandEvent:
    """
    A recorded command event.

    Attributes:
        kind: "started", "succeeded" or "failed"
        command_name: Command name (e.g. "insert")
        request_id: Request id shared by the events of one command
        database_name: Database the command ran against
        command: Command document ("started" only)
        reply: Server reply ("succeeded" only)
        failure: Failure document ("failed" only)
        duration_micros: Round trip time ("succeeded" and "failed" only)
    """

    kind: str
    command_name: str
    request_id: int
    database_name: str | None = None
    command: dict[str, Any] | None = None
    reply: dict[str, Any] | None = None
    failure: dict[str, Any] | None = None
    duration_micros: int | None = None

    @classmethod
    def from_started(cls, event: CommandStartedEvent) -> "CommandEvent":
        return cls(
            STARTED,
            event.command_name,
            event.request_id,
            database_name=event.database_name,
            command=dict(event.command),
        )

    @classmethod
    def from_succeeded(cls, event: CommandSucceededEvent) -> "CommandEvent":
        return cls(
            SUCCEEDED,
            event.command_name,
            event.request_id,
            database_name=event.database_name,
            reply=dict(event.reply),
            duration_micros=event.duration_micros,
        )

    @classmethod
    def from_failed(cls, event: CommandFailedEvent) -> "CommandEvent":
        return cls(
            FAILED,
            event.command_name,
            event.request_id,
            database_name=event.database_name,
            failure=dict(event.failure),
            duration_micros=event.duration_micros,
        )

    @property
    def is_started(self) -> bool:
        return self.kind == STARTED

    @property
    def is_succeeded(self) -> bool:
        return self.kind == SUCCEEDED

    @property
    def is_failed(self) -> bool:
        return self.kind == FAILED


class EventHandler(CommandListener):
    """
    Records command events in publication order.

    pymongo may publish from its own threads, so the record is guarded by a
    lock and readers get copies.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._events: list[CommandEvent] = []

    def started(self, event: CommandStartedEvent) -> None:
        self._record(CommandEvent.from_started(event))

    def succeeded(self, event: CommandSucceededEvent) -> None:
        self._record(CommandEvent.from_succeeded(event))

    def failed(self, event: CommandFailedEvent) -> None:
        self._record(CommandEvent.from_failed(event))

    def _record(self, event: CommandEvent) -> None:
        with self._lock:
            self._events.append(event)

    @property
    def command_events(self) -> list[CommandEvent]:
        with self._lock:
            return list(self._events)

    def get_command_started_events(self, *names: str) -> list[CommandEvent]:
        """Started events, optionally limited to the given command names."""
        return [
            e
            for e in self.command_events
            if e.is_started and (not names or e.command_name in names)
        ]

    def get_successful_command_execution(
        self, command_name: str
    ) -> tuple[CommandEvent, CommandEvent]:
        """
        Find the first started/succeeded pair for a command.

        Raises:
            AssertionError: If no successful execution was recorded
        """
        events = self.command_events
        for i, started in enumerate(events):
            if not (started.is_started and started.command_name == command_name):
                continue
            for later in events[i + 1 :]:
                if later.request_id != started.request_id:
                    continue
                if later.is_succeeded:
                    return started, later
                break
        raise AssertionError(f"no successful {command_name!r} command was recorded")

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class EventClient(TestClient):
    """
    TestClient recording command events.

    Events from the bootstrap handshake are discarded, so the record starts
    empty when create() returns.

    Example:
        client = await EventClient.create()
        await client["db"]["coll"].insert_one({"x": 1})
        assert_matches(
            client.get_command_started_events("insert")[0].command,
            {"insert": "coll"},
        )
    """

    __test__ = False

    @classmethod
    async def create(  # type: ignore[override]
        cls,
        options: ClientOptions | None = None,
        lg: Logger | None = None,
        listener: EventHandler | None = None,
    ) -> "EventClient":
        handler = listener if listener is not None else EventHandler()
        client = await super().create(options, lg, handler)
        handler.clear()
        return client  # type: ignore[return-value]

    @property
    def handler(self) -> EventHandler:
        return self._listener  # type: ignore[return-value]

    @property
    def command_events(self) -> list[CommandEvent]:
        return self.handler.command_events

    def get_command_started_events(self, *names: str) -> list[CommandEvent]:
        return self.handler.get_command_started_events(*names)

    def get_successful_command_execution(
        self, command_name: str
    ) -> tuple[CommandEvent, CommandEvent]:
        return self.handler.get_successful_command_execution(command_name)

    def clear_events(self) -> None:
        self.handler.clear()
