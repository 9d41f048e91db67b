"""
Bootstrap handshake: discover topology and version over one reserved session.

Two commands are issued in order over the same session:

1. ``{"isMaster": 1}`` against ``admin`` -> TopologyReply
2. ``{"buildInfo": 1}`` against the working database -> ServerVersion

The session is reserved for these two commands and never returned to the
client's session pool, so a harness instance does not leave implicit
sessions behind for session-lifecycle tests to trip over.
"""

from collections.abc import Mapping
from typing import Any

from pymongo import AsyncMongoClient
from pymongo.asynchronous.client_session import AsyncClientSession
from pymongo.errors import PyMongoError

from .. import time as harnesstime
from ..exceptions import BootstrapError, VersionParseError
from .topology import CapabilityFacts, TopologyReply
from .version import ServerVersion

HANDSHAKE_SESSION_IDLE_SECS = 60 * 60

ADMIN_DB = "admin"
IS_MASTER_CMD = {"isMaster": 1}
BUILD_INFO_CMD = {"buildInfo": 1}


class HandshakeSession:
    """
    A session reserved for the bootstrap handshake.

    Distinct from pooled sessions: on close, its server session is marked
    dirty, which makes pymongo discard it instead of checking it back into
    the pool. Use as an async context manager.

    pymongo exposes no client-side idle timeout; ``idle_timeout`` only
    records the intended lifetime.
    """

    def __init__(
        self, client: AsyncMongoClient, idle_timeout: float = HANDSHAKE_SESSION_IDLE_SECS
    ) -> None:
        self._client = client
        self._idle_timeout = idle_timeout
        self._session: AsyncClientSession | None = None

    @property
    def idle_timeout(self) -> float:
        return self._idle_timeout

    @property
    def session(self) -> AsyncClientSession:
        if self._session is None:
            raise RuntimeError("handshake session is not open")
        return self._session

    async def open(self) -> "HandshakeSession":
        self._session = self._client.start_session(causal_consistency=False)
        return self

    async def close(self) -> None:
        if self._session is not None:
            # The server session is only materialized by the first command,
            # so it is marked here rather than on open
            self._session._server_session.mark_dirty()
            await self._session.end_session()
            self._session = None

    async def command(self, db_name: str, cmd: Mapping[str, Any]) -> dict[str, Any]:
        """Run a command on db_name with this session."""
        return await self._client[db_name].command(dict(cmd), session=self.session)

    async def __aenter__(self) -> "HandshakeSession":
        return await self.open()

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()


def parse_build_info(reply: Mapping[str, Any]) -> ServerVersion:
    """
    Extract and parse the version from a buildInfo reply.

    Raises:
        BootstrapError: If the reply has no string ``version`` field
        VersionParseError: If the version is not major.minor.patch
    """
    raw = reply.get("version")
    if not isinstance(raw, str):
        raise BootstrapError("buildInfo reply has no version string")
    return ServerVersion.parse(raw)


async def run_handshake(
    client: AsyncMongoClient, lg: Any, db_name: str = "test"
) -> CapabilityFacts:
    """
    Discover server identity with the two handshake commands.

    Args:
        client: Connected client
        lg: Logger for handshake events
        db_name: Working database for buildInfo

    Returns:
        CapabilityFacts built from the replies

    Raises:
        BootstrapError: If either command fails or its reply cannot be parsed.
            No retry is attempted.
    """
    start = harnesstime.start()
    lg.trace("starting handshake", extra={"db": db_name})

    try:
        async with HandshakeSession(client) as hs:
            is_master = await _run(hs, ADMIN_DB, IS_MASTER_CMD, lg)
            topology_reply = TopologyReply.from_document(is_master)
            lg.trace2("parsed isMaster", extra={"msg": topology_reply.msg})

            build_info = await _run(hs, db_name, BUILD_INFO_CMD, lg)
            version = parse_build_info(build_info)
    except VersionParseError as e:
        lg.error("cannot parse server version", extra={"version": e.version})
        raise
    except BootstrapError as e:
        lg.error("handshake failed", extra={"exception": e})
        raise
    except PyMongoError as e:
        # Session checkout or end_session failures
        lg.error("handshake session failed", extra={"exception": e})
        raise BootstrapError("handshake session failed", error=str(e)) from e

    facts = CapabilityFacts(topology_reply=topology_reply, version=version)
    lg.debug(
        "handshake complete",
        extra={
            "after": harnesstime.since(start),
            "version": str(version),
            "mongos": topology_reply.is_mongos,
            "set_name": topology_reply.set_name,
        },
    )
    return facts


async def _run(
    hs: HandshakeSession, db_name: str, cmd: Mapping[str, Any], lg: Any
) -> dict[str, Any]:
    name = next(iter(cmd))
    try:
        return await hs.command(db_name, cmd)
    except PyMongoError as e:
        raise BootstrapError(
            "handshake command failed", command=name, db=db_name, error=str(e)
        ) from e
