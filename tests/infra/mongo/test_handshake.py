"""
Tests for the bootstrap handshake.
"""

from unittest.mock import AsyncMock, Mock

import pytest
import pytest_asyncio
from pymongo import AsyncMongoClient
from pymongo.errors import AutoReconnect

from mongoharness.exceptions import BootstrapError, VersionParseError
from mongoharness.mongo.handshake import (
    BUILD_INFO_CMD,
    HANDSHAKE_SESSION_IDLE_SECS,
    IS_MASTER_CMD,
    HandshakeSession,
    parse_build_info,
    run_handshake,
)
from mongoharness.mongo.version import ServerVersion


def _wire(mock_mongo, is_master, build_info, db_name="test"):
    mock_mongo["admin"].command = AsyncMock(return_value=is_master)
    mock_mongo[db_name].command = AsyncMock(return_value=build_info)


@pytest.mark.unit
class TestHandshakeSession:
    """Test HandshakeSession reservation."""

    @pytest.mark.asyncio
    async def test_marks_session_dirty_and_ends_it(self, mock_mongo):
        """Test the session is marked dirty on close, before it is ended."""
        session = mock_mongo.start_session.return_value
        order = []
        session._server_session.mark_dirty.side_effect = lambda: order.append("dirty")
        session.end_session.side_effect = lambda: order.append("end")

        async with HandshakeSession(mock_mongo) as hs:
            assert hs.session is session
            session._server_session.mark_dirty.assert_not_called()

        assert order == ["dirty", "end"]
        mock_mongo.start_session.assert_called_once_with(causal_consistency=False)

    @pytest.mark.asyncio
    async def test_commands_use_the_session(self, mock_mongo):
        """Test commands are sent with the reserved session."""
        session = mock_mongo.start_session.return_value

        async with HandshakeSession(mock_mongo) as hs:
            await hs.command("admin", {"ping": 1})

        mock_mongo["admin"].command.assert_awaited_once_with({"ping": 1}, session=session)

    def test_default_idle_timeout_is_one_hour(self, mock_mongo):
        """Test the recorded idle timeout."""
        hs = HandshakeSession(mock_mongo)

        assert hs.idle_timeout == HANDSHAKE_SESSION_IDLE_SECS == 3600

    def test_session_unavailable_before_open(self, mock_mongo):
        """Test accessing the session before open fails."""
        with pytest.raises(RuntimeError):
            HandshakeSession(mock_mongo).session


@pytest_asyncio.fixture
async def unconnected_client():
    """A real AsyncMongoClient that never reaches a server."""
    client = AsyncMongoClient("mongodb://localhost:27017", connect=False)
    try:
        yield client
    finally:
        # Nothing to end on a server that was never contacted
        client._topology.pop_all_sessions()
        await client.close()


@pytest.mark.unit
class TestSessionPool:
    """Test the reserved session never reaches pymongo's session pool."""

    @pytest.mark.asyncio
    async def test_materialized_session_is_discarded(self, unconnected_client):
        """Test a server session created by the first command is not pooled."""
        pool = unconnected_client._topology._session_pool

        async with HandshakeSession(unconnected_client) as hs:
            # What pymongo does when the first command is sent
            hs.session._materialize()
            server_session = hs.session._server_session

        assert server_session.dirty
        assert len(pool) == 0

    @pytest.mark.asyncio
    async def test_ordinary_session_is_pooled(self, unconnected_client):
        """Test an ordinary explicit session goes back to the pool."""
        session = unconnected_client.start_session()
        session._materialize()
        await session.end_session()

        assert len(unconnected_client._topology._session_pool) == 1

    @pytest.mark.asyncio
    async def test_unused_session_leaves_pool_empty(self, unconnected_client):
        async with HandshakeSession(unconnected_client):
            pass

        assert len(unconnected_client._topology._session_pool) == 0


@pytest.mark.unit
class TestParseBuildInfo:
    """Test parse_build_info."""

    def test_parses_version(self):
        assert parse_build_info({"version": "6.0.4-rc1"}) == ServerVersion(6, 0, 4)

    def test_missing_version(self):
        """Test a reply without a version string is a bootstrap failure."""
        with pytest.raises(BootstrapError):
            parse_build_info({"ok": 1.0})

    def test_non_string_version(self):
        with pytest.raises(BootstrapError):
            parse_build_info({"version": 6})


@pytest.mark.unit
class TestRunHandshake:
    """Test run_handshake."""

    @pytest.mark.asyncio
    async def test_returns_facts(self, mock_mongo, test_logger):
        """Test facts are built from both replies."""
        _wire(
            mock_mongo,
            {"ismaster": True, "msg": "isdbgrid", "ok": 1.0},
            {"version": "4.2.1-rc0", "ok": 1.0},
        )

        facts = await run_handshake(mock_mongo, test_logger)

        assert facts.version == ServerVersion(4, 2, 1)
        assert facts.topology_reply.is_mongos is True

    @pytest.mark.asyncio
    async def test_command_order_and_targets(self, mock_mongo, test_logger):
        """Test isMaster runs on admin before buildInfo on the working db."""
        calls = []
        mock_mongo["admin"].command = AsyncMock(
            side_effect=lambda cmd, session: calls.append(("admin", cmd)) or {"ok": 1.0}
        )
        mock_mongo["work"].command = AsyncMock(
            side_effect=lambda cmd, session: calls.append(("work", cmd))
            or {"version": "7.0.0"}
        )

        await run_handshake(mock_mongo, test_logger, db_name="work")

        assert calls == [("admin", IS_MASTER_CMD), ("work", BUILD_INFO_CMD)]

    @pytest.mark.asyncio
    async def test_both_commands_share_one_session(self, mock_mongo, test_logger):
        """Test a single session is started and used for both commands."""
        _wire(mock_mongo, {"ok": 1.0}, {"version": "7.0.0"})
        session = mock_mongo.start_session.return_value

        await run_handshake(mock_mongo, test_logger)

        mock_mongo.start_session.assert_called_once()
        assert mock_mongo["admin"].command.call_args.kwargs["session"] is session
        assert mock_mongo["test"].command.call_args.kwargs["session"] is session
        session.end_session.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_is_master_failure_is_fatal(self, mock_mongo, test_logger):
        """Test a transport error on command 1 raises BootstrapError without retry."""
        mock_mongo["admin"].command = AsyncMock(side_effect=AutoReconnect("down"))

        with pytest.raises(BootstrapError) as exc_info:
            await run_handshake(mock_mongo, test_logger)

        assert exc_info.value.context["command"] == "isMaster"
        mock_mongo["admin"].command.assert_awaited_once()
        mock_mongo["test"].command.assert_not_awaited()
        mock_mongo.start_session.return_value.end_session.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_bad_reply_shape_is_fatal(self, mock_mongo, test_logger):
        """Test a wrongly typed isMaster field raises BootstrapError."""
        _wire(mock_mongo, {"ismaster": "true"}, {"version": "7.0.0"})

        with pytest.raises(BootstrapError):
            await run_handshake(mock_mongo, test_logger)

        mock_mongo["test"].command.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unparseable_version_is_fatal(self, mock_mongo, test_logger):
        """Test an invalid version raises VersionParseError."""
        _wire(mock_mongo, {"ok": 1.0}, {"version": "seven"})

        with pytest.raises(VersionParseError):
            await run_handshake(mock_mongo, test_logger)

    @pytest.mark.asyncio
    async def test_end_session_failure_wrapped(self, mock_mongo, test_logger):
        """Test a driver error outside the commands still surfaces as BootstrapError."""
        _wire(mock_mongo, {"ok": 1.0}, {"version": "7.0.0"})
        mock_mongo.start_session.return_value.end_session = AsyncMock(
            side_effect=AutoReconnect("gone")
        )

        with pytest.raises(BootstrapError, match="handshake session failed"):
            await run_handshake(mock_mongo, test_logger)

    @pytest.mark.asyncio
    async def test_logs_completion(self, mock_mongo, test_logger, log_stream):
        """Test a debug record with the version is emitted."""
        _wire(mock_mongo, {"ok": 1.0}, {"version": "7.0.2"})

        await run_handshake(mock_mongo, test_logger)

        output = log_stream.getvalue()
        assert "handshake complete" in output
        assert "[version:7.0.2]" in output

    @pytest.mark.asyncio
    async def test_uses_given_logger(self, mock_mongo):
        """Test the handshake logs through the logger it is given."""
        _wire(mock_mongo, {"ok": 1.0}, {"version": "7.0.2"})
        lg = Mock()

        await run_handshake(mock_mongo, lg)

        lg.debug.assert_called_once()
        assert lg.debug.call_args.args[0] == "handshake complete"
