"""
Tests for fail point directives and the guard lifecycle.
"""

import gc
import warnings
from unittest.mock import AsyncMock, Mock

import pytest
from pymongo.errors import AutoReconnect, OperationFailure

from mongoharness.exceptions import FailPointInstallError, FailPointReleaseError
from mongoharness.mongo.failpoint import (
    FailCommandOptions,
    FailPoint,
    FailPointGuard,
    FailPointMode,
    off_command,
)

OFF = {"configureFailPoint": "failCommand", "mode": "off"}


@pytest.fixture
def mock_logger():
    """Create mock logger."""
    return Mock()


@pytest.fixture
def admin_client():
    """Client whose admin.command succeeds."""
    client = Mock()
    client.admin.command = AsyncMock(return_value={"ok": 1.0})
    return client


def _commands(client):
    return [c.args[0] for c in client.admin.command.call_args_list]


@pytest.mark.unit
class TestFailPointMode:
    """Test mode serialization."""

    @pytest.mark.parametrize(
        "mode,expected",
        [
            (FailPointMode.always_on(), "alwaysOn"),
            (FailPointMode.off(), "off"),
            (FailPointMode.times(2), {"times": 2}),
            (FailPointMode.skip(3), {"skip": 3}),
            (FailPointMode.activation_probability(0.25), {"activationProbability": 0.25}),
        ],
    )
    def test_to_bson(self, mode, expected):
        assert mode.to_bson() == expected

    @pytest.mark.parametrize(
        "build",
        [
            lambda: FailPointMode.times(0),
            lambda: FailPointMode.skip(-1),
            lambda: FailPointMode.activation_probability(1.5),
        ],
    )
    def test_invalid_values(self, build):
        with pytest.raises(ValueError):
            build()


@pytest.mark.unit
class TestFailPointCommand:
    """Test configureFailPoint documents."""

    def test_fail_command_document(self):
        """Test every failCommand option maps to its wire name."""
        fp = FailPoint.fail_command(
            ["insert", "find"],
            FailPointMode.times(1),
            FailCommandOptions(
                error_code=11600,
                close_connection=False,
                block_connection=True,
                block_time_ms=500,
                write_concern_error={"code": 91, "errmsg": "shutting down"},
                app_name="harness",
                error_labels=["RetryableWriteError"],
            ),
        )

        assert fp.command() == {
            "configureFailPoint": "failCommand",
            "mode": {"times": 1},
            "data": {
                "failCommands": ["insert", "find"],
                "errorCode": 11600,
                "closeConnection": False,
                "blockConnection": True,
                "blockTimeMS": 500,
                "writeConcernError": {"code": 91, "errmsg": "shutting down"},
                "appName": "harness",
                "errorLabels": ["RetryableWriteError"],
            },
        }

    def test_unset_options_omitted(self):
        fp = FailPoint.fail_command(["ping"], FailPointMode.always_on())

        assert fp.command() == {
            "configureFailPoint": "failCommand",
            "mode": "alwaysOn",
            "data": {"failCommands": ["ping"]},
        }

    def test_other_fail_point_without_data(self):
        fp = FailPoint("maxTimeAlwaysTimeOut", FailPointMode.always_on())

        assert fp.command() == {"configureFailPoint": "maxTimeAlwaysTimeOut", "mode": "alwaysOn"}
        assert fp.off_command() == off_command("maxTimeAlwaysTimeOut")

    def test_block_connection_requires_time(self):
        with pytest.raises(ValueError):
            FailCommandOptions(block_connection=True)


@pytest.mark.unit
class TestEnable:
    """Test FailPoint.enable."""

    @pytest.mark.asyncio
    async def test_returns_armed_guard(self, admin_client, mock_logger):
        fp = FailPoint.fail_command(["insert"], FailPointMode.times(1))

        guard = await fp.enable(admin_client, mock_logger)

        assert guard.armed
        assert guard.name == "failCommand"
        assert guard.client is admin_client
        assert _commands(admin_client) == [fp.command()]
        await guard.release()

    @pytest.mark.asyncio
    async def test_install_failure(self, admin_client, mock_logger):
        """Test a rejected directive raises and creates no guard."""
        admin_client.admin.command = AsyncMock(
            side_effect=OperationFailure("no such fail point", code=72)
        )
        fp = FailPoint("doesNotExist", FailPointMode.always_on())

        with pytest.raises(FailPointInstallError) as exc_info:
            await fp.enable(admin_client, mock_logger)

        assert exc_info.value.name == "doesNotExist"
        assert isinstance(exc_info.value.__cause__, OperationFailure)
        admin_client.admin.command.assert_awaited_once()
        mock_logger.error.assert_called_once()


@pytest.mark.unit
class TestRelease:
    """Test FailPointGuard.release."""

    @pytest.mark.asyncio
    async def test_release_twice_sends_one_off(self, admin_client, mock_logger):
        """Test the second release performs no network call."""
        guard = FailPointGuard(admin_client, "failCommand", mock_logger)

        await guard.release()
        await guard.release()

        assert _commands(admin_client) == [OFF]
        assert not guard.armed

    @pytest.mark.asyncio
    async def test_release_failure_raises_and_disarms(self, admin_client, mock_logger):
        """Test a failing off command is raised once and never retried."""
        admin_client.admin.command = AsyncMock(side_effect=AutoReconnect("gone"))
        guard = FailPointGuard(admin_client, "failCommand", mock_logger)

        with pytest.raises(FailPointReleaseError):
            await guard.release()
        await guard.release()

        admin_client.admin.command.assert_awaited_once()
        assert not guard.armed
        mock_logger.error.assert_called_once()


@pytest.mark.unit
class TestScopedRelease:
    """Test the guard as an async context manager."""

    @pytest.mark.asyncio
    async def test_release_on_normal_exit(self, admin_client, mock_logger):
        async with FailPointGuard(admin_client, "failCommand", mock_logger) as guard:
            assert guard.armed

        assert _commands(admin_client) == [OFF]

    @pytest.mark.asyncio
    async def test_release_on_exception(self, admin_client, mock_logger):
        """Test the directive is turned off when the body raises."""
        with pytest.raises(RuntimeError, match="body"):
            async with FailPointGuard(admin_client, "failCommand", mock_logger):
                raise RuntimeError("body")

        assert _commands(admin_client) == [OFF]

    @pytest.mark.asyncio
    async def test_explicit_release_inside_block(self, admin_client, mock_logger):
        """Test block exit after an explicit release sends nothing more."""
        async with FailPointGuard(admin_client, "failCommand", mock_logger) as guard:
            await guard.release()

        assert _commands(admin_client) == [OFF]

    @pytest.mark.asyncio
    async def test_release_error_does_not_mask_body_error(self, admin_client, mock_logger):
        """Test the in-flight exception wins over a failing release."""
        admin_client.admin.command = AsyncMock(side_effect=AutoReconnect("gone"))

        with pytest.raises(RuntimeError, match="body"):
            async with FailPointGuard(admin_client, "failCommand", mock_logger):
                raise RuntimeError("body")

        admin_client.admin.command.assert_awaited_once()
        mock_logger.error.assert_called_once()
        mock_logger.warning.assert_called_once()

    @pytest.mark.asyncio
    async def test_release_error_on_normal_exit(self, admin_client, mock_logger):
        """Test a failing release surfaces when the block succeeded."""
        admin_client.admin.command = AsyncMock(side_effect=AutoReconnect("gone"))

        with pytest.raises(FailPointReleaseError):
            async with FailPointGuard(admin_client, "failCommand", mock_logger):
                pass


@pytest.mark.unit
class TestUnreleasedGuard:
    """Test the leak warning."""

    def test_warns_when_collected_armed(self, admin_client, mock_logger):
        guard = FailPointGuard(admin_client, "failCommand", mock_logger)

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            del guard
            gc.collect()

        assert any(issubclass(w.category, ResourceWarning) for w in caught)

    @pytest.mark.asyncio
    async def test_no_warning_after_release(self, admin_client, mock_logger):
        guard = FailPointGuard(admin_client, "failCommand", mock_logger)
        await guard.release()

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter("always")
            del guard
            gc.collect()

        assert not any(issubclass(w.category, ResourceWarning) for w in caught)
