"""
Pytest fixtures for integration tests against a live MongoDB deployment.

Usage (one line in conftest.py):
    pytest_plugins = ["mongoharness.mongo.testing"]

    @pytest.mark.asyncio
    async def test_insert(mongo_client, mongo_fresh_collection):
        await mongo_fresh_collection.insert_one({"x": 1})

    @pytest.mark.asyncio
    async def test_retry(mongo_client, mongo_fail_point):
        await mongo_fail_point(
            FailPoint.fail_command(["insert"], FailPointMode.times(1),
                                   FailCommandOptions(error_code=91))
        )
        ...

The fixtures expect the following environment or configuration:
- mongo_test_options fixture: returns ClientOptions. Default implementation
  reads MONGOHARNESS_TEST_URI and skips when it is unset.
- mongo_test_logger fixture: returns a Logger. Default implementation creates
  a debug-level root logger without colors.

Override either fixture in your conftest.py to customize.
"""

import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from typing import TYPE_CHECKING

import pytest
import pytest_asyncio

from ..exceptions import FailPointReleaseError

if TYPE_CHECKING:
    from pymongo.asynchronous.collection import AsyncCollection

    from ..log import Logger
    from .client import TestClient
    from .events import EventClient
    from .failpoint import FailPoint, FailPointGuard
    from .options import ClientOptions

TEST_URI_ENV = "MONGOHARNESS_TEST_URI"


# =============================================================================
# Core Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def mongo_test_options() -> "ClientOptions":
    """
    Provide connection options for testing.

    Override this fixture in your conftest.py to provide custom options.
    Default implementation reads the MONGOHARNESS_TEST_URI environment variable.

    Returns:
        ClientOptions for the test deployment

    Raises:
        pytest.skip: If no deployment is configured
    """
    from .options import ClientOptions

    uri = os.environ.get(TEST_URI_ENV)
    if not uri:
        pytest.skip(
            f"{TEST_URI_ENV} not set. Set this environment variable or "
            "override the mongo_test_options fixture in your conftest.py"
        )

    return ClientOptions.from_uri(uri)


@pytest.fixture(scope="session")
def mongo_test_logger() -> "Logger":
    """
    Provide a logger for testing.

    Override this fixture in your conftest.py to provide a custom logger.

    Returns:
        Logger instance
    """
    from ..log import LogConfig, LoggerFactory

    log_config = LogConfig.from_params(
        level="debug",
        location=0,
        micros=False,
        colors=False,
    )
    return LoggerFactory.create_root(log_config)


@pytest_asyncio.fixture
async def mongo_client(
    mongo_test_options: "ClientOptions",
    mongo_test_logger: "Logger",
) -> AsyncGenerator["TestClient", None]:
    """
    Create a bootstrapped TestClient for one test.

    Yields:
        TestClient connected to the test deployment
    """
    from .client import TestClient

    client = await TestClient.create(mongo_test_options, mongo_test_logger)
    try:
        yield client
    finally:
        await client.close()


@pytest_asyncio.fixture
async def mongo_event_client(
    mongo_test_options: "ClientOptions",
    mongo_test_logger: "Logger",
) -> AsyncGenerator["EventClient", None]:
    """
    Create an EventClient for one test; its event record starts empty.

    Yields:
        EventClient connected to the test deployment
    """
    from .events import EventClient

    client = await EventClient.create(mongo_test_options, mongo_test_logger)
    try:
        yield client
    finally:
        await client.close()


# =============================================================================
# Fixture Operations
# =============================================================================


@pytest_asyncio.fixture
async def mongo_fresh_collection(
    request: pytest.FixtureRequest,
    mongo_client: "TestClient",
) -> AsyncGenerator["AsyncCollection", None]:
    """
    Provide an empty collection named after the current test.

    The collection lives in the client's working database and is dropped
    after the test.

    Yields:
        Freshly created collection
    """
    from .fixtures import get_db_name

    db_name = mongo_client.options.db_name
    coll_name = get_db_name(request.node.name)
    coll = await mongo_client.create_fresh_collection(db_name, coll_name)
    yield coll
    await mongo_client.drop_collection(db_name, coll_name)


@pytest_asyncio.fixture
async def mongo_fail_point(
    mongo_client: "TestClient",
) -> AsyncGenerator[Callable[["FailPoint"], Awaitable["FailPointGuard"]], None]:
    """
    Provide a function installing fail points for the current test.

    Skips the test when the deployment does not support failCommand. Every
    guard still armed when the test ends is released, in reverse install
    order.

    Yields:
        Async function taking a FailPoint and returning its armed guard
    """
    if not mongo_client.supports_fail_command():
        pytest.skip(
            f"failCommand not supported by server {mongo_client.version} "
            f"({mongo_client.topology_kind()})"
        )

    guards: list["FailPointGuard"] = []

    async def enable(fp: "FailPoint") -> "FailPointGuard":
        guard = await mongo_client.enable_failpoint(fp)
        guards.append(guard)
        return guard

    yield enable

    await release_guards(guards)


async def release_guards(guards: list["FailPointGuard"]) -> None:
    """
    Release guards in reverse install order.

    Every guard gets its release attempt even when an earlier one fails.

    Raises:
        FailPointReleaseError: The first release failure, after all attempts
    """
    errors: list[FailPointReleaseError] = []
    for guard in reversed(guards):
        try:
            await guard.release()
        except FailPointReleaseError as e:
            errors.append(e)
    if errors:
        raise errors[0]
