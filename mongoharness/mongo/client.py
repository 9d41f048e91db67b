"""
TestClient: a pymongo client plus the facts established at bootstrap.

Construction runs the handshake exactly once. Capability queries read the
resulting CapabilityFacts and the ClientOptions the client was built from;
fixture operations delegate to mongoharness.mongo.fixtures; fail points are
installed through FailPointGuard.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from pymongo import AsyncMongoClient
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.monitoring import CommandListener

from .. import time as harnesstime
from ..config import Config
from ..exceptions import BootstrapError
from ..log import LogConfig, Logger, LoggerFactory
from . import fixtures
from .failpoint import FailPoint, FailPointGuard
from .handshake import run_handshake
from .options import ClientOptions
from .topology import CapabilityFacts, TopologyReply
from .version import ServerVersion

ADMIN_DB = "admin"

# failCommand shipped for mongos later than for mongod
FAIL_COMMAND_MIN_VERSION = ServerVersion(4, 0, 0)
FAIL_COMMAND_MIN_VERSION_SHARDED = ServerVersion(4, 1, 5)


def default_logger() -> Logger:
    """Root logger configured from the ``logging`` section of the environment config."""
    return LoggerFactory.create_root(LogConfig.from_config(Config.from_env()))


class TestClient:
    """
    Harness façade over an AsyncMongoClient.

    Attribute access and indexing fall through to the wrapped client, so a
    TestClient can be used wherever an AsyncMongoClient is expected:

        client = await TestClient.create()
        coll = client["db"]["coll"]

    Example:
        >>> async with await TestClient.create() as client:
        ...     if client.supports_fail_command():
        ...         fp = FailPoint.fail_command(["insert"], FailPointMode.times(1))
        ...         async with client.fail_point(fp):
        ...             ...
    """

    # Not a pytest test class
    __test__ = False

    def __init__(
        self,
        client: AsyncMongoClient,
        options: ClientOptions,
        facts: CapabilityFacts,
        lg: Logger,
        listener: CommandListener | None = None,
    ) -> None:
        """
        Wrap an already-bootstrapped client. Use create() instead.

        Args:
            client: Connected pymongo client
            options: Options the client was built from
            facts: Result of the handshake
            lg: Parent logger
            listener: Command listener registered on the client, if any
        """
        self._client = client
        self._options = options
        self._facts = facts
        self._listener = listener
        self._lg = LoggerFactory.derive(lg, "mongo")
        self._fixtures_lg = LoggerFactory.derive(lg, ["mongo", "fixtures"])
        self._failpoint_lg = LoggerFactory.derive(lg, ["mongo", "failpoint"])

    @classmethod
    async def create(
        cls,
        options: ClientOptions | None = None,
        lg: Logger | None = None,
        listener: CommandListener | None = None,
    ) -> "TestClient":
        """
        Connect and run the bootstrap handshake.

        Args:
            options: Options layered over the environment defaults
            lg: Parent logger (defaults to a root logger from the environment)
            listener: Command listener to register on the client

        Returns:
            Bootstrapped client

        Raises:
            ConfigError: If the environment configuration is invalid
            BootstrapError: If the handshake fails. The pymongo client is
                closed before the error propagates.
        """
        lg = lg or default_logger()
        defaults = ClientOptions.from_env()
        options = options.merge(defaults) if options is not None else defaults

        kwargs = options.to_client_kwargs()
        if listener is not None:
            kwargs["event_listeners"] = [listener]

        start = harnesstime.start()
        client: AsyncMongoClient = AsyncMongoClient(**kwargs)
        try:
            facts = await run_handshake(
                client,
                LoggerFactory.derive(lg, ["mongo", "handshake"]),
                options.db_name,
            )
        except BootstrapError:
            await client.close()
            raise

        test_client = cls(client, options, facts, lg, listener)
        test_client._lg.debug(
            "created test client",
            extra={
                "after": harnesstime.since(start),
                "hosts": ",".join(options.hosts),
                "topology": test_client.topology_kind(),
            },
        )
        return test_client

    @classmethod
    async def with_additional_options(
        cls,
        options: ClientOptions | None = None,
        use_multiple_mongoses: bool = False,
        lg: Logger | None = None,
        listener: CommandListener | None = None,
    ) -> "TestClient":
        """
        Create a client from options layered over the defaults.

        Against a sharded deployment, only the first seed host is kept unless
        use_multiple_mongoses is set, so tests pinned to one mongos see
        consistent routing.
        """
        lg = lg or default_logger()
        defaults = ClientOptions.from_env()
        options = options.merge(defaults) if options is not None else defaults

        async with await TestClient.create(defaults, lg) as probe:
            sharded = probe.is_sharded()

        if sharded and not use_multiple_mongoses:
            options = options.with_hosts(options.hosts[:1])
        return await cls.create(options, lg, listener)

    # -- properties --------------------------------------------------------

    @property
    def client(self) -> AsyncMongoClient:
        return self._client

    @property
    def options(self) -> ClientOptions:
        return self._options

    @property
    def facts(self) -> CapabilityFacts:
        return self._facts

    @property
    def topology_reply(self) -> TopologyReply:
        return self._facts.topology_reply

    @property
    def version(self) -> ServerVersion:
        return self._facts.version

    @property
    def lg(self) -> Logger:
        return self._lg

    # -- capability queries ------------------------------------------------

    def is_sharded(self) -> bool:
        return self._facts.topology_reply.is_mongos

    def is_replica_set(self) -> bool:
        """True when a replica set name was configured, whatever the server says."""
        return self._options.repl_set_name is not None

    def is_standalone(self) -> bool:
        return not self.is_sharded() and not self.is_replica_set()

    def auth_enabled(self) -> bool:
        return self._options.credential is not None

    def topology_kind(self) -> str:
        if self.is_sharded():
            return "sharded"
        if self.is_replica_set():
            return "replica_set"
        return "standalone"

    def _major_minor(self) -> tuple[int, int]:
        return (self._facts.version.major, self._facts.version.minor)

    def server_version_eq(self, major: int, minor: int) -> bool:
        return self._major_minor() == (major, minor)

    def server_version_gt(self, major: int, minor: int) -> bool:
        return self._major_minor() > (major, minor)

    def server_version_gte(self, major: int, minor: int) -> bool:
        return self._major_minor() >= (major, minor)

    def server_version_lt(self, major: int, minor: int) -> bool:
        return self._major_minor() < (major, minor)

    def server_version_lte(self, major: int, minor: int) -> bool:
        return self._major_minor() <= (major, minor)

    def supports_fail_command(self) -> bool:
        """Check that the server accepts the failCommand fail point."""
        if self.is_sharded():
            return self._facts.version >= FAIL_COMMAND_MIN_VERSION_SHARDED
        return self._facts.version >= FAIL_COMMAND_MIN_VERSION

    # -- fixtures ----------------------------------------------------------

    async def create_user(
        self,
        user: str,
        pwd: str | None,
        roles: list[Any],
        mechanisms: list[str] | None,
        db: str | None = None,
    ) -> None:
        """
        Create a user.

        Args:
            user: User name
            pwd: Password, or None for users without one (e.g. x509)
            roles: Role names or role documents
            mechanisms: SCRAM mechanisms; ignored before server 4.0
            db: Database to create the user in (default: admin)

        Raises:
            OperationFailure: If the server rejects the command
        """
        cmd = fixtures.build_create_user_command(
            user, pwd, roles, mechanisms, self._facts.version
        )
        db_name = db or ADMIN_DB
        await self._client[db_name].command(cmd)
        self._fixtures_lg.debug("created user", extra={"user": user, "db": db_name})

    async def drop_and_create_user(
        self,
        user: str,
        pwd: str | None,
        roles: list[Any],
        mechanisms: list[str] | None,
        db: str | None = None,
    ) -> None:
        """Ensure a user exists with exactly these properties."""
        await fixtures.drop_user(
            self._client[db or ADMIN_DB],
            user,
            self._options.benign_codes,
            self._fixtures_lg,
        )
        await self.create_user(user, pwd, roles, mechanisms, db)

    async def drop_collection(self, db_name: str, coll_name: str) -> None:
        await fixtures.drop_collection(
            self._client[db_name][coll_name], self._options.benign_codes, self._fixtures_lg
        )

    async def create_fresh_collection(
        self, db_name: str, coll_name: str, **options: Any
    ) -> AsyncCollection:
        """Drop (if present) and create a collection; options go to create_collection."""
        return await fixtures.create_fresh_collection(
            self._client[db_name],
            coll_name,
            self._options.benign_codes,
            self._fixtures_lg,
            **options,
        )

    def get_coll(self, db_name: str, coll_name: str) -> AsyncCollection:
        return self._client[db_name][coll_name]

    def get_coll_with_options(
        self, db_name: str, coll_name: str, **options: Any
    ) -> AsyncCollection:
        """Collection handle with codec/read/write options (see Database.get_collection)."""
        return self._client[db_name].get_collection(coll_name, **options)

    async def init_db_and_coll(self, db_name: str, coll_name: str) -> AsyncCollection:
        """Empty collection handle: drop the collection, then return it."""
        coll = self.get_coll(db_name, coll_name)
        await fixtures.drop_collection(coll, self._options.benign_codes, self._fixtures_lg)
        return coll

    async def init_db_and_coll_with_options(
        self, db_name: str, coll_name: str, **options: Any
    ) -> AsyncCollection:
        coll = self.get_coll_with_options(db_name, coll_name, **options)
        await fixtures.drop_collection(coll, self._options.benign_codes, self._fixtures_lg)
        return coll

    # -- fail points -------------------------------------------------------

    async def enable_failpoint(self, fp: FailPoint) -> FailPointGuard:
        """
        Install a fail point and return its armed guard.

        The caller owns the guard and must release it, preferably with
        ``async with``. Check supports_fail_command() first.

        Raises:
            FailPointInstallError: If the server rejected the directive
        """
        return await fp.enable(self._client, self._failpoint_lg)

    @asynccontextmanager
    async def fail_point(self, fp: FailPoint) -> AsyncIterator[FailPointGuard]:
        """
        Install a fail point for the duration of a block.

        The fail point is turned off when the block exits, whether normally
        or by exception.

        Example:
            async with client.fail_point(fp) as guard:
                with pytest.raises(OperationFailure):
                    await coll.insert_one({})
        """
        guard = await self.enable_failpoint(fp)
        async with guard:
            yield guard

    # -- lifecycle and delegation -------------------------------------------

    async def close(self) -> None:
        await self._client.close()
        self._lg.trace("closed test client")

    async def __aenter__(self) -> "TestClient":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    def __getitem__(self, db_name: str) -> AsyncDatabase:
        return self._client[db_name]

    def __getattr__(self, name: str) -> Any:
        # Only reached for names TestClient does not define
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._client, name)
