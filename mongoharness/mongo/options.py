"""
Connection options for the test deployment.

ClientOptions is the harness's view of "which server are we testing against":
seed hosts, the replica set name and credential the suite was configured
with, and extra pymongo keyword options. Capability queries such as
is_replica_set() and auth_enabled() read these, not the server's replies.
"""

import dataclasses
from dataclasses import dataclass, field
from typing import Any

from pymongo.errors import ConfigurationError, InvalidURI
from pymongo.uri_parser import parse_uri

from ..config import Config
from ..exceptions import ConfigError
from .codes import BenignCodes

DEFAULT_URI = "mongodb://localhost:27017"
DEFAULT_WORKING_DB = "test"
DEFAULT_SERVER_SELECTION_TIMEOUT_MS = 10000


@dataclass(frozen=True)
class Credential:
    """Authentication settings for the test deployment."""

    username: str
    password: str | None = None
    source: str | None = None
    mechanism: str | None = None

    def __repr__(self) -> str:
        return (
            f"Credential(username={self.username!r}, password=***, "
            f"source={self.source!r}, mechanism={self.mechanism!r})"
        )


@dataclass(frozen=True)
class ClientOptions:
    """
    Options used to build the harness's pymongo client.

    Fields left as None (or empty) are "unset" and can be filled by merge().
    """

    hosts: tuple[str, ...] = ()
    repl_set_name: str | None = None
    credential: Credential | None = None
    working_db: str | None = None
    server_selection_timeout_ms: int | None = None
    extra: dict[str, Any] = field(default_factory=dict)
    codes: BenignCodes | None = None

    @classmethod
    def from_uri(cls, uri: str, **kwargs: Any) -> "ClientOptions":
        """
        Build options from a MongoDB connection string.

        The URI's host list, replicaSet, credentials, authSource and
        authMechanism populate the corresponding fields; other fields come
        from kwargs.

        Raises:
            ConfigError: If the URI cannot be parsed
        """
        try:
            parsed = parse_uri(uri)
        except (InvalidURI, ConfigurationError, ValueError) as e:
            raise ConfigError("invalid connection string", error=str(e)) from e

        # Option keys keep their URI spelling on current pymongo (replicaSet)
        uri_options = {k.lower(): v for k, v in parsed["options"].items()}
        hosts = tuple(f"{host}:{port}" for host, port in parsed["nodelist"])

        credential = None
        if parsed.get("username"):
            credential = Credential(
                username=parsed["username"],
                password=parsed.get("password"),
                source=uri_options.get("authsource") or parsed.get("database"),
                mechanism=uri_options.get("authmechanism"),
            )

        values: dict[str, Any] = {
            "hosts": hosts,
            "repl_set_name": uri_options.get("replicaset"),
            "credential": credential,
        }
        values.update(kwargs)
        return cls(**values)

    @classmethod
    def from_config(cls, cfg: Any, section: str = "mongo") -> "ClientOptions":
        """
        Build options from a configuration section.

        Args:
            cfg: Config/DotDict holding the section
            section: Dotted path of the mongo section

        Returns:
            Options built from ``uri`` plus explicit overrides

        Example:
            cfg = Config("etc/mongoharness.yaml")
            options = ClientOptions.from_config(cfg)
        """
        mongo = cfg.get(section) if cfg is not None else None
        if mongo is None:
            return cls.from_uri(DEFAULT_URI)

        options = cls.from_uri(
            mongo.get("uri") or DEFAULT_URI,
            working_db=mongo.get("working_db"),
            server_selection_timeout_ms=mongo.get("server_selection_timeout_ms"),
            extra=_to_plain(mongo.get("options")) or {},
            codes=(
                BenignCodes.from_config(mongo.get("codes"))
                if mongo.get("codes") is not None
                else None
            ),
        )

        if mongo.get("replica_set"):
            options = dataclasses.replace(
                options, repl_set_name=str(mongo.get("replica_set"))
            )
        if mongo.get("username"):
            options = dataclasses.replace(
                options,
                credential=Credential(
                    username=str(mongo.get("username")),
                    password=mongo.get("password"),
                    source=mongo.get("auth_source"),
                    mechanism=mongo.get("auth_mechanism"),
                ),
            )
        return options

    @classmethod
    def from_env(cls) -> "ClientOptions":
        """
        Build options from MONGOHARNESS_CONFIG or MONGOHARNESS_MONGO_* variables.

        Falls back to a local standalone at mongodb://localhost:27017.
        """
        cfg = Config.from_env(default={"mongo": {"uri": DEFAULT_URI}})
        return cls.from_config(cfg)

    @property
    def db_name(self) -> str:
        """Working database for handshake command 2 and fixtures."""
        return self.working_db or DEFAULT_WORKING_DB

    @property
    def benign_codes(self) -> BenignCodes:
        """Tolerated fixture error codes, the defaults when none were configured."""
        return self.codes if self.codes is not None else BenignCodes()

    def merge(self, other: "ClientOptions") -> "ClientOptions":
        """
        Fill unset fields from other; fields set here win.

        Args:
            other: Options supplying defaults (usually the suite's defaults)

        Returns:
            Merged options
        """
        return ClientOptions(
            hosts=self.hosts or other.hosts,
            repl_set_name=(
                self.repl_set_name
                if self.repl_set_name is not None
                else other.repl_set_name
            ),
            credential=self.credential if self.credential is not None else other.credential,
            working_db=self.working_db or other.working_db,
            server_selection_timeout_ms=(
                self.server_selection_timeout_ms
                if self.server_selection_timeout_ms is not None
                else other.server_selection_timeout_ms
            ),
            extra={**other.extra, **self.extra},
            codes=self.codes if self.codes is not None else other.codes,
        )

    def with_hosts(self, hosts: tuple[str, ...] | list[str]) -> "ClientOptions":
        return dataclasses.replace(self, hosts=tuple(hosts))

    def to_client_kwargs(self) -> dict[str, Any]:
        """
        Keyword arguments for pymongo.AsyncMongoClient.

        Returns:
            Mapping including ``host`` and any credential/replica set options
        """
        kwargs: dict[str, Any] = {
            "host": list(self.hosts) or [DEFAULT_URI],
            "serverSelectionTimeoutMS": (
                self.server_selection_timeout_ms
                if self.server_selection_timeout_ms is not None
                else DEFAULT_SERVER_SELECTION_TIMEOUT_MS
            ),
        }
        if self.repl_set_name is not None:
            kwargs["replicaSet"] = self.repl_set_name
        if self.credential is not None:
            kwargs["username"] = self.credential.username
            if self.credential.password is not None:
                kwargs["password"] = self.credential.password
            if self.credential.source is not None:
                kwargs["authSource"] = self.credential.source
            if self.credential.mechanism is not None:
                kwargs["authMechanism"] = self.credential.mechanism
        kwargs.update(self.extra)
        return kwargs


def _to_plain(value: Any) -> Any:
    """Convert a DotDict section to a plain dict."""
    if value is None:
        return None
    if hasattr(value, "to_dict"):
        return value.to_dict()
    return dict(value)
