"""
Topology identity reply (isMaster) and the capability facts derived from it.

Every reply field is independently optional: standalones, replica set
members and mongos routers each omit a different subset, and no field's
presence implies another's.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from bson.objectid import ObjectId

from ..exceptions import BootstrapError
from .version import ServerVersion

# msg value reported by a mongos router
MONGOS_SENTINEL = "isdbgrid"


def _is_bool(v: Any) -> bool:
    return isinstance(v, bool)


def _is_int(v: Any) -> bool:
    return isinstance(v, int) and not isinstance(v, bool)


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _is_str(v: Any) -> bool:
    return isinstance(v, str)


def _is_str_list(v: Any) -> bool:
    return isinstance(v, list) and all(isinstance(x, str) for x in v)


def _is_str_map(v: Any) -> bool:
    return isinstance(v, Mapping) and all(
        isinstance(k, str) and isinstance(x, str) for k, x in v.items()
    )


def _is_object_id(v: Any) -> bool:
    return isinstance(v, ObjectId)


# attribute -> (reply key, type check)
_FIELDS: dict[str, tuple[str, Callable[[Any], bool]]] = {
    "is_master": ("ismaster", _is_bool),
    "ok": ("ok", _is_number),
    "hosts": ("hosts", _is_str_list),
    "passives": ("passives", _is_str_list),
    "arbiters": ("arbiters", _is_str_list),
    "msg": ("msg", _is_str),
    "me": ("me", _is_str),
    "set_version": ("setVersion", _is_int),
    "set_name": ("setName", _is_str),
    "hidden": ("hidden", _is_bool),
    "secondary": ("secondary", _is_bool),
    "arbiter_only": ("arbiterOnly", _is_bool),
    "is_replica_set": ("isreplicaset", _is_bool),
    "logical_session_timeout_minutes": ("logicalSessionTimeoutMinutes", _is_int),
    "min_wire_version": ("minWireVersion", _is_int),
    "max_wire_version": ("maxWireVersion", _is_int),
    "tags": ("tags", _is_str_map),
    "election_id": ("electionId", _is_object_id),
    "primary": ("primary", _is_str),
}


@dataclass(frozen=True)
class TopologyReply:
    """The isMaster fields the harness understands; all default to None."""

    is_master: bool | None = None
    ok: float | None = None
    hosts: list[str] | None = None
    passives: list[str] | None = None
    arbiters: list[str] | None = None
    msg: str | None = None
    me: str | None = None
    set_version: int | None = None
    set_name: str | None = None
    hidden: bool | None = None
    secondary: bool | None = None
    arbiter_only: bool | None = None
    is_replica_set: bool | None = None
    logical_session_timeout_minutes: int | None = None
    min_wire_version: int | None = None
    max_wire_version: int | None = None
    tags: dict[str, str] | None = None
    election_id: ObjectId | None = None
    primary: str | None = None

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]) -> "TopologyReply":
        """
        Build from a raw isMaster reply.

        Unknown keys are ignored. A known key holding a value of the wrong
        type means the reply does not have the expected shape.

        Args:
            doc: Reply document

        Returns:
            Parsed reply

        Raises:
            BootstrapError: If a known field has the wrong type
        """
        values: dict[str, Any] = {}
        for attr, (key, check) in _FIELDS.items():
            if key not in doc or doc[key] is None:
                continue
            value = doc[key]
            if not check(value):
                raise BootstrapError(
                    "unexpected isMaster reply field type",
                    field=key,
                    type=type(value).__name__,
                )
            if attr == "ok":
                value = float(value)
            elif attr == "tags":
                value = dict(value)
            elif isinstance(value, list):
                value = list(value)
            values[attr] = value
        return cls(**values)

    @property
    def is_mongos(self) -> bool:
        return self.msg == MONGOS_SENTINEL


@dataclass(frozen=True)
class CapabilityFacts:
    """
    Server identity established once at bootstrap.

    Attributes:
        topology_reply: Parsed isMaster reply
        version: Parsed buildInfo version
    """

    topology_reply: TopologyReply
    version: ServerVersion
