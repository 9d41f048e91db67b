from .client import TestClient
from .codes import NAMESPACE_NOT_FOUND, USER_NOT_FOUND, BenignCodes
from .events import CommandEvent, EventClient, EventHandler
from .failpoint import FailCommandOptions, FailPoint, FailPointGuard, FailPointMode
from .fixtures import drop_collection, get_db_name
from .handshake import HandshakeSession, run_handshake
from .lock import TestLock
from .matchable import assert_matches, matches
from .options import ClientOptions, Credential
from .topology import CapabilityFacts, TopologyReply
from .version import ServerVersion

__all__ = [
    "TestClient",
    "EventClient",
    "EventHandler",
    "CommandEvent",
    "ClientOptions",
    "Credential",
    "CapabilityFacts",
    "TopologyReply",
    "ServerVersion",
    "HandshakeSession",
    "run_handshake",
    "FailPoint",
    "FailPointMode",
    "FailCommandOptions",
    "FailPointGuard",
    "BenignCodes",
    "USER_NOT_FOUND",
    "NAMESPACE_NOT_FOUND",
    "drop_collection",
    "get_db_name",
    "TestLock",
    "assert_matches",
    "matches",
]
