"""
Server error codes treated as "already in the desired end state".

Each code is tolerated by exactly one fixture operation. The values are
server-defined and can be overridden from configuration
(``mongo.codes.user_not_found``, ``mongo.codes.namespace_not_found``).
"""

from dataclasses import dataclass
from typing import Any

# dropUser on a user that does not exist
USER_NOT_FOUND = 11

# drop on a collection that does not exist
NAMESPACE_NOT_FOUND = 26


@dataclass(frozen=True)
class BenignCodes:
    """The closed set of (operation, code) pairs tolerated by fixture helpers."""

    user_not_found: int = USER_NOT_FOUND
    namespace_not_found: int = NAMESPACE_NOT_FOUND

    @classmethod
    def from_config(cls, cfg: Any) -> "BenignCodes":
        """
        Build from a ``codes`` config section (DotDict, dict or None).

        Missing keys keep their defaults.
        """
        if cfg is None:
            return cls()
        return cls(
            user_not_found=int(cfg.get("user_not_found", USER_NOT_FOUND)),
            namespace_not_found=int(
                cfg.get("namespace_not_found", NAMESPACE_NOT_FOUND)
            ),
        )
