"""
Server version parsing.

buildInfo reports versions like "7.0.2" or "4.2.1-rc0"; everything from the
first "-" on is dropped before parsing major.minor.patch.
"""

import re
from dataclasses import dataclass

from ..exceptions import VersionParseError

_VERSION_RE = re.compile(r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)$")


@dataclass(frozen=True, order=True)
class ServerVersion:
    """A major.minor.patch server version, ordered field by field."""

    major: int
    minor: int
    patch: int = 0

    @classmethod
    def parse(cls, version: str) -> "ServerVersion":
        """
        Parse a raw version string, ignoring any pre-release suffix.

        Args:
            version: Raw version string from buildInfo

        Returns:
            Parsed version

        Raises:
            VersionParseError: If the string is not major.minor.patch

        Example:
            >>> ServerVersion.parse("4.2.1-rc0")
            ServerVersion(major=4, minor=2, patch=1)
        """
        m = _VERSION_RE.match(version.split("-", 1)[0])
        if m is None:
            raise VersionParseError(version)
        return cls(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    def at_least(self, major: int, minor: int, patch: int = 0) -> bool:
        return self >= ServerVersion(major, minor, patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"
