"""
Tests for server version parsing.
"""

import pytest

from mongoharness.exceptions import BootstrapError, VersionParseError
from mongoharness.mongo.version import ServerVersion


@pytest.mark.unit
class TestParse:
    """Test ServerVersion.parse."""

    def test_plain_version(self):
        """Test a release version parses field by field."""
        assert ServerVersion.parse("5.0.0") == ServerVersion(5, 0, 0)

    def test_prerelease_suffix_dropped(self):
        """Test everything from the first dash is ignored."""
        assert ServerVersion.parse("4.2.1-rc0") == ServerVersion(4, 2, 1)

    def test_build_metadata_after_dash_dropped(self):
        """Test multiple dashes only keep the leading part."""
        assert ServerVersion.parse("7.0.2-ent-123-gabc") == ServerVersion(7, 0, 2)

    @pytest.mark.parametrize("raw", ["", "4.2", "4.2.x", "v4.2.1", "04.2.1", "4.2.1.0", "-rc0"])
    def test_invalid_versions(self, raw):
        """Test malformed strings raise VersionParseError."""
        with pytest.raises(VersionParseError) as exc_info:
            ServerVersion.parse(raw)

        assert exc_info.value.version == raw

    def test_parse_error_is_bootstrap_error(self):
        """Test version errors are fatal bootstrap errors."""
        with pytest.raises(BootstrapError):
            ServerVersion.parse("garbage")


@pytest.mark.unit
class TestOrdering:
    """Test ServerVersion comparison."""

    def test_orders_by_major_minor_patch(self):
        """Test ordering is lexicographic on the three fields."""
        versions = [
            ServerVersion(4, 2, 1),
            ServerVersion(3, 6, 23),
            ServerVersion(4, 1, 5),
            ServerVersion(4, 0, 0),
        ]

        assert sorted(versions) == [
            ServerVersion(3, 6, 23),
            ServerVersion(4, 0, 0),
            ServerVersion(4, 1, 5),
            ServerVersion(4, 2, 1),
        ]

    def test_at_least(self):
        """Test at_least includes the boundary."""
        v = ServerVersion(4, 1, 5)

        assert v.at_least(4, 1, 5)
        assert v.at_least(4, 0)
        assert not v.at_least(4, 1, 6)

    def test_str(self):
        """Test str renders major.minor.patch."""
        assert str(ServerVersion.parse("4.4.10-rc1")) == "4.4.10"
