"""Tests for semantic versions and npm-style ranges."""

import pytest

from catalog_updater.domain.version import Version, VersionRange
from catalog_updater.exceptions import (
    InvalidVersionError,
    InvalidVersionRangeError,
)


class TestVersion:
    """Test suite for Version."""

    @pytest.mark.parametrize(
        "text", ["1.2.3", "0.0.1", "10.20.30", "1.0.0-rc.1", "2.0.0-beta.2"]
    )
    def test_string_round_trip(self, text):
        assert str(Version.parse(text)) == text

    def test_parse_tolerates_v_prefix(self):
        assert Version.parse("v1.2.3") == Version.parse("1.2.3")

    @pytest.mark.parametrize("text", ["", "   ", "1.2", "abc", "1.2.3.4"])
    def test_parse_rejects_invalid(self, text):
        with pytest.raises(InvalidVersionError):
            Version.parse(text)

    def test_prerelease_sorts_before_release(self):
        assert Version.parse("1.0.0-rc.1") < Version.parse("1.0.0")
        assert Version.parse("1.0.0-rc.1").is_prerelease()

    def test_build_metadata_is_ignored(self):
        assert Version.parse("1.0.0+build.5").equals(Version.parse("1.0.0"))

    @pytest.mark.parametrize(
        ("current", "other", "expected"),
        [
            ("1.2.3", "2.0.0", "major"),
            ("1.2.3", "1.3.0", "minor"),
            ("1.2.3", "1.2.4", "patch"),
            ("1.2.3-alpha", "1.2.3-beta", "prerelease"),
            ("1.2.3", "1.2.3", "same"),
        ],
    )
    def test_difference_type(self, current, other, expected):
        assert (
            Version.parse(current).get_difference_type(Version.parse(other))
            == expected
        )

    def test_same_iff_equals(self):
        versions = [Version.parse(v) for v in ("1.0.0", "1.0.0+b", "1.0.1")]
        for a in versions:
            for b in versions:
                assert (a.get_difference_type(b) == "same") == a.equals(b)

    def test_newer_and_older(self):
        old, new = Version.parse("1.0.0"), Version.parse("1.0.1")
        assert new.is_newer_than(old)
        assert old.is_older_than(new)
        assert not old.is_newer_than(old)


class TestVersionRange:
    """Test suite for VersionRange."""

    @pytest.mark.parametrize(
        ("range_text", "version", "expected"),
        [
            ("^1.2.3", "1.9.9", True),
            ("^1.2.3", "2.0.0", False),
            ("^0.2.3", "0.2.9", True),
            ("^0.2.3", "0.3.0", False),
            ("^0.0.3", "0.0.4", False),
            ("~1.2.3", "1.2.9", True),
            ("~1.2.3", "1.3.0", False),
            ("1.x", "1.5.0", True),
            ("*", "99.0.0", True),
            (">=1.0.0 <2.0.0", "1.5.0", True),
            ("1.0.0 - 1.5.0", "1.5.0", True),
            ("1.0.0 - 1.5.0", "1.5.1", False),
            ("^1.0.0 || ^3.0.0", "3.1.0", True),
            ("^1.0.0 || ^3.0.0", "2.1.0", False),
            ("^1.0.0", "1.5.0-beta", False),
            ("^1.5.0-beta", "1.5.0-beta.2", True),
        ],
    )
    def test_includes(self, range_text, version, expected):
        assert (
            VersionRange.parse(range_text).includes(Version.parse(version))
            is expected
        )

    @pytest.mark.parametrize("text", ["", "not a range", "^x.y.z.w", ">="])
    def test_parse_rejects_invalid(self, text):
        with pytest.raises(InvalidVersionRangeError):
            VersionRange.parse(text)

    @pytest.mark.parametrize(
        ("range_text", "expected"),
        [
            ("^4.17.20", "4.17.20"),
            ("~1.2.3", "1.2.3"),
            (">1.2.3", "1.2.4"),
            ("1.x", "1.0.0"),
            ("*", "0.0.0"),
            ("^2.0.0 || ^1.5.0", "1.5.0"),
        ],
    )
    def test_min_version(self, range_text, expected):
        assert str(VersionRange.parse(range_text).get_min_version()) == expected

    def test_max_version(self):
        assert str(VersionRange.parse("^1.2.3").get_max_version()) == "2.0.0"
        assert str(VersionRange.parse("~1.2.3").get_max_version()) == "1.3.0"
        assert VersionRange.parse(">=1.0.0").get_max_version() is None

    def test_prefix_is_kept_by_with_version(self):
        caret = VersionRange.parse("^4.17.20")
        tilde = VersionRange.parse("~1.2.3")
        exact = VersionRange.parse("1.2.3")
        assert str(caret.with_version(Version.parse("4.17.21"))) == "^4.17.21"
        assert str(tilde.with_version(Version.parse("1.2.4"))) == "~1.2.4"
        assert str(exact.with_version(Version.parse("1.2.4"))) == "1.2.4"

    def test_compatibility(self):
        assert VersionRange.parse("^1.2.0").is_compatible_with(
            VersionRange.parse("~1.4.0")
        )
        assert not VersionRange.parse("^1.2.0").is_compatible_with(
            VersionRange.parse("^2.0.0")
        )

    def test_exact_detection(self):
        assert VersionRange.parse("1.2.3").is_exact()
        assert not VersionRange.parse("^1.2.3").is_exact()
