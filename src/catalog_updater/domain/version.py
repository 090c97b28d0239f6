"""Semantic versions and npm-style version ranges.

Versions wrap ``semantic_version.Version``. Ranges are parsed into
comparator sets (a union of intersections) so containment, overlap and
the min/max bounds can be computed without a package manager.

Supported range syntax: caret, tilde, x-ranges and ``*``, primitive
comparators (``<``, ``<=``, ``>``, ``>=``, ``=``), hyphen ranges and
``||`` unions.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Literal

import semantic_version

from catalog_updater.exceptions import (
    InvalidVersionError,
    InvalidVersionRangeError,
)

DifferenceType = Literal["major", "minor", "patch", "prerelease", "same"]

_PARTIAL_RE = re.compile(
    r"""
    ^v?
    (?P<major>\d+|[xX*])
    (?:\.(?P<minor>\d+|[xX*])
        (?:\.(?P<patch>\d+|[xX*])
            (?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?
            (?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?
        )?
    )?$
    """,
    re.VERBOSE,
)
_OPERATOR_RE = re.compile(r"^(?P<op>\^|~>?|>=|<=|>|<|=)?(?P<version>.*)$")
_OPERATOR_SPACE_RE = re.compile(r"(\^|~>?|>=|<=|>|<|=)\s+")
_HYPHEN_RE = re.compile(r"^(?P<low>\S+)\s+-\s+(?P<high>\S+)$")
_WILDCARDS = frozenset({"x", "X", "*"})


def _make(
    major: int, minor: int, patch: int, prerelease: tuple[str, ...] = ()
) -> semantic_version.Version:
    return semantic_version.Version(
        major=major, minor=minor, patch=patch, prerelease=prerelease, build=()
    )


def _precedence(version: semantic_version.Version) -> semantic_version.Version:
    """Drop build metadata, which never takes part in ordering."""
    if not version.build:
        return version
    return _make(
        version.major, version.minor, version.patch, tuple(version.prerelease)
    )


@total_ordering
class Version:
    """Immutable semantic version.

    Ordering compares major, minor and patch, then prerelease precedence;
    build metadata is ignored.
    """

    __slots__ = ("_core", "_version")

    def __init__(self, version: semantic_version.Version) -> None:
        self._version = version
        self._core = _precedence(version)

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse a version string.

        A leading ``v`` or ``=`` and surrounding whitespace are tolerated.

        Args:
            text: Version string such as ``1.2.3`` or ``v2.0.0-rc.1``

        Returns:
            Parsed Version

        Raises:
            InvalidVersionError: If text is not a valid semantic version

        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidVersionError("version string cannot be empty", text)
        cleaned = text.strip().lstrip("=v").strip()
        try:
            return cls(semantic_version.Version(cleaned))
        except ValueError as e:
            raise InvalidVersionError(str(e), text) from e

    @property
    def major(self) -> int:
        return self._version.major

    @property
    def minor(self) -> int:
        return self._version.minor

    @property
    def patch(self) -> int:
        return self._version.patch

    @property
    def prerelease(self) -> tuple[str, ...]:
        return tuple(self._version.prerelease)

    @property
    def semver(self) -> semantic_version.Version:
        """Underlying semantic_version object without build metadata."""
        return self._core

    def is_prerelease(self) -> bool:
        return bool(self._version.prerelease)

    def is_newer_than(self, other: Version) -> bool:
        return self._core > other._core

    def is_older_than(self, other: Version) -> bool:
        return self._core < other._core

    def equals(self, other: Version) -> bool:
        return self._core == other._core

    def get_difference_type(self, other: Version) -> DifferenceType:
        """Classify how far apart two versions are.

        Returns:
            ``same`` for equal versions, otherwise the highest differing
            component, or ``prerelease`` when only the tags differ

        """
        if self.equals(other):
            return "same"
        if self.major != other.major:
            return "major"
        if self.minor != other.minor:
            return "minor"
        if self.patch != other.patch:
            return "patch"
        return "prerelease"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._core == other._core

    def __lt__(self, other: Version) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._core < other._core

    def __hash__(self) -> int:
        return hash(self._core)

    def __str__(self) -> str:
        return str(self._version)

    def __repr__(self) -> str:
        return f"Version('{self}')"


@dataclass(frozen=True)
class Comparator:
    """Single primitive comparison such as ``>=1.2.3``."""

    operator: str
    version: semantic_version.Version

    def test(self, version: semantic_version.Version) -> bool:
        if self.operator == "=":
            return version == self.version
        if self.operator == ">":
            return version > self.version
        if self.operator == ">=":
            return version >= self.version
        if self.operator == "<":
            return version < self.version
        return version <= self.version

    def __str__(self) -> str:
        return f"{self.operator}{self.version}"


ComparatorSet = tuple[Comparator, ...]

# Matches nothing; used for ">*" and "<*".
_EMPTY_SET: ComparatorSet = (Comparator("<", _make(0, 0, 0)),)


def _parse_partial(
    text: str, source: str
) -> tuple[int | None, int | None, int | None, tuple[str, ...]]:
    """Parse a possibly partial version into components.

    Missing or wildcard components come back as None; anything after a
    wildcard is treated as a wildcard too.
    """
    match = _PARTIAL_RE.match(text)
    if not match:
        raise InvalidVersionRangeError(f"cannot parse '{text}'", source)

    parts: list[int | None] = []
    wildcard = False
    for name in ("major", "minor", "patch"):
        value = match.group(name)
        if wildcard or value is None or value in _WILDCARDS:
            wildcard = True
            parts.append(None)
        else:
            parts.append(int(value))

    pre = match.group("pre")
    prerelease = tuple(pre.split(".")) if pre and parts[2] is not None else ()
    return parts[0], parts[1], parts[2], prerelease


def _desugar(op: str, text: str, source: str) -> ComparatorSet:
    """Expand one operator and partial version into primitive comparators."""
    major, minor, patch, pre = _parse_partial(text, source)

    if major is None:
        return _EMPTY_SET if op in (">", "<") else ()

    full = minor is not None and patch is not None
    if full:
        version = _make(major, minor, patch, pre)

    if op in ("", "="):
        if full:
            return (Comparator("=", version),)
        if minor is None:
            return (
                Comparator(">=", _make(major, 0, 0)),
                Comparator("<", _make(major + 1, 0, 0)),
            )
        return (
            Comparator(">=", _make(major, minor, 0)),
            Comparator("<", _make(major, minor + 1, 0)),
        )

    if op == ">":
        if full:
            return (Comparator(">", version),)
        if minor is None:
            return (Comparator(">=", _make(major + 1, 0, 0)),)
        return (Comparator(">=", _make(major, minor + 1, 0)),)

    if op == ">=":
        if full:
            return (Comparator(">=", version),)
        return (Comparator(">=", _make(major, minor or 0, 0)),)

    if op == "<":
        if full:
            return (Comparator("<", version),)
        return (Comparator("<", _make(major, minor or 0, 0)),)

    if op == "<=":
        if full:
            return (Comparator("<=", version),)
        if minor is None:
            return (Comparator("<", _make(major + 1, 0, 0)),)
        return (Comparator("<", _make(major, minor + 1, 0)),)

    if op in ("~", "~>"):
        if minor is None:
            return (
                Comparator(">=", _make(major, 0, 0)),
                Comparator("<", _make(major + 1, 0, 0)),
            )
        lower = version if full else _make(major, minor, 0)
        return (
            Comparator(">=", lower),
            Comparator("<", _make(major, minor + 1, 0)),
        )

    # caret
    if minor is None:
        return (
            Comparator(">=", _make(major, 0, 0)),
            Comparator("<", _make(major + 1, 0, 0)),
        )
    lower = version if full else _make(major, minor, 0)
    if major > 0:
        upper = _make(major + 1, 0, 0)
    elif minor > 0 or not full:
        upper = _make(0, minor + 1, 0)
    else:
        upper = _make(0, 0, patch + 1)
    return (Comparator(">=", lower), Comparator("<", upper))


def _parse_hyphen(low: str, high: str, source: str) -> ComparatorSet:
    comparators: list[Comparator] = []

    major, minor, patch, pre = _parse_partial(low, source)
    if major is not None:
        comparators.append(
            Comparator(
                ">=",
                _make(
                    major,
                    minor or 0,
                    patch or 0,
                    pre if patch is not None else (),
                ),
            )
        )

    major, minor, patch, pre = _parse_partial(high, source)
    if major is not None:
        if minor is None:
            comparators.append(Comparator("<", _make(major + 1, 0, 0)))
        elif patch is None:
            comparators.append(Comparator("<", _make(major, minor + 1, 0)))
        else:
            comparators.append(
                Comparator("<=", _make(major, minor, patch, pre))
            )
    return tuple(comparators)


def _parse_set(part: str, source: str) -> ComparatorSet:
    part = part.strip()
    if not part:
        return ()

    hyphen = _HYPHEN_RE.match(part)
    if hyphen:
        return _parse_hyphen(hyphen.group("low"), hyphen.group("high"), source)

    part = _OPERATOR_SPACE_RE.sub(r"\1", part)
    comparators: list[Comparator] = []
    for token in part.split():
        match = _OPERATOR_RE.match(token)
        if not match or not match.group("version"):
            raise InvalidVersionRangeError(f"cannot parse '{token}'", source)
        comparators.extend(
            _desugar(match.group("op") or "", match.group("version"), source)
        )
    return tuple(comparators)


def _set_includes(
    comparators: ComparatorSet, version: semantic_version.Version
) -> bool:
    if not all(c.test(version) for c in comparators):
        return False
    if not version.prerelease:
        return True
    # A prerelease only matches when a comparator in the same set names
    # the same major.minor.patch with a prerelease of its own.
    return any(
        c.version.prerelease
        and (c.version.major, c.version.minor, c.version.patch)
        == (version.major, version.minor, version.patch)
        for c in comparators
    )


def _set_bounds(
    comparators: ComparatorSet,
) -> tuple[
    tuple[semantic_version.Version, bool] | None,
    tuple[semantic_version.Version, bool] | None,
]:
    """Collapse a comparator set into (lower, upper) bounds.

    Each bound is ``(version, inclusive)``; None means unbounded.
    """
    lower: tuple[semantic_version.Version, bool] | None = None
    upper: tuple[semantic_version.Version, bool] | None = None

    for comparator in comparators:
        op, version = comparator.operator, comparator.version
        if op in (">", ">=", "="):
            candidate = (version, op != ">")
            if (
                lower is None
                or version > lower[0]
                or (version == lower[0] and not candidate[1])
            ):
                lower = candidate
        if op in ("<", "<=", "="):
            candidate = (version, op != "<")
            if (
                upper is None
                or version < upper[0]
                or (version == upper[0] and not candidate[1])
            ):
                upper = candidate
    return lower, upper


def _bounds_satisfiable(lower, upper) -> bool:
    if lower is None or upper is None:
        return True
    if lower[0] < upper[0]:
        return True
    return lower[0] == upper[0] and lower[1] and upper[1]


class VersionRange:
    """npm-style version range, validated on construction."""

    __slots__ = ("_sets", "_value")

    def __init__(self, value: str, sets: tuple[ComparatorSet, ...]) -> None:
        self._value = value
        self._sets = sets

    @classmethod
    def parse(cls, text: str) -> VersionRange:
        """Parse a range string.

        Args:
            text: Range such as ``^1.2.3``, ``>=1 <2`` or ``1.x || 2.x``

        Returns:
            Parsed VersionRange

        Raises:
            InvalidVersionRangeError: If text is not a valid range

        """
        if not isinstance(text, str) or not text.strip():
            raise InvalidVersionRangeError(
                "version range cannot be empty", text
            )
        cleaned = text.strip()
        sets = tuple(_parse_set(part, text) for part in cleaned.split("||"))
        return cls(cleaned, sets)

    @property
    def operator_prefix(self) -> str:
        """Return the leading ``^`` or ``~`` of a simple range, else ``""``."""
        if self._value.startswith("^"):
            return "^"
        if self._value.startswith("~"):
            return "~"
        return ""

    def is_exact(self) -> bool:
        return len(self._sets) == 1 and (
            len(self._sets[0]) == 1 and self._sets[0][0].operator == "="
        )

    def includes(self, version: Version) -> bool:
        """Check whether a version satisfies the range (npm semantics)."""
        return any(_set_includes(s, version.semver) for s in self._sets)

    def is_compatible_with(self, other: VersionRange) -> bool:
        """Check whether two ranges share at least one version."""
        for mine in self._sets:
            for theirs in other._sets:
                lower, upper = _set_bounds(mine + theirs)
                if _bounds_satisfiable(lower, upper):
                    return True
        return False

    def get_min_version(self) -> Version | None:
        """Return the lowest version satisfying the range.

        Returns:
            Minimum Version, or None when the range matches nothing

        """
        best: semantic_version.Version | None = None
        for comparators in self._sets:
            candidate = _make(0, 0, 0)
            for comparator in comparators:
                version = comparator.version
                if comparator.operator == ">":
                    if version.prerelease:
                        version = _make(
                            version.major,
                            version.minor,
                            version.patch,
                            (*version.prerelease, "0"),
                        )
                    else:
                        version = _make(
                            version.major, version.minor, version.patch + 1
                        )
                elif comparator.operator not in (">=", "="):
                    continue
                candidate = max(candidate, version)
            if not all(c.test(candidate) for c in comparators):
                continue
            if best is None or candidate < best:
                best = candidate
        return Version(best) if best is not None else None

    def get_max_version(self) -> Version | None:
        """Return the upper bound of the range.

        For ``<`` bounds this is the first version outside the range, so
        ``^1.2.3`` yields ``2.0.0`` and ``~1.2.3`` yields ``1.3.0``.

        Returns:
            Upper bound, or None when any alternative is unbounded

        """
        best: semantic_version.Version | None = None
        for comparators in self._sets:
            _, upper = _set_bounds(comparators)
            if upper is None:
                return None
            if best is None or upper[0] > best:
                best = upper[0]
        return Version(best) if best is not None else None

    def with_version(self, version: Version) -> VersionRange:
        """Build a range for a new version keeping this range's prefix."""
        return VersionRange.parse(f"{self.operator_prefix}{version}")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionRange):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"VersionRange('{self._value}')"
