"""Version derivation from repository history.

Two policies:
  release-grade      next = bump(clean(latest_tag), increment)
  development-grade  next = clean(latest_tag) + "-dev." + short_commit

The `auto` increment is resolved by the caller (analysis.suggest_increment)
before derive_version() runs, so this module never inspects PR content.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import datetime
from functools import total_ordering

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "1.0.0"
FALLBACK_VERSION = "1.0.1"

# At most one prefix is stripped.
TAG_PREFIXES = ("v", "release-", "version-")
INCREMENTS = ("patch", "minor", "major")

BUILD_NUMBER_FORMAT = "%Y%m%d.%H%M"

_NUM = r"0|[1-9]\d*"
_IDENT = r"(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
_SEMVER_RE = re.compile(
    rf"^({_NUM})\.({_NUM})\.({_NUM})"
    rf"(?:-({_IDENT}(?:\.{_IDENT})*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)
_LEADING_DIGITS_RE = re.compile(r"^\s*(\d+)")


def _prerelease_key(prerelease: str) -> tuple:
    # Numeric identifiers sort before alphanumeric ones and compare numerically.
    return tuple((0, int(p), "") if p.isdigit() else (1, 0, p) for p in prerelease.split("."))


@total_ordering
@dataclass(frozen=True)
class SemVer:
    major: int
    minor: int
    patch: int
    prerelease: str = ""
    build: str = ""

    @classmethod
    def parse(cls, text: str) -> "SemVer":
        """Parse a semantic version, tolerating surrounding whitespace and a leading "v" or "="."""
        candidate = text.strip() if isinstance(text, str) else ""
        if candidate[:1] in ("v", "="):
            candidate = candidate[1:]
        match = _SEMVER_RE.match(candidate)
        if match is None:
            raise ValueError(f"Invalid semantic version: {text!r}")
        major, minor, patch, prerelease, build = match.groups()
        return cls(int(major), int(minor), int(patch), prerelease or "", build or "")

    def bump(self, increment: str) -> "SemVer":
        """Return the next version. A pre-release bumps to the release it precedes."""
        if increment == "major":
            if self.prerelease and self.minor == 0 and self.patch == 0:
                return SemVer(self.major, 0, 0)
            return SemVer(self.major + 1, 0, 0)
        if increment == "minor":
            if self.prerelease and self.patch == 0:
                return SemVer(self.major, self.minor, 0)
            return SemVer(self.major, self.minor + 1, 0)
        if increment == "patch":
            if self.prerelease:
                return SemVer(self.major, self.minor, self.patch)
            return SemVer(self.major, self.minor, self.patch + 1)
        raise ValueError(f"Unknown increment: {increment!r}")

    def _key(self) -> tuple:
        # A release outranks any of its pre-releases; build metadata is ignored.
        pre = (1,) if not self.prerelease else (0, _prerelease_key(self.prerelease))
        return (self.major, self.minor, self.patch, pre)

    def __lt__(self, other: "SemVer") -> bool:
        return self._key() < other._key()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemVer):
            return NotImplemented
        return self._key() == other._key()

    def __hash__(self) -> int:
        return hash(self._key())

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += f"-{self.prerelease}"
        if self.build:
            text += f"+{self.build}"
        return text


@dataclass(frozen=True)
class VersionInfo:
    new_version: str
    previous_version: str
    tag_name: str
    clean_previous_version: str
    build_number: str

    def to_dict(self) -> dict:
        return {
            "newVersion": self.new_version,
            "previousVersion": self.previous_version,
            "tagName": self.tag_name,
            "cleanPreviousVersion": self.clean_previous_version,
            "buildNumber": self.build_number,
        }


def strip_tag_prefix(tag: str) -> str:
    # Longest first: "version-1.2.3" must not lose only its "v".
    for prefix in sorted(TAG_PREFIXES, key=len, reverse=True):
        if tag.startswith(prefix):
            return tag[len(prefix) :]
    return tag


def clean_version(tag: str) -> str:
    """Strip a known tag prefix and normalise; anything that is not semver degrades to 1.0.0."""
    cleaned = strip_tag_prefix(tag or "")
    try:
        return str(SemVer.parse(cleaned))
    except ValueError:
        logger.warning("Invalid semver: %r, using %s", cleaned, DEFAULT_VERSION)
        return DEFAULT_VERSION


def basic_increment(version: str, increment: str) -> str:
    """Numeric-triplet increment used when SemVer parsing fails.

    Non-numeric components count as 0. Returns 1.0.1 if even that fails.
    """
    try:
        parts = []
        for part in version.split(".")[:3]:
            match = _LEADING_DIGITS_RE.match(part)
            parts.append(int(match.group(1)) if match else 0)
        while len(parts) < 3:
            parts.append(0)
        major, minor, patch = parts
        if increment == "major":
            return f"{major + 1}.0.0"
        if increment == "minor":
            return f"{major}.{minor + 1}.0"
        return f"{major}.{minor}.{patch + 1}"
    except Exception as e:
        logger.error("Basic increment failed for %r: %s", version, e)
        return FALLBACK_VERSION


def increment_version(version: str, increment: str) -> str:
    if increment not in INCREMENTS:
        logger.warning("Invalid increment: %r, using patch", increment)
        increment = "patch"
    try:
        return str(SemVer.parse(version).bump(increment))
    except ValueError as e:
        logger.error("Failed to increment version %r with %s: %s", version, increment, e)
        return basic_increment(version, increment)


def generate_build_number(now: datetime | None = None) -> str:
    """Wall-clock build identifier, YYYYMMDD.HHMM."""
    return (now or datetime.now()).strftime(BUILD_NUMBER_FORMAT)


def derive_version(
    latest_tag: str | None,
    short_commit: str,
    strategy: str,
    release_grade: bool,
    prefix: str = "v",
    now: datetime | None = None,
) -> VersionInfo:
    previous = latest_tag or DEFAULT_VERSION
    clean_previous = clean_version(previous)

    if release_grade:
        new_version = increment_version(clean_previous, strategy)
    else:
        # Dev builds carry the commit id and are not semver-validated.
        new_version = f"{clean_previous}-dev.{short_commit}"

    return VersionInfo(
        new_version=new_version,
        previous_version=previous,
        tag_name=f"{prefix}{new_version}",
        clean_previous_version=clean_previous,
        build_number=generate_build_number(now),
    )


def validate_version(tag: str) -> bool:
    """True if the tag, once its prefix is stripped, is a valid semantic version."""
    try:
        SemVer.parse(strip_tag_prefix(tag or ""))
    except ValueError:
        return False
    return True


def compare_versions(a: str, b: str) -> int:
    """Return -1, 0 or 1 comparing two tags by semver precedence (0 if either cannot be compared)."""
    try:
        left = SemVer.parse(clean_version(a))
        right = SemVer.parse(clean_version(b))
    except ValueError as e:
        logger.warning("Failed to compare versions %r and %r: %s", a, b, e)
        return 0
    return (left > right) - (left < right)
