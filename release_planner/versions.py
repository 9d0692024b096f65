"""Version parsing and bumping utilities.

Handles conversion between version strings and semver objects, with
special handling for incomplete version strings (e.g., "1.0" → "1.0.0").
"""

from __future__ import annotations

import semver

from .models import VersionBump


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "1.2" → "1.2.0"
    - "1.2.3" → "1.2.3"

    Full versions with pre-release or build metadata are parsed as-is.

    Raises:
        ValueError: If the string is not a valid version.
    """
    version_str = version_str.strip().removeprefix("v")
    if semver.Version.is_valid(version_str):
        return semver.Version.parse(version_str)
    parts = version_str.split(".")
    # Pad with zeros to ensure we have at least 3 parts
    while len(parts) < 3:
        parts.append("0")
    return semver.Version.parse(".".join(parts[:3]))


def next_version(current: str, bump: VersionBump, preid: str | None = None) -> str:
    """Compute the version that follows ``current`` for the given bump.

    Examples:
        next_version("1.2.3", MINOR) → "1.3.0"
        next_version("1.0", PATCH) → "1.0.1"
        next_version("1.2.3", MINOR, "rc") → "1.3.0-rc.1"
        next_version("1.3.0-rc.1", MINOR, "rc") → "1.3.0-rc.2"
        next_version("1.3.0-rc.1", MAJOR, "rc") → "2.0.0-rc.1"

    A NONE bump returns ``current`` unchanged.
    """
    if bump is VersionBump.NONE:
        return current

    version = parse_version(current)

    if preid:
        same_line = version.prerelease and version.prerelease.split(".")[0] == preid
        if same_line and not _needs_bump(version, bump):
            # 1.3.0-rc.1 + minor → 1.3.0-rc.2
            return str(version.bump_prerelease(token=preid))
        base = version.finalize_version()
        if not version.prerelease or _needs_bump(version, bump):
            base = _bump(base, bump)
        return f"{base}-{preid}.1"

    if version.prerelease and not _needs_bump(version, bump):
        # 2.0.0-rc.3 + major → 2.0.0
        return str(version.finalize_version())
    return str(_bump(version.finalize_version(), bump))


def highest_version(versions: list[str]) -> str:
    """Return the highest of the given version strings ("0.0.0" when empty)."""
    if not versions:
        return "0.0.0"
    return max(versions, key=parse_version)


def _bump(version: semver.Version, bump: VersionBump) -> semver.Version:
    if bump is VersionBump.MAJOR:
        return version.bump_major()
    if bump is VersionBump.MINOR:
        return version.bump_minor()
    return version.bump_patch()


def _needs_bump(version: semver.Version, bump: VersionBump) -> bool:
    """Whether a pre-release still has to move to satisfy ``bump``.

    1.3.0-rc.1 already carries a minor bump over 1.2.x, so finalizing it is
    enough; a major bump needs to move on to 2.0.0.
    """
    if bump is VersionBump.MAJOR:
        return not (version.minor == 0 and version.patch == 0)
    if bump is VersionBump.MINOR:
        return version.patch != 0
    return False
