"""
Version comparison utilities for depbump.

Helpers for classifying the magnitude of a version change using
PEP 440-compatible parsing, and for checking a magnitude against the
upgrade policy flags.
"""

from __future__ import annotations

from typing import Optional, Tuple, Union

from packaging.version import InvalidVersion, Version, parse

VersionLike = Union[str, Version]


def get_update_type(
    current_version: Optional[VersionLike],
    target_version: Optional[VersionLike],
) -> str:
    """Determine the semantic update type between two versions.

    Args:
        current_version: Version the constraint currently starts at.
        target_version: Candidate version.

    Returns:
        One of ``"new"``, ``"same"``, ``"downgrade"``, ``"major"``,
        ``"minor"``, ``"patch"``, ``"update"`` (same release segment, e.g.
        pre-release to final) or ``"unknown"``.

    Examples:
        >>> get_update_type("1.0.0", "2.0.0")
        'major'
        >>> get_update_type("1.2.3", "1.2.3")
        'same'
        >>> get_update_type("1.2.3b1", "1.2.3")
        'update'
    """
    if current_version is None and target_version is None:
        return "unknown"

    if current_version is None:
        return "new"

    if target_version is None:
        return "unknown"

    try:
        current = to_version(current_version)
        target = to_version(target_version)
    except InvalidVersion:
        return "unknown"

    if target == current:
        return "same"

    if target < current:
        return "downgrade"

    return _classify_upgrade(current, target)


def is_magnitude_allowed(
    update_type: str,
    *,
    allow_major: bool,
    allow_minor: bool,
    allow_patch: bool,
) -> bool:
    """Return True if an upgrade of ``update_type`` is permitted.

    Pre-release to final moves (``"update"``) count as patch-level.
    """
    if update_type == "major":
        return allow_major
    if update_type == "minor":
        return allow_minor
    if update_type in ("patch", "update"):
        return allow_patch
    return False


def to_version(value: VersionLike) -> Version:
    """Parse ``value`` into a PEP 440 :class:`Version` (pass-through for Versions)."""
    if isinstance(value, Version):
        return value
    parsed = parse(value)
    if not isinstance(parsed, Version):
        raise InvalidVersion(value)
    return parsed


def _classify_upgrade(current: Version, target: Version) -> str:
    current_major, current_minor, current_patch = _normalize_release(current)
    target_major, target_minor, target_patch = _normalize_release(target)

    if current_major != target_major:
        return "major"

    if current_minor != target_minor:
        return "minor"

    if current_patch != target_patch:
        return "patch"

    return "update"


def _normalize_release(version: Version) -> Tuple[int, int, int]:
    """Normalize a version's release segment to (major, minor, patch)."""
    release = version.release
    major = release[0] if len(release) > 0 else 0
    minor = release[1] if len(release) > 1 else 0
    patch = release[2] if len(release) > 2 else 0
    return major, minor, patch
