"""
Stability channels for depbump.

Versions are grouped into ordered maturity tiers. The upgrade policy holds
a minimum tier, and a candidate is eligible only when its own tier is at
least that stable.
"""

from __future__ import annotations

from enum import IntEnum

from packaging.version import Version


class StabilityLevel(IntEnum):
    """Ordered stability channels, least to most stable."""

    DEV = 0
    ALPHA = 1
    BETA = 2
    RC = 3
    STABLE = 4

    @classmethod
    def parse(cls, value: str) -> "StabilityLevel":
        """Return the level named by ``value`` (case-insensitive).

        Raises:
            ValueError: ``value`` does not name a stability channel.
        """
        try:
            return cls[value.strip().upper()]
        except KeyError:
            choices = ", ".join(level.label for level in cls)
            raise ValueError(
                f"Unknown stability '{value}' (expected one of: {choices})"
            ) from None

    @classmethod
    def of(cls, version: Version) -> "StabilityLevel":
        """Classify ``version`` into its stability channel.

        Dev releases are always ``DEV``, even when they also carry a
        pre-release tag (``1.0a1.dev0``).
        """
        if version.is_devrelease:
            return cls.DEV
        if version.pre is not None:
            return _PRE_RELEASE_LEVELS[version.pre[0]]
        return cls.STABLE

    @property
    def label(self) -> str:
        return self.name.lower()

    def allows(self, version: Version) -> bool:
        """Return True if ``version`` is at least as stable as this floor."""
        return StabilityLevel.of(version) >= self


_PRE_RELEASE_LEVELS = {
    "a": StabilityLevel.ALPHA,
    "b": StabilityLevel.BETA,
    "rc": StabilityLevel.RC,
}

STABILITY_CHOICES = tuple(level.label for level in reversed(StabilityLevel))
