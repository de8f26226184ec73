"""Upgrade decision logic for depbump.

Given the constraint a package is declared with, the best candidate the
version oracle found, and the run's :class:`~depbump.models.Policy`, decide
whether the constraint should be rewritten and to what.

Two outcomes lead to a rewrite:

1. **Upgrade**: the candidate is newer than the constraint's base version,
   the size of the jump (major / minor / patch) is allowed, and the
   candidate is at least as stable as the policy floor.
2. **Normalization**: no eligible upgrade exists, but the constraint is not
   yet written in canonical caret form for the best version it already
   admits (e.g. ``>=1.2`` or ``^v1.2.0``).

Constraints are always written back as ``^<version>``.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple

from packaging.version import Version

from depbump.models.constraint import Constraint, caret
from depbump.models.stability import StabilityLevel
from depbump.models.upgrade import Policy, normalize_name
from depbump.utils.version_utils import get_update_type, is_magnitude_allowed

Decision = Tuple[Optional[str], bool]


class ReservedNamespace(Enum):
    """Names that are never upgrade candidates."""

    #: The interpreter requirement itself.
    RUNTIME = "python"

    def matches(self, package: str) -> bool:
        return normalize_name(package) == self.value


def is_reserved(package: str, extra_prefixes: Iterable[str] = ()) -> bool:
    """Return True if ``package`` must never be upgraded.

    Args:
        package: Package name as declared.
        extra_prefixes: Additional name prefixes excluded by configuration.
    """
    if any(namespace.matches(package) for namespace in ReservedNamespace):
        return True
    name = normalize_name(package)
    return any(name.startswith(normalize_name(prefix)) for prefix in extra_prefixes if prefix)


def is_allowed_upgrade(current: Version, candidate: Version, policy: Policy) -> bool:
    """Return True if moving from ``current`` to ``candidate`` is an allowed upgrade."""
    if candidate <= current:
        return False
    if not policy.min_stability.allows(candidate):
        return False
    return is_magnitude_allowed(
        get_update_type(current, candidate),
        allow_major=policy.allow_major,
        allow_minor=policy.allow_minor,
        allow_patch=policy.allow_patch,
    )


def select_latest(
    versions: Iterable[Version],
    base: Version,
    min_stability: StabilityLevel,
    allow_major: bool,
    allow_minor: bool,
    allow_patch: bool,
) -> Optional[Version]:
    """Pick the highest version within the upgrade bounds.

    A version qualifies when it meets the stability floor and is either not
    newer than ``base`` or reachable from ``base`` by an allowed jump.

    Example::

        >>> vs = [Version(v) for v in ("1.2.0", "1.5.0", "2.0.0")]
        >>> select_latest(vs, Version("1.2.0"), StabilityLevel.STABLE, False, True, True)
        <Version('1.5.0')>
    """
    candidates = [
        version
        for version in versions
        if min_stability.allows(version)
        and (
            version <= base
            or is_magnitude_allowed(
                get_update_type(base, version),
                allow_major=allow_major,
                allow_minor=allow_minor,
                allow_patch=allow_patch,
            )
        )
    ]
    return max(candidates) if candidates else None


class VersionPolicy:
    """Decides constraint rewrites for individual packages.

    Args:
        reserved_prefixes: Extra package-name prefixes that are never
            upgraded, on top of :class:`ReservedNamespace`.
    """

    def __init__(self, reserved_prefixes: Sequence[str] = ()) -> None:
        self.reserved_prefixes: Tuple[str, ...] = tuple(reserved_prefixes)

    def is_excluded(self, package: str, policy: Policy) -> bool:
        """Return True if ``package`` is reserved or outside the allow-list."""
        return is_reserved(package, self.reserved_prefixes) or not policy.includes(package)

    def decide(
        self,
        package: str,
        current_constraint: str,
        latest_version: Optional[Version],
        policy: Policy,
        installed: Optional[Version] = None,
    ) -> Decision:
        """Decide whether ``package`` gets a new constraint.

        Args:
            package: Package name.
            current_constraint: Constraint as currently declared.
            latest_version: Best candidate from the version oracle, if any.
            policy: Upgrade policy of the run.
            installed: Best known version already satisfying the constraint
                (typically the locked version).

        Returns:
            ``(new_constraint, should_update)``. ``new_constraint`` is
            ``None`` only for excluded packages.

        Raises:
            InvalidConstraintError: ``current_constraint`` is malformed or
                has no base version.
        """
        if self.is_excluded(package, policy):
            return None, False

        constraint = Constraint.parse(current_constraint)
        current = constraint.require_base_version(package)

        if latest_version is not None and is_allowed_upgrade(current, latest_version, policy):
            return caret(latest_version), True

        if installed is not None and constraint.allows(installed):
            target = installed
        else:
            target = current

        return caret(target), not constraint.is_canonical_for(target)
