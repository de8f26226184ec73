"""
Upgrade run data models for depbump.

Plain value objects shared by the planner, the validator and the session:
the policy a run is evaluated under, the constraint rewrites it proposes,
and the verdict of the compatibility check.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, Tuple

from depbump.models.stability import StabilityLevel


def normalize_name(name: str) -> str:
    """Normalize a package name according to PEP 503."""
    return re.sub(r"[-_.]+", "-", name).lower()


@dataclass(frozen=True)
class Policy:
    """Upgrade policy for one run.

    Attributes:
        allow_major: Permit upgrades that change the major version.
        allow_minor: Permit upgrades that change the minor version.
        allow_patch: Permit patch-level upgrades (and pre-release to final).
        min_stability: Least stable channel a candidate may come from.
        only_packages: When set, only these (normalized) names are evaluated.
        dry_run: Compute and report without touching the manifest.
    """

    allow_major: bool = False
    allow_minor: bool = True
    allow_patch: bool = True
    min_stability: StabilityLevel = StabilityLevel.STABLE
    only_packages: Optional[FrozenSet[str]] = None
    dry_run: bool = False

    def __post_init__(self) -> None:
        if self.only_packages is not None:
            object.__setattr__(
                self,
                "only_packages",
                frozenset(normalize_name(name) for name in self.only_packages),
            )

    @classmethod
    def from_flags(
        cls,
        *,
        major: bool = False,
        minor: bool = False,
        patch: bool = False,
        stability: StabilityLevel = StabilityLevel.STABLE,
        only: Optional[Iterable[str]] = None,
        dry_run: bool = False,
    ) -> "Policy":
        """Build a policy from command-line style flags.

        With no magnitude flag the policy allows minor and patch upgrades.
        ``major`` adds major upgrades. Naming ``minor`` or ``patch``
        explicitly restricts the minor/patch pair to the ones named.
        """
        explicit = minor or patch
        only_packages = None
        if only is not None:
            names = [name.strip() for name in only if name.strip()]
            only_packages = frozenset(names) if names else None
        return cls(
            allow_major=major,
            allow_minor=minor or not explicit,
            allow_patch=patch or not explicit,
            min_stability=stability,
            only_packages=only_packages,
            dry_run=dry_run,
        )

    def includes(self, package: str) -> bool:
        """Return True if ``package`` passes the allow-list."""
        return self.only_packages is None or normalize_name(package) in self.only_packages


@dataclass(frozen=True)
class ProposedChange:
    """A constraint rewrite proposed for one package."""

    package: str
    old_constraint: str
    new_constraint: str

    def __str__(self) -> str:
        return f"{self.package}: {self.old_constraint} -> {self.new_constraint}"


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of a dry-run compatibility check.

    Attributes:
        accepted: Whether the proposed constraint set can be committed.
        implicated_packages: Proposed packages named in the diagnostic, in
            proposal order. Attribution is a substring heuristic and may
            both over- and under-report.
        diagnostic_text: Raw resolver message, when one was produced.
    """

    accepted: bool
    implicated_packages: Tuple[str, ...] = field(default_factory=tuple)
    diagnostic_text: Optional[str] = None

    @classmethod
    def accept(cls) -> "ValidationOutcome":
        return cls(accepted=True)
