"""Upgrade planning for depbump.

Walks the manifest's dependencies in declaration order, asks the version
oracle for candidates, lets :class:`~depbump.core.policy.VersionPolicy`
decide, and collects the resulting constraint rewrites.

Packages are evaluated strictly one at a time. A failing lookup is
reported for that package and the walk moves on; planning itself never
fails because of a single dependency.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from packaging.version import Version

from depbump.core.oracle import VersionOracle
from depbump.core.policy import VersionPolicy
from depbump.core.events import EventKind, EventSink, ProgressEvent
from depbump.models.constraint import Constraint, caret
from depbump.models.manifest import Manifest, ManifestEntry
from depbump.models.upgrade import Policy, ProposedChange
from depbump.utils.logger import get_logger

logger = get_logger("planner")


@dataclass
class UpgradePlan:
    """Outcome of a planning pass.

    Attributes:
        changes: Proposed rewrites in manifest order.
        has_updates: Whether any constraint should change.
        events: Per-package progress events in emission order.
    """

    changes: List[ProposedChange] = field(default_factory=list)
    has_updates: bool = False
    events: List[ProgressEvent] = field(default_factory=list)

    def proposed(self) -> Dict[str, str]:
        """Return ``{package: new constraint}`` in proposal order."""
        return {change.package: change.new_constraint for change in self.changes}


class UpgradePlanner:
    """Builds an :class:`UpgradePlan` for a manifest.

    Args:
        version_policy: Decision logic; defaults to a policy with no extra
            reserved prefixes.
        on_event: Optional callback receiving each event as it happens.
    """

    def __init__(
        self,
        version_policy: Optional[VersionPolicy] = None,
        on_event: Optional[EventSink] = None,
    ) -> None:
        self.version_policy = version_policy or VersionPolicy()
        self.on_event = on_event

    def plan(self, manifest: Manifest, policy: Policy, oracle: VersionOracle) -> UpgradePlan:
        """Evaluate every dependency of ``manifest`` under ``policy``.

        Unless ``policy.dry_run`` is set, accepted rewrites are applied to
        ``manifest`` in memory as they are found.
        """
        result = UpgradePlan()

        for entry in manifest.dependencies():
            if self.version_policy.is_excluded(entry.name, policy):
                logger.debug("Skipping %s: excluded by policy", entry.name)
                continue

            change = self._evaluate(entry, policy, oracle, result)
            if change is None:
                continue

            result.has_updates = True
            result.changes.append(change)
            if not policy.dry_run:
                manifest.set_constraint(change.package, change.new_constraint)

        logger.info(
            "Planned %d change(s) across %d dependency(ies)",
            len(result.changes),
            len(manifest.dependencies()),
        )
        return result

    def _evaluate(
        self,
        entry: ManifestEntry,
        policy: Policy,
        oracle: VersionOracle,
        result: UpgradePlan,
    ) -> Optional[ProposedChange]:
        try:
            latest = oracle.latest(
                entry.name,
                policy.min_stability,
                entry.constraint,
                policy.allow_major,
                policy.allow_minor,
                policy.allow_patch,
            )
            installed = oracle.current_version(entry.name, entry.constraint)
            new_constraint, should_update = self.version_policy.decide(
                entry.name,
                entry.constraint,
                latest,
                policy,
                installed=installed,
            )
        except Exception as exc:  # noqa: BLE001
            logger.debug("Lookup failed for %s", entry.name, exc_info=True)
            self._emit(
                result,
                EventKind.ERROR,
                entry.name,
                f"Error processing {entry.name}: {exc}",
            )
            return None

        if new_constraint is None:
            return None

        if not should_update:
            self._emit(
                result,
                EventKind.SKIPPED,
                entry.name,
                f"Skipping {entry.name}: {entry.constraint} already satisfies {new_constraint[1:]}",
            )
            return None

        if latest is not None and new_constraint == caret(latest) and _raises_floor(entry, latest):
            self._emit(
                result,
                EventKind.FOUND_UPGRADE,
                entry.name,
                f"Found {entry.name}: {entry.constraint} -> {latest}",
            )
        else:
            self._emit(
                result,
                EventKind.NORMALIZED,
                entry.name,
                f"Normalizing {entry.name}: {entry.constraint} -> {new_constraint}",
            )

        return ProposedChange(entry.name, entry.constraint, new_constraint)

    def _emit(self, result: UpgradePlan, kind: EventKind, package: str, message: str) -> None:
        event = ProgressEvent(kind=kind, message=message, package=package)
        result.events.append(event)
        if self.on_event is not None:
            self.on_event(event)


def _raises_floor(entry: ManifestEntry, latest: Version) -> bool:
    base = Constraint.parse(entry.constraint).base_version
    return base is not None and latest > base
