"""Compatibility validation for proposed constraint rewrites.

Before a rewritten manifest is saved, the proposed constraints are handed
to the project's resolver in dry-run mode. Each proposed package is
required at ``>=`` the version its new caret constraint starts from, the
rest of the requirement set is left as declared, and the resolver decides
whether the whole set is satisfiable.

Validation is best effort. When the resolver cannot run (missing
executable, no lock file, a probe that blows up) the changes are accepted
as they are.

When the resolver rejects the set, the packages to blame are picked by
looking for each proposed package name inside the diagnostic text. This is
a heuristic: a short name can match inside a longer one, and a conflict
between transitive dependencies may not mention any proposed package.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from depbump.core.resolver import Capability, Resolver
from depbump.core.project import Link, RootProject, trial_requirements
from depbump.models.constraint import Constraint
from depbump.models.upgrade import ProposedChange, ValidationOutcome, normalize_name
from depbump.utils.logger import get_logger

logger = get_logger("validator")


class CompatibilityValidator:
    """Checks proposed changes against a :class:`~depbump.core.resolver.Resolver`.

    Args:
        resolver: Resolver used for the dry-run simulation.
    """

    def __init__(self, resolver: Resolver) -> None:
        self.resolver = resolver

    def validate(
        self,
        project: RootProject,
        changes: Sequence[ProposedChange],
    ) -> ValidationOutcome:
        """Simulate ``changes`` on ``project`` and report the verdict.

        ``project.requires`` is identical before and after the call on
        every path, including when the resolver raises.
        """
        if not changes:
            return ValidationOutcome.accept()

        capability = self._probe()
        if capability is not Capability.AVAILABLE:
            logger.info("Resolver %s; skipping compatibility validation", capability.value)
            return ValidationOutcome.accept()

        trial = build_trial_requirements(project.requires, changes)

        try:
            with trial_requirements(project, trial) as trial_project:
                status = self.resolver.simulate_update(trial_project)
        except Exception as exc:
            logger.debug("Resolver rejected proposed changes", exc_info=True)
            return reject(changes, str(exc))

        if status == 0:
            logger.info("Proposed changes resolve cleanly")
            return ValidationOutcome.accept()

        logger.info("Resolver exited with status %s", status)
        return ValidationOutcome(accepted=False)

    def _probe(self) -> Capability:
        try:
            return self.resolver.probe()
        except Exception as exc:
            logger.warning("Resolver probe raised %s: %s", type(exc).__name__, exc)
            return Capability.ERROR


def build_trial_requirements(
    requires: Dict[str, Link],
    changes: Sequence[ProposedChange],
) -> Dict[str, Link]:
    """Return ``requires`` with each proposed package raised to ``>=`` its new floor.

    The proposed constraint text is kept on the link for diagnostics.
    """
    trial = dict(requires)
    keys = {normalize_name(name): name for name in trial}

    for change in changes:
        key = keys.get(normalize_name(change.package), change.package)
        floor = _bare_version(change.new_constraint)
        trial[key] = Link(key, f">={floor}", change.new_constraint)

    return trial


def implicated_packages(
    changes: Sequence[ProposedChange],
    diagnostic: Optional[str],
) -> List[str]:
    """Return proposed package names that occur literally in ``diagnostic``.

    Order follows ``changes``. Substring matching may over-attribute
    (``six`` inside ``sixer``) and under-attribute (conflicts between
    transitive dependencies).
    """
    if not diagnostic:
        return []
    found: List[str] = []
    for change in changes:
        if change.package in diagnostic and change.package not in found:
            found.append(change.package)
    return found


def reject(changes: Sequence[ProposedChange], diagnostic: str) -> ValidationOutcome:
    """Build a rejecting outcome with blame attributed from ``diagnostic``."""
    return ValidationOutcome(
        accepted=False,
        implicated_packages=tuple(implicated_packages(changes, diagnostic)),
        diagnostic_text=diagnostic,
    )


def _bare_version(constraint: str) -> str:
    literal = Constraint.parse(constraint).base_literal
    return literal if literal is not None else constraint.lstrip("^")
