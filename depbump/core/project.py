"""In-memory root project state read by the resolver.

:class:`RootProject` holds the requirement set of the project being
upgraded. Validation swaps a trial requirement set in with
:func:`trial_requirements`, which always puts the original set back,
whether the resolver succeeds, rejects, or raises.
"""

from __future__ import annotations

from pathlib import Path
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Mapping, Optional

from depbump.models.manifest import Manifest
from depbump.utils.logger import get_logger

logger = get_logger("project")


@dataclass(frozen=True)
class Link:
    """A requirement of the root project on one package.

    Attributes:
        target: Package name.
        constraint: Constraint the resolver must satisfy.
        pretty_constraint: Constraint as the user wrote or will write it,
            kept for diagnostics.
    """

    target: str
    constraint: str
    pretty_constraint: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.target} ({self.pretty_constraint or self.constraint})"


class RootProject:
    """Requirement set of the project, plus the files it was built from.

    Args:
        requires: Requirements keyed by package name.
        manifest_text: Manifest text the requirements were read from.
        directory: Project directory holding the manifest and lock file.
    """

    def __init__(
        self,
        requires: Mapping[str, Link],
        manifest_text: Optional[str] = None,
        directory: Optional[Path] = None,
    ) -> None:
        self._requires: Dict[str, Link] = dict(requires)
        self.manifest_text = manifest_text
        self.directory = directory

    @classmethod
    def from_manifest(cls, manifest: Manifest) -> "RootProject":
        """Snapshot the current state of ``manifest``."""
        requires = {
            entry.name: Link(entry.name, entry.constraint, entry.constraint)
            for entry in manifest.dependencies()
        }
        directory = manifest.path.parent if manifest.path else None
        return cls(requires, manifest_text=manifest.dumps(), directory=directory)

    @property
    def requires(self) -> Dict[str, Link]:
        """A copy of the current requirement set."""
        return dict(self._requires)

    def set_requires(self, requires: Mapping[str, Link]) -> None:
        self._requires = dict(requires)


@contextmanager
def trial_requirements(project: RootProject, requires: Mapping[str, Link]) -> Iterator[RootProject]:
    """Install ``requires`` on ``project`` for the duration of the block.

    Example::

        with trial_requirements(project, trial) as trial_project:
            status = resolver.simulate_update(trial_project)
        # project.requires is back to what it was
    """
    original = project.requires
    project.set_requires(requires)
    logger.debug("Installed trial requirement set (%d entries)", len(requires))
    try:
        yield project
    finally:
        project.set_requires(original)
        logger.debug("Restored original requirement set")
