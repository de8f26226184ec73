"""Dependency resolver adapters for depbump.

A resolver is an opaque capability: it is asked whether it can run at all
(:meth:`Resolver.probe`) and, if so, to simulate an update of the root
project's current requirement set (:meth:`Resolver.simulate_update`)
without installing anything.

:class:`PoetryResolver` performs the simulation by running
``poetry lock`` in a scratch copy of the project, so the real manifest and
lock file are never touched. Relative ``path`` dependencies are made
absolute in the copy, and Poetry is told not to create a virtualenv for it.
"""

from __future__ import annotations

import os
import shutil
import tempfile
import subprocess
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Protocol

from depbump.core.project import RootProject
from depbump.exceptions import ResolverError
from depbump.models.manifest import Manifest
from depbump.utils.filesystem import safe_write_file
from depbump.utils.logger import get_logger
from depbump.constants import (
    DEFAULT_MANIFEST_NAME,
    LOCK_FILE_NAME,
    POETRY_ENV_OVERRIDES,
    POETRY_EXECUTABLE,
    POETRY_LOCK_ARGS,
)

logger = get_logger("resolver")

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class Capability(Enum):
    """Result of probing a resolver."""

    AVAILABLE = "available"
    UNAVAILABLE = "unavailable"
    ERROR = "error"


class Resolver(Protocol):
    """Capability consumed by :class:`~depbump.core.validator.CompatibilityValidator`."""

    def probe(self) -> Capability:
        ...

    def simulate_update(self, project: RootProject) -> int:
        """Resolve ``project.requires`` in dry-run mode.

        Returns:
            ``0`` when the requirement set resolves, a non-zero status
            otherwise.

        Raises:
            ResolverError: Resolution failed with a diagnostic message.
        """
        ...


class PoetryResolver:
    """Resolver backed by the ``poetry`` executable.

    Args:
        project_dir: Directory holding ``pyproject.toml`` and ``poetry.lock``.
        executable: Poetry executable name or path.
        runner: ``subprocess.run`` compatible callable.
        which: ``shutil.which`` compatible callable.
    """

    def __init__(
        self,
        project_dir: Path,
        executable: str = POETRY_EXECUTABLE,
        runner: Runner = subprocess.run,
        which: Callable[[str], Optional[str]] = shutil.which,
    ) -> None:
        self.project_dir = Path(project_dir)
        self.executable = executable
        self._runner = runner
        self._which = which

    @property
    def lock_path(self) -> Path:
        return self.project_dir / LOCK_FILE_NAME

    def probe(self) -> Capability:
        """Check that poetry is installed and the project has a lock file.

        The lock file is the resolver's local package index; without it
        there is nothing to validate against.
        """
        try:
            if self._which(self.executable) is None:
                logger.info("'%s' not found on PATH", self.executable)
                return Capability.UNAVAILABLE
            if not self.lock_path.is_file():
                logger.info("No %s in %s", LOCK_FILE_NAME, self.project_dir)
                return Capability.UNAVAILABLE
        except OSError as exc:
            logger.warning("Resolver probe failed: %s", exc)
            return Capability.ERROR
        return Capability.AVAILABLE

    def simulate_update(self, project: RootProject) -> int:
        if project.manifest_text is None:
            raise ResolverError("Root project has no manifest to resolve")

        manifest = Manifest.loads(project.manifest_text)
        for name, link in project.requires.items():
            if name in manifest:
                manifest.set_constraint(name, link.constraint)
        # Relative path dependencies must still resolve from the scratch copy
        manifest.anchor_paths(self.project_dir)

        command: List[str] = [self.executable, *POETRY_LOCK_ARGS]
        with tempfile.TemporaryDirectory(prefix="depbump-") as scratch:
            scratch_dir = Path(scratch)
            safe_write_file(scratch_dir / DEFAULT_MANIFEST_NAME, manifest.dumps())
            if self.lock_path.is_file():
                shutil.copy2(self.lock_path, scratch_dir / LOCK_FILE_NAME)

            logger.debug("Running %s in %s", " ".join(command), scratch_dir)
            try:
                result = self._runner(
                    command,
                    cwd=str(scratch_dir),
                    capture_output=True,
                    text=True,
                    check=False,
                    env={**os.environ, **POETRY_ENV_OVERRIDES},
                )
            except OSError as exc:
                raise ResolverError(
                    f"Cannot run {self.executable}: {exc}",
                    command=" ".join(command),
                ) from exc

        if result.returncode != 0:
            output = "\n".join(
                part.strip() for part in (result.stdout, result.stderr) if part and part.strip()
            )
            raise ResolverError(
                output or f"{self.executable} exited with status {result.returncode}",
                status_code=result.returncode,
                command=" ".join(command),
            )
        return result.returncode

