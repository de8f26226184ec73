"""Version oracles for depbump.

A version oracle answers two questions for the planner:

- ``latest``: the best release of a package inside the run's upgrade
  bounds (stability floor and allowed jump sizes, measured from the
  constraint's base version);
- ``current_version``: the best version already known to satisfy the
  declared constraint, i.e. the version pinned in ``poetry.lock``.

depbump does not talk to package registries itself. The shipped oracles
either read an offline index file or delegate the listing to pip::

    oracle = PipIndexOracle(locked=read_locked_versions(Path("poetry.lock")))
    oracle.latest("requests", StabilityLevel.STABLE, "^2.28.0", False, True, True)
    # <Version('2.32.3')>
"""

from __future__ import annotations

import sys
import json
import subprocess
from pathlib import Path
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Mapping, Optional, Protocol, Sequence, Union

import tomli
from packaging.version import InvalidVersion, Version

from depbump.core.policy import select_latest
from depbump.constants import PIP_INDEX_ARGS
from depbump.models.constraint import Constraint
from depbump.models.stability import StabilityLevel
from depbump.models.upgrade import normalize_name
from depbump.exceptions import ParseError, VersionLookupError
from depbump.utils.filesystem import safe_read_file
from depbump.utils.logger import get_logger

logger = get_logger("oracle")

Runner = Callable[..., "subprocess.CompletedProcess[str]"]


class VersionOracle(Protocol):
    """Capability consumed by :class:`~depbump.core.planner.UpgradePlanner`."""

    def latest(
        self,
        package: str,
        min_stability: StabilityLevel,
        current_constraint: str,
        allow_major: bool,
        allow_minor: bool,
        allow_patch: bool,
    ) -> Optional[Version]:
        ...

    def current_version(self, package: str, constraint: str) -> Optional[Version]:
        ...


def read_locked_versions(lock_path: Union[str, Path]) -> Dict[str, str]:
    """Return ``{normalized name: version}`` from a ``poetry.lock`` file.

    Raises:
        FileOperationError: The lock file cannot be read.
        ParseError: The lock file is not valid TOML.
    """
    text = safe_read_file(lock_path)
    try:
        data = tomli.loads(text)
    except tomli.TOMLDecodeError as exc:
        raise ParseError(f"Invalid lock file: {exc}", file_path=str(lock_path)) from exc

    locked: Dict[str, str] = {}
    for package in data.get("package", []):
        name, version = package.get("name"), package.get("version")
        if isinstance(name, str) and isinstance(version, str):
            locked[normalize_name(name)] = version

    logger.debug("Read %d locked package(s) from %s", len(locked), lock_path)
    return locked


class BaseVersionOracle(ABC):
    """Shared selection logic; subclasses only list available versions.

    Args:
        locked: Locked versions keyed by normalized package name.
    """

    def __init__(self, locked: Optional[Mapping[str, str]] = None) -> None:
        self.locked: Dict[str, str] = {
            normalize_name(name): version for name, version in (locked or {}).items()
        }

    @abstractmethod
    def available_versions(self, package: str) -> List[Version]:
        """Return every known release of ``package``.

        Raises:
            VersionLookupError: The package cannot be looked up.
        """

    def latest(
        self,
        package: str,
        min_stability: StabilityLevel,
        current_constraint: str,
        allow_major: bool,
        allow_minor: bool,
        allow_patch: bool,
    ) -> Optional[Version]:
        base = Constraint.parse(current_constraint).require_base_version(package)
        return select_latest(
            self.available_versions(package),
            base,
            min_stability,
            allow_major,
            allow_minor,
            allow_patch,
        )

    def current_version(self, package: str, constraint: str) -> Optional[Version]:
        """Return the locked version of ``package``, or ``None`` if unlocked."""
        locked = self.locked.get(normalize_name(package))
        if locked is None:
            return None
        try:
            return Version(locked)
        except InvalidVersion as exc:
            raise VersionLookupError(
                f"Locked version '{locked}' is not a valid version",
                package_name=package,
                source="poetry.lock",
            ) from exc


class IndexFileOracle(BaseVersionOracle):
    """Oracle backed by an in-memory or on-disk version index.

    The index maps package names to release lists. On disk it is a JSON
    document, either the mapping itself or wrapped in a ``"packages"`` key::

        {"packages": {"requests": ["2.28.0", "2.31.0", "3.0.0b1"]}}

    Args:
        index: Package name to version strings.
        locked: Locked versions keyed by package name.
    """

    def __init__(
        self,
        index: Mapping[str, Sequence[str]],
        locked: Optional[Mapping[str, str]] = None,
    ) -> None:
        super().__init__(locked)
        self.index: Dict[str, List[Version]] = {
            normalize_name(name): _parse_versions(name, versions)
            for name, versions in index.items()
        }

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        locked: Optional[Mapping[str, str]] = None,
    ) -> "IndexFileOracle":
        """Load an index from a JSON file.

        Raises:
            ParseError: The file is not JSON or not shaped like an index.
        """
        try:
            data = json.loads(safe_read_file(path))
        except json.JSONDecodeError as exc:
            raise ParseError(f"Invalid index file: {exc}", file_path=str(path)) from exc

        if isinstance(data, dict) and isinstance(data.get("packages"), dict):
            data = data["packages"]
        if not isinstance(data, dict) or not all(isinstance(v, list) for v in data.values()):
            raise ParseError(
                "Index file must map package names to version lists",
                file_path=str(path),
            )
        return cls(data, locked=locked)

    def available_versions(self, package: str) -> List[Version]:
        try:
            return self.index[normalize_name(package)]
        except KeyError:
            raise VersionLookupError(
                f"Package '{package}' is not in the version index",
                package_name=package,
                source="index",
            ) from None


class PipIndexOracle(BaseVersionOracle):
    """Oracle that lists releases through ``pip index versions``.

    Results are cached per package for the lifetime of the oracle.

    Args:
        python: Interpreter whose pip is used.
        locked: Locked versions keyed by package name.
        runner: ``subprocess.run`` compatible callable (injectable for tests).
    """

    def __init__(
        self,
        python: str = sys.executable,
        locked: Optional[Mapping[str, str]] = None,
        runner: Runner = subprocess.run,
    ) -> None:
        super().__init__(locked)
        self.python = python
        self._runner = runner
        self._cache: Dict[str, List[Version]] = {}

    def available_versions(self, package: str) -> List[Version]:
        key = normalize_name(package)
        if key not in self._cache:
            self._cache[key] = self._fetch(package)
        return self._cache[key]

    def _fetch(self, package: str) -> List[Version]:
        command = [self.python, *PIP_INDEX_ARGS, package]
        logger.debug("Running %s", " ".join(command))
        try:
            result = self._runner(command, capture_output=True, text=True, check=False)
        except OSError as exc:
            raise VersionLookupError(
                f"Cannot run pip: {exc}",
                package_name=package,
                source="pip",
            ) from exc

        if result.returncode != 0:
            message = (result.stderr or result.stdout or "").strip().splitlines()
            raise VersionLookupError(
                message[-1] if message else f"pip exited with status {result.returncode}",
                package_name=package,
                source="pip",
            )

        for line in result.stdout.splitlines():
            label, _, versions = line.partition(":")
            if label.strip() == "Available versions":
                return _parse_versions(package, versions.split(","))

        raise VersionLookupError(
            "Unexpected output from pip index",
            package_name=package,
            source="pip",
        )


def _parse_versions(package: str, raw_versions: Sequence[str]) -> List[Version]:
    versions: List[Version] = []
    for raw in raw_versions:
        raw = str(raw).strip()
        if not raw:
            continue
        try:
            versions.append(Version(raw))
        except InvalidVersion:
            logger.debug("Ignoring invalid version %r of %s", raw, package)
    return versions
