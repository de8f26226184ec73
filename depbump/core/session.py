"""Upgrade session orchestration for depbump.

An :class:`UpgradeSession` runs one upgrade end to end::

    LOADING -> PLANNING -> NO_CHANGES
                        -> DRY_RUN_COMPLETE
                        -> VALIDATING -> COMMITTED
                                      -> ABORTED
    (any setup failure)  -> FAILED

The manifest is read once and written at most once. Every path other than
``COMMITTED`` leaves the file on disk untouched.

Typical usage::

    session = UpgradeSession(
        Path("pyproject.toml"),
        Policy(allow_major=True),
        oracle=IndexFileOracle.from_file("versions.json"),
    )
    result = session.run()
    sys.exit(result.exit_code)
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from dataclasses import dataclass
from typing import List, Optional

from depbump.constants import LOCK_FILE_NAME
from depbump.exceptions import DepBumpError, FileOperationError
from depbump.core.events import EventKind, EventSink, ProgressEvent
from depbump.core.oracle import VersionOracle
from depbump.core.planner import UpgradePlan, UpgradePlanner
from depbump.core.policy import VersionPolicy
from depbump.core.project import RootProject
from depbump.core.resolver import PoetryResolver, Resolver
from depbump.core.validator import CompatibilityValidator
from depbump.models.manifest import Manifest
from depbump.models.upgrade import Policy, ValidationOutcome
from depbump.utils.logger import get_logger

logger = get_logger("session")

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class SessionState(Enum):
    LOADING = "loading"
    PLANNING = "planning"
    NO_CHANGES = "no-changes"
    DRY_RUN_COMPLETE = "dry-run-complete"
    VALIDATING = "validating"
    COMMITTED = "committed"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass
class SessionResult:
    """Terminal state of a session and what led there."""

    state: SessionState
    exit_code: int
    plan: Optional[UpgradePlan] = None
    outcome: Optional[ValidationOutcome] = None
    error: Optional[DepBumpError] = None
    backup_path: Optional[Path] = None


class UpgradeSession:
    """Coordinates loading, planning, validation and commit.

    Args:
        manifest_path: Path of the ``pyproject.toml`` to upgrade.
        policy: Upgrade policy for the run.
        oracle: Source of candidate and locked versions.
        resolver: Resolver for compatibility validation; defaults to
            :class:`~depbump.core.resolver.PoetryResolver` for the
            manifest's directory.
        version_policy: Decision logic (carries reserved prefixes).
        check_compatibility: Run the resolver before committing.
        backup: Write a timestamped backup of the manifest before saving.
        on_event: Callback receiving progress events as they happen.
    """

    def __init__(
        self,
        manifest_path: Path,
        policy: Policy,
        oracle: VersionOracle,
        resolver: Optional[Resolver] = None,
        *,
        version_policy: Optional[VersionPolicy] = None,
        check_compatibility: bool = True,
        backup: bool = False,
        on_event: Optional[EventSink] = None,
    ) -> None:
        self.manifest_path = Path(manifest_path)
        self.policy = policy
        self.oracle = oracle
        self.resolver = resolver or PoetryResolver(self.manifest_path.parent)
        self.version_policy = version_policy or VersionPolicy()
        self.check_compatibility = check_compatibility
        self.backup = backup
        self.on_event = on_event

        self.state = SessionState.LOADING
        self.events: List[ProgressEvent] = []

    def run(self) -> SessionResult:
        """Run the session to a terminal state."""
        self._enter(SessionState.LOADING)
        try:
            manifest = self._load()
        except DepBumpError as exc:
            logger.debug("Session setup failed", exc_info=True)
            return self._finish(SessionState.FAILED, EXIT_FAILURE, error=exc)

        # Snapshot before planning mutates the manifest in memory
        project = RootProject.from_manifest(manifest)

        self._enter(SessionState.PLANNING)
        planner = UpgradePlanner(self.version_policy, on_event=self._forward)
        plan = planner.plan(manifest, self.policy, self.oracle)

        if not plan.has_updates:
            self._emit(EventKind.NO_CHANGES, "No dependency updates were required.")

        if self.policy.dry_run:
            self._emit(EventKind.DRY_RUN, "Dry run complete. No changes applied.")
            return self._finish(SessionState.DRY_RUN_COMPLETE, EXIT_SUCCESS, plan=plan)

        if not plan.has_updates:
            return self._finish(SessionState.NO_CHANGES, EXIT_SUCCESS, plan=plan)

        outcome = ValidationOutcome.accept()
        if self.check_compatibility:
            self._enter(SessionState.VALIDATING)
            self._emit(EventKind.VALIDATING, "Validating dependency compatibility...")
            outcome = CompatibilityValidator(self.resolver).validate(project, plan.changes)

            if not outcome.accepted:
                self._report_rejection(outcome)
                self._emit(
                    EventKind.ABORTING,
                    "Aborting: The proposed upgrades would cause conflicts.",
                )
                return self._finish(SessionState.ABORTED, EXIT_FAILURE, plan=plan, outcome=outcome)

        try:
            backup_path = manifest.save(backup=self.backup)
        except DepBumpError as exc:
            return self._finish(SessionState.FAILED, EXIT_FAILURE, plan=plan, error=exc)

        self._emit(
            EventKind.COMMITTED,
            f"{self.manifest_path.name} has been updated. "
            'Run "poetry lock" to apply changes.',
        )
        return self._finish(
            SessionState.COMMITTED,
            EXIT_SUCCESS,
            plan=plan,
            outcome=outcome,
            backup_path=backup_path,
        )

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _load(self) -> Manifest:
        manifest = Manifest.load(self.manifest_path)

        lock_path = manifest.lock_path
        if not self.policy.dry_run and (lock_path is None or not lock_path.is_file()):
            raise FileOperationError(
                f'No {LOCK_FILE_NAME} found. Run "poetry lock" first.',
                file_path=str(lock_path) if lock_path else None,
                operation="read",
            )
        return manifest

    def _report_rejection(self, outcome: ValidationOutcome) -> None:
        self._emit(EventKind.REJECTED, "Incompatibility detected for the following proposed changes:")
        if outcome.implicated_packages:
            for package in outcome.implicated_packages:
                self._emit(EventKind.REJECTED, f" - {package}", package=package)
        else:
            self._emit(
                EventKind.REJECTED,
                " - The conflict involves sub-dependencies of your packages.",
            )
        if outcome.diagnostic_text:
            self._emit(EventKind.REJECTED, "Resolver reason:")
            self._emit(EventKind.REJECTED, outcome.diagnostic_text)

    def _enter(self, state: SessionState) -> None:
        logger.debug("Session state: %s -> %s", self.state.value, state.value)
        self.state = state

    def _finish(self, state: SessionState, exit_code: int, **kwargs) -> SessionResult:
        self._enter(state)
        return SessionResult(state=state, exit_code=exit_code, **kwargs)

    def _emit(self, kind: EventKind, message: str, package: Optional[str] = None) -> None:
        self._forward(ProgressEvent(kind=kind, message=message, package=package))

    def _forward(self, event: ProgressEvent) -> None:
        self.events.append(event)
        if self.on_event is not None:
            self.on_event(event)
