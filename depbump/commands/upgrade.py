"""Upgrade command implementation for depbump.

Rewrites the version constraints of a Poetry ``pyproject.toml`` to the
newest releases the upgrade policy allows, validates the result with
Poetry's resolver, and only then saves the file.

The command wires together:

1. **Manifest**: the parsed ``pyproject.toml``
2. **VersionOracle**: candidate and locked versions (``pip index`` or a
   JSON index file)
3. **UpgradeSession**: planning, validation and commit

Typical usage::

    # Minor and patch upgrades for everything
    $ depbump upgrade

    # Allow major upgrades, preview only
    $ depbump upgrade --major --dry-run

    # Only touch two packages, accept release candidates
    $ depbump upgrade --only requests,rich --stability rc
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import List, Optional, Tuple

import click

from depbump.constants import DEFAULT_MANIFEST_NAME, LOCK_FILE_NAME
from depbump.context import DepBumpContext, pass_context
from depbump.exceptions import DepBumpError
from depbump.models import Constraint, Policy, ProposedChange, StabilityLevel
from depbump.models.stability import STABILITY_CHOICES
from depbump.core import (
    EventKind,
    IndexFileOracle,
    PipIndexOracle,
    ProgressEvent,
    SessionResult,
    SessionState,
    UpgradeSession,
    VersionPolicy,
    read_locked_versions,
)
from depbump.core.oracle import BaseVersionOracle
from depbump.utils import (
    colorize_update_type,
    get_logger,
    get_update_type,
    print_error,
    print_info,
    print_plain,
    print_success,
    print_table,
    print_warning,
)

logger = get_logger("commands.upgrade")

#: Events only shown with ``-v``.
_VERBOSE_EVENTS = frozenset({EventKind.SKIPPED, EventKind.ERROR})

_NO_CHANGES_DETAIL = " All dependencies already satisfy the requested constraints."


@click.command()
@click.argument(
    "manifest",
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_MANIFEST_NAME,
)
@click.option("--major", is_flag=True, help="Allow major version upgrades.")
@click.option("--minor", is_flag=True, help="Allow minor version upgrades.")
@click.option("--patch", is_flag=True, help="Allow patch version upgrades.")
@click.option(
    "--dry-run",
    is_flag=True,
    help="Show what would change without writing the manifest.",
)
@click.option(
    "--stability",
    type=click.Choice(STABILITY_CHOICES, case_sensitive=False),
    default=None,
    help="Least stable release channel to consider.",
)
@click.option(
    "--only",
    "only",
    default=None,
    help="Comma-separated list of packages to upgrade.",
)
@click.option(
    "--index-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file mapping package names to available versions.",
)
@click.option(
    "--backup",
    is_flag=True,
    default=None,
    help="Create a timestamped backup before saving.",
)
@pass_context
def upgrade(
    ctx: DepBumpContext,
    manifest: Path,
    major: bool,
    minor: bool,
    patch: bool,
    dry_run: bool,
    stability: Optional[str],
    only: Optional[str],
    index_file: Optional[Path],
    backup: Optional[bool],
) -> None:
    """Upgrade dependency constraints in a Poetry pyproject.toml.

    With no magnitude flag, minor and patch upgrades are allowed.
    ``--major`` adds major upgrades; ``--minor`` or ``--patch`` on their
    own restrict the run to that magnitude.

    Every rewritten constraint uses the caret form (``^1.4.2``). The
    ``python`` entry is never touched.

    Exits:
        0 if the manifest was updated, nothing needed changing, or a dry
        run completed; 1 if the upgrade was rejected or failed.
    """
    config = ctx.config
    policy = Policy.from_flags(
        major=major or config.allow_major,
        minor=minor,
        patch=patch,
        stability=StabilityLevel.parse(stability or config.stability),
        only=_split_only(only),
        dry_run=dry_run,
    )
    logger.debug("Upgrade policy: %s", policy)

    try:
        oracle = _build_oracle(manifest, index_file)
    except DepBumpError as e:
        print_error(str(e))
        sys.exit(1)

    session = UpgradeSession(
        manifest,
        policy,
        oracle,
        version_policy=VersionPolicy(config.reserved_prefixes),
        check_compatibility=config.check_compatibility,
        backup=config.backup if backup is None else backup,
        on_event=lambda event: _render_event(event, ctx.verbose),
    )
    result = session.run()
    _report(result)
    sys.exit(result.exit_code)


# ---------------------------------------------------------------------------
# Helper functions
# ---------------------------------------------------------------------------


def _split_only(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    return [name.strip() for name in value.split(",") if name.strip()]


def _build_oracle(manifest: Path, index_file: Optional[Path]) -> BaseVersionOracle:
    """Create the version oracle for this run.

    Locked versions are read from ``poetry.lock`` next to the manifest
    when it exists.
    """
    lock_path = manifest.parent / LOCK_FILE_NAME
    locked = read_locked_versions(lock_path) if lock_path.is_file() else {}

    if index_file is not None:
        logger.info("Reading available versions from %s", index_file)
        return IndexFileOracle.from_file(index_file, locked=locked)

    logger.info("Querying available versions through pip")
    return PipIndexOracle(locked=locked)


def _render_event(event: ProgressEvent, verbose: int) -> None:
    """Print one progress event to the console."""
    if event.kind in _VERBOSE_EVENTS and verbose <= 0:
        logger.debug(event.message)
        return

    message = event.message
    if event.kind is EventKind.NO_CHANGES and verbose > 0:
        message += _NO_CHANGES_DETAIL

    if event.kind is EventKind.ERROR:
        print_error(event.message)
    elif event.kind is EventKind.COMMITTED:
        print_success(event.message)
    elif event.kind in (EventKind.REJECTED, EventKind.ABORTING):
        print_plain(event.message, style="error")
    elif event.kind is EventKind.DRY_RUN:
        print_warning(event.message, prefix="[DRY RUN]")
    elif event.kind is EventKind.SKIPPED:
        print_plain(event.message, style="dim")
    else:
        print_info(message)


def _report(result: SessionResult) -> None:
    if result.error is not None:
        print_error(str(result.error))
        logger.debug("Session error details: %s", result.error.details or "<none>")
        return

    if result.plan is None or not result.plan.has_updates:
        return

    if result.state in (SessionState.DRY_RUN_COMPLETE, SessionState.COMMITTED):
        _display_plan(result.plan.changes, dry_run=result.state is SessionState.DRY_RUN_COMPLETE)

    if result.backup_path is not None:
        print_info(f"Backup written to {result.backup_path}")


def _display_plan(changes: List[ProposedChange], dry_run: bool) -> None:
    """Display proposed constraint rewrites as a Rich table."""
    title = "Upgrade Plan (Dry Run)" if dry_run else "Upgrade Plan"

    data = []
    for change in changes:
        old_base, new_base = _bases(change)
        data.append(
            {
                "Package": change.package,
                "Current": change.old_constraint,
                "New Constraint": f"[bold green]{change.new_constraint}[/bold green]",
                "Change": colorize_update_type(get_update_type(old_base, new_base)),
            }
        )

    column_styles = {
        "Package": {"style": "bold cyan", "no_wrap": True},
        "Current": {"justify": "center", "style": "dim"},
        "New Constraint": {"justify": "center"},
        "Change": {"justify": "center"},
    }

    print_table(data, title=title, column_styles=column_styles)


def _bases(change: ProposedChange) -> Tuple[Optional[str], Optional[str]]:
    try:
        old = Constraint.parse(change.old_constraint).base_literal
        new = Constraint.parse(change.new_constraint).base_literal
    except DepBumpError:
        return None, None
    return old, new
