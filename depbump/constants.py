"""
Centralized constants for depbump.

This module defines immutable configuration values used across depbump,
including manifest layout, policy defaults, resolver commands, and logging
formats. All values are intended to be treated as read-only.
"""

from typing import Final, Mapping, Sequence, Tuple

# ---------------------------------------------------------------------------
# Manifest layout
# ---------------------------------------------------------------------------

#: Default manifest file name.
DEFAULT_MANIFEST_NAME: Final[str] = "pyproject.toml"

#: Lock file that must exist next to the manifest for a real upgrade.
LOCK_FILE_NAME: Final[str] = "poetry.lock"

#: Main Poetry dependency table.
MAIN_DEPENDENCY_TABLE: Final[Tuple[str, ...]] = ("tool", "poetry", "dependencies")

#: Legacy (Poetry < 1.2) development dependency table.
LEGACY_DEV_DEPENDENCY_TABLE: Final[Tuple[str, ...]] = (
    "tool",
    "poetry",
    "dev-dependencies",
)

#: Group name reported for the main dependency table.
MAIN_GROUP: Final[str] = "main"

#: Group name reported for the legacy dev-dependencies table.
LEGACY_DEV_GROUP: Final[str] = "dev"

# ---------------------------------------------------------------------------
# Policy defaults
# ---------------------------------------------------------------------------

#: Default minimum stability channel.
DEFAULT_STABILITY: Final[str] = "stable"

#: Whether major upgrades are allowed by default.
DEFAULT_ALLOW_MAJOR: Final[bool] = False

#: Whether proposed constraints are validated through the resolver.
DEFAULT_CHECK_COMPATIBILITY: Final[bool] = True

#: Whether a timestamped backup of the manifest is written before saving.
DEFAULT_BACKUP: Final[bool] = False

#: Operator of the canonical constraint form written back to the manifest.
CANONICAL_OPERATOR: Final[str] = "^"

# ---------------------------------------------------------------------------
# External tools
# ---------------------------------------------------------------------------

#: Executable used for dry-run resolution.
POETRY_EXECUTABLE: Final[str] = "poetry"

#: Arguments for a resolution-only run inside a scratch directory.
POETRY_LOCK_ARGS: Final[Sequence[str]] = ("lock", "--no-interaction")

#: Environment overrides for scratch resolution; no virtualenv is created.
POETRY_ENV_OVERRIDES: Final[Mapping[str, str]] = {"POETRY_VIRTUALENVS_CREATE": "false"}

#: Arguments used to list the versions of a package through pip.
PIP_INDEX_ARGS: Final[Sequence[str]] = (
    "-m",
    "pip",
    "index",
    "versions",
    "--pre",
    "--disable-pip-version-check",
)

# ---------------------------------------------------------------------------
# Security constraints
# ---------------------------------------------------------------------------

#: Maximum allowed file size (in bytes) when reading manifests.
MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024  # 10 MB

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
