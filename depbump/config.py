"""Configuration file loader for depbump.

Settings can live in either of two places:

- ``depbump.toml``, under a ``[depbump]`` table
- ``pyproject.toml``, under a ``[tool.depbump]`` table

Discovery order:

1. Explicit path from ``--config`` or ``DEPBUMP_CONFIG``
2. ``depbump.toml`` in the current directory
3. ``pyproject.toml`` with a ``[tool.depbump]`` section

Precedence: defaults < config file < CLI args.

Example (``depbump.toml``)::

    [depbump]
    check_compatibility = true
    stability = "rc"
    allow_major = false
    reserved_prefixes = ["internal-"]
    backup = true
"""

from __future__ import annotations

import tomli as tomllib
from pathlib import Path
from typing import Any, Dict, List, Optional
from dataclasses import dataclass, field

from depbump.exceptions import ConfigError
from depbump.utils.logger import get_logger
from depbump.models.stability import STABILITY_CHOICES
from depbump.constants import (
    DEFAULT_ALLOW_MAJOR,
    DEFAULT_BACKUP,
    DEFAULT_CHECK_COMPATIBILITY,
    DEFAULT_STABILITY,
)

logger = get_logger("config")

CONFIG_FILE_NAME = "depbump.toml"
PYPROJECT_FILE_NAME = "pyproject.toml"
SECTION_NAME = "depbump"

_BOOL_OPTIONS = ("check_compatibility", "allow_major", "backup")


@dataclass
class DepBumpConfig:
    """Parsed and validated depbump configuration.

    Attributes:
        check_compatibility: Validate proposed constraints with the resolver
            before writing them.
        stability: Least stable release channel considered for upgrades.
        allow_major: Allow major upgrades without passing ``--major``.
        reserved_prefixes: Extra package-name prefixes that are never
            upgraded, on top of the ``python`` runtime entry.
        backup: Write a timestamped backup before saving the manifest.
        source_path: Path to the loaded config file, or ``None``.
    """

    check_compatibility: bool = DEFAULT_CHECK_COMPATIBILITY
    stability: str = DEFAULT_STABILITY
    allow_major: bool = DEFAULT_ALLOW_MAJOR
    reserved_prefixes: List[str] = field(default_factory=list)
    backup: bool = DEFAULT_BACKUP

    source_path: Optional[Path] = field(default=None, repr=False)

    def to_log_dict(self) -> Dict[str, Any]:
        """Return the user-facing options for debug logging."""
        return {
            "check_compatibility": self.check_compatibility,
            "stability": self.stability,
            "allow_major": self.allow_major,
            "reserved_prefixes": list(self.reserved_prefixes),
            "backup": self.backup,
        }


def discover_config_file(explicit_path: Optional[Path] = None) -> Optional[Path]:
    """Find the configuration file to load.

    Args:
        explicit_path: Explicit config path. If provided, it must exist.

    Returns:
        Resolved path to the config file, or ``None`` if none was found.

    Raises:
        ConfigError: ``explicit_path`` does not exist.
    """
    if explicit_path is not None:
        resolved = Path(explicit_path).resolve()
        if not resolved.is_file():
            raise ConfigError(
                f"Configuration file not found: {explicit_path}",
                config_path=str(explicit_path),
            )
        logger.debug("Using explicit config: %s", resolved)
        return resolved

    cwd = Path.cwd()

    depbump_toml = cwd / CONFIG_FILE_NAME
    if depbump_toml.is_file():
        logger.debug("Found %s: %s", CONFIG_FILE_NAME, depbump_toml)
        return depbump_toml

    pyproject_toml = cwd / PYPROJECT_FILE_NAME
    if pyproject_toml.is_file() and _pyproject_has_depbump_section(pyproject_toml):
        logger.debug("Found [tool.depbump] in %s", pyproject_toml)
        return pyproject_toml

    logger.debug("No configuration file found")
    return None


def _pyproject_has_depbump_section(path: Path) -> bool:
    # A broken pyproject.toml is reported later by the manifest loader
    try:
        raw = _read_toml(path)
    except ConfigError:
        return False
    tool = raw.get("tool", {})
    return isinstance(tool, dict) and SECTION_NAME in tool


def load_config(config_path: Optional[Path] = None) -> DepBumpConfig:
    """Load and validate depbump configuration.

    Args:
        config_path: Explicit path to a config file. If ``None``, uses
            auto-discovery (see :func:`discover_config_file`).

    Returns:
        Validated :class:`DepBumpConfig`, with defaults when no file exists.

    Raises:
        ConfigError: File cannot be parsed, has unknown keys, or has
            invalid values.
    """
    resolved = discover_config_file(config_path)

    if resolved is None:
        logger.debug("No config file found, using defaults")
        return DepBumpConfig()

    logger.info("Loading configuration from %s", resolved)
    raw = _read_toml(resolved)

    if resolved.name == PYPROJECT_FILE_NAME:
        section = raw.get("tool", {}).get(SECTION_NAME, {})
    else:
        section = raw.get(SECTION_NAME, {})

    if not section:
        logger.debug("Config file has no depbump section, using defaults")
        return DepBumpConfig(source_path=resolved)

    if not isinstance(section, dict):
        raise ConfigError(
            f"[{SECTION_NAME}] must be a table",
            config_path=str(resolved),
        )

    config = _parse_section(section, config_path=str(resolved))
    config.source_path = resolved

    logger.debug("Loaded configuration: %s", config.to_log_dict())
    return config


def _read_toml(path: Path) -> Dict[str, Any]:
    """Read and parse a TOML file.

    Raises:
        ConfigError: File cannot be read or is not valid TOML.
    """
    try:
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(
            f"Invalid TOML in {path.name}: {exc}",
            config_path=str(path),
        ) from exc
    except OSError as exc:
        raise ConfigError(
            f"Cannot read configuration file {path}: {exc}",
            config_path=str(path),
        ) from exc


def _parse_section(section: Dict[str, Any], *, config_path: str) -> DepBumpConfig:
    """Validate a ``[depbump]`` table and build a config from it.

    Raises:
        ConfigError: Unknown keys or values of the wrong type.
    """
    config = DepBumpConfig()

    known = {*_BOOL_OPTIONS, "stability", "reserved_prefixes"}
    unknown = set(section) - known
    if unknown:
        raise ConfigError(
            f"Unknown configuration keys: {', '.join(sorted(unknown))}",
            config_path=config_path,
        )

    for option in _BOOL_OPTIONS:
        if option not in section:
            continue
        val = section[option]
        if not isinstance(val, bool):
            raise ConfigError(
                f"{option} must be a boolean, got {type(val).__name__}",
                config_path=config_path,
                option=option,
            )
        setattr(config, option, val)

    if "stability" in section:
        val = section["stability"]
        if not isinstance(val, str) or val.lower() not in STABILITY_CHOICES:
            raise ConfigError(
                f"stability must be one of {', '.join(STABILITY_CHOICES)}, got {val!r}",
                config_path=config_path,
                option="stability",
            )
        config.stability = val.lower()

    if "reserved_prefixes" in section:
        val = section["reserved_prefixes"]
        if not isinstance(val, list) or not all(isinstance(item, str) for item in val):
            raise ConfigError(
                "reserved_prefixes must be a list of strings",
                config_path=config_path,
                option="reserved_prefixes",
            )
        config.reserved_prefixes = list(val)

    return config
