"""
Core functionality exports for depbump.

This module provides convenient access to the core subsystems of depbump:

    from depbump.core import UpgradeSession, PipIndexOracle
"""

from __future__ import annotations

from depbump.core.events import EventKind, ProgressEvent
from depbump.core.policy import VersionPolicy, is_reserved, select_latest
from depbump.core.oracle import (
    IndexFileOracle,
    PipIndexOracle,
    VersionOracle,
    read_locked_versions,
)
from depbump.core.planner import UpgradePlan, UpgradePlanner
from depbump.core.project import Link, RootProject, trial_requirements
from depbump.core.resolver import Capability, PoetryResolver, Resolver
from depbump.core.validator import CompatibilityValidator
from depbump.core.session import SessionResult, SessionState, UpgradeSession

__all__ = [
    "Capability",
    "CompatibilityValidator",
    "EventKind",
    "IndexFileOracle",
    "Link",
    "PipIndexOracle",
    "PoetryResolver",
    "ProgressEvent",
    "Resolver",
    "RootProject",
    "SessionResult",
    "SessionState",
    "UpgradePlan",
    "UpgradePlanner",
    "UpgradeSession",
    "VersionOracle",
    "VersionPolicy",
    "is_reserved",
    "read_locked_versions",
    "select_latest",
    "trial_requirements",
]
