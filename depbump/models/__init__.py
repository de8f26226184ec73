"""
Unified data model exports for depbump.

Example:
    >>> from depbump.models import Constraint, Manifest, Policy
"""

from __future__ import annotations

from depbump.models.stability import StabilityLevel
from depbump.models.constraint import Constraint, caret
from depbump.models.manifest import Manifest, ManifestEntry
from depbump.models.upgrade import (
    Policy,
    ProposedChange,
    ValidationOutcome,
    normalize_name,
)

__all__ = [
    "Constraint",
    "Manifest",
    "ManifestEntry",
    "Policy",
    "ProposedChange",
    "StabilityLevel",
    "ValidationOutcome",
    "caret",
    "normalize_name",
]
