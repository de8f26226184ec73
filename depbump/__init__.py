"""
depbump: policy-driven constraint upgrades for Poetry projects.

depbump reads the dependency tables of a ``pyproject.toml``, asks a version
oracle for newer releases, rewrites caret constraints that a configurable
policy allows, and checks that the new constraint set still resolves
before anything is written back.

Features include:
    • Major / minor / patch upgrade gating
    • Minimum stability floor (stable, rc, beta, alpha, dev)
    • Package allow-lists
    • Dry-run validation through the project's resolver with full rollback
    • Format-preserving manifest rewrites
"""

from __future__ import annotations

from depbump.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "depbump Contributors"
__license__ = "Apache-2.0"
__description__ = "Policy-driven dependency constraint upgrades for pyproject.toml."

__all__ = [
    "__version__",
]
