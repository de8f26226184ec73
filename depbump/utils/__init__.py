"""
Utility helpers for depbump.

This package provides reusable utilities used across depbump, including:

- Console output helpers (Rich-based)
- Logging configuration and retrieval
- Filesystem safety helpers
- Version comparison helpers

Only symbols listed in ``__all__`` are considered part of the public API.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Filesystem utilities
# ---------------------------------------------------------------------------

from depbump.utils.filesystem import (
    create_timestamped_backup,
    safe_read_file,
    safe_write_file,
)

# ---------------------------------------------------------------------------
# Logging utilities
# ---------------------------------------------------------------------------

from depbump.utils.logger import (
    get_logger,
    setup_logging,
)

# ---------------------------------------------------------------------------
# Console utilities
# ---------------------------------------------------------------------------

from depbump.utils.console import (
    colorize_update_type,
    print_error,
    print_info,
    print_plain,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)

# ---------------------------------------------------------------------------
# Version utilities
# ---------------------------------------------------------------------------

from depbump.utils.version_utils import (
    get_update_type,
    is_magnitude_allowed,
    to_version,
)

# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

__all__ = [
    # Console
    "print_info",
    "print_error",
    "print_plain",
    "print_table",
    "print_success",
    "print_warning",
    "reconfigure_console",
    "colorize_update_type",
    # Logging
    "get_logger",
    "setup_logging",
    # Filesystem
    "safe_read_file",
    "safe_write_file",
    "create_timestamped_backup",
    # Version utilities
    "get_update_type",
    "is_magnitude_allowed",
    "to_version",
]
