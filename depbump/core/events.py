"""Progress events emitted while planning and committing an upgrade."""

from __future__ import annotations

from enum import Enum
from dataclasses import dataclass
from typing import Callable, Optional


class EventKind(str, Enum):
    FOUND_UPGRADE = "found-upgrade"
    NORMALIZED = "normalized"
    SKIPPED = "skipped"
    ERROR = "error"
    NO_CHANGES = "no-changes"
    VALIDATING = "validating"
    REJECTED = "rejected"
    ABORTING = "aborting"
    COMMITTED = "committed"
    DRY_RUN = "dry-run"


@dataclass(frozen=True)
class ProgressEvent:
    """One line of progress output."""

    kind: EventKind
    message: str
    package: Optional[str] = None


EventSink = Callable[[ProgressEvent], None]
