"""
Result models returned by a patch run.

These are consumed by:
- CLI (python -m gradlepatch)
- GUI panel
- Editor-style hooks (gradlepatch.integration)
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List

from pydantic import BaseModel, Field


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FailureKind(str, Enum):
    none = "none"
    file_missing = "file_missing"
    anchor_not_found = "anchor_not_found"
    pattern_not_found = "pattern_not_found"
    structural_corruption = "structural_corruption"
    backup_failed = "backup_failed"
    io_failure = "io_failure"
    invalid_definition = "invalid_definition"

    @property
    def recoverable(self) -> bool:
        """True when the user can fix the condition (setup or manual edit)."""
        return self in (
            FailureKind.file_missing,
            FailureKind.anchor_not_found,
            FailureKind.pattern_not_found,
        )


class PatchResult(BaseModel):
    success: bool
    changed: bool = False
    message: str = ""
    failure_kind: FailureKind = FailureKind.none
    skipped: bool = False
    path: str = ""
    states: Dict[str, str] = Field(default_factory=dict, description="marker -> FragmentState value")
    actions: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    backups: List[str] = Field(default_factory=list)
    finished_at: datetime = Field(default_factory=utc_now)

    @property
    def needs_user_action(self) -> bool:
        return (not self.success) and self.failure_kind.recoverable
