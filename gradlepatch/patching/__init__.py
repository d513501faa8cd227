"""
Marker-bounded Gradle patcher.

Validate -> Sanitize -> Inject -> Atomic write, one file per run.
"""

from __future__ import annotations

from .backup import BackupManager, BackupRecord
from .braces import check_balance, find_matching_brace
from .classify import FragmentState, classify
from .errors import (
    AnchorNotFound,
    BackupFailed,
    FileMissing,
    FragmentDefinitionError,
    IOFailure,
    PatchError,
    PatternNotFound,
    StructuralCorruption,
    UnbalancedStructure,
)
from .fragments import (
    Anchor,
    FragmentSet,
    FragmentSpec,
    TargetVersionSet,
    default_fragments,
    select_version_set,
)
from .orchestrator import PatchDocument, PatchOrchestrator, patch_file

__all__ = [
    "AnchorNotFound",
    "Anchor",
    "BackupFailed",
    "BackupManager",
    "BackupRecord",
    "FileMissing",
    "FragmentDefinitionError",
    "FragmentSet",
    "FragmentSpec",
    "FragmentState",
    "IOFailure",
    "PatchDocument",
    "PatchError",
    "PatchOrchestrator",
    "PatternNotFound",
    "StructuralCorruption",
    "TargetVersionSet",
    "UnbalancedStructure",
    "check_balance",
    "classify",
    "default_fragments",
    "find_matching_brace",
    "patch_file",
    "select_version_set",
]
