"""
Failure taxonomy for a patch run.

Components raise these; only the orchestrator catches them and turns them
into a PatchResult.
"""

from __future__ import annotations

from gradlepatch.core.types.results import FailureKind


class PatchError(RuntimeError):
    """Base class. `kind` tells the caller how to present the failure."""

    kind: FailureKind = FailureKind.io_failure


class FileMissing(PatchError):
    kind = FailureKind.file_missing


class AnchorNotFound(PatchError):
    kind = FailureKind.anchor_not_found


class PatternNotFound(PatchError):
    kind = FailureKind.pattern_not_found


class StructuralCorruption(PatchError):
    kind = FailureKind.structural_corruption


class UnbalancedStructure(StructuralCorruption):
    """Raised by the brace scanner."""

    def __init__(self, message: str, line: int = 0, column: int = 0) -> None:
        super().__init__(message)
        self.line = line
        self.column = column


class BackupFailed(PatchError):
    kind = FailureKind.backup_failed


class IOFailure(PatchError):
    kind = FailureKind.io_failure


class FragmentDefinitionError(ValueError):
    """A fragment set violates marker uniqueness or template rules, or needs a version the set lacks."""

    kind: FailureKind = FailureKind.invalid_definition
