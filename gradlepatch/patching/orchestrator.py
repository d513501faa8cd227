"""
Orchestrator.

One run is one self-contained transaction over one file:

  Start -> Validated -> (Sanitizing) -> (Injecting) -> Committed | Aborted

The file on disk is the only source of truth; nothing about earlier runs is
remembered. Every abort leaves the file byte-identical to its pre-run state.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Union

from gradlepatch.core.types.results import FailureKind, PatchResult

from . import atomic, inject, sanitize
from .backup import BackupManager, BackupRecord
from .braces import check_balance
from .classify import FragmentState, classify, missing_literals
from .errors import (
    BackupFailed,
    FileMissing,
    FragmentDefinitionError,
    IOFailure,
    PatchError,
    PatternNotFound,
    StructuralCorruption,
    UnbalancedStructure,
)
from .fragments import FragmentSet, FragmentSpec, TargetVersionSet

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

TAG = "[GradlePatch]"

POLICY_STRICT = "strict"
POLICY_BEST_EFFORT = "best_effort"
BACKUP_POLICIES = (POLICY_STRICT, POLICY_BEST_EFFORT)


@dataclass
class PatchDocument:
    path: Path
    original: str  # LF-normalized
    text: str
    crlf: bool = False

    @staticmethod
    def read(path: Path) -> "PatchDocument":
        if not path.is_file():
            raise FileMissing(f"{path} does not exist")
        try:
            raw = path.read_bytes().decode("utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise IOFailure(f"could not read {path}: {e}") from e
        # Dominant line ending wins; a mostly-LF file is not converted to CRLF.
        crlf = raw.count("\r\n") * 2 > raw.count("\n")
        text = raw.replace("\r\n", "\n")
        return PatchDocument(path=path, original=text, text=text, crlf=crlf)

    @property
    def changed(self) -> bool:
        return self.text != self.original

    def serialized(self) -> str:
        return self.text.replace("\n", "\r\n") if self.crlf else self.text


@dataclass
class _Run:
    doc: Optional[PatchDocument] = None
    states: Dict[str, FragmentState] = field(default_factory=dict)
    actions: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    backups: List[BackupRecord] = field(default_factory=list)
    backup_attempted: bool = False


class PatchOrchestrator:
    def __init__(
        self,
        fragments: Union[FragmentSet, Iterable[FragmentSpec]],
        versions: TargetVersionSet,
        *,
        backups: BackupManager,
        additive_backup_policy: str = POLICY_STRICT,
        on_commit: Optional[Callable[[Path], None]] = None,
        writer: Callable[[Path, str], None] = atomic.commit,
        dry_run: bool = False,
    ) -> None:
        if additive_backup_policy not in BACKUP_POLICIES:
            raise ValueError(f"unknown backup policy: {additive_backup_policy!r}")
        self.fragments = fragments if isinstance(fragments, FragmentSet) else FragmentSet(fragments)
        self.versions = versions
        self.backups = backups
        self.additive_backup_policy = additive_backup_policy
        self.on_commit = on_commit
        self.writer = writer
        self.dry_run = dry_run

    # ---- public ----

    def check(self, path: PathLike) -> Dict[str, FragmentState]:
        """Classification only; never writes."""
        doc = PatchDocument.read(Path(path))
        return classify(doc.text, self.fragments, self.versions)

    def run(self, path: PathLike, *, go: bool = True) -> PatchResult:
        path = Path(path)
        if not go:
            return skipped_result(path)

        run = _Run()
        try:
            self._execute(path, run)
        except (PatchError, FragmentDefinitionError) as e:
            logger.error("patch of %s aborted: %s", path, e)
            return self._result(path, run, error=e)

        return self._result(path, run)

    # ---- state machine ----

    def _execute(self, path: Path, run: _Run) -> None:
        # Start -> Validated
        doc = PatchDocument.read(path)
        run.doc = doc
        try:
            check_balance(doc.text)
        except UnbalancedStructure as e:
            raise StructuralCorruption(f"file is malformed before patching ({e}); not modified") from e

        run.states = classify(doc.text, self.fragments, self.versions)
        logger.info("classified %s: %s", path, {k: v.value for k, v in run.states.items()})

        # Sanitizing
        stale = [s for s in self.fragments if run.states[s.marker] == FragmentState.stale_present]
        if stale:
            self._backup(path, run, strict=True)
            for spec in stale:
                doc.text = sanitize.remove(doc.text, spec)
                run.actions.append(f"removed stale {spec.marker!r}")

        # Injecting
        missing = [s.marker for s in self.fragments if s.marker not in doc.text]
        if missing:
            self._backup(path, run, strict=self.additive_backup_policy == POLICY_STRICT)
            for spec in self.fragments.injection_order(missing):
                doc.text = inject.insert(doc.text, spec, self.versions)
                run.actions.append(f"added {spec.marker!r} ({spec.anchor.describe()})")

        if not doc.changed:
            return

        # Committed
        try:
            check_balance(doc.text)
        except UnbalancedStructure as e:
            raise StructuralCorruption(f"patched content is unbalanced ({e}); nothing written") from e

        for spec in self.fragments:
            still_missing = missing_literals(doc.text, spec, self.versions)
            if still_missing or doc.text.count(spec.marker) != 1:
                raise PatternNotFound(
                    f"{spec.marker!r} does not validate after patching "
                    f"(missing {still_missing}); check the fragment definition"
                )

        if self.dry_run:
            run.actions.append("dry run: nothing written")
            return

        self.writer(path, doc.serialized())
        if self.on_commit is not None:
            try:
                self.on_commit(path)
            except Exception as e:
                logger.warning("post-commit refresh failed for %s: %s", path, e)
                run.warnings.append(f"post-commit refresh failed: {e}")

    def _backup(self, path: Path, run: _Run, *, strict: bool) -> None:
        if run.backup_attempted or self.dry_run:
            return
        run.backup_attempted = True
        try:
            run.backups.append(self.backups.snapshot(path))
        except BackupFailed as e:
            if strict:
                raise
            logger.warning("best-effort backup failed: %s", e)
            run.warnings.append(f"backup skipped: {e}")

    # ---- reporting ----

    def _result(
        self, path: Path, run: _Run, error: Optional[Union[PatchError, FragmentDefinitionError]] = None
    ) -> PatchResult:
        name = path.name
        changed = error is None and not self.dry_run and run.doc is not None and run.doc.changed
        if error is not None:
            kind = error.kind
            message = f"{TAG} Failed to patch '{name}': {error}"
            if kind == FailureKind.anchor_not_found:
                message += "\nManual edit required; the file was not modified."
            elif kind == FailureKind.pattern_not_found:
                message += "\nManual cleanup required; the file was not modified."
            elif kind == FailureKind.invalid_definition:
                message += "\nCheck the fragment definitions and version set; the file was not modified."
            elif kind in (FailureKind.structural_corruption, FailureKind.backup_failed):
                message += "\nThe file was not modified."
        else:
            kind = FailureKind.none
            if run.doc is not None and run.doc.changed:
                verb = "Would patch" if self.dry_run else "Successfully patched"
                message = f"{TAG} {verb} '{name}': " + "; ".join(run.actions) + "."
            else:
                message = f"{TAG} '{name}' is up to date ({len(self.fragments)} fragment(s) checked)."

        for w in run.warnings:
            message += f"\nWarning: {w}"

        return PatchResult(
            success=error is None,
            changed=changed,
            message=message,
            failure_kind=kind,
            path=str(path),
            states={k: v.value for k, v in run.states.items()},
            actions=list(run.actions),
            warnings=list(run.warnings),
            backups=[str(b.path) for b in run.backups],
        )


def skipped_result(path: Path) -> PatchResult:
    return PatchResult(
        success=True,
        skipped=True,
        path=str(path),
        message=f"{TAG} Skipped {path.name}: not applicable right now.",
    )


def invalid_inputs_result(path: PathLike, error: Exception) -> PatchResult:
    """Failure result for fragments or versions that could not be resolved before a run."""
    path = Path(path)
    return PatchResult(
        success=False,
        failure_kind=FailureKind.invalid_definition,
        path=str(path),
        message=(
            f"{TAG} Failed to patch '{path.name}': {error}"
            "\nCheck the fragment definitions and version set; the file was not modified."
        ),
    )


def patch_file(
    path: PathLike,
    fragments: Union[FragmentSet, Iterable[FragmentSpec]],
    versions: TargetVersionSet,
    *,
    backups: BackupManager,
    go: bool = True,
    **kwargs,
) -> PatchResult:
    return PatchOrchestrator(fragments, versions, backups=backups, **kwargs).run(path, go=go)
