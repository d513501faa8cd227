"""
Editor-style hooks around the patcher.

These decide *whether* to patch and *with what*; the patcher itself never
looks at the platform, the session or the toolchain.

- on_startup:        once per session, when the tool loads
- check_configuration: manual "Fix Android Dependencies" command
- preprocess_build:  right before a build; can block it
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Optional, Union

from gradlepatch.core.config import PatcherConfig
from gradlepatch.core.types.results import FailureKind, PatchResult
from gradlepatch.patching.backup import BackupManager
from gradlepatch.patching.fragments import (
    FragmentSet,
    TargetVersionSet,
    default_fragments,
    select_version_set,
)
from gradlepatch.patching.orchestrator import PatchOrchestrator, invalid_inputs_result, skipped_result
from gradlepatch.validation.fragment_schema import load_fragment_set, load_version_sets

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

ANDROID = "android"

SETUP_INSTRUCTIONS = (
    "Android Build Setup Required!\n"
    "1. Go to: Edit -> Project Settings -> Player -> Android -> Publishing Settings\n"
    "2. Check the box: 'Custom Main Gradle Template'\n"
    "3. Then try building again or run 'python -m gradlepatch patch' "
    "(GUI: 'Fix Android Dependencies')."
)


class BuildBlocked(RuntimeError):
    """Raised by preprocess_build when the template could not be brought into shape."""

    def __init__(self, result: PatchResult) -> None:
        super().__init__(result.message)
        self.result = result


@dataclass
class SessionGate:
    """
    Run-once-per-session flag, owned by the invoking layer.

    Created at process start; `claim()` is True exactly once until `reset()`.
    """

    checked: bool = False

    def claim(self) -> bool:
        if self.checked:
            return False
        self.checked = True
        return True

    def reset(self) -> None:
        self.checked = False


def is_android(platform: Optional[str]) -> bool:
    return (platform or "").strip().lower() == ANDROID


def resolve_inputs(
    cfg: PatcherConfig,
    *,
    toolchain: Optional[str] = None,
    overrides: Optional[Mapping[str, str]] = None,
) -> tuple[FragmentSet, TargetVersionSet]:
    """Fragment definitions + one resolved version set for this run."""
    if cfg.fragments_file:
        fragments = load_fragment_set(cfg.fragments_file)
        available = load_version_sets(cfg.fragments_file) or None
    else:
        fragments = default_fragments()
        available = None
    versions = select_version_set(toolchain or cfg.toolchain, available)
    return fragments, versions.with_overrides(overrides or {})


def build_orchestrator(
    cfg: PatcherConfig,
    *,
    toolchain: Optional[str] = None,
    overrides: Optional[Mapping[str, str]] = None,
    on_commit: Optional[Callable[[Path], None]] = None,
    dry_run: bool = False,
) -> PatchOrchestrator:
    fragments, versions = resolve_inputs(cfg, toolchain=toolchain, overrides=overrides)
    return PatchOrchestrator(
        fragments,
        versions,
        backups=BackupManager(cfg.resolved_backup_dir(), cfg.backup_retention),
        additive_backup_policy=cfg.additive_backup_policy,
        on_commit=on_commit,
        dry_run=dry_run,
    )


def _with_setup_help(result: PatchResult) -> PatchResult:
    if result.failure_kind != FailureKind.file_missing:
        return result
    return result.model_copy(update={"message": f"{result.message}\n{SETUP_INSTRUCTIONS}"})


def check_configuration(
    template_path: PathLike,
    *,
    active_platform: Optional[str],
    cfg: Optional[PatcherConfig] = None,
    check_active_platform: bool = True,
    **kwargs,
) -> PatchResult:
    """Go/no-go on the platform, then one patch run."""
    cfg = cfg or PatcherConfig()
    go = is_android(active_platform) or not check_active_platform
    try:
        orchestrator = build_orchestrator(cfg, **kwargs)
    except ValueError as e:  # unknown toolchain or bad fragment-set file
        result = invalid_inputs_result(template_path, e) if go else skipped_result(Path(template_path))
    else:
        result = _with_setup_help(orchestrator.run(template_path, go=go))
    if result.success:
        logger.info(result.message)
    elif result.failure_kind.recoverable:
        logger.warning(result.message)
    else:
        logger.error(result.message)
    return result


def on_startup(
    template_path: PathLike,
    *,
    session: SessionGate,
    active_platform: Optional[str],
    cfg: Optional[PatcherConfig] = None,
    **kwargs,
) -> Optional[PatchResult]:
    """Warn early if setup is missing; does nothing after the first call per session."""
    if not session.claim():
        return None
    return check_configuration(template_path, active_platform=active_platform, cfg=cfg, **kwargs)


def preprocess_build(
    template_path: PathLike,
    *,
    build_platform: Optional[str],
    cfg: Optional[PatcherConfig] = None,
    halt_on_failure: bool = True,
    **kwargs,
) -> PatchResult:
    """
    Pre-build hook. Non-Android builds are skipped; the build platform is the
    go/no-go, not the editor's active target.
    """
    result = check_configuration(
        template_path,
        active_platform=build_platform,
        cfg=cfg,
        **kwargs,
    )
    if halt_on_failure and not result.success:
        raise BuildBlocked(result)
    return result
