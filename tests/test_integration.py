from dataclasses import replace
from pathlib import Path

import pytest

from gradlepatch.core.config import PatcherConfig
from gradlepatch.core.types.results import FailureKind
from gradlepatch.integration import (
    SETUP_INSTRUCTIONS,
    BuildBlocked,
    SessionGate,
    build_orchestrator,
    check_configuration,
    on_startup,
    preprocess_build,
    resolve_inputs,
)

FIXTURES = Path(__file__).resolve().parent / "fixtures"


@pytest.fixture
def cfg(tmp_path: Path) -> PatcherConfig:
    return PatcherConfig(backup_dir=str(tmp_path / "backups"))


def test_session_gate_claims_once() -> None:
    gate = SessionGate()
    assert gate.claim()
    assert not gate.claim()
    gate.reset()
    assert gate.claim()


def test_startup_runs_once_per_session(template_file: Path, cfg: PatcherConfig, patched_modern: str) -> None:
    gate = SessionGate()
    first = on_startup(template_file, session=gate, active_platform="Android", cfg=cfg)
    assert first is not None and first.changed
    assert template_file.read_text(encoding="utf-8") == patched_modern
    assert on_startup(template_file, session=gate, active_platform="Android", cfg=cfg) is None


def test_other_platform_is_skipped(template_file: Path, cfg: PatcherConfig) -> None:
    before = template_file.read_bytes()
    result = check_configuration(template_file, active_platform="iOS", cfg=cfg)
    assert result.skipped
    assert template_file.read_bytes() == before

    forced = check_configuration(template_file, active_platform="iOS", cfg=cfg, check_active_platform=False)
    assert forced.changed


def test_missing_template_carries_setup_instructions(tmp_path: Path, cfg: PatcherConfig) -> None:
    result = check_configuration(tmp_path / "mainTemplate.gradle", active_platform="android", cfg=cfg)
    assert result.failure_kind == FailureKind.file_missing
    assert result.message.endswith(SETUP_INSTRUCTIONS)
    assert "Custom Main Gradle Template" in result.message


def test_build_blocked_on_failure(tmp_path: Path, cfg: PatcherConfig) -> None:
    with pytest.raises(BuildBlocked) as exc:
        preprocess_build(tmp_path / "mainTemplate.gradle", build_platform="android", cfg=cfg)
    assert exc.value.result.failure_kind == FailureKind.file_missing

    result = preprocess_build(
        tmp_path / "mainTemplate.gradle", build_platform="android", cfg=cfg, halt_on_failure=False
    )
    assert not result.success


def test_non_android_build_never_blocks(tmp_path: Path, cfg: PatcherConfig) -> None:
    result = preprocess_build(tmp_path / "mainTemplate.gradle", build_platform="webgl", cfg=cfg)
    assert result.skipped


def test_toolchain_and_overrides(cfg: PatcherConfig) -> None:
    _, versions = resolve_inputs(cfg, toolchain="legacy", overrides={"guava": "32.1.3-android"})
    assert versions["browser"] == "1.4.0"
    assert versions["guava"] == "32.1.3-android"


def test_fragments_file_supplies_version_sets(cfg: PatcherConfig) -> None:
    custom = replace(cfg, fragments_file=str(FIXTURES / "fragment_set.json"), toolchain="next")
    fragments, versions = resolve_inputs(custom)
    assert fragments.markers[0] == "// [Studio] Core"
    assert versions["core"] == "2.0"
    with pytest.raises(ValueError, match="unknown toolchain"):
        resolve_inputs(custom, toolchain="modern")


def test_orchestrator_uses_config(tmp_path: Path, cfg: PatcherConfig) -> None:
    orch = build_orchestrator(cfg, dry_run=True)
    assert orch.backups.backup_dir == tmp_path / "backups"
    assert orch.backups.retention == cfg.backup_retention
    assert orch.dry_run


def test_unresolvable_inputs_are_a_failure_result(template_file: Path, cfg: PatcherConfig) -> None:
    before = template_file.read_bytes()
    result = check_configuration(template_file, active_platform="android", cfg=cfg, toolchain="ancient")
    assert not result.success
    assert result.failure_kind == FailureKind.invalid_definition
    assert "unknown toolchain" in result.message
    assert template_file.read_bytes() == before

    assert check_configuration(template_file, active_platform="ios", cfg=cfg, toolchain="ancient").skipped

    with pytest.raises(BuildBlocked) as exc:
        preprocess_build(template_file, build_platform="android", cfg=cfg, toolchain="ancient")
    assert exc.value.result.failure_kind == FailureKind.invalid_definition
