import json
from pathlib import Path

import pytest

from gradlepatch.core.config import PatcherConfig, load_config, save_config
from gradlepatch.core.paths import DEFAULT_TEMPLATE_REL, get_paths, resolve_project_root, safe_relpath


def test_defaults_when_missing(tmp_path: Path) -> None:
    cfg = load_config(tmp_path / "nope.json")
    assert cfg == PatcherConfig()
    assert cfg.resolved_backup_dir() == Path.home() / ".gradlepatch" / "backups"


def test_roundtrip(tmp_path: Path) -> None:
    p = tmp_path / "ProjectSettings" / "gradlepatch.json"
    cfg = PatcherConfig(toolchain="legacy", backup_retention=2, backup_dir=str(tmp_path / "b"))
    save_config(p, cfg)
    assert load_config(p) == cfg
    assert not (p.parent / (p.name + ".tmp")).exists()


def test_bad_values_fall_back(tmp_path: Path) -> None:
    p = tmp_path / "cfg.json"
    p.write_text(
        json.dumps({"additive_backup_policy": "sometimes", "backup_retention": "many"}), encoding="utf-8"
    )
    cfg = load_config(p)
    assert cfg.additive_backup_policy == "strict"
    assert cfg.backup_retention == PatcherConfig.backup_retention


@pytest.mark.parametrize("content", ["{not json", "[1, 2]"])
def test_unreadable_config_uses_defaults(tmp_path: Path, content: str) -> None:
    p = tmp_path / "cfg.json"
    p.write_text(content, encoding="utf-8")
    assert load_config(p) == PatcherConfig()


def test_env_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GRADLEPATCH_TOOLCHAIN", "legacy")
    monkeypatch.setenv("GRADLEPATCH_BACKUP_DIR", str(tmp_path / "snaps"))
    monkeypatch.setenv("GRADLEPATCH_RETENTION", "9")
    cfg = load_config(tmp_path / "nope.json")
    assert cfg.toolchain == "legacy"
    assert cfg.resolved_backup_dir() == tmp_path / "snaps"
    assert cfg.backup_retention == 9


def test_non_numeric_retention_env_ignored(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GRADLEPATCH_RETENTION", "lots")
    assert load_config(tmp_path / "nope.json").backup_retention == PatcherConfig.backup_retention


def test_project_root_found_by_markers(tmp_path: Path) -> None:
    root = tmp_path / "Game"
    (root / "Assets" / "Plugins").mkdir(parents=True)
    (root / "ProjectSettings").mkdir()
    assert resolve_project_root(root / "Assets" / "Plugins") == root.resolve()
    assert get_paths(root / "Assets").template_path == root.resolve() / DEFAULT_TEMPLATE_REL


def test_project_root_env_wins(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GRADLEPATCH_ROOT", str(tmp_path))
    assert resolve_project_root(Path("/")) == tmp_path.resolve()


def test_safe_relpath(tmp_path: Path) -> None:
    assert safe_relpath(tmp_path, tmp_path / "a" / "b.gradle") == str(Path("a") / "b.gradle")
    assert safe_relpath(tmp_path / "x", tmp_path / "y") == str((tmp_path / "y").resolve())
