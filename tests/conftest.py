from __future__ import annotations

# Clean-clone determinism: the repo-under-test wins over any installed copy of gradlepatch.

import sys
from pathlib import Path

import pytest

REPO = Path(__file__).resolve().parents[1]
FIXTURES = REPO / "tests" / "fixtures"

if str(REPO) in sys.path:
    sys.path.remove(str(REPO))
sys.path.insert(0, str(REPO))

from gradlepatch.patching.backup import BackupManager  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for var in ("GRADLEPATCH_ROOT", "GRADLEPATCH_BACKUP_DIR", "GRADLEPATCH_TOOLCHAIN", "GRADLEPATCH_RETENTION"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def unity_template() -> str:
    return (FIXTURES / "mainTemplate.gradle").read_text(encoding="utf-8")


@pytest.fixture
def patched_modern() -> str:
    return (FIXTURES / "patched_modern.gradle").read_text(encoding="utf-8")


@pytest.fixture
def template_file(tmp_path: Path, unity_template: str) -> Path:
    p = tmp_path / "project" / "mainTemplate.gradle"
    p.parent.mkdir(parents=True)
    p.write_text(unity_template, encoding="utf-8", newline="\n")
    return p


@pytest.fixture
def backups(tmp_path: Path) -> BackupManager:
    return BackupManager(tmp_path / "backups", retention=3)
