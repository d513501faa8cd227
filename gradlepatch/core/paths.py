"""
Project root + path utilities.

Root resolution priority:
1) GRADLEPATCH_ROOT env var
2) Walk upwards from start path to find a marker (Assets/ + ProjectSettings/)
3) Fallback: current working directory
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

PROJECT_ROOT_ENV = "GRADLEPATCH_ROOT"
BACKUP_DIR_ENV = "GRADLEPATCH_BACKUP_DIR"
ROOT_MARKERS = ("ProjectSettings", "Assets")

DEFAULT_TEMPLATE_REL = Path("Assets") / "Plugins" / "Android" / "mainTemplate.gradle"


@dataclass(frozen=True)
class ProjectPaths:
    root: Path

    @property
    def template_path(self) -> Path:
        return self.root / DEFAULT_TEMPLATE_REL

    @property
    def config_path(self) -> Path:
        return self.root / "ProjectSettings" / "gradlepatch.json"


def resolve_project_root(start: Optional[Path] = None) -> Path:
    env = os.getenv(PROJECT_ROOT_ENV, "").strip()
    if env:
        p = Path(env).expanduser().resolve()
        if p.exists():
            return p

    base = (start or Path.cwd()).resolve()
    for folder in [base] + list(base.parents):
        if folder.is_dir() and all((folder / m).is_dir() for m in ROOT_MARKERS):
            return folder

    return base


def get_paths(start: Optional[Path] = None) -> ProjectPaths:
    return ProjectPaths(root=resolve_project_root(start))


def default_backup_dir() -> Path:
    """Outside any project tree, so snapshots never end up in source control."""
    env = os.getenv(BACKUP_DIR_ENV, "").strip()
    if env:
        return Path(env).expanduser()
    return Path.home() / ".gradlepatch" / "backups"


def safe_relpath(root: Path, path: Path) -> str:
    root = root.resolve()
    path = path.resolve()
    try:
        return str(path.relative_to(root))
    except ValueError:
        return str(path)
