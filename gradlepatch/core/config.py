"""
Patcher config persistence (ProjectSettings/gradlepatch.json).
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from gradlepatch.core.paths import default_backup_dir
from gradlepatch.patching.backup import DEFAULT_RETENTION
from gradlepatch.patching.orchestrator import BACKUP_POLICIES, POLICY_STRICT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PatcherConfig:
    template_path: Optional[str] = None
    backup_dir: Optional[str] = None
    backup_retention: int = DEFAULT_RETENTION
    additive_backup_policy: str = POLICY_STRICT
    toolchain: str = "modern"
    fragments_file: Optional[str] = None

    @staticmethod
    def from_dict(d: dict) -> "PatcherConfig":
        policy = str(d.get("additive_backup_policy") or POLICY_STRICT)
        if policy not in BACKUP_POLICIES:
            logger.warning("unknown backup policy %r in config; using %r", policy, POLICY_STRICT)
            policy = POLICY_STRICT
        try:
            retention = max(1, int(d.get("backup_retention") or DEFAULT_RETENTION))
        except (TypeError, ValueError):
            retention = DEFAULT_RETENTION
        return PatcherConfig(
            template_path=d.get("template_path") or None,
            backup_dir=d.get("backup_dir") or None,
            backup_retention=retention,
            additive_backup_policy=policy,
            toolchain=str(d.get("toolchain") or PatcherConfig.toolchain),
            fragments_file=d.get("fragments_file") or None,
        )

    def to_dict(self) -> dict:
        return {
            "template_path": self.template_path,
            "backup_dir": self.backup_dir,
            "backup_retention": self.backup_retention,
            "additive_backup_policy": self.additive_backup_policy,
            "toolchain": self.toolchain,
            "fragments_file": self.fragments_file,
        }

    def resolved_backup_dir(self) -> Path:
        return Path(self.backup_dir).expanduser() if self.backup_dir else default_backup_dir()

    def with_env(self) -> "PatcherConfig":
        """Apply GRADLEPATCH_* environment overrides."""
        cfg = self
        if os.getenv("GRADLEPATCH_TOOLCHAIN"):
            cfg = replace(cfg, toolchain=os.environ["GRADLEPATCH_TOOLCHAIN"].strip())
        if os.getenv("GRADLEPATCH_BACKUP_DIR"):
            cfg = replace(cfg, backup_dir=os.environ["GRADLEPATCH_BACKUP_DIR"].strip())
        retention = os.getenv("GRADLEPATCH_RETENTION", "").strip()
        if retention:
            try:
                cfg = replace(cfg, backup_retention=max(1, int(retention)))
            except ValueError:
                logger.warning("ignoring non-numeric GRADLEPATCH_RETENTION=%r", retention)
        return cfg


def load_config(path: Path) -> PatcherConfig:
    if not path.exists():
        return PatcherConfig().with_env()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(data, dict):
            return PatcherConfig.from_dict(data).with_env()
        logger.warning("config %s is not a JSON object; using defaults", path)
    except (OSError, ValueError) as e:
        logger.warning("could not read config %s (%s); using defaults", path, e)
    return PatcherConfig().with_env()


def save_config(path: Path, cfg: PatcherConfig) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(cfg.to_dict(), indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
    tmp.replace(path)
