"""
Backup manager.

Snapshots live in a dedicated directory outside the project tree:
  <backup_dir>/<file name>-<path hash>.<UTC timestamp>.<seq>.bak

The path hash keeps same-named files from different projects apart.
Retention keeps the newest N per source file. Backups are never restored
automatically.
"""

from __future__ import annotations

import hashlib
import logging
import shutil
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Union

from .errors import BackupFailed

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

TIMESTAMP_FMT = "%Y%m%dT%H%M%S%fZ"
SUFFIX = ".bak"
DEFAULT_RETENTION = 5


@dataclass(frozen=True)
class BackupRecord:
    path: Path
    source: Path
    created_utc: datetime
    seq: int = 0

    @property
    def sort_key(self) -> tuple:
        return (self.created_utc, self.seq)


class BackupManager:
    def __init__(self, backup_dir: PathLike, retention: int = DEFAULT_RETENTION) -> None:
        if retention < 1:
            raise ValueError("backup retention must be at least 1")
        self.backup_dir = Path(backup_dir).expanduser()
        self.retention = int(retention)

    @staticmethod
    def key_for(source: PathLike) -> str:
        resolved = Path(source).resolve()
        digest = hashlib.sha256(str(resolved).encode("utf-8")).hexdigest()[:10]
        return f"{resolved.name}-{digest}"

    def snapshot(self, source: PathLike) -> BackupRecord:
        source = Path(source)
        key = self.key_for(source)
        now = datetime.now(timezone.utc)
        stamp = now.strftime(TIMESTAMP_FMT)
        try:
            self.backup_dir.mkdir(parents=True, exist_ok=True)
            seq = 0
            target = self.backup_dir / f"{key}.{stamp}.{seq:03d}{SUFFIX}"
            while target.exists():
                seq += 1
                target = self.backup_dir / f"{key}.{stamp}.{seq:03d}{SUFFIX}"
            shutil.copy2(source, target)
        except OSError as e:
            raise BackupFailed(f"could not back up {source} to {self.backup_dir}: {e}") from e

        record = BackupRecord(path=target, source=source, created_utc=now, seq=seq)
        logger.info("backup written: %s", target)
        self.prune(source)
        return record

    def list_backups(self, source: PathLike) -> List[BackupRecord]:
        """Backups of `source`, newest first."""
        source = Path(source)
        if not self.backup_dir.is_dir():
            return []
        prefix = self.key_for(source) + "."
        out: List[BackupRecord] = []
        for p in self.backup_dir.iterdir():
            name = p.name
            if not (p.is_file() and name.startswith(prefix) and name.endswith(SUFFIX)):
                continue
            stamp, _, seq = name[len(prefix) : -len(SUFFIX)].partition(".")
            try:
                created = datetime.strptime(stamp, TIMESTAMP_FMT).replace(tzinfo=timezone.utc)
                n = int(seq or 0)
            except ValueError:
                logger.debug("ignoring foreign file in backup dir: %s", p)
                continue
            out.append(BackupRecord(path=p, source=source, created_utc=created, seq=n))
        out.sort(key=lambda r: r.sort_key, reverse=True)
        return out

    def prune(self, source: PathLike) -> List[Path]:
        """Delete all but the newest `retention` backups of `source`."""
        removed: List[Path] = []
        for rec in self.list_backups(source)[self.retention :]:
            try:
                rec.path.unlink()
                removed.append(rec.path)
            except OSError as e:
                logger.warning("could not evict old backup %s: %s", rec.path, e)
        if removed:
            logger.info("evicted %d old backup(s) of %s", len(removed), source)
        return removed
