"""
Atomic writer.

Content goes to a unique sibling temp file first (fsync'd, original mode
copied), then replaces the target in one rename. Readers never see a
partially written file; on failure the original is left as it was and the
temp file is removed.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Union

from .errors import IOFailure

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

TMP_TAG = "gradlepatch.tmp"
ASIDE_TAG = "gradlepatch.old"


def unique_sibling_path(target: Path, tag: str) -> Path:
    pid = os.getpid()
    now_ns = time.time_ns()
    for n in range(0, 10_000):
        candidate = target.with_name(f"{target.name}.{tag}.{pid}.{now_ns}.{n}")
        if not candidate.exists():
            return candidate
    raise FileExistsError(f"Unable to allocate unique temp path for {target}")


def sync_parent_dir(path: Path) -> None:
    try:
        fd = os.open(str(path.parent), os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError:
        pass
    finally:
        os.close(fd)


def _swap_aside(tmp: Path, target: Path) -> None:
    # Used when os.replace is refused (e.g. target held open on Windows).
    aside = unique_sibling_path(target, ASIDE_TAG)
    os.rename(target, aside)
    try:
        os.rename(tmp, target)
    except OSError:
        os.rename(aside, target)
        raise
    try:
        aside.unlink()
    except OSError as e:
        logger.warning("could not remove %s: %s", aside, e)


def replace_file(tmp: Path, target: Path) -> None:
    try:
        os.replace(tmp, target)
        return
    except PermissionError as e:
        logger.warning("atomic replace of %s refused (%s); moving original aside", target, e)
    _swap_aside(tmp, target)


def commit(path: PathLike, content: str, *, encoding: str = "utf-8") -> None:
    """Write `content` to `path` atomically. Raises IOFailure."""
    target = Path(path)
    tmp = None
    try:
        tmp = unique_sibling_path(target, TMP_TAG)
        with open(tmp, "xb") as f:
            f.write(content.encode(encoding))
            f.flush()
            os.fsync(f.fileno())

        try:
            mode = target.stat().st_mode
            os.chmod(tmp, mode & 0o7777)
        except OSError:
            pass

        replace_file(tmp, target)
        sync_parent_dir(target)
    except (OSError, UnicodeEncodeError) as e:
        raise IOFailure(f"could not write {target}: {e}") from e
    finally:
        if tmp is not None and tmp.exists():
            try:
                tmp.unlink()
            except OSError as e:
                logger.warning("could not remove temp file %s: %s", tmp, e)

    logger.info("committed %s (%d chars)", target, len(content))
