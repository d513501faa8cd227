"""
Injector: inserts a rendered fragment at its anchor, at most once.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Optional

from .braces import iter_braces
from .errors import AnchorNotFound
from .fragments import FragmentSpec, TargetVersionSet

logger = logging.getLogger(__name__)

INDENT = "    "


def find_block_open(document: str, name: str) -> Optional[int]:
    """
    Index of the `{` of the `name {` header, or None.

    A top-level block wins over a nested one of the same name (e.g. the
    `dependencies` inside `buildscript`); otherwise the first one is used.
    """
    pattern = re.compile(r"(?<![\w.])" + re.escape(name) + r"\s*\{")
    depth_at: Dict[int, int] = {}
    depth = 0
    for i, brace in iter_braces(document):
        if brace == "{":
            depth_at[i] = depth
            depth += 1
        else:
            depth -= 1

    candidates = [m.end() - 1 for m in pattern.finditer(document) if m.end() - 1 in depth_at]
    for brace_at in candidates:
        if depth_at[brace_at] == 0:
            return brace_at
    return candidates[0] if candidates else None


def _indent(text: str, prefix: str) -> str:
    return "\n".join(prefix + ln if ln.strip() else "" for ln in text.splitlines())


def insert_in_block(document: str, spec: FragmentSpec, versions: TargetVersionSet) -> str:
    name = spec.anchor.block or ""
    brace_at = find_block_open(document, name)
    if brace_at is None:
        raise AnchorNotFound(
            f"could not find a '{name} {{' block for {spec.marker!r}; manual edit required"
        )

    line_start = document.rfind("\n", 0, brace_at) + 1
    header = document[line_start:brace_at]
    header_indent = header[: len(header) - len(header.lstrip())]
    inner = header_indent + INDENT

    inserted = "\n" + _indent(spec.render(versions), inner)
    rest = document[brace_at + 1 :]
    eol = rest.find("\n")
    same_line = rest if eol < 0 else rest[:eol]
    if same_line.strip():
        # `name { existing }` on one line: push the existing content down.
        inserted += "\n\n" + inner
        rest = rest.lstrip(" \t")
    elif rest.strip() and not rest.lstrip().startswith("}"):
        # Keep a blank line between the fragment and existing declarations so
        # the declaration run after the marker ends at the fragment.
        inserted += "\n"

    return document[: brace_at + 1] + inserted + rest


def append_at_eof(document: str, spec: FragmentSpec, versions: TargetVersionSet) -> str:
    head = document.rstrip()
    sep = "\n\n" if head else ""
    return head + sep + spec.render(versions) + "\n"


def insert(document: str, spec: FragmentSpec, versions: TargetVersionSet) -> str:
    """Insert `spec` unless its marker is already in `document`."""
    if spec.marker in document:
        logger.debug("marker %r already present; not inserting", spec.marker)
        return document

    if spec.anchor.is_block:
        out = insert_in_block(document, spec, versions)
    else:
        out = append_at_eof(document, spec, versions)
    logger.info("inserted %r (%s)", spec.marker, spec.anchor.describe())
    return out
