"""
Brace scanner.

Depth-counting over `{` / `}`. Braces inside Groovy string literals and
comments are not structural and are skipped:
  '...'  "..."  triple-quoted strings  // ...  /* ... */
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Tuple

from .errors import UnbalancedStructure

logger = logging.getLogger(__name__)

OPEN = "{"
CLOSE = "}"


def line_col(text: str, index: int) -> Tuple[int, int]:
    """1-based line/column of `index`."""
    line = text.count("\n", 0, index) + 1
    col = index - (text.rfind("\n", 0, index) + 1) + 1
    return line, col


def _skip_quoted(text: str, i: int, quote: str) -> int:
    # Single-line string; an unterminated one ends at the newline.
    n = len(text)
    j = i + 1
    while j < n:
        ch = text[j]
        if ch == "\\":
            j += 2
            continue
        if ch == quote:
            return j + 1
        if ch == "\n":
            return j
        j += 1
    return n


def iter_braces(text: str, start: int = 0) -> Iterator[Tuple[int, str]]:
    """Yield (index, brace) for every structural brace from `start` on."""
    n = len(text)
    i = start
    while i < n:
        c = text[i]
        if c == "/" and text.startswith("//", i):
            j = text.find("\n", i)
            i = n if j < 0 else j
            continue
        if c == "/" and text.startswith("/*", i):
            j = text.find("*/", i + 2)
            i = n if j < 0 else j + 2
            continue
        if c in ("'", '"'):
            triple = c * 3
            if text.startswith(triple, i):
                j = text.find(triple, i + 3)
                i = n if j < 0 else j + 3
            else:
                i = _skip_quoted(text, i, c)
            continue
        if c == OPEN or c == CLOSE:
            yield i, c
        i += 1


def find_matching_brace(text: str, open_index: int) -> int:
    """Return the index of the `}` matching the `{` at `open_index`."""
    if open_index < 0 or open_index >= len(text) or text[open_index] != OPEN:
        line, col = line_col(text, max(0, min(open_index, len(text))))
        raise UnbalancedStructure(f"no opening brace at line {line}, column {col}", line, col)

    depth = 0
    for idx, brace in iter_braces(text, open_index):
        depth += 1 if brace == OPEN else -1
        if depth == 0:
            return idx

    line, col = line_col(text, open_index)
    raise UnbalancedStructure(
        f"block opened at line {line}, column {col} is never closed", line, col
    )


def check_balance(text: str) -> None:
    """
    Whole-document structural check.

    Depth must never go negative and must return to exactly zero.
    """
    opened: List[int] = []
    for idx, brace in iter_braces(text):
        if brace == OPEN:
            opened.append(idx)
            continue
        if not opened:
            line, col = line_col(text, idx)
            raise UnbalancedStructure(f"unexpected '}}' at line {line}, column {col}", line, col)

        opened.pop()

    if opened:
        line, col = line_col(text, opened[0])
        raise UnbalancedStructure(
            f"{len(opened)} unclosed block(s); outermost opened at line {line}, column {col}",
            line,
            col,
        )
    logger.debug("brace balance ok (%d chars)", len(text))


def is_balanced(text: str) -> bool:
    try:
        check_balance(text)
    except UnbalancedStructure:
        return False
    return True
