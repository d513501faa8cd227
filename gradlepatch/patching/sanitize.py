"""
Sanitizer: removes previously injected fragments.

The removal span is declared, not guessed:
  start of the marker line
  -> the fragment's own flat declaration lines (`implementation 'g:a:v'`),
     each matching one template line with any version in its placeholders;
     a user line directly below the fragment is never taken with it
  -> if the fragment introduces a block: that block's header through its
     matching close brace
If what follows the marker is neither, nothing is removed and
PatternNotFound is raised.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import List, Optional

from .braces import find_matching_brace, line_col
from .errors import PatternNotFound, UnbalancedStructure
from .fragments import FragmentSpec

logger = logging.getLogger(__name__)

# keyword 'value'  |  keyword "value"  |  keyword('value')
DECLARATION_RE = re.compile(
    r"""^[ \t]*[A-Za-z_][\w.]*[ \t]*\(?[ \t]*(['"])[^'"\n]*\1[ \t]*\)?[ \t]*$"""
)

# ${name} or $name, as string.Template reads them
PLACEHOLDER_RE = re.compile(r"\$(?:\{[A-Za-z_]\w*\}|[A-Za-z_]\w*)")


@dataclass(frozen=True)
class FragmentSpan:
    start: int
    end: int  # exclusive; includes the trailing line break
    declarations: int = 0

    def text(self, document: str) -> str:
        return document[self.start : self.end]


def _line_end(text: str, pos: int) -> int:
    nl = text.find("\n", pos)
    return len(text) if nl < 0 else nl


def _block_header_re(name: str) -> re.Pattern:
    return re.compile(r"[ \t]*" + re.escape(name) + r"[ \t]*\{")


def _declaration_patterns(spec: FragmentSpec) -> List[re.Pattern]:
    """
    One pattern per flat declaration line of the template, placeholders
    widened to any quoted text. For block fragments only the lines before
    the block header count.
    """
    patterns: List[re.Pattern] = []
    for line in spec.template.strip("\n").splitlines():
        if not DECLARATION_RE.match(line):
            break
        parts = PLACEHOLDER_RE.split(line.strip())
        body = r"[^'\"\n]*".join(re.escape(p) for p in parts)
        patterns.append(re.compile(r"[ \t]*" + body + r"[ \t]*$"))
    return patterns


def locate_fragment(document: str, spec: FragmentSpec, pos: int = 0) -> Optional[FragmentSpan]:
    """Bound the first occurrence of `spec.marker` at or after `pos`."""
    idx = document.find(spec.marker, pos)
    if idx < 0:
        return None

    line_start = document.rfind("\n", 0, idx) + 1
    start = line_start if not document[line_start:idx].strip() else idx
    marker_line = line_col(document, idx)[0]

    end = _line_end(document, idx)
    cursor = end + 1
    declarations = 0
    # Each template line is consumed at most once; anything else ends the run.
    pending = _declaration_patterns(spec)
    while pending and cursor <= len(document):
        eol = _line_end(document, cursor)
        line = document[cursor:eol]
        hit = next((p for p in pending if p.match(line)), None)
        if hit is None:
            break
        pending.remove(hit)
        declarations += 1
        end = eol
        cursor = eol + 1

    if spec.block:
        scan = cursor
        while scan < len(document):
            eol = _line_end(document, scan)
            if document[scan:eol].strip():
                break
            scan = eol + 1
        m = _block_header_re(spec.block).match(document, scan)
        if m is None:
            raise PatternNotFound(
                f"marker {spec.marker!r} (line {marker_line}) is not followed by a "
                f"'{spec.block} {{' block; manual cleanup required"
            )
        try:
            close = find_matching_brace(document, m.end() - 1)
        except UnbalancedStructure as e:
            raise PatternNotFound(
                f"block after marker {spec.marker!r} (line {marker_line}) cannot be bounded: {e}"
            ) from e
        end = close + 1
    elif declarations == 0:
        raise PatternNotFound(
            f"marker {spec.marker!r} (line {marker_line}) is not followed by any "
            "declaration lines; manual cleanup required"
        )

    if end < len(document) and document[end] == "\n":
        end += 1
    return FragmentSpan(start=start, end=end, declarations=declarations)


def locate_all(document: str, spec: FragmentSpec) -> List[FragmentSpan]:
    spans: List[FragmentSpan] = []
    pos = 0
    while True:
        span = locate_fragment(document, spec, pos)
        if span is None:
            return spans
        spans.append(span)
        pos = span.end


def _cut(document: str, span: FragmentSpan) -> str:
    start, end = span.start, span.end
    # Take one blank separator line with the fragment: the one before an
    # end-of-file fragment, or the one after a fragment injected into a block.
    if start >= 2 and document[start - 2 : start] == "\n\n" and (
        end >= len(document) or document[end] == "\n"
    ):
        start -= 1
    elif end < len(document) and document[end] == "\n" and (start == 0 or document[start - 1] == "\n"):
        end += 1
    return document[:start] + document[end:]


def remove(document: str, spec: FragmentSpec) -> str:
    """
    Remove every occurrence of `spec`'s fragment.

    No-op when the marker is absent. Raises PatternNotFound before touching
    anything if any occurrence cannot be bounded.
    """
    spans = locate_all(document, spec)
    if not spans:
        return document

    for span in reversed(spans):
        document = _cut(document, span)

    logger.info("removed %d occurrence(s) of %r", len(spans), spec.marker)
    return document
