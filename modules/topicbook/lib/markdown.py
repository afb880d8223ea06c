"""Shared markdown processing helpers.

Used by the scanner (topic titles), the index synchronizer (managed section
location) and the linter (duplicate H1 detection). Fenced code blocks are
skipped everywhere: a ``# comment`` inside a shell snippet is not a heading.
"""

import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple

_HEADING_RE = re.compile(r"^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$")
_FENCE_RE = re.compile(r"^ {0,3}(`{3,}|~{3,})")


@dataclass(frozen=True)
class Heading:
    level: int
    text: str
    line_no: int  # 1-based
    start: int    # char offset of the heading line
    end: int      # char offset just past the heading line (incl. newline)


def iter_headings(content: str) -> Iterator[Heading]:
    """Yield ATX headings outside fenced code blocks, in document order."""
    offset = 0
    fence: Optional[str] = None
    for line_no, line in enumerate(content.splitlines(keepends=True), start=1):
        start = offset
        offset += len(line)
        stripped = line.rstrip("\r\n")

        fence_match = _FENCE_RE.match(stripped)
        if fence is not None:
            if fence_match and fence_match.group(1)[0] == fence[0] and len(fence_match.group(1)) >= len(fence):
                fence = None
            continue
        if fence_match:
            fence = fence_match.group(1)
            continue

        m = _HEADING_RE.match(stripped)
        if not m:
            continue
        yield Heading(
            level=len(m.group(1)),
            text=(m.group(2) or "").strip(),
            line_no=line_no,
            start=start,
            end=offset,
        )


def extract_title(content: str) -> Optional[str]:
    """Return the text of the first level-1 heading, or None."""
    for heading in iter_headings(content):
        if heading.level == 1 and heading.text:
            return heading.text
    return None


def h1_headings(content: str) -> List[Heading]:
    return [h for h in iter_headings(content) if h.level == 1]


def find_section(content: str, title: str, level: int = 2) -> Optional[Tuple[int, int]]:
    """Locate the ``level`` heading named ``title`` and the body under it.

    Returns (start, end) character offsets. The span starts at the heading
    line and stops before the next heading of the same or a higher level
    (or at end of content). Matching is case-insensitive on the trimmed
    heading text. Returns None when the heading is absent.
    """
    wanted = title.strip().casefold()
    start: Optional[int] = None
    for heading in iter_headings(content):
        if start is None:
            if heading.level == level and heading.text.casefold() == wanted:
                start = heading.start
            continue
        if heading.level <= level:
            return start, heading.start
    if start is None:
        return None
    return start, len(content)
