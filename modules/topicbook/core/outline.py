"""Outline intake: (chapter, [topics]) pairs from JSON or a plain-text list.

Accepted shapes::

    {"chapters": [{"title": "Frontend Security", "topics": ["XSS", "CSRF"]}]}
    {"Frontend Security": ["XSS", "CSRF"]}

    Frontend Security:
      - Cross-Site Scripting (XSS)
      - Cross-Site Request Forgery (CSRF)
    Performance Optimization
      * Tree Shaking

Titles are kept exactly as written (trimmed); sanitizing happens when the
files are created, so one bad title fails only its own entry.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from topicbook.core.errors import InvalidTitleError, OutlineError
from topicbook.core.sanitize import sanitize_title

logger = logging.getLogger(__name__)

_TOPIC_MARKER_RE = re.compile(r"^(?:[-*+]|\d+[.)])\s+(.*)$")


@dataclass
class OutlineChapter:
    title: str
    topics: List[str] = field(default_factory=list)


@dataclass
class Outline:
    chapters: List[OutlineChapter] = field(default_factory=list)

    def topic_count(self) -> int:
        return sum(len(c.topics) for c in self.chapters)

    def to_dict(self) -> Dict[str, Any]:
        return {"chapters": [{"title": c.title, "topics": list(c.topics)} for c in self.chapters]}


def _identity(title: str) -> str:
    """Key used to merge duplicates: the slug when there is one."""
    try:
        return sanitize_title(title).casefold()
    except InvalidTitleError:
        return title.strip().casefold()


class _Builder:
    def __init__(self) -> None:
        self.outline = Outline()
        self._chapters: Dict[str, OutlineChapter] = {}
        self._topics: Dict[str, set] = {}

    def chapter(self, title: str) -> OutlineChapter:
        title = title.strip()
        key = _identity(title)
        existing = self._chapters.get(key)
        if existing is not None:
            return existing
        chapter = OutlineChapter(title=title)
        self._chapters[key] = chapter
        self._topics[key] = set()
        self.outline.chapters.append(chapter)
        return chapter

    def topic(self, chapter: OutlineChapter, title: str) -> None:
        title = title.strip()
        seen = self._topics[_identity(chapter.title)]
        key = _identity(title)
        if title and key in seen:
            logger.warning("Duplicate topic %r in chapter %r dropped", title, chapter.title)
            return
        seen.add(key)
        chapter.topics.append(title)


def _require_str(value: Any, where: str) -> str:
    if not isinstance(value, str):
        raise OutlineError(f"{where}: expected a string, got {type(value).__name__}")
    return value


def _parse_json(text: str) -> Outline:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise OutlineError(f"Invalid JSON outline: {e}") from e

    builder = _Builder()
    if isinstance(data, dict) and "chapters" in data:
        data = data["chapters"]

    if isinstance(data, dict):
        items = list(data.items())
    elif isinstance(data, list):
        items = []
        for i, item in enumerate(data):
            if isinstance(item, dict):
                items.append((item.get("title"), item.get("topics", [])))
            elif isinstance(item, (list, tuple)) and len(item) == 2:
                items.append((item[0], item[1]))
            else:
                raise OutlineError(f"chapters[{i}]: expected an object or a [title, topics] pair")
    else:
        raise OutlineError("Outline JSON must be an object or a list of chapters")

    for i, (title, topics) in enumerate(items):
        chapter = builder.chapter(_require_str(title, f"chapters[{i}].title"))
        if topics is None:
            topics = []
        if not isinstance(topics, list):
            raise OutlineError(f"chapters[{i}].topics: expected a list")
        for j, topic in enumerate(topics):
            builder.topic(chapter, _require_str(topic, f"chapters[{i}].topics[{j}]"))
    return builder.outline


def _parse_text(text: str) -> Outline:
    builder = _Builder()
    current: Optional[OutlineChapter] = None
    for line_no, raw in enumerate(text.splitlines(), start=1):
        line = raw.rstrip()
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        marker = _TOPIC_MARKER_RE.match(stripped)
        indented = line[:1].isspace()
        if marker or indented:
            if current is None:
                raise OutlineError(f"line {line_no}: topic {stripped!r} appears before any chapter")
            builder.topic(current, marker.group(1) if marker else stripped)
            continue
        current = builder.chapter(stripped[:-1] if stripped.endswith(":") else stripped)
    return builder.outline


def parse_outline(text: str, fmt: Optional[str] = None) -> Outline:
    """Parse outline ``text``.

    Args:
        fmt: "json" or "text"; detected from the first non-space character
            when omitted.

    Raises:
        OutlineError: malformed outline or unknown format.
    """
    if fmt is None:
        head = text.lstrip()[:1]
        fmt = "json" if head in ("{", "[") else "text"
    if fmt == "json":
        outline = _parse_json(text)
    elif fmt == "text":
        outline = _parse_text(text)
    else:
        raise OutlineError(f"Unknown outline format: {fmt!r}")
    if not outline.chapters:
        raise OutlineError("Outline contains no chapters")
    return outline
