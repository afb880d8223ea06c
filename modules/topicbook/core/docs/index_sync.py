"""
Index Synchronizer: regenerate the README's chapter/topic listing from disk.

The README is treated as a build artifact for one section only: the
"## Chapters and Topics" block (heading configurable). Everything before and
after that block is hand-written prose and is preserved byte-for-byte.

The disk scan is authoritative. When the existing section disagrees with
the scan in ways that mean hand edits are about to be discarded (links to
files that no longer exist, duplicated links, retitled entries, free text
inside the section) an IndexDriftWarning is emitted and logged before the
section is overwritten.
"""

import logging
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple
from urllib.parse import unquote

from topicbook.config import IndexConfig, get_config
from topicbook.core.docs.changelog import log_run
from topicbook.core.docs.scanner import Chapter, SortKey, iter_topics, scan_repository
from topicbook.core.errors import IndexDriftWarning
from topicbook.lib.fileio import atomic_write_text, read_text_exact
from topicbook.lib.markdown import find_section
from topicbook.lib.runtime_context import get_workspace_dir

logger = logging.getLogger(__name__)

_ENTRY_RE = re.compile(r"^\s*[*+-]\s+\[((?:\\.|[^\]\\])*)\]\(\s*<?([^)>\s]+)>?\s*\)\s*$")
_CHAPTER_RE = re.compile(r"^\s{0,3}###\s+(.+?)(?:\s+#+)?\s*$")


@dataclass(frozen=True)
class IndexEntry:
    chapter: str
    title: str
    href: str

    @property
    def rel_path(self) -> str:
        return unquote(self.href)


@dataclass
class DriftReport:
    added: List[str] = field(default_factory=list)       # on disk, missing from README
    removed: List[str] = field(default_factory=list)     # in README, missing on disk
    duplicates: List[str] = field(default_factory=list)  # listed more than once
    retitled: List[str] = field(default_factory=list)    # same path, different text/chapter
    stray_lines: List[str] = field(default_factory=list) # free text inside the section

    @property
    def drift(self) -> bool:
        """True when regenerating discards something a human put there."""
        return bool(self.removed or self.duplicates or self.retitled or self.stray_lines)

    def summary(self) -> str:
        parts = []
        for label in ("added", "removed", "duplicates", "retitled", "stray_lines"):
            items = getattr(self, label)
            if items:
                parts.append(f"{label}={len(items)}")
        return ", ".join(parts) or "in sync"

    def to_dict(self) -> dict:
        return {
            "added": list(self.added),
            "removed": list(self.removed),
            "duplicates": list(self.duplicates),
            "retitled": list(self.retitled),
            "stray_lines": list(self.stray_lines),
            "drift": self.drift,
        }


@dataclass
class SyncResult:
    readme_path: Path
    chapters: List[Chapter]
    section: str
    changed: bool
    written: bool
    section_found: bool
    report: DriftReport

    @property
    def drift(self) -> bool:
        return self.report.drift

    @property
    def added(self) -> List[str]:
        return self.report.added

    @property
    def removed(self) -> List[str]:
        return self.report.removed

    def to_dict(self) -> dict:
        return {
            "readme": str(self.readme_path),
            "changed": self.changed,
            "written": self.written,
            "section_found": self.section_found,
            "chapters": [
                {"title": c.title, "slug": c.slug, "topics": [t.rel_path for t in c.topics]}
                for c in self.chapters
            ],
            "report": self.report.to_dict(),
        }


# ============================================================================
# Parsing and rendering
# ============================================================================

def _escape_link_text(text: str) -> str:
    return text.replace("\\", "\\\\").replace("[", "\\[").replace("]", "\\]")


def _unescape_link_text(text: str) -> str:
    return re.sub(r"\\(.)", r"\1", text)


def parse_index_section(section: str) -> Tuple[List[IndexEntry], List[str]]:
    """Parse a managed section into entries plus lines that are not entries.

    The first line (the section heading itself) and blank lines are ignored.
    """
    entries: List[IndexEntry] = []
    stray: List[str] = []
    chapter = ""
    for line in section.splitlines()[1:]:
        if not line.strip():
            continue
        m = _CHAPTER_RE.match(line)
        if m:
            chapter = m.group(1).strip()
            continue
        m = _ENTRY_RE.match(line)
        if m:
            entries.append(IndexEntry(chapter=chapter, title=_unescape_link_text(m.group(1)), href=m.group(2)))
            continue
        stray.append(line.strip())
    return entries, stray


def render_index(
    chapters: Sequence[Chapter],
    heading: str = "Chapters and Topics",
    bullet: str = "*   ",
) -> str:
    """Render the managed section. Deterministic; ends with one newline."""
    lines = [f"## {heading}", ""]
    for chapter in chapters:
        lines.append(f"### {chapter.title}")
        lines.append("")
        for topic in chapter.topics:
            lines.append(f"{bullet}[{_escape_link_text(topic.title)}]({topic.href})")
        lines.append("")
    return "\n".join(lines).rstrip("\n") + "\n"


def compare_entries(existing: Sequence[IndexEntry], chapters: Sequence[Chapter], stray: Sequence[str] = ()) -> DriftReport:
    """Diff README entries against the disk scan (keyed by decoded path)."""
    report = DriftReport(stray_lines=list(stray))
    on_disk: Dict[str, Tuple[str, str]] = {
        topic.rel_path: (chapter.title, topic.title) for chapter, topic in iter_topics(chapters)
    }

    seen: Dict[str, IndexEntry] = {}
    for entry in existing:
        path = entry.rel_path
        if path in seen:
            if path not in report.duplicates:
                report.duplicates.append(path)
            continue
        seen[path] = entry
        if path not in on_disk:
            report.removed.append(path)
        elif on_disk[path] != (entry.chapter, entry.title):
            report.retitled.append(path)

    report.added = [path for path in on_disk if path not in seen]
    return report


def _readme_hints(entries: Sequence[IndexEntry]) -> Tuple[Dict[str, str], List[str], List[str]]:
    """Chapter titles, chapter order and topic order recorded in the README."""
    titles: Dict[str, str] = {}
    chapter_order: List[str] = []
    topic_order: List[str] = []
    for entry in entries:
        path = entry.rel_path
        if "/" not in path:
            continue
        slug = path.split("/", 1)[0]
        if entry.chapter and slug not in titles:
            titles[slug] = entry.chapter
        if slug not in chapter_order:
            chapter_order.append(slug)
        topic_order.append(path)
    return titles, chapter_order, topic_order


def splice_section(content: str, span: Optional[Tuple[int, int]], section: str, default_title: str) -> str:
    """Return ``content`` with the managed section replaced (or appended)."""
    if span is None:
        if not content.strip():
            return f"# {default_title}\n\n{section}"
        return content.rstrip("\r\n") + "\n\n" + section
    start, end = span
    tail = content[end:]
    replacement = section + ("\n" if tail else "")
    return content[:start] + replacement + tail


# ============================================================================
# Synchronization
# ============================================================================

def sync_index(
    root: Optional[Path] = None,
    *,
    dry_run: bool = False,
    order: Optional[str] = None,
    sort_key: Optional[SortKey] = None,
    cfg: Optional[IndexConfig] = None,
) -> SyncResult:
    """Regenerate the managed README section from a disk scan.

    Args:
        root: repository root (defaults to the runtime workspace).
        dry_run: compute the result and drift report without writing.
        order / sort_key: override the configured ordering.

    Raises:
        FilesystemError: README could not be written (it is left untouched).
    """
    root = Path(root) if root is not None else get_workspace_dir()
    cfg = cfg or get_config(root).index
    readme_path = root / cfg.readme_path

    content = read_text_exact(readme_path) if readme_path.exists() else ""
    span = find_section(content, cfg.heading, level=2)
    existing_section = content[span[0]:span[1]] if span else ""
    entries, stray = parse_index_section(existing_section) if span else ([], [])

    known_titles, prior_chapters, prior_topics = _readme_hints(entries)
    chapters = scan_repository(
        root,
        cfg=cfg,
        order=order,
        sort_key=sort_key,
        known_titles=known_titles,
        prior_chapters=prior_chapters,
        prior_topics=prior_topics,
    )
    section = render_index(chapters, heading=cfg.heading, bullet=cfg.bullet)
    report = compare_entries(entries, chapters, stray)

    if span is not None and report.drift:
        message = (
            f"{readme_path.name} index section diverged from disk ({report.summary()}); "
            "manual edits inside the managed section will be replaced"
        )
        logger.warning(message)
        warnings.warn(message, IndexDriftWarning, stacklevel=2)

    new_content = splice_section(content, span, section, default_title=root.resolve().name)
    changed = new_content != content
    written = False
    if changed and not dry_run:
        atomic_write_text(readme_path, new_content)
        written = True
        logger.info(
            "Updated %s: %d chapter(s), %d topic(s)",
            readme_path, len(chapters), sum(len(c.topics) for c in chapters),
        )
    elif not changed:
        logger.debug("%s already up to date", readme_path)

    if not dry_run:
        log_run(
            "sync-index",
            success=True,
            root=root,
            readme=cfg.readme_path,
            changed=changed,
            chapters=len(chapters),
            topics=sum(len(c.topics) for c in chapters),
            drift=report.to_dict(),
        )

    return SyncResult(
        readme_path=readme_path,
        chapters=chapters,
        section=section,
        changed=changed,
        written=written,
        section_found=span is not None,
        report=report,
    )

