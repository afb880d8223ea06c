"""Disk scan of chapter directories and their Markdown topic files.

A chapter is a top-level directory of the repository root; its topics are
the Markdown files found (recursively) beneath it. Root-level files are
never topics, and chapters without a single topic file are omitted.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from fnmatch import fnmatch
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence
from urllib.parse import quote

from topicbook.config import IndexConfig, get_config
from topicbook.core.sanitize import deslug
from topicbook.lib.markdown import extract_title

logger = logging.getLogger(__name__)

SortKey = Callable[[str], Any]


@dataclass
class Topic:
    title: str
    slug: str
    rel_path: str  # posix path relative to the repository root
    path: Path

    @property
    def href(self) -> str:
        return quote(self.rel_path, safe="/")


@dataclass
class Chapter:
    title: str
    slug: str
    path: Path
    topics: List[Topic] = field(default_factory=list)


def lexical_key(name: str):
    """Default comparator: case-insensitive, case-sensitive tie-break."""
    return (name.casefold(), name)


def _is_hidden(name: str) -> bool:
    return name.startswith(".") or name.startswith("_")


def _matches_any(name: str, patterns: Iterable[str]) -> bool:
    return any(fnmatch(name, pat) for pat in patterns)


def _prior_rank(prior: Sequence[str]) -> Dict[str, int]:
    rank: Dict[str, int] = {}
    for i, name in enumerate(prior):
        rank.setdefault(name, i)
    return rank


def _order_names(
    names: List[str],
    order: str,
    sort_key: Optional[SortKey],
    prior: Sequence[str] = (),
) -> List[str]:
    """Order directory/file names by the configured rule.

    ``names`` arrives in discovery order. An explicit ``sort_key`` wins over
    the named rule.
    """
    if sort_key is not None:
        return sorted(names, key=sort_key)
    if order == "discovery":
        return list(names)
    if order == "readme" and prior:
        rank = _prior_rank(prior)
        listed = sorted((n for n in names if n in rank), key=lambda n: rank[n])
        unlisted = sorted((n for n in names if n not in rank), key=lexical_key)
        return listed + unlisted
    return sorted(names, key=lexical_key)


def read_topic_title(path: Path) -> str:
    """Display title of a topic file: first H1, else the de-slugged stem."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            title = extract_title(f.read())
    except OSError as e:
        logger.warning("Could not read topic %s: %s", path, e)
        title = None
    return title or deslug(path.stem)


def _collect_topic_paths(chapter_dir: Path, cfg: IndexConfig) -> List[str]:
    """Relative (to chapter_dir, posix) paths of topic files, in walk order."""
    reserved = {name.casefold() for name in cfg.reserved_files}
    excluded = set(cfg.exclude_dirs)
    found: List[str] = []
    for dirpath, dirnames, filenames in os.walk(chapter_dir):
        # Prune in place so os.walk never descends into hidden/excluded dirs.
        dirnames[:] = [d for d in dirnames if not _is_hidden(d) and d not in excluded]
        base = Path(dirpath)
        for name in filenames:
            if name.startswith("."):
                continue
            if name.casefold() in reserved:
                continue
            if not _matches_any(name, cfg.topic_patterns):
                continue
            found.append((base / name).relative_to(chapter_dir).as_posix())
    return found


def list_chapter_dirs(root: Path, cfg: Optional[IndexConfig] = None) -> List[Path]:
    """Candidate chapter directories in discovery order (empty ones included)."""
    cfg = cfg or get_config(root).index
    excluded = set(cfg.exclude_dirs)
    dirs: List[Path] = []
    try:
        with os.scandir(root) as it:
            for entry in it:
                if not entry.is_dir():
                    continue
                if _is_hidden(entry.name) or entry.name in excluded:
                    continue
                dirs.append(Path(entry.path))
    except FileNotFoundError:
        logger.warning("Repository root does not exist: %s", root)
    return dirs


def scan_repository(
    root: Path,
    *,
    cfg: Optional[IndexConfig] = None,
    order: Optional[str] = None,
    sort_key: Optional[SortKey] = None,
    known_titles: Optional[Dict[str, str]] = None,
    prior_chapters: Sequence[str] = (),
    prior_topics: Sequence[str] = (),
) -> List[Chapter]:
    """Scan ``root`` and return chapters with their topics, ordered.

    Args:
        cfg: index settings (defaults to the loaded config).
        order: "lexical", "discovery" or "readme"; defaults to cfg.order.
        sort_key: comparator key applied to directory names and to topic
            paths relative to their chapter. Overrides ``order``.
        known_titles: chapter slug -> display title recovered from the
            existing README; config chapter_titles still take precedence.
        prior_chapters / prior_topics: chapter slugs and repo-relative
            topic paths in README order, used by ``order="readme"``.
    """
    root = Path(root)
    cfg = cfg or get_config(root).index
    order = order or cfg.order
    known_titles = known_titles or {}

    dirs = {d.name: d for d in list_chapter_dirs(root, cfg)}
    chapters: List[Chapter] = []
    for name in _order_names(list(dirs), order, sort_key, prior_chapters):
        chapter_dir = dirs[name]
        rel_topics = _collect_topic_paths(chapter_dir, cfg)
        if not rel_topics:
            logger.debug("Skipping empty chapter directory %s", name)
            continue

        # prior_topics are repo-relative; strip the chapter prefix for ranking.
        prefix = f"{name}/"
        prior_in_chapter = [p[len(prefix):] for p in prior_topics if p.startswith(prefix)]

        topics = []
        for rel in _order_names(rel_topics, order, sort_key, prior_in_chapter):
            path = chapter_dir / rel
            topics.append(Topic(
                title=read_topic_title(path),
                slug=path.stem,
                rel_path=f"{name}/{rel}",
                path=path,
            ))

        title = cfg.chapter_titles.get(name) or known_titles.get(name) or deslug(name)
        chapters.append(Chapter(title=title, slug=name, path=chapter_dir, topics=topics))

    return chapters


def iter_topics(chapters: Iterable[Chapter]):
    for chapter in chapters:
        for topic in chapter.topics:
            yield chapter, topic
