"""Chapter/topic scaffolding, the file-creating half of content generation.

Writing the article body is left to a human (or an external generator);
this module only guarantees that every outline entry maps onto exactly one
sanitized directory and file, so re-running an outline never duplicates a
chapter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

from topicbook.config import get_config
from topicbook.core.docs.scanner import Chapter, Topic
from topicbook.core.errors import FilesystemError, InvalidTitleError, TopicbookError
from topicbook.core.outline import Outline
from topicbook.core.sanitize import sanitize_title
from topicbook.lib.fileio import atomic_write_text
from topicbook.lib.runtime_context import get_workspace_dir

logger = logging.getLogger(__name__)


@dataclass
class TopicResult:
    chapter: Chapter
    topic: Topic
    created: bool


@dataclass
class BatchFailure:
    chapter: str
    topic: Optional[str]
    error: str


@dataclass
class BatchReport:
    created: List[TopicResult] = field(default_factory=list)
    existing: List[TopicResult] = field(default_factory=list)
    failures: List[BatchFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def added_pairs(self) -> List[Tuple[str, str]]:
        """(chapter title, topic title) for every newly created topic."""
        return [(r.chapter.title, r.topic.title) for r in self.created]

    def summary(self) -> str:
        return (
            f"{len(self.created)} created, {len(self.existing)} already present, "
            f"{len(self.failures)} failed"
        )


def _root(root: Optional[Path]) -> Path:
    return Path(root) if root is not None else get_workspace_dir()


def _exists(path: Path) -> bool:
    try:
        return path.exists()
    except OSError as e:
        raise FilesystemError(path, f"Cannot inspect path ({e.strerror or e})") from e


def render_stub(title: str, placeholder: Optional[str] = None, root: Optional[Path] = None) -> str:
    """Initial body for a new topic: H1 title plus a placeholder line."""
    if placeholder is None:
        placeholder = get_config(root).authoring.placeholder
    body = f"# {title.strip()}\n"
    if placeholder:
        body += f"\n{placeholder}\n"
    return body


def create_chapter(root: Optional[Path], title: str) -> Chapter:
    """Create (or reuse) the directory for ``title``. Idempotent.

    Raises:
        InvalidTitleError: title is empty or unsanitizable.
        FilesystemError: the directory could not be created.
    """
    root = _root(root)
    slug = sanitize_title(title)
    path = root / slug
    if _exists(path) and not path.is_dir():
        raise FilesystemError(path, "Chapter path exists and is not a directory")
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise FilesystemError(path, f"Failed to create chapter directory ({e.strerror or e})") from e
    return Chapter(title=title.strip(), slug=slug, path=path)


def create_topic(
    root: Optional[Path],
    chapter_title: str,
    topic_title: str,
    body: Optional[str] = None,
    overwrite: Optional[bool] = None,
) -> TopicResult:
    """Create ``<Chapter>/<Topic>.md``.

    An existing file is left untouched unless ``overwrite`` is set (default
    from config ``authoring.overwrite``).

    Raises:
        InvalidTitleError: chapter or topic title is empty or unsanitizable.
        FilesystemError: the file could not be written.
    """
    root = _root(root)
    if overwrite is None:
        overwrite = get_config(root).authoring.overwrite
    # Validate the topic title before touching the filesystem.
    topic_slug = sanitize_title(topic_title)
    chapter = create_chapter(root, chapter_title)

    path = chapter.path / f"{topic_slug}.md"
    topic = Topic(
        title=topic_title.strip(),
        slug=topic_slug,
        rel_path=f"{chapter.slug}/{topic_slug}.md",
        path=path,
    )
    if _exists(path) and not overwrite:
        logger.info("Topic already exists, leaving it untouched: %s", topic.rel_path)
        return TopicResult(chapter=chapter, topic=topic, created=False)

    content = body if body is not None else render_stub(topic.title, root=root)
    atomic_write_text(path, content)
    logger.info("Created topic %s", topic.rel_path)
    chapter.topics.append(topic)
    return TopicResult(chapter=chapter, topic=topic, created=True)


def apply_outline(root: Optional[Path], outline: Outline, overwrite: Optional[bool] = None) -> BatchReport:
    """Create every chapter/topic in ``outline``.

    Failures are recorded per entry; the batch keeps going.
    """
    root = _root(root)
    report = BatchReport()
    for chapter in outline.chapters:
        try:
            create_chapter(root, chapter.title)
        except TopicbookError as e:
            logger.warning("Chapter %r failed: %s", chapter.title, e)
            report.failures.append(BatchFailure(chapter=chapter.title, topic=None, error=str(e)))
            continue

        for topic_title in chapter.topics:
            try:
                result = create_topic(root, chapter.title, topic_title, overwrite=overwrite)
            except (InvalidTitleError, FilesystemError) as e:
                logger.warning("Topic %r in %r failed: %s", topic_title, chapter.title, e)
                report.failures.append(BatchFailure(chapter=chapter.title, topic=topic_title, error=str(e)))
                continue
            (report.created if result.created else report.existing).append(result)

    logger.info("Outline applied: %s", report.summary())
    return report
