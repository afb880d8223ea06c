"""Topic linter.

Each topic file should have exactly one canonical body. A second top-level
heading usually means an article was pasted onto the end of another one, so
it is reported rather than reproduced in the index.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import List, Optional

from topicbook.config import LintConfig, get_config
from topicbook.core.docs.scanner import Chapter, iter_topics, scan_repository
from topicbook.core.errors import InvalidTitleError
from topicbook.core.sanitize import sanitize_title
from topicbook.lib.markdown import h1_headings
from topicbook.lib.runtime_context import get_workspace_dir

logger = logging.getLogger(__name__)

DUPLICATE_H1 = "duplicate-h1"
MISSING_H1 = "missing-h1"
TITLE_MISMATCH = "title-mismatch"


@dataclass
class LintFinding:
    path: str
    rule: str
    message: str
    line: Optional[int] = None

    def to_dict(self) -> dict:
        return asdict(self)

    def __str__(self) -> str:
        loc = f"{self.path}:{self.line}" if self.line else self.path
        return f"{loc}: [{self.rule}] {self.message}"


def lint_text(rel_path: str, content: str, cfg: Optional[LintConfig] = None) -> List[LintFinding]:
    """Lint one topic body. ``rel_path`` is only used for reporting."""
    cfg = cfg or get_config().lint
    findings: List[LintFinding] = []
    h1s = h1_headings(content)

    if cfg.missing_h1 and not h1s:
        findings.append(LintFinding(rel_path, MISSING_H1, "no top-level '# ' heading"))

    if cfg.duplicate_h1 and len(h1s) > 1:
        first = h1s[0]
        for extra in h1s[1:]:
            findings.append(LintFinding(
                rel_path,
                DUPLICATE_H1,
                f"second top-level heading {extra.text!r} (first was {first.text!r} on line {first.line_no})",
                line=extra.line_no,
            ))

    if cfg.title_mismatch and h1s:
        stem = Path(rel_path).stem
        try:
            expected = sanitize_title(h1s[0].text)
        except InvalidTitleError:
            expected = ""
        if expected and expected != stem:
            findings.append(LintFinding(
                rel_path,
                TITLE_MISMATCH,
                f"title {h1s[0].text!r} sanitizes to {expected!r}, file is {stem!r}",
                line=h1s[0].line_no,
            ))
    return findings


def lint_repository(
    root: Optional[Path] = None,
    chapters: Optional[List[Chapter]] = None,
    cfg: Optional[LintConfig] = None,
) -> List[LintFinding]:
    """Lint every topic file under ``root`` (or the given scan result)."""
    root = Path(root) if root is not None else get_workspace_dir()
    cfg = cfg or get_config(root).lint
    if not cfg.enabled:
        return []
    if chapters is None:
        chapters = scan_repository(root)

    findings: List[LintFinding] = []
    for _chapter, topic in iter_topics(chapters):
        try:
            content = topic.path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning("Could not read %s for linting: %s", topic.rel_path, e)
            continue
        findings.extend(lint_text(topic.rel_path, content, cfg))
    for finding in findings:
        logger.debug("lint: %s", finding)
    return findings
