"""Change Publisher: stage, commit and (after confirmation) push.

Sequence: ``git add`` -> ``git diff --cached --quiet`` -> ``git commit`` ->
confirmation gate -> ``git push``. Each step runs only if the previous one
succeeded. The push never happens without an explicit yes from the
operator; declining raises PublishAborted and leaves the commit local.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from topicbook.config import PublishConfig, get_config
from topicbook.core.docs.changelog import log_run
from topicbook.core.docs.scanner import iter_topics, scan_repository
from topicbook.core.errors import PublishAborted
from topicbook.lib.runtime_context import get_workspace_dir, request_confirmation, send_notification

logger = logging.getLogger(__name__)

Runner = Callable[..., subprocess.CompletedProcess]
ConfirmFn = Callable[[str], bool]

PUSHED = "pushed"
COMMITTED = "committed"
NOTHING_TO_COMMIT = "nothing_to_commit"
STAGE_FAILED = "stage_failed"
COMMIT_FAILED = "commit_failed"
PUSH_FAILED = "push_failed"


@dataclass
class PublishResult:
    status: str
    message: str
    commit_message: str = ""
    output: str = ""

    @property
    def ok(self) -> bool:
        return self.status in (PUSHED, COMMITTED, NOTHING_TO_COMMIT)

    def to_dict(self) -> dict:
        return {
            "status": self.status,
            "message": self.message,
            "commit_message": self.commit_message,
            "ok": self.ok,
        }


def build_commit_message(added: Sequence[Tuple[str, str]], prefix: str = "docs") -> str:
    """Commit subject for a batch of (chapter title, topic title) pairs."""
    added = list(added)
    if not added:
        return f"{prefix}: Update chapters and topics index"
    if len(added) == 1:
        chapter, topic = added[0]
        return f"{prefix}: Add content for {chapter}, {topic}"
    chapters: List[str] = []
    for chapter, _topic in added:
        if chapter not in chapters:
            chapters.append(chapter)
    if len(chapters) == 1:
        return f"{prefix}: Add content for {chapters[0]} ({len(added)} topics)"
    return f"{prefix}: Add content for {len(added)} topics across {len(chapters)} chapters"


def _output(proc: subprocess.CompletedProcess) -> str:
    return "\n".join(s.strip() for s in (proc.stdout or "", proc.stderr or "") if s and s.strip())


def parse_porcelain_z(raw: str) -> List[Tuple[str, str]]:
    """Parse ``git status --porcelain -z`` into (XY, path) pairs."""
    entries: List[Tuple[str, str]] = []
    parts = raw.split("\0")
    i = 0
    while i < len(parts):
        item = parts[i]
        i += 1
        if len(item) < 4:
            continue
        code, path = item[:2], item[3:]
        if code[0] in ("R", "C"):
            i += 1  # next field is the original path
        entries.append((code, path))
    return entries


class Publisher:
    """Run the stage/commit/confirm/push sequence for one repository."""

    def __init__(
        self,
        root: Optional[Path] = None,
        *,
        runner: Optional[Runner] = None,
        confirm: Optional[ConfirmFn] = None,
        cfg: Optional[PublishConfig] = None,
    ):
        self.root = Path(root) if root is not None else get_workspace_dir()
        self._run = runner or subprocess.run
        self._confirm = confirm or request_confirmation
        self.cfg = cfg or get_config(self.root).publish

    def _git(self, *args: str) -> subprocess.CompletedProcess:
        argv = ["git", *args]
        logger.debug("Running %s", " ".join(argv))
        try:
            return self._run(
                argv,
                cwd=str(self.root),
                capture_output=True,
                text=True,
                check=False,
                timeout=self.cfg.git_timeout_seconds,
            )
        except FileNotFoundError:
            return subprocess.CompletedProcess(argv, 127, "", "git executable not found")
        except subprocess.TimeoutExpired:
            return subprocess.CompletedProcess(
                argv, 124, "", f"git {args[0]} timed out after {self.cfg.git_timeout_seconds}s",
            )

    # ---- Queries ----

    def pending_topics(self) -> List[Tuple[str, str]]:
        """(chapter title, topic title) for added or untracked topic files."""
        proc = self._git("status", "--porcelain", "-z", "--untracked-files=all")
        if proc.returncode != 0:
            logger.warning("git status failed: %s", _output(proc))
            return []
        new_paths = {
            path for code, path in parse_porcelain_z(proc.stdout or "")
            if code == "??" or code[0] == "A"
        }
        if not new_paths:
            return []
        titles: Dict[str, Tuple[str, str]] = {
            topic.rel_path: (chapter.title, topic.title)
            for chapter, topic in iter_topics(scan_repository(self.root))
        }
        return [titles[p] for p in sorted(new_paths) if p in titles]

    # ---- Steps ----

    def publish(
        self,
        paths: Optional[Sequence[str]] = None,
        message: Optional[str] = None,
        push: bool = True,
    ) -> PublishResult:
        """Stage ``paths`` (default: whole tree), commit, confirm, push.

        Raises:
            PublishAborted: the operator declined the push.
        """
        commit_message = message or build_commit_message(self.pending_topics(), prefix=self.cfg.commit_prefix)

        # Run history under .topicbook/ is local state, never part of a commit.
        pathspec = list(paths) if paths else [".", ":(exclude).topicbook"]
        staged = self._git("add", "-A", "--", *pathspec)
        if staged.returncode != 0:
            return self._finish(STAGE_FAILED, f"git add failed: {_output(staged)}", commit_message, staged)

        # --quiet exits 0 when the index matches HEAD, 1 when something is staged.
        diff = self._git("diff", "--cached", "--quiet")
        if diff.returncode == 0:
            send_notification("nothing to commit")
            return self._finish(NOTHING_TO_COMMIT, "nothing to commit", commit_message)
        if diff.returncode != 1:
            return self._finish(STAGE_FAILED, f"git diff --cached failed: {_output(diff)}", commit_message, diff)

        committed = self._git("commit", "-m", commit_message)
        if committed.returncode != 0:
            out = _output(committed)
            if "nothing to commit" in out:
                return self._finish(NOTHING_TO_COMMIT, "nothing to commit", commit_message, committed)
            return self._finish(COMMIT_FAILED, f"git commit failed: {out}", commit_message, committed)
        logger.info("Committed: %s", commit_message)

        if not push:
            return self._finish(COMMITTED, "committed; push skipped", commit_message, committed)

        target = f"{self.cfg.remote}/{self.cfg.branch}" if self.cfg.branch else self.cfg.remote
        # Blocking human gate: no timeout, no implicit approval.
        if not self._confirm(f"Push commit '{commit_message}' to {target}?"):
            log_run("publish", success=False, root=self.root, status="aborted", commit_message=commit_message)
            raise PublishAborted(f"Push to {target} declined; commit kept locally")

        push_args = ["push", self.cfg.remote]
        if self.cfg.branch:
            push_args.append(self.cfg.branch)
        pushed = self._git(*push_args)
        if pushed.returncode != 0:
            return self._finish(PUSH_FAILED, f"git push failed: {_output(pushed)}", commit_message, pushed)
        return self._finish(PUSHED, f"pushed to {target}", commit_message, pushed)

    def _finish(
        self,
        status: str,
        message: str,
        commit_message: str,
        proc: Optional[subprocess.CompletedProcess] = None,
    ) -> PublishResult:
        result = PublishResult(
            status=status,
            message=message,
            commit_message=commit_message,
            output=_output(proc) if proc is not None else "",
        )
        if result.ok:
            logger.info("Publish %s: %s", status, message)
        else:
            logger.error("Publish %s: %s", status, message)
        log_run("publish", success=result.ok, root=self.root, status=status, commit_message=commit_message)
        return result


def publish_changes(
    root: Optional[Path] = None,
    paths: Optional[Sequence[str]] = None,
    message: Optional[str] = None,
    push: bool = True,
) -> PublishResult:
    return Publisher(root).publish(paths=paths, message=message, push=push)
