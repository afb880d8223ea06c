"""Runtime adapter layer: decouples topicbook stages from the host session.

Provides an abstract interface that topicbook modules call for:
- Path resolution (repository root, state dir, logs dir)
- Human confirmation (the blocking gate in front of ``git push``)
- Notifications (short notices for the operator)

Two concrete adapters ship out of the box:
- StandaloneAdapter: interactive terminal (``input()`` / stderr)
- TestAdapter: canned confirmation answers with call recording

Tests use set_adapter() / reset_adapter() for isolation.
"""

import abc
import os
import sys
import threading
from pathlib import Path
from typing import Iterable, List, Optional


class TopicbookAdapter(abc.ABC):
    """Abstract interface for host-specific behavior."""

    # ---- Paths ----

    @abc.abstractmethod
    def repo_root(self) -> Path:
        """Root of the Markdown repository being managed."""
        ...

    def state_dir(self) -> Path:
        return self.repo_root() / ".topicbook"

    def logs_dir(self) -> Path:
        return self.state_dir() / "logs"

    # ---- Human in the loop ----

    @abc.abstractmethod
    def confirm(self, prompt: str) -> bool:
        """Block until the operator answers ``prompt``. True means approved.

        There is no timeout and no default-yes path.
        """
        ...

    @abc.abstractmethod
    def notify(self, message: str) -> None:
        """Show a short notice to the operator."""
        ...


class StandaloneAdapter(TopicbookAdapter):
    """Default adapter for terminal use.

    - Root: explicit ``root`` argument, TOPICBOOK_ROOT env, or cwd
    - Confirmation: ``input()`` on stdin, only "y"/"yes" approve
    - Notifications: stderr
    """

    def __init__(self, root: Optional[Path] = None):
        self._root = Path(root) if root is not None else None

    def repo_root(self) -> Path:
        if self._root is not None:
            return self._root
        env = os.environ.get("TOPICBOOK_ROOT", "").strip()
        return Path(env) if env else Path.cwd()

    def confirm(self, prompt: str) -> bool:
        try:
            answer = input(f"{prompt} [y/N] ")
        except EOFError:
            # Abandoned confirmation: treat as a decline, never as approval.
            print("", file=sys.stderr)
            return False
        return answer.strip().lower() in ("y", "yes")

    def notify(self, message: str) -> None:
        if os.environ.get("TOPICBOOK_QUIET"):
            return
        print(f"[topicbook] {message}", file=sys.stderr)


class TestAdapter(StandaloneAdapter):
    """Test adapter with canned confirmation answers and call recording.

    Usage in tests::

        adapter = TestAdapter(tmp_path, answers=[False])
        set_adapter(adapter)
        # ... code under test calls get_adapter().confirm(...) ...
        assert len(adapter.prompts) == 1
    """
    __test__ = False  # Not a pytest test class

    def __init__(self, root: Path, answers: Optional[Iterable[bool]] = None):
        super().__init__(root=root)
        self._answers: List[bool] = list(answers or [])
        self.prompts: List[str] = []
        self.notices: List[str] = []

    def confirm(self, prompt: str) -> bool:
        self.prompts.append(prompt)
        if not self._answers:
            return False
        return bool(self._answers.pop(0))

    def notify(self, message: str) -> None:
        self.notices.append(message)


# ---------------------------------------------------------------------------
# Singleton management
# ---------------------------------------------------------------------------

_adapter: Optional[TopicbookAdapter] = None
_adapter_lock = threading.Lock()


def get_adapter() -> TopicbookAdapter:
    """Get the current adapter (StandaloneAdapter unless one was set)."""
    global _adapter
    if _adapter is not None:
        return _adapter
    with _adapter_lock:
        if _adapter is None:
            _adapter = StandaloneAdapter()
        return _adapter


def set_adapter(adapter: TopicbookAdapter) -> None:
    """Override the adapter (CLI --root, tests). Drops the cached config."""
    global _adapter
    with _adapter_lock:
        _adapter = adapter
    from topicbook import config as _config_mod
    _config_mod.clear_config_cache()


def reset_adapter() -> None:
    """Reset adapter resolution state (for tests).

    Also clears the cached config so it re-resolves against the next root.
    """
    global _adapter
    with _adapter_lock:
        _adapter = None
    from topicbook import config as _config_mod
    _config_mod.clear_config_cache()
