"""Shared fixtures for all test modules."""
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from topicbook.lib.adapter import TestAdapter, reset_adapter, set_adapter


@pytest.fixture(autouse=True)
def _ensure_adapter_clean():
    """Reset adapter singleton before and after every test to prevent leaks."""
    reset_adapter()
    yield
    reset_adapter()


@pytest.fixture(autouse=True)
def _isolated_env(tmp_path_factory, monkeypatch):
    """Keep config lookups and env overrides away from the real machine."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("TOPICBOOK_QUIET", "1")
    monkeypatch.delenv("TOPICBOOK_ROOT", raising=False)


@pytest.fixture
def repo(tmp_path):
    """Empty repository root with a TestAdapter pointed at it."""
    root = tmp_path / "book"
    root.mkdir()
    return root


@pytest.fixture
def adapter(repo):
    a = TestAdapter(repo)
    set_adapter(a)
    return a


@pytest.fixture
def make_repo(repo, adapter):
    """Build a repository from {relative path: content}; returns the root."""
    def _make(files: Dict[str, str], readme: Optional[str] = None) -> Path:
        for rel, content in files.items():
            path = repo / rel
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        if readme is not None:
            (repo / "README.md").write_text(readme, encoding="utf-8")
        return repo
    return _make


class FakeGit:
    """Records git argv and answers from a script keyed by subcommand."""

    def __init__(self, script: Optional[Dict[str, List[tuple]]] = None):
        self.calls: List[List[str]] = []
        self.kwargs: List[dict] = []
        self.script = {k: list(v) for k, v in (script or {}).items()}

    def __call__(self, argv, **kwargs):
        self.calls.append(list(argv))
        self.kwargs.append(kwargs)
        queue = self.script.get(argv[1], [])
        rc, out, err = queue.pop(0) if queue else (0, "", "")
        return subprocess.CompletedProcess(argv, rc, out, err)

    def subcommands(self) -> List[str]:
        return [argv[1] for argv in self.calls]


@pytest.fixture
def fake_git():
    return FakeGit
