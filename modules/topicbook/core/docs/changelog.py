"""Run history for index syncs and publishes (<root>/.topicbook/logs)."""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, List, Optional

from topicbook.config import get_config
from topicbook.lib.runtime_context import get_logs_dir

logger = logging.getLogger(__name__)


def _changelog_path(root: Optional[Path] = None) -> Path:
    logs_dir = Path(root) / ".topicbook" / "logs" if root is not None else get_logs_dir()
    return logs_dir / "index-sync-log.json"


def _load_changelog(root: Optional[Path] = None) -> List[dict]:
    """Load existing changelog entries."""
    path = _changelog_path(root)
    if not path.exists():
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return []
    return data if isinstance(data, list) else []


def _save_changelog(entries: List[dict], root: Optional[Path] = None) -> None:
    """Save changelog entries, keeping the configured tail."""
    limit = get_config(root).logging.changelog_max_entries
    entries = entries[-limit:]
    path = _changelog_path(root)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(entries, indent=2), encoding="utf-8")


def log_run(kind: str, success: bool, root: Optional[Path] = None, **data: Any) -> None:
    """Append one run record under ``root`` (default: workspace). Failures are logged, never raised."""
    if not get_config(root).logging.changelog_enabled:
        return
    entry = {
        "timestamp": datetime.now().isoformat(),
        "kind": kind,
        "success": success,
        **data,
    }
    try:
        entries = _load_changelog(root)
        entries.append(entry)
        _save_changelog(entries, root)
    except OSError as e:
        logger.warning("Failed to record %s run in changelog: %s", kind, e)


def get_changelog(limit: int = 20, root: Optional[Path] = None) -> List[dict]:
    """Get the ``limit`` most recent changelog entries (none when limit < 1)."""
    if limit < 1:
        return []
    entries = _load_changelog(root)
    return entries[-limit:]
