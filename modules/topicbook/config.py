"""
Configuration loader for topicbook

Loads settings from <repo_root>/.topicbook/config.json (or topicbook.json)
Falls back to sensible defaults if config is missing.
"""

import json
import logging
import os
import sys
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from topicbook.lib.runtime_context import get_workspace_dir

logger = logging.getLogger(__name__)

VALID_ORDERS = ("lexical", "discovery", "readme")


def _coerce_positive_int(raw: Any, default: int) -> int:
    """Return a positive int; fallback to default for invalid values."""
    try:
        return max(1, int(raw))
    except (TypeError, ValueError):
        return default


def _workspace_root() -> Path:
    """Get repository root from runtime context."""
    return get_workspace_dir()


def _config_paths(root: Optional[Path] = None) -> list:
    """Config file search paths (in priority order)."""
    root = Path(root) if root is not None else _workspace_root()
    return [
        root / ".topicbook" / "config.json",
        root / "topicbook.json",
        Path.home() / ".topicbook" / "config.json",
    ]


def _default_reserved_files() -> List[str]:
    return ["README.md", "agent-reference.md", "reference.md"]


def _default_exclude_dirs() -> List[str]:
    return [".git", "node_modules", "config", "__pycache__"]


@dataclass
class IndexConfig:
    readme_path: str = "README.md"
    heading: str = "Chapters and Topics"
    order: str = "lexical"  # lexical | discovery | readme
    reserved_files: List[str] = field(default_factory=_default_reserved_files)
    exclude_dirs: List[str] = field(default_factory=_default_exclude_dirs)
    topic_patterns: List[str] = field(default_factory=lambda: ["*.md"])
    chapter_titles: Dict[str, str] = field(default_factory=dict)  # slug -> display title
    bullet: str = "*   "


@dataclass
class AuthoringConfig:
    placeholder: str = "_Content for this topic has not been written yet._"
    overwrite: bool = False


@dataclass
class PublishConfig:
    remote: str = "origin"
    branch: str = ""  # empty = current branch upstream
    commit_prefix: str = "docs"
    git_timeout_seconds: int = 60


@dataclass
class LintConfig:
    enabled: bool = True
    duplicate_h1: bool = True
    missing_h1: bool = True
    title_mismatch: bool = False


@dataclass
class LoggingConfig:
    level: str = "info"
    changelog_enabled: bool = True
    changelog_max_entries: int = 100


@dataclass
class TopicbookConfig:
    index: IndexConfig = field(default_factory=IndexConfig)
    authoring: AuthoringConfig = field(default_factory=AuthoringConfig)
    publish: PublishConfig = field(default_factory=PublishConfig)
    lint: LintConfig = field(default_factory=LintConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Loaded configs, one per repository root (lazy loaded)
_configs: Dict[str, TopicbookConfig] = {}
_config_lock = threading.RLock()
_warned_unknown_config_keys: set = set()

_KNOWN_KEYS = {
    "": {"index", "authoring", "publish", "lint", "logging"},
    "index": {
        "readme_path", "heading", "order", "reserved_files", "exclude_dirs",
        "topic_patterns", "chapter_titles", "bullet",
    },
    "authoring": {"placeholder", "overwrite"},
    "publish": {"remote", "branch", "commit_prefix", "git_timeout_seconds"},
    "lint": {"enabled", "duplicate_h1", "missing_h1", "title_mismatch"},
    "logging": {"level", "changelog_enabled", "changelog_max_entries"},
}


def _warn_unknown_keys(section: str, data: Any, known_keys: set) -> None:
    if not isinstance(data, dict):
        return
    for key in data.keys():
        token = f"{section}.{key}" if section else str(key)
        if key in known_keys:
            continue
        if token in _warned_unknown_config_keys:
            continue
        _warned_unknown_config_keys.add(token)
        if not os.environ.get("TOPICBOOK_QUIET"):
            print(f"[config] Unknown config key ignored: {token}", file=sys.stderr)


def _camel_to_snake(camel_str: str) -> str:
    """Convert camelCase to snake_case."""
    result = []
    for i, char in enumerate(camel_str):
        if char.isupper() and i > 0:
            result.append('_')
        result.append(char.lower())
    return ''.join(result)


def _load_nested(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert camelCase keys to snake_case recursively."""
    result = {}
    for key, value in data.items():
        snake_key = _camel_to_snake(key)
        if isinstance(value, dict):
            result[snake_key] = _load_nested(value)
        else:
            result[snake_key] = value
    return result


def _coerce_str_list(value: Any, *, field_name: str, default: List[str]) -> List[str]:
    """Normalize list-of-string config fields from raw JSON."""
    if value is None:
        return list(default)
    if not isinstance(value, list):
        logger.warning(
            "Invalid type for %s (expected list, got %s); using default",
            field_name,
            type(value).__name__,
        )
        return list(default)
    return [str(v).strip() for v in value if str(v).strip()]


def _build_index(data: Dict[str, Any], raw_titles: Dict[str, Any]) -> IndexConfig:
    defaults = IndexConfig()
    order = str(data.get("order", defaults.order) or defaults.order).strip().lower()
    if order not in VALID_ORDERS:
        logger.warning("Invalid index.order %r; using %r", order, defaults.order)
        order = defaults.order
    titles: Dict[str, str] = {}
    if isinstance(raw_titles, dict):
        titles = {str(k): str(v).strip() for k, v in raw_titles.items() if str(v).strip()}
    heading = str(data.get("heading", defaults.heading) or "").strip().lstrip("#").strip()
    return IndexConfig(
        readme_path=str(data.get("readme_path", defaults.readme_path) or defaults.readme_path),
        heading=heading or defaults.heading,
        order=order,
        reserved_files=_coerce_str_list(
            data.get("reserved_files"), field_name="index.reservedFiles", default=defaults.reserved_files,
        ),
        exclude_dirs=_coerce_str_list(
            data.get("exclude_dirs"), field_name="index.excludeDirs", default=defaults.exclude_dirs,
        ),
        topic_patterns=_coerce_str_list(
            data.get("topic_patterns"), field_name="index.topicPatterns", default=defaults.topic_patterns,
        ) or list(defaults.topic_patterns),
        chapter_titles=titles,
        bullet=str(data.get("bullet", defaults.bullet) or defaults.bullet),
    )


def _cache_key(root: Optional[Path]) -> str:
    root = Path(root) if root is not None else _workspace_root()
    return str(root.resolve())


def load_config(root: Optional[Path] = None) -> TopicbookConfig:
    """Load configuration for ``root`` (default: workspace root) or use defaults."""
    key = _cache_key(root)
    with _config_lock:
        cached = _configs.get(key)
        if cached is not None:
            return cached
        cfg = _load_config_inner(Path(key))
        _configs[key] = cfg
        return cfg


def _load_config_inner(root: Path) -> TopicbookConfig:
    raw_config: Dict[str, Any] = {}

    for config_path in _config_paths(root):
        if config_path.exists():
            try:
                with open(config_path, 'r', encoding='utf-8') as f:
                    raw_config = json.load(f)
                if not os.environ.get("TOPICBOOK_QUIET"):
                    print(f"[config] Loaded from {config_path}", file=sys.stderr)
                break
            except json.JSONDecodeError as e:
                print(f"[config] Failed to parse {config_path}: {e}", file=sys.stderr)
            except OSError as e:
                print(f"[config] Failed to read {config_path}: {e}", file=sys.stderr)

    if not isinstance(raw_config, dict):
        print("[config] Config root must be a JSON object; using defaults", file=sys.stderr)
        raw_config = {}

    # Chapter slugs are directory names, not camelCase keys: keep them as-is.
    raw_index = raw_config.get("index", {})
    raw_titles = raw_index.get("chapterTitles", raw_index.get("chapter_titles", {})) if isinstance(raw_index, dict) else {}

    config_data = _load_nested(raw_config)
    for section, known in _KNOWN_KEYS.items():
        payload = config_data if not section else config_data.get(section, {})
        _warn_unknown_keys(section, payload, known)

    index = _build_index(config_data.get("index", {}) or {}, raw_titles)

    authoring_data = config_data.get("authoring", {}) or {}
    authoring = AuthoringConfig(
        placeholder=str(authoring_data.get("placeholder", AuthoringConfig.placeholder)),
        overwrite=bool(authoring_data.get("overwrite", False)),
    )

    publish_data = config_data.get("publish", {}) or {}
    publish = PublishConfig(
        remote=str(publish_data.get("remote", "origin") or "origin"),
        branch=str(publish_data.get("branch", "") or ""),
        commit_prefix=str(publish_data.get("commit_prefix", "docs") or "docs"),
        git_timeout_seconds=_coerce_positive_int(publish_data.get("git_timeout_seconds", 60), 60),
    )

    lint_data = config_data.get("lint", {}) or {}
    lint = LintConfig(
        enabled=bool(lint_data.get("enabled", True)),
        duplicate_h1=bool(lint_data.get("duplicate_h1", True)),
        missing_h1=bool(lint_data.get("missing_h1", True)),
        title_mismatch=bool(lint_data.get("title_mismatch", False)),
    )

    logging_data = config_data.get("logging", {}) or {}
    logging_cfg = LoggingConfig(
        level=str(logging_data.get("level", "info") or "info").lower(),
        changelog_enabled=bool(logging_data.get("changelog_enabled", True)),
        changelog_max_entries=_coerce_positive_int(logging_data.get("changelog_max_entries", 100), 100),
    )

    return TopicbookConfig(
        index=index,
        authoring=authoring,
        publish=publish,
        lint=lint,
        logging=logging_cfg,
    )


def get_config(root: Optional[Path] = None) -> TopicbookConfig:
    """Get the loaded config for ``root`` (loads on first call)."""
    return load_config(root)


def clear_config_cache() -> None:
    """Drop every cached config without reloading (used on adapter reset)."""
    with _config_lock:
        _configs.clear()


def reload_config(root: Optional[Path] = None) -> TopicbookConfig:
    """Force reload configuration from file."""
    with _config_lock:
        clear_config_cache()
        _warned_unknown_config_keys.clear()
        return load_config(root)
