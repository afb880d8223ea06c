"""Tests for config.py: camelCase conversion, search paths, section parsing."""

import json
from pathlib import Path

import pytest

from topicbook.config import (
    IndexConfig,
    TopicbookConfig,
    _camel_to_snake,
    _config_paths,
    _load_nested,
    get_config,
    load_config,
    reload_config,
)
from topicbook.lib.adapter import StandaloneAdapter, set_adapter


def _write(path: Path, data) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


# ---------------------------------------------------------------------------
# _camel_to_snake / _load_nested
# ---------------------------------------------------------------------------

class TestCamelToSnake:
    def test_basic(self):
        assert _camel_to_snake("readmePath") == "readme_path"

    def test_digits_and_caps(self):
        assert _camel_to_snake("duplicateH1") == "duplicate_h1"

    def test_already_snake(self):
        assert _camel_to_snake("git_timeout_seconds") == "git_timeout_seconds"

    def test_nested(self):
        assert _load_nested({"index": {"readmePath": "X", "excludeDirs": ["a"]}}) == {
            "index": {"readme_path": "X", "exclude_dirs": ["a"]},
        }


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

class TestLoadConfig:
    """Tests for load_config() against files under the repository root."""

    def test_defaults_without_file(self, adapter):
        cfg = load_config()
        assert isinstance(cfg, TopicbookConfig)
        assert cfg.index == IndexConfig()
        assert cfg.index.heading == "Chapters and Topics"
        assert cfg.publish.remote == "origin"
        assert cfg.logging.changelog_max_entries == 100

    def test_search_path_order(self, repo, adapter):
        paths = _config_paths()
        assert paths[0] == repo / ".topicbook" / "config.json"
        assert paths[1] == repo / "topicbook.json"
        assert paths[2] == Path.home() / ".topicbook" / "config.json"

    def test_state_dir_config_wins(self, repo, adapter):
        _write(repo / ".topicbook" / "config.json", {"index": {"heading": "Contents"}})
        _write(repo / "topicbook.json", {"index": {"heading": "Ignored"}})
        assert reload_config().index.heading == "Contents"

    def test_home_config_fallback(self, adapter):
        _write(Path.home() / ".topicbook" / "config.json", {"publish": {"remote": "upstream"}})
        assert reload_config().publish.remote == "upstream"

    def test_full_sections(self, repo, adapter):
        _write(repo / "topicbook.json", {
            "index": {
                "readmePath": "docs/INDEX.md",
                "heading": "## Table of Contents",
                "order": "Discovery",
                "reservedFiles": ["README.md"],
                "excludeDirs": ["build"],
                "topicPatterns": ["*.md", "*.markdown"],
                "chapterTitles": {"Frontend-Security": "Frontend Security (Web)"},
                "bullet": "- ",
            },
            "authoring": {"placeholder": "TBD", "overwrite": True},
            "publish": {"remote": "upstream", "branch": "main", "commitPrefix": "content", "gitTimeoutSeconds": 5},
            "lint": {"titleMismatch": True, "missingH1": False},
            "logging": {"level": "DEBUG", "changelogEnabled": False, "changelogMaxEntries": 10},
        })
        cfg = reload_config()
        assert cfg.index.readme_path == "docs/INDEX.md"
        assert cfg.index.heading == "Table of Contents"
        assert cfg.index.order == "discovery"
        assert cfg.index.reserved_files == ["README.md"]
        assert cfg.index.exclude_dirs == ["build"]
        assert cfg.index.topic_patterns == ["*.md", "*.markdown"]
        assert cfg.index.chapter_titles == {"Frontend-Security": "Frontend Security (Web)"}
        assert cfg.index.bullet == "- "
        assert cfg.authoring.placeholder == "TBD"
        assert cfg.authoring.overwrite is True
        assert cfg.publish.branch == "main"
        assert cfg.publish.commit_prefix == "content"
        assert cfg.publish.git_timeout_seconds == 5
        assert cfg.lint.title_mismatch is True
        assert cfg.lint.missing_h1 is False
        assert cfg.lint.duplicate_h1 is True
        assert cfg.logging.level == "debug"
        assert cfg.logging.changelog_enabled is False
        assert cfg.logging.changelog_max_entries == 10

    def test_invalid_order_falls_back(self, repo, adapter):
        _write(repo / "topicbook.json", {"index": {"order": "random"}})
        assert reload_config().index.order == "lexical"

    def test_invalid_list_type_falls_back(self, repo, adapter):
        _write(repo / "topicbook.json", {"index": {"excludeDirs": "build"}})
        assert reload_config().index.exclude_dirs == IndexConfig().exclude_dirs

    def test_invalid_timeout_falls_back(self, repo, adapter):
        _write(repo / "topicbook.json", {"publish": {"gitTimeoutSeconds": "soon"}})
        assert reload_config().publish.git_timeout_seconds == 60

    def test_malformed_json_uses_defaults(self, repo, adapter, capsys):
        (repo / "topicbook.json").write_text("{not json", encoding="utf-8")
        cfg = reload_config()
        assert cfg.index == IndexConfig()
        assert "Failed to parse" in capsys.readouterr().err

    def test_non_object_root(self, repo, adapter, capsys):
        _write(repo / "topicbook.json", ["not", "an", "object"])
        assert reload_config().index == IndexConfig()
        assert "must be a JSON object" in capsys.readouterr().err

    def test_unknown_key_warned_once(self, repo, adapter, capsys, monkeypatch):
        monkeypatch.delenv("TOPICBOOK_QUIET")
        _write(repo / "topicbook.json", {"index": {"headng": "typo"}, "extra": 1})
        reload_config()
        load_config()
        err = capsys.readouterr().err
        assert err.count("Unknown config key ignored: index.headng") == 1
        assert "Unknown config key ignored: extra" in err


class TestCaching:
    def test_get_config_is_cached(self, adapter):
        assert get_config() is get_config()

    def test_reload_returns_fresh(self, adapter):
        first = get_config()
        assert reload_config() is not first

    def test_set_adapter_drops_cache(self, tmp_path, repo, adapter):
        _write(repo / "topicbook.json", {"index": {"heading": "First"}})
        assert get_config().index.heading == "First"
        other = tmp_path / "other"
        _write(other / "topicbook.json", {"index": {"heading": "Second"}})
        set_adapter(StandaloneAdapter(root=other))
        assert get_config().index.heading == "Second"

    @pytest.mark.parametrize("env_root", [True, False])
    def test_root_from_env_or_cwd(self, tmp_path, monkeypatch, env_root):
        root = tmp_path / "envroot"
        _write(root / "topicbook.json", {"publish": {"remote": "from-root"}})
        if env_root:
            monkeypatch.setenv("TOPICBOOK_ROOT", str(root))
        else:
            monkeypatch.chdir(root)
        assert reload_config().publish.remote == "from-root"
