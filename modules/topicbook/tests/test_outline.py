"""Tests for outline.py: JSON and plain-text outline intake."""

import json

import pytest

from topicbook.core.errors import OutlineError
from topicbook.core.outline import parse_outline


def _pairs(outline):
    return [(c.title, list(c.topics)) for c in outline.chapters]


class TestJsonOutline:
    def test_chapters_object(self):
        text = json.dumps({"chapters": [
            {"title": "Frontend Security", "topics": ["Cross-Site Scripting (XSS)", "Cross-Site Request Forgery (CSRF)"]},
            {"title": "Performance Optimization", "topics": ["Tree Shaking"]},
        ]})
        outline = parse_outline(text)
        assert _pairs(outline) == [
            ("Frontend Security", ["Cross-Site Scripting (XSS)", "Cross-Site Request Forgery (CSRF)"]),
            ("Performance Optimization", ["Tree Shaking"]),
        ]
        assert outline.topic_count() == 3

    def test_mapping(self):
        outline = parse_outline('{"A": ["x", "y"], "B": []}')
        assert _pairs(outline) == [("A", ["x", "y"]), ("B", [])]

    def test_list_of_pairs(self):
        outline = parse_outline('[["A", ["x"]], {"title": "B", "topics": ["y"]}]')
        assert _pairs(outline) == [("A", ["x"]), ("B", ["y"])]

    def test_invalid_json(self):
        with pytest.raises(OutlineError, match="Invalid JSON"):
            parse_outline('{"chapters": [')

    def test_topic_must_be_string(self):
        with pytest.raises(OutlineError, match=r"chapters\[0\]\.topics\[1\]"):
            parse_outline('{"A": ["x", 3]}')

    def test_topics_must_be_list(self):
        with pytest.raises(OutlineError):
            parse_outline('{"A": "x"}')

    def test_scalar_root_rejected(self):
        with pytest.raises(OutlineError):
            parse_outline("42", fmt="json")

    def test_to_dict_round_trip(self):
        outline = parse_outline('{"A": ["x"]}')
        assert parse_outline(json.dumps(outline.to_dict())).to_dict() == outline.to_dict()


class TestTextOutline:
    def test_basic(self):
        text = """
# Course outline
Frontend Security:
  - Cross-Site Scripting (XSS)
  - Cross-Site Request Forgery (CSRF)

Performance Optimization
  * Tree Shaking
  1. Code Splitting
"""
        assert _pairs(parse_outline(text)) == [
            ("Frontend Security", ["Cross-Site Scripting (XSS)", "Cross-Site Request Forgery (CSRF)"]),
            ("Performance Optimization", ["Tree Shaking", "Code Splitting"]),
        ]

    def test_indented_topic_without_marker(self):
        assert _pairs(parse_outline("A\n    plain topic\n")) == [("A", ["plain topic"])]

    def test_unindented_bullet_is_topic(self):
        assert _pairs(parse_outline("A\n- x\n+ y\n")) == [("A", ["x", "y"])]

    def test_topic_before_chapter(self):
        with pytest.raises(OutlineError, match="line 1"):
            parse_outline("- orphan\nA\n")

    def test_empty_outline(self):
        with pytest.raises(OutlineError, match="no chapters"):
            parse_outline("# only a comment\n\n")

    def test_unknown_format(self):
        with pytest.raises(OutlineError):
            parse_outline("A", fmt="yaml")


class TestMerging:
    def test_duplicate_chapters_merged(self):
        outline = parse_outline("Frontend Security\n- A\nFrontend-Security\n- B\n")
        assert _pairs(outline) == [("Frontend Security", ["A", "B"])]

    def test_duplicate_topics_dropped(self, caplog):
        outline = parse_outline('{"A": ["XSS", "xss", "CSRF"]}')
        assert _pairs(outline) == [("A", ["XSS", "CSRF"])]
        assert any("Duplicate topic" in r.getMessage() for r in caplog.records)

    def test_unsanitizable_titles_kept_for_later_failure(self):
        outline = parse_outline('{"A": ["()", "ok"]}')
        assert _pairs(outline) == [("A", ["()", "ok"])]
