#!/usr/bin/env python3
"""topicbook command line.

Usage:
  topicbook sync-index [--check] [--json]        # Regenerate the README index
  topicbook new-chapter "Frontend Security"
  topicbook new-topic "Frontend Security" "Cross-Site Scripting (XSS)"
  topicbook intake outline.json [--no-sync]      # Batch-create chapters/topics
  topicbook lint [--json]                        # Duplicate/missing H1 report
  topicbook publish [--message MSG] [--no-push] [paths ...]
  topicbook changelog [--limit N] [--json]
  topicbook slug "Performance Optimization"
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import warnings
from pathlib import Path
from typing import List, Optional

from topicbook.config import get_config
from topicbook.core.docs.authoring import apply_outline, create_chapter, create_topic
from topicbook.core.docs.changelog import get_changelog
from topicbook.core.docs.index_sync import sync_index
from topicbook.core.docs.lint import lint_repository
from topicbook.core.errors import IndexDriftWarning, PublishAborted, TopicbookError
from topicbook.core.outline import parse_outline
from topicbook.core.publish.publisher import Publisher, build_commit_message
from topicbook.core.sanitize import sanitize_title
from topicbook.lib.adapter import StandaloneAdapter, set_adapter
from topicbook.lib.runtime_context import get_workspace_dir


def _configure_logging(verbose: bool) -> None:
    level_name = "debug" if verbose else get_config().logging.level
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="[%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
    )
    # Drift is already logged by the synchronizer; don't print it twice.
    warnings.simplefilter("ignore", IndexDriftWarning)


def _print_sync(result, check: bool, as_json: bool) -> None:
    if as_json:
        print(json.dumps(result.to_dict(), indent=2))
        return
    if check:
        state = "would change" if result.changed else "up to date"
    else:
        state = "updated" if result.written else "up to date"
    topics = sum(len(c.topics) for c in result.chapters)
    print(f"{result.readme_path}: {state} ({len(result.chapters)} chapters, {topics} topics; {result.report.summary()})")


# ============================================================================
# Commands
# ============================================================================

def cmd_sync_index(args) -> int:
    result = sync_index(get_workspace_dir(), dry_run=args.check)
    _print_sync(result, args.check, args.json)
    if args.check and (result.changed or result.drift):
        return 1
    return 0


def cmd_new_chapter(args) -> int:
    chapter = create_chapter(get_workspace_dir(), args.title)
    print(f"Chapter ready: {chapter.slug}/")
    return 0


def cmd_new_topic(args) -> int:
    root = get_workspace_dir()
    result = create_topic(root, args.chapter, args.title, overwrite=True if args.force else None)
    if result.created:
        print(f"Created {result.topic.rel_path}")
    else:
        print(f"Exists  {result.topic.rel_path} (use --force to overwrite)")
    if not args.no_sync:
        _print_sync(sync_index(root), check=False, as_json=False)
    return 0


def cmd_intake(args) -> int:
    root = get_workspace_dir()
    if args.outline == "-":
        text = sys.stdin.read()
    else:
        try:
            text = Path(args.outline).read_text(encoding="utf-8")
        except OSError as e:
            print(f"Error: cannot read outline {args.outline}: {e}", file=sys.stderr)
            return 1
    outline = parse_outline(text, fmt=args.format)
    report = apply_outline(root, outline, overwrite=True if args.force else None)

    for r in report.created:
        print(f"  + {r.topic.rel_path}")
    for r in report.existing:
        print(f"  = {r.topic.rel_path}")
    if report.failures:
        print(f"\nFailures ({len(report.failures)}):")
        for f in report.failures:
            where = f"{f.chapter} / {f.topic}" if f.topic is not None else f.chapter
            print(f"  ! {where}: {f.error}")
    print(f"\n{report.summary()}")

    if not args.no_sync:
        _print_sync(sync_index(root), check=False, as_json=False)
    if report.created:
        print(f"Suggested commit: {build_commit_message(report.added_pairs(), get_config().publish.commit_prefix)}")
    return 0 if report.ok else 1


def cmd_lint(args) -> int:
    findings = lint_repository(get_workspace_dir())
    if args.json:
        print(json.dumps([f.to_dict() for f in findings], indent=2))
    elif findings:
        for f in findings:
            print(str(f))
        print(f"\n{len(findings)} finding(s)")
    else:
        print("No lint findings.")
    return 1 if findings else 0


def cmd_publish(args) -> int:
    root = get_workspace_dir()
    if not args.no_sync:
        _print_sync(sync_index(root), check=False, as_json=False)
    publisher = Publisher(root)
    try:
        result = publisher.publish(paths=args.paths or None, message=args.message, push=not args.no_push)
    except PublishAborted as e:
        print(f"Aborted. {e}")
        return 0
    print(result.message)
    if result.output and not result.ok:
        print(result.output, file=sys.stderr)
    return 0 if result.ok else 1


def cmd_changelog(args) -> int:
    entries = get_changelog(limit=args.limit)
    if args.json:
        print(json.dumps(entries, indent=2))
        return 0
    if not entries:
        print("No runs recorded.")
        return 0
    for e in entries:
        status = "ok" if e.get("success") else "FAILED"
        extra = e.get("status") or ("changed" if e.get("changed") else "unchanged")
        print(f"{e.get('timestamp', '?')}  {e.get('kind', '?'):12s} {status:6s} {extra}")
    return 0


def cmd_slug(args) -> int:
    print(sanitize_title(args.title))
    return 0


# ============================================================================
# CLI
# ============================================================================

_TITLE_RULES = (
    "Titles become slugs: spaces and dashes collapse to '-', other punctuation is dropped. "
    "Slugs longer than 200 UTF-8 bytes and Windows device names (CON, PRN, AUX, NUL, COM1-9, "
    "LPT1-9, matched case-insensitively, so 'Con' and 'aux.txt' too) are rejected."
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="topicbook", description="Chapter/topic Markdown repository manager")
    parser.add_argument("--root", help="Repository root (default: TOPICBOOK_ROOT or cwd)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Command")

    p = subparsers.add_parser("sync-index", help="Regenerate the README chapter/topic index")
    p.add_argument("--check", action="store_true", help="Report drift/changes without writing (exit 1 if stale)")
    p.add_argument("--json", action="store_true", help="JSON output")
    p.set_defaults(func=cmd_sync_index)

    p = subparsers.add_parser("new-chapter", help="Create a chapter directory", epilog=_TITLE_RULES)
    p.add_argument("title", help="Chapter title")
    p.set_defaults(func=cmd_new_chapter)

    p = subparsers.add_parser("new-topic", help="Create a topic stub and sync the index", epilog=_TITLE_RULES)
    p.add_argument("chapter", help="Chapter title")
    p.add_argument("title", help="Topic title")
    p.add_argument("--force", action="store_true", help="Overwrite an existing topic file")
    p.add_argument("--no-sync", action="store_true", help="Skip index synchronization")
    p.set_defaults(func=cmd_new_topic)

    p = subparsers.add_parser("intake", help="Create chapters/topics from an outline")
    p.add_argument("outline", help="Outline file (JSON or text), or - for stdin")
    p.add_argument("--format", choices=["json", "text"], help="Outline format (auto-detected)")
    p.add_argument("--force", action="store_true", help="Overwrite existing topic files")
    p.add_argument("--no-sync", action="store_true", help="Skip index synchronization")
    p.set_defaults(func=cmd_intake)

    p = subparsers.add_parser("lint", help="Report duplicate or missing top-level headings")
    p.add_argument("--json", action="store_true", help="JSON output")
    p.set_defaults(func=cmd_lint)

    p = subparsers.add_parser("publish", help="Stage, commit and (after confirmation) push")
    p.add_argument("paths", nargs="*", help="Paths to stage (default: everything)")
    p.add_argument("-m", "--message", help="Commit message (default: generated)")
    p.add_argument("--no-push", action="store_true", help="Commit only")
    p.add_argument("--no-sync", action="store_true", help="Skip index synchronization first")
    p.set_defaults(func=cmd_publish)

    p = subparsers.add_parser("changelog", help="Show recent sync/publish runs")
    p.add_argument("--limit", type=int, default=20, help="Max entries to show")
    p.add_argument("--json", action="store_true", help="JSON output")
    p.set_defaults(func=cmd_changelog)

    p = subparsers.add_parser("slug", help="Print the sanitized slug for a title", epilog=_TITLE_RULES)
    p.add_argument("title")
    p.set_defaults(func=cmd_slug)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.root:
        set_adapter(StandaloneAdapter(root=Path(args.root)))
    _configure_logging(args.verbose)

    try:
        return args.func(args)
    except TopicbookError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
