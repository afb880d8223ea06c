"""Error taxonomy shared by every topicbook stage."""

from __future__ import annotations


class TopicbookError(Exception):
    """Base class for errors surfaced to the CLI boundary."""


class InvalidTitleError(TopicbookError, ValueError):
    """Chapter or topic title is empty or reduces to an empty slug."""

    def __init__(self, title: str, reason: str = "title is empty after trimming"):
        self.title = title
        self.reason = reason
        super().__init__(f"Invalid title {title!r}: {reason}")


class FilesystemError(TopicbookError, OSError):
    """Directory/file creation or README rewrite failure."""

    def __init__(self, path, message: str):
        self.path = str(path)
        super().__init__(f"{message}: {self.path}")


class OutlineError(TopicbookError, ValueError):
    """Outline text could not be parsed into chapters and topics."""


class PublishAborted(TopicbookError):
    """User declined (or never answered) the push confirmation.

    Terminal, non-error state: local commits and working-tree changes stay
    in place.
    """


class IndexDriftWarning(UserWarning):
    """README managed section disagreed with the disk scan before rewrite."""


__all__ = [
    "TopicbookError",
    "InvalidTitleError",
    "FilesystemError",
    "OutlineError",
    "PublishAborted",
    "IndexDriftWarning",
]
