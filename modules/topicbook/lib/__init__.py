"""Shared library for topicbook."""

from .adapter import TopicbookAdapter, StandaloneAdapter, TestAdapter, get_adapter, set_adapter, reset_adapter
from .fileio import atomic_write_text, read_text_exact

__all__ = [
    # Adapter
    "TopicbookAdapter",
    "StandaloneAdapter",
    "TestAdapter",
    "get_adapter",
    "set_adapter",
    "reset_adapter",
    # File IO
    "atomic_write_text",
    "read_text_exact",
]
