"""Runtime context port for path and operator access.

Keeps the docs, publish and config modules from importing adapter
internals directly.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

from topicbook.lib.adapter import get_adapter

if TYPE_CHECKING:
    from topicbook.lib.adapter import TopicbookAdapter


def get_adapter_instance() -> "TopicbookAdapter":
    return get_adapter()


def get_workspace_dir() -> Path:
    return get_adapter().repo_root()


def get_state_dir() -> Path:
    return get_adapter().state_dir()


def get_logs_dir() -> Path:
    return get_adapter().logs_dir()


def request_confirmation(prompt: str) -> bool:
    return get_adapter().confirm(prompt)


def send_notification(message: str) -> None:
    get_adapter().notify(message)
