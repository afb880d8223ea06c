"""topicbook: keep a chapter/topic Markdown repository and its README index in step."""

__version__ = "0.1.0"
