"""Core topicbook operations."""
