"""Embedded full-text search and relevance ranking for task and notebook records."""

__version__ = "0.1.0"
