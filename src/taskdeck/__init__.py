"""File-backed task, goal and calendar documents kept in sync."""

__version__ = "0.3.0"
