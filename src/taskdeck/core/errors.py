# src/taskdeck/core/errors.py

"""
Storage-level failures.

Store-shape problems (bad JSON, wrong shape) are not errors: the models
fail soft to empty collections. These classes cover the storage contract.
"""

from __future__ import annotations


class InvalidKeyError(ValueError):
    """Key is empty, contains NUL, is absolute, or escapes the workspace root."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Invalid path: {key!r}")
        self.key = key


class StorageNotFound(LookupError):
    def __init__(self, key: str) -> None:
        super().__init__(f"Not found: {key!r}")
        self.key = key


class StorageError(RuntimeError):
    """Transport or I/O failure while reading or writing a key."""

    def __init__(self, key: str, message: str) -> None:
        super().__init__(f"{key}: {message}")
        self.key = key
