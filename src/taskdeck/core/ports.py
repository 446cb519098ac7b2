# src/taskdeck/core/ports.py

"""
Ports (interfaces) used by the core.

The synchronizer depends on the WorkspaceStorage Protocol, not on a concrete
backend, so the filesystem and HTTP adapters (and test fakes) are swappable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True, slots=True)
class StoredContent:
    content: str
    # Milliseconds since epoch. Informational only: never used to reject writes.
    last_modified: float


class WorkspaceStorage(Protocol):
    """
    Whole-value key/value contract over the workspace.

    read  -> StoredContent, raises StorageNotFound for a missing key
    write -> new last_modified (full replace, never a patch)
    Both raise InvalidKeyError before doing any I/O for a bad key and
    StorageError for transport failures.
    """

    def read(self, key: str) -> StoredContent: ...

    def write(self, key: str, content: str) -> float: ...

    def delete(self, key: str) -> None: ...
