# tests/fakes.py

from __future__ import annotations

from dataclasses import dataclass, field

from taskdeck.core.errors import StorageError, StorageNotFound
from taskdeck.core.ports import StoredContent
from taskdeck.storage.workspace import check_key


@dataclass(slots=True)
class FakeStorage:
    """
    In-memory WorkspaceStorage used by synchronizer and command tests.

    - Keys are validated like the real backends (InvalidKeyError)
    - `fail_writes` makes writes to the listed keys raise StorageError
    - Every successful write is recorded in `writes` for ordering assertions
    """

    files: dict[str, str] = field(default_factory=dict)
    fail_writes: set[str] = field(default_factory=set)
    writes: list[str] = field(default_factory=list)
    clock: float = 1_700_000_000_000.0

    def read(self, key: str) -> StoredContent:
        key = check_key(key)
        if key not in self.files:
            raise StorageNotFound(key)
        return StoredContent(content=self.files[key], last_modified=self.clock)

    def write(self, key: str, content: str) -> float:
        key = check_key(key)
        if key in self.fail_writes:
            raise StorageError(key, "disk full")
        self.clock += 1
        self.files[key] = content
        self.writes.append(key)
        return self.clock

    def delete(self, key: str) -> None:
        key = check_key(key)
        if key not in self.files:
            raise StorageNotFound(key)
        del self.files[key]


class SequentialIds:
    """Deterministic id factory: t-1, e-2, g-3, ..."""

    def __init__(self) -> None:
        self.n = 0

    def __call__(self, prefix: str) -> str:
        self.n += 1
        return f"{prefix}-{self.n}"
