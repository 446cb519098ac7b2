# src/taskdeck/storage/workspace.py

from __future__ import annotations

import logging
import os
from pathlib import Path

from ..core.errors import InvalidKeyError, StorageError, StorageNotFound
from ..core.ports import StoredContent

logger = logging.getLogger(__name__)


def check_key(key: str) -> str:
    """
    Reject keys that can never be valid, whatever the backend.

    Returns the normalized relative key (forward slashes).
    """
    if not isinstance(key, str) or not key.strip() or "\0" in key:
        raise InvalidKeyError(str(key))
    normalized = os.path.normpath(key.replace("\\", "/"))
    if normalized == "." or normalized.startswith("..") or os.path.isabs(normalized):
        raise InvalidKeyError(key)
    return normalized.replace(os.sep, "/")


def resolve_key(key: str, root: Path) -> Path:
    """Absolute path for key under root; InvalidKeyError if it would escape."""
    normalized = check_key(key)
    resolved = (root / normalized).resolve()
    if resolved != root and root not in resolved.parents:
        raise InvalidKeyError(key)
    return resolved


def _mtime_ms(path: Path) -> float:
    return path.stat().st_mtime_ns / 1_000_000


class FileWorkspaceStorage:
    """
    Workspace storage on the local filesystem.

    Every write replaces the whole file (tmp file + os.replace). There is no
    locking: the last writer wins.
    """

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root).expanduser().resolve()
        logger.info("FileWorkspaceStorage ready root=%s", self._root)

    @property
    def root(self) -> Path:
        return self._root

    def read(self, key: str) -> StoredContent:
        path = resolve_key(key, self._root)
        try:
            content = path.read_text(encoding="utf-8")
            return StoredContent(content=content, last_modified=_mtime_ms(path))
        except FileNotFoundError as e:
            raise StorageNotFound(key) from e
        except (OSError, UnicodeDecodeError) as e:
            raise StorageError(key, str(e)) from e

    def write(self, key: str, content: str) -> float:
        path = resolve_key(key, self._root)
        tmp = path.with_name(path.name + ".tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(content, encoding="utf-8")
            os.replace(tmp, path)
            mtime = _mtime_ms(path)
        except OSError as e:
            raise StorageError(key, str(e)) from e
        logger.debug("Wrote %s (%d chars)", key, len(content))
        return mtime

    def delete(self, key: str) -> None:
        path = resolve_key(key, self._root)
        if path.is_dir():
            raise StorageError(key, "Cannot delete directory")
        try:
            path.unlink()
        except FileNotFoundError as e:
            raise StorageNotFound(key) from e
        except OSError as e:
            raise StorageError(key, str(e)) from e
