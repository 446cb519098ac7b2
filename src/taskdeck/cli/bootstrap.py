# src/taskdeck/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks the storage backend (filesystem or dashboard HTTP endpoint),
- wires storage + synchronizer into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import WorkspaceStorage
from ..core.state import AppState
from ..storage.http_storage import HttpWorkspaceStorage
from ..storage.workspace import FileWorkspaceStorage
from ..sync.synchronizer import Synchronizer

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    if settings.storage_backend == "fs":
        settings.workspace_root.mkdir(parents=True, exist_ok=True)


def create_storage(settings) -> WorkspaceStorage:
    if settings.storage_backend == "http":
        return HttpWorkspaceStorage(
            settings.workspace_api_url,
            timeout_seconds=settings.http_timeout_seconds,
        )
    return FileWorkspaceStorage(settings.workspace_root)


def create_initial_state(*, settings=None, storage: WorkspaceStorage | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Settings and storage are injectable for tests; if settings is None,
    falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)
    if storage is None:
        storage = create_storage(settings)

    sync = Synchronizer(
        storage,
        tasks_key=settings.tasks_key,
        calendar_key=settings.calendar_key,
        goals_key=settings.goals_key,
        assign_task_ids=settings.assign_task_ids,
    )
    logger.info(
        "State ready backend=%s tasks=%s calendar=%s goals=%s",
        settings.storage_backend,
        sync.tasks_key,
        sync.calendar_key,
        sync.goals_key,
    )
    return AppState(settings=settings, storage=storage, sync=sync)


def shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    close = getattr(state.storage, "close", None)
    if close is None:
        return
    try:
        close()
    except Exception:
        logger.debug("Storage close failed.", exc_info=True)
