# tests/conftest.py

from __future__ import annotations

from datetime import date
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskdeck.core.state import AppState
from taskdeck.sync.synchronizer import Synchronizer

from .fakes import FakeStorage, SequentialIds

TASKS_KEY = "Dashboard/TASKS.md"
CALENDAR_KEY = "Dashboard/calendar.json"
GOALS_KEY = "Dashboard/goals.json"


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the CLI.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the developer's environment and .env.
    """
    return SimpleNamespace(
        app_name="taskdeck",
        log_level="INFO",
        data_dir=tmp_path / "data",
        workspace_root=tmp_path / "workspace",
        tasks_key=TASKS_KEY,
        calendar_key=CALENDAR_KEY,
        goals_key=GOALS_KEY,
        storage_backend="fs",
        workspace_api_url="http://localhost:3000/api/workspace",
        http_timeout_seconds=5.0,
        assign_task_ids=False,
    )


@pytest.fixture()
def storage() -> FakeStorage:
    return FakeStorage()


def make_sync(storage: FakeStorage, *, assign_task_ids: bool = False) -> Synchronizer:
    return Synchronizer(
        storage,
        tasks_key=TASKS_KEY,
        calendar_key=CALENDAR_KEY,
        goals_key=GOALS_KEY,
        assign_task_ids=assign_task_ids,
        id_factory=SequentialIds(),
        today=lambda: date(2024, 1, 10),
    )


@pytest.fixture()
def sync(storage: FakeStorage) -> Synchronizer:
    """Synchronizer without stable task ids: correlation by natural key only."""
    return make_sync(storage)


@pytest.fixture()
def sync_ids(storage: FakeStorage) -> Synchronizer:
    """Synchronizer that stamps new tasks with stable ids."""
    return make_sync(storage, assign_task_ids=True)


@pytest.fixture()
def state(settings: SimpleNamespace, storage: FakeStorage, sync: Synchronizer) -> AppState:
    """AppState wired with the in-memory storage fake."""
    return AppState(settings=settings, storage=storage, sync=sync)
