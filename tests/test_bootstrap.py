# tests/test_bootstrap.py

from __future__ import annotations

from pathlib import Path

import pytest

from taskdeck.cli.bootstrap import create_initial_state, create_storage, shutdown
from taskdeck.config import Settings
from taskdeck.storage.http_storage import HttpWorkspaceStorage
from taskdeck.storage.workspace import FileWorkspaceStorage


def test_initial_state_uses_filesystem_workspace(settings) -> None:
    state = create_initial_state(settings=settings)

    assert isinstance(state.storage, FileWorkspaceStorage)
    assert settings.data_dir.is_dir()
    assert settings.workspace_root.is_dir()

    assert state.sync.add_task("Hello", due="2024-01-01").ok
    assert (settings.workspace_root / "Dashboard" / "TASKS.md").read_text(encoding="utf-8").count("Hello") == 1
    assert (settings.workspace_root / "Dashboard" / "calendar.json").exists()
    shutdown(state)


def test_http_backend_selected(settings) -> None:
    settings.storage_backend = "http"
    storage = create_storage(settings)
    assert isinstance(storage, HttpWorkspaceStorage)
    storage.close()


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in (
        "TASKDECK_WORKSPACE",
        "DASHBOARD_WORKSPACE",
        "OPENCLAW_WORKSPACE",
        "TASKDECK_STORAGE",
        "TASKDECK_TASKS_KEY",
        "TASKDECK_HTTP_TIMEOUT_SECONDS",
        "TASKDECK_ASSIGN_TASK_IDS",
    ):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_settings_from_env_defaults(clean_env: pytest.MonkeyPatch) -> None:
    s = Settings.from_env()

    assert s.workspace_root == (Path.home() / ".openclaw" / "workspace").resolve()
    assert s.tasks_key == "Dashboard/TASKS.md"
    assert s.storage_backend == "fs"
    assert s.assign_task_ids is True


def test_settings_from_env_overrides(clean_env: pytest.MonkeyPatch, tmp_path: Path) -> None:
    clean_env.setenv("DASHBOARD_WORKSPACE", str(tmp_path / "legacy"))
    clean_env.setenv("TASKDECK_STORAGE", "HTTP")
    clean_env.setenv("TASKDECK_HTTP_TIMEOUT_SECONDS", "not a number")
    clean_env.setenv("TASKDECK_ASSIGN_TASK_IDS", "off")

    s = Settings.from_env()
    assert s.workspace_root == (tmp_path / "legacy").resolve()
    assert s.storage_backend == "http"
    assert s.http_timeout_seconds == 10.0
    assert s.assign_task_ids is False

    clean_env.setenv("TASKDECK_WORKSPACE", str(tmp_path / "new"))
    assert Settings.from_env().workspace_root == (tmp_path / "new").resolve()


def test_unknown_storage_backend_falls_back_to_fs(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("TASKDECK_STORAGE", "s3")
    assert Settings.from_env().storage_backend == "fs"
