# src/taskdeck/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- No external service required at import time.
- Legacy dashboard variables (DASHBOARD_WORKSPACE, OPENCLAW_WORKSPACE) still work.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

ENV_PREFIX = "TASKDECK"

DEFAULT_WORKSPACE = Path.home() / ".openclaw" / "workspace"

STORAGE_BACKENDS = ("fs", "http")


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


def resolve_workspace_root() -> Path:
    raw = _first_env(_k("WORKSPACE"), "DASHBOARD_WORKSPACE", "OPENCLAW_WORKSPACE")
    root = Path(raw).expanduser() if raw else DEFAULT_WORKSPACE
    return root.resolve()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Workspace ----
    workspace_root: Path
    tasks_key: str
    calendar_key: str
    goals_key: str

    # ---- Storage backend ----
    storage_backend: str
    workspace_api_url: str
    http_timeout_seconds: float

    # ---- Sync ----
    assign_task_ids: bool

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskdeck").strip() or "taskdeck"
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/taskdeck"))

        backend = _env(_k("STORAGE"), "fs").strip().lower()
        if backend not in STORAGE_BACKENDS:
            backend = "fs"

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            workspace_root=resolve_workspace_root(),
            tasks_key=_env(_k("TASKS_KEY"), "Dashboard/TASKS.md"),
            calendar_key=_env(_k("CALENDAR_KEY"), "Dashboard/calendar.json"),
            goals_key=_env(_k("GOALS_KEY"), "Dashboard/goals.json"),
            storage_backend=backend,
            workspace_api_url=_env(_k("WORKSPACE_API_URL"), "http://localhost:3000/api/workspace"),
            http_timeout_seconds=max(1.0, _env_float(_k("HTTP_TIMEOUT_SECONDS"), 10.0)),
            assign_task_ids=_env_bool(_k("ASSIGN_TASK_IDS"), True),
        )


SETTINGS = Settings.from_env()


def get_settings() -> Settings:
    return SETTINGS
