# src/taskdeck/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from ..sync.synchronizer import Synchronizer
from ..tasks.task_models import TaskRef
from .ports import WorkspaceStorage


@dataclass(frozen=True, slots=True)
class EntityRef:
    """What the console is currently editing: a task (by ref), an event or a goal (by id)."""

    kind: Literal["task", "event", "goal"]
    task: TaskRef | None = None
    entity_id: str | None = None

    def label(self) -> str:
        if self.kind == "task" and self.task is not None:
            return f"task {self.task.section.value}#{self.task.index + 1} ({self.task.title})"
        return f"{self.kind} {self.entity_id}"


@dataclass
class AppState:
    settings: Any
    storage: WorkspaceStorage
    sync: Synchronizer

    # Per-session, owned by whoever drives the console. Not shared across sessions.
    currently_editing: EntityRef | None = None
