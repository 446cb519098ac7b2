# src/taskdeck/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class TaskSection(StrEnum):
    """
    Status buckets of the task document.

    The set is closed and the declaration order is the canonical order used
    for serialization, flattening and first-match searches.
    """

    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @classmethod
    def from_heading(cls, raw: str | None) -> TaskSection | None:
        if not raw:
            return None
        try:
            return cls(raw.strip())
        except ValueError:
            return None


TASK_SECTIONS: tuple[TaskSection, ...] = tuple(TaskSection)

# Section -> normalized lines ("[ ] ..." / "[x] ...").
TaskDocument = dict[TaskSection, list[str]]


@dataclass(frozen=True, slots=True)
class TaskMeta:
    due: str | None = None
    goal_id: str | None = None
    task_id: str | None = None


@dataclass(frozen=True, slots=True)
class TaskLine:
    """A task line decoded from the document, tagged with its position."""

    section: TaskSection
    index: int
    raw: str
    title: str
    done: bool
    due: str | None = None
    goal_id: str | None = None
    task_id: str | None = None


@dataclass(frozen=True, slots=True)
class TaskRef:
    """
    Pointer to a task captured by a caller.

    (section, index) is only positional and can go stale between the read
    that produced it and the write that uses it. task_id / title let the
    resolver detect or survive that.
    """

    section: TaskSection
    index: int
    task_id: str | None = None
    title: str | None = None

    @classmethod
    def of(cls, line: TaskLine) -> TaskRef:
        return cls(section=line.section, index=line.index, task_id=line.task_id, title=line.title)
