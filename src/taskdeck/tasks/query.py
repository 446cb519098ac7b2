# src/taskdeck/tasks/query.py

"""
Derived, read-only views over a parsed task document.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

from .codec import is_task_done, parse_task_meta, task_title
from .task_models import TASK_SECTIONS, TaskDocument, TaskLine, TaskRef, TaskSection

# Sentinel accepted by tasks_for_goal: tasks without a goal.
NO_GOAL = None


def _absent_if_blank(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


@dataclass(frozen=True, slots=True)
class NaturalKey:
    """
    (title, date, goal) triple used to correlate a task with a calendar event.

    Titles compare after trimming. A missing goal only equals another missing
    goal.
    """

    title: str
    date: str | None
    goal_id: str | None

    @classmethod
    def build(cls, title: str | None, date: str | None, goal_id: str | None) -> NaturalKey:
        return cls(
            title=(title or "").strip(),
            date=_absent_if_blank(date),
            goal_id=_absent_if_blank(goal_id),
        )

    @classmethod
    def of_task(cls, task: TaskLine) -> NaturalKey:
        return cls.build(task.title, task.due, task.goal_id)

    @property
    def usable(self) -> bool:
        """Both title and date are required for cross-store correlation."""
        return bool(self.title) and bool(self.date)


def decode_line(section: TaskSection, index: int, raw: str) -> TaskLine:
    meta = parse_task_meta(raw)
    return TaskLine(
        section=section,
        index=index,
        raw=raw,
        title=task_title(raw),
        done=is_task_done(raw),
        due=meta.due,
        goal_id=meta.goal_id,
        task_id=meta.task_id,
    )


def iter_task_lines(doc: TaskDocument) -> Iterator[TaskLine]:
    for section in TASK_SECTIONS:
        for index, raw in enumerate(doc.get(section, [])):
            yield decode_line(section, index, raw)


def all_task_lines(doc: TaskDocument) -> list[TaskLine]:
    """Every task tagged with (section, index), in canonical section order."""
    return list(iter_task_lines(doc))


def tasks_for_goal(doc: TaskDocument, goal_id: str | None) -> list[TaskLine]:
    """Tasks linked to goal_id, or tasks with no goal when goal_id is NO_GOAL."""
    if goal_id:
        return [t for t in iter_task_lines(doc) if t.goal_id == goal_id]
    return [t for t in iter_task_lines(doc) if not t.goal_id]


def goal_progress(doc: TaskDocument, goal_id: str) -> tuple[int, int]:
    """
    (done, total) over the goal's tasks.

    (0, 0) means "no tasks"; callers should not read it as complete.
    """
    tasks = tasks_for_goal(doc, goal_id)
    done = sum(1 for t in tasks if t.done)
    return done, len(tasks)


def find_task(doc: TaskDocument, key: NaturalKey) -> TaskLine | None:
    """First task matching the natural key (section order, then index order)."""
    for task in iter_task_lines(doc):
        if NaturalKey.of_task(task) == key:
            return task
    return None


def find_task_by_id(doc: TaskDocument, task_id: str) -> TaskLine | None:
    if not task_id:
        return None
    for task in iter_task_lines(doc):
        if task.task_id == task_id:
            return task
    return None


def resolve_ref(doc: TaskDocument, ref: TaskRef) -> TaskLine | None:
    """
    Locate the task a caller captured earlier.

    A stable id wins wherever the line has moved to. Without one, the position
    must still exist and, if the caller remembered a title, still hold it.
    """
    if ref.task_id:
        found = find_task_by_id(doc, ref.task_id)
        if found is not None:
            return found

    lines = doc.get(ref.section, [])
    if ref.index < 0 or ref.index >= len(lines):
        return None
    task = decode_line(ref.section, ref.index, lines[ref.index])
    if ref.task_id and task.task_id and task.task_id != ref.task_id:
        return None
    if ref.title is not None and task.title != ref.title.strip():
        return None
    return task
