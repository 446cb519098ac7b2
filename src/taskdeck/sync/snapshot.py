# src/taskdeck/sync/snapshot.py

from __future__ import annotations

from dataclasses import dataclass, field

from ..events.event_models import CalendarEvent
from ..goals.goal_models import Goal, effective_color
from ..tasks.query import goal_progress
from ..tasks.task_models import TaskDocument


@dataclass(slots=True)
class Snapshot:
    """All three stores as read in one pass (no consistency guarantee between them)."""

    tasks: TaskDocument
    events: list[CalendarEvent]
    goals: list[Goal]
    # key -> last_modified (ms); display only.
    last_modified: dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class GoalSummary:
    goal: Goal
    color: str
    done: int
    total: int

    @property
    def has_progress(self) -> bool:
        return self.total > 0


def summarize_goals(goals: list[Goal], doc: TaskDocument) -> list[GoalSummary]:
    out: list[GoalSummary] = []
    for index, goal in enumerate(goals):
        done, total = goal_progress(doc, goal.id)
        out.append(GoalSummary(goal=goal, color=effective_color(goal, index), done=done, total=total))
    return out
