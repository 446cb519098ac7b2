# src/taskdeck/events/event_models.py

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from ..tasks.query import NaturalKey

logger = logging.getLogger(__name__)

_KNOWN_KEYS = {"id", "title", "date", "type", "color", "goalId", "taskId"}


@dataclass(slots=True)
class CalendarEvent:
    """
    Entry of calendar.json.

    type/color are presentation hints and are passed through as-is.
    goal_id is a weak back-reference to a Goal. task_id is set on events
    created from a task that carries a stable id.
    """

    id: str
    title: str
    date: str
    type: str | None = None
    color: str | None = None
    goal_id: str | None = None
    task_id: str | None = None

    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> CalendarEvent:
        return cls(
            id=str(raw.get("id") or ""),
            title=str(raw.get("title") or ""),
            date=str(raw.get("date") or ""),
            type=_opt_str(raw.get("type")),
            color=_opt_str(raw.get("color")),
            goal_id=_opt_str(raw.get("goalId")),
            task_id=_opt_str(raw.get("taskId")),
            extra={k: v for k, v in raw.items() if k not in _KNOWN_KEYS},
        )

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        out["id"] = self.id
        out["title"] = self.title
        out["date"] = self.date
        if self.type:
            out["type"] = self.type
        if self.color:
            out["color"] = self.color
        if self.goal_id:
            out["goalId"] = self.goal_id
        if self.task_id:
            out["taskId"] = self.task_id
        return out

    @property
    def natural_key(self) -> NaturalKey:
        return NaturalKey.build(self.title, self.date, self.goal_id)


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value)
    return s if s != "" else None


def parse_calendar_data(content: str | None) -> list[CalendarEvent]:
    """Parse calendar.json; anything malformed gives []."""
    if not content:
        return []
    try:
        data = json.loads(content)
    except (TypeError, ValueError, RecursionError):
        logger.warning("calendar payload is not valid JSON; treating as empty")
        return []
    events = data.get("events") if isinstance(data, dict) else None
    if not isinstance(events, list):
        return []
    return [CalendarEvent.from_json(e) for e in events if isinstance(e, dict)]


def dump_calendar_data(events: list[CalendarEvent]) -> str:
    return json.dumps({"events": [e.to_json() for e in events]}, ensure_ascii=False, indent=2)


def events_by_date(events: list[CalendarEvent]) -> dict[str, list[CalendarEvent]]:
    out: dict[str, list[CalendarEvent]] = {}
    for e in events:
        out.setdefault(e.date, []).append(e)
    return out
