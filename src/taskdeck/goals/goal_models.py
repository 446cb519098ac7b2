# src/taskdeck/goals/goal_models.py

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any

logger = logging.getLogger(__name__)

GOAL_COLOR_PALETTE: tuple[str, ...] = (
    "emerald",
    "amber",
    "rose",
    "cyan",
    "sky",
    "fuchsia",
    "violet",
    "blue",
)

_KNOWN_KEYS = {"id", "name", "description", "milestones", "createdAt", "targetDate", "status", "color"}


class GoalStatus(StrEnum):
    PLANNING = "Planning"
    IN_PROGRESS = "In Progress"
    DONE = "Done"

    @classmethod
    def normalize(cls, raw: Any) -> GoalStatus:
        """Anything outside the closed set (including missing) is Planning."""
        if not isinstance(raw, str):
            return cls.PLANNING
        try:
            return cls(raw)
        except ValueError:
            return cls.PLANNING


@dataclass(slots=True)
class Goal:
    id: str
    name: str
    created_at: str
    milestones: list[str] = field(default_factory=list)
    description: str | None = None
    target_date: str | None = None
    status: GoalStatus = GoalStatus.PLANNING
    color: str | None = None

    # Unknown keys from goals.json, written back untouched.
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, raw: dict[str, Any]) -> Goal:
        milestones = raw.get("milestones")
        return cls(
            id=str(raw.get("id") or ""),
            name=str(raw.get("name") or ""),
            created_at=str(raw.get("createdAt") or ""),
            milestones=[str(m) for m in milestones] if isinstance(milestones, list) else [],
            description=_opt_str(raw.get("description")),
            target_date=_opt_str(raw.get("targetDate")),
            status=GoalStatus.normalize(raw.get("status")),
            color=_opt_str(raw.get("color")),
            extra={k: v for k, v in raw.items() if k not in _KNOWN_KEYS},
        )

    def to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        out["id"] = self.id
        out["name"] = self.name
        if self.description is not None:
            out["description"] = self.description
        out["milestones"] = list(self.milestones)
        out["createdAt"] = self.created_at
        if self.target_date:
            out["targetDate"] = self.target_date
        out["status"] = self.status.value
        if self.color:
            out["color"] = self.color
        return out


def _opt_str(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value)
    return s if s != "" else None


def parse_goals_data(content: str | None) -> list[Goal]:
    """
    Parse goals.json. Malformed JSON or a non-list "goals" gives [].
    Non-object entries are skipped.
    """
    if not content:
        return []
    try:
        data = json.loads(content)
    except (TypeError, ValueError, RecursionError):
        logger.warning("goals payload is not valid JSON; treating as empty")
        return []
    goals = data.get("goals") if isinstance(data, dict) else None
    if not isinstance(goals, list):
        return []
    return [Goal.from_json(g) for g in goals if isinstance(g, dict)]


def dump_goals_data(goals: list[Goal]) -> str:
    return json.dumps({"goals": [g.to_json() for g in goals]}, ensure_ascii=False, indent=2)


def palette_color(index: int) -> str:
    return GOAL_COLOR_PALETTE[index % len(GOAL_COLOR_PALETTE)]


def effective_color(goal: Goal, index: int) -> str:
    """
    Stored color, or the palette color for the goal's position.

    The fallback follows collection order, so it can change when goals ahead
    of this one are reordered or deleted. Goals created here always get a
    persisted color.
    """
    return goal.color or palette_color(index)


def goal_colors(goals: list[Goal]) -> dict[str, str]:
    return {g.id: effective_color(g, i) for i, g in enumerate(goals)}


def with_status(goal: Goal, status: GoalStatus) -> Goal:
    return replace(goal, status=status)
