# tests/test_models.py

from __future__ import annotations

import json

import pytest

from taskdeck.events.event_models import (
    CalendarEvent,
    dump_calendar_data,
    events_by_date,
    parse_calendar_data,
)
from taskdeck.goals.goal_models import (
    GOAL_COLOR_PALETTE,
    Goal,
    GoalStatus,
    dump_goals_data,
    effective_color,
    goal_colors,
    parse_goals_data,
)


@pytest.mark.parametrize(
    "payload",
    [None, "", "{not json", "[]", '{"goals": {}}', '{"goals": "nope"}', '"text"', "[" * 200_000],
)
def test_malformed_goals_payload_is_empty(payload) -> None:
    assert parse_goals_data(payload) == []


@pytest.mark.parametrize(
    "payload",
    [None, "", "{not json", '{"events": null}', '{"other": []}', "42", '{"events": ' + "[" * 200_000],
)
def test_malformed_calendar_payload_is_empty(payload) -> None:
    assert parse_calendar_data(payload) == []


def test_goal_status_outside_closed_set_reads_as_planning() -> None:
    payload = json.dumps(
        {
            "goals": [
                {"id": "g-1", "name": "A", "milestones": [], "createdAt": "2024-01-01"},
                {"id": "g-2", "name": "B", "milestones": [], "createdAt": "2024-01-01", "status": "Blocked"},
                {"id": "g-3", "name": "C", "milestones": [], "createdAt": "2024-01-01", "status": "Done"},
                "not an object",
            ]
        }
    )
    goals = parse_goals_data(payload)
    assert [g.status for g in goals] == [GoalStatus.PLANNING, GoalStatus.PLANNING, GoalStatus.DONE]


def test_goal_json_keeps_camel_case_and_unknown_keys() -> None:
    raw = {
        "id": "g-1",
        "name": "Learn piano",
        "milestones": ["scales"],
        "createdAt": "2024-01-01",
        "targetDate": "2024-06-01",
        "status": "In Progress",
        "color": "rose",
        "pinned": True,
    }
    goal = Goal.from_json(raw)
    assert goal.target_date == "2024-06-01"
    assert goal.extra == {"pinned": True}

    out = json.loads(dump_goals_data([goal]))["goals"][0]
    assert out == raw


def test_effective_color_prefers_stored_color() -> None:
    goals = [
        Goal(id="a", name="A", created_at="2024-01-01"),
        Goal(id="b", name="B", created_at="2024-01-01", color="violet"),
        Goal(id="c", name="C", created_at="2024-01-01"),
    ]
    assert effective_color(goals[0], 0) == GOAL_COLOR_PALETTE[0]
    assert goal_colors(goals) == {"a": "emerald", "b": "violet", "c": "rose"}
    assert effective_color(goals[0], len(GOAL_COLOR_PALETTE)) == GOAL_COLOR_PALETTE[0]


def test_calendar_event_round_trip_and_grouping() -> None:
    payload = json.dumps(
        {
            "events": [
                {"id": "e1", "title": "Dentist", "date": "2024-01-15", "type": "event", "goalId": "g-1"},
                {"id": "e2", "title": "Gym", "date": "2024-01-15", "color": "sky", "allDay": True},
                {"id": "e3", "title": "Review", "date": "2024-01-16", "taskId": "t-1"},
            ]
        }
    )
    events = parse_calendar_data(payload)
    assert events[0].goal_id == "g-1"
    assert events[1].extra == {"allDay": True}
    assert events[2].task_id == "t-1"

    assert json.loads(dump_calendar_data(events)) == json.loads(payload)
    grouped = events_by_date(events)
    assert [e.id for e in grouped["2024-01-15"]] == ["e1", "e2"]
    assert [e.id for e in grouped["2024-01-16"]] == ["e3"]


def test_event_natural_key_trims_title() -> None:
    event = CalendarEvent(id="e1", title="  Ship  ", date="2024-01-01")
    assert event.natural_key.title == "Ship"
    assert event.natural_key.goal_id is None
