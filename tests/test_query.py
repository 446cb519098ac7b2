# tests/test_query.py

from __future__ import annotations

from taskdeck.tasks.codec import parse_tasks_md
from taskdeck.tasks.query import (
    NO_GOAL,
    NaturalKey,
    all_task_lines,
    find_task,
    goal_progress,
    resolve_ref,
    tasks_for_goal,
)
from taskdeck.tasks.task_models import TaskRef, TaskSection

DOC_TEXT = """# Tasks

## Not Started

- [ ] Draft outline | goal:g-1
- [ ] Buy milk | due:2024-01-15

## In Progress

- [ ] Write chapter | due:2024-02-01 | goal:g-1 | id:t-42

## Done

- [x] ~~Pick topic~~ | goal:g-1
"""


def test_all_task_lines_tags_positions_in_section_order() -> None:
    lines = all_task_lines(parse_tasks_md(DOC_TEXT))

    assert [(t.section, t.index, t.title) for t in lines] == [
        (TaskSection.NOT_STARTED, 0, "Draft outline"),
        (TaskSection.NOT_STARTED, 1, "Buy milk"),
        (TaskSection.IN_PROGRESS, 0, "Write chapter"),
        (TaskSection.DONE, 0, "Pick topic"),
    ]
    assert lines[2].task_id == "t-42"
    assert lines[3].done


def test_tasks_for_goal_and_without_goal() -> None:
    doc = parse_tasks_md(DOC_TEXT)
    assert [t.title for t in tasks_for_goal(doc, "g-1")] == ["Draft outline", "Write chapter", "Pick topic"]
    assert [t.title for t in tasks_for_goal(doc, NO_GOAL)] == ["Buy milk"]
    assert tasks_for_goal(doc, "g-unknown") == []


def test_goal_progress() -> None:
    doc = parse_tasks_md(DOC_TEXT)
    assert goal_progress(doc, "g-1") == (1, 3)
    assert goal_progress(doc, "g-empty") == (0, 0)


def test_natural_key_goal_absence_is_significant() -> None:
    no_goal = NaturalKey.build("Ship", "2024-01-01", None)

    assert no_goal == NaturalKey.build("  Ship ", "2024-01-01", "")
    assert no_goal != NaturalKey.build("Ship", "2024-01-01", "g-1")
    assert no_goal != NaturalKey.build("Ship", "2024-01-02", None)


def test_natural_key_needs_title_and_date() -> None:
    assert NaturalKey.build("Ship", "2024-01-01", None).usable
    assert not NaturalKey.build("Ship", None, None).usable
    assert not NaturalKey.build("  ", "2024-01-01", None).usable


def test_find_task_first_match_wins() -> None:
    doc = parse_tasks_md(
        "## In Progress\n- [ ] Ship | due:2024-01-01\n## Done\n- [x] Ship | due:2024-01-01"
    )
    found = find_task(doc, NaturalKey.build("Ship", "2024-01-01", None))
    assert found is not None
    assert found.section == TaskSection.IN_PROGRESS


def test_resolve_ref_detects_stale_position() -> None:
    doc = parse_tasks_md(DOC_TEXT)
    ref = TaskRef(TaskSection.NOT_STARTED, 1, title="Buy milk")
    assert resolve_ref(doc, ref) is not None

    # Someone else inserted a line above ours.
    doc[TaskSection.NOT_STARTED].insert(0, "[ ] Interloper")
    assert resolve_ref(doc, ref) is None
    assert resolve_ref(doc, TaskRef(TaskSection.NOT_STARTED, 9)) is None


def test_resolve_ref_follows_stable_id() -> None:
    doc = parse_tasks_md(DOC_TEXT)
    ref = TaskRef(TaskSection.IN_PROGRESS, 0, task_id="t-42", title="Write chapter")

    moved = doc[TaskSection.IN_PROGRESS].pop(0)
    doc[TaskSection.DONE].append(moved)

    found = resolve_ref(doc, ref)
    assert found is not None
    assert (found.section, found.index) == (TaskSection.DONE, 1)
