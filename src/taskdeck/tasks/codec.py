# src/taskdeck/tasks/codec.py

"""
Codec for the plain-text task document (TASKS.md).

On disk:

    # Tasks

    ## Not Started

    - [ ] Buy milk | due:2024-01-15

    ## In Progress

    - [x] ~~Write report~~ | goal:g-123

    ## Done

In memory every task is kept as a normalized line ("[ ] rest" / "[x] rest").
Metadata lives after the first " | " as "key:value" pairs joined by " | ".
Recognized keys: due, goal, id. Anything else is ignored on read.

Serialization is a normalization: comments, extra blank lines and unknown
sections are dropped.
"""

from __future__ import annotations

import re
from datetime import date

from .task_models import TASK_SECTIONS, TaskDocument, TaskMeta, TaskSection

DOCUMENT_TITLE = "# Tasks"
META_SEPARATOR = " | "
STRIKE = "~~"

_HEADER_RE = re.compile(r"^##\s+(.+)$")
_TASK_RE = re.compile(r"^-\s+\[([ xX])\]\s+(.+)$")
_CHECKBOX_RE = re.compile(r"^\[\s?x?\s?\]\s+", re.IGNORECASE)
_DONE_RE = re.compile(r"^\[x\]", re.IGNORECASE)

_META_KEYS = {
    "due": "due",
    "goal": "goal_id",
    "id": "task_id",
}


def empty_document() -> TaskDocument:
    return {section: [] for section in TASK_SECTIONS}


def _base(line: str) -> str:
    """Line without checkbox marker and strikethrough delimiters."""
    return _CHECKBOX_RE.sub("", line, count=1).replace(STRIKE, "").strip()


def _split(line: str) -> tuple[str, str | None]:
    base = _base(line)
    head, sep, tail = base.partition(META_SEPARATOR)
    if not sep:
        return base, None
    return head.strip(), tail


def task_title(line: str) -> str:
    return _split(line)[0]


def is_task_done(line: str) -> bool:
    return bool(_DONE_RE.match(line))


def parse_task_meta(line: str) -> TaskMeta:
    """
    Parse the metadata tail of a normalized line.

    Pairs without a value and unknown keys are skipped silently.
    """
    _, tail = _split(line)
    if tail is None:
        return TaskMeta()

    values: dict[str, str] = {}
    for pair in tail.split(META_SEPARATOR):
        key, sep, val = pair.partition(":")
        key = key.strip()
        val = val.strip()
        if not sep or not val:
            continue
        field = _META_KEYS.get(key)
        if field is not None:
            values[field] = val
    return TaskMeta(**values)


def build_task_line(
    done: bool,
    title: str,
    due: str | None = None,
    goal_id: str | None = None,
    task_id: str | None = None,
) -> str:
    """
    Inverse of task_title / is_task_done / parse_task_meta.

    Checked lines render the title with strikethrough. Literal "~~" in the
    title is dropped so it cannot break the markers.
    """
    main = title.replace(STRIKE, "")
    parts = []
    if due:
        parts.append(f"due:{due}")
    if goal_id:
        parts.append(f"goal:{goal_id}")
    if task_id:
        parts.append(f"id:{task_id}")

    line = f"[x] {STRIKE}{main}{STRIKE}" if done else f"[ ] {main}"
    if parts:
        line += META_SEPARATOR + META_SEPARATOR.join(parts)
    return line


def _inline_error(value: str, what: str) -> str | None:
    # A value followed by META_SEPARATOR must not produce an earlier separator
    # ("Ship |" would), or the metadata tail starts inside it.
    if value.splitlines() != [value]:
        return f"{what} must be a single line"
    if STRIKE in value:
        return f"{what} cannot contain {STRIKE!r}"
    if (value + META_SEPARATOR).find(META_SEPARATOR) != len(value):
        return f"{what} cannot contain {META_SEPARATOR.strip()!r} preceded by a space"
    return None


def title_error(title: str) -> str | None:
    """Reason a title cannot live on a single task line, or None."""
    if not title.strip():
        return "title is required"
    return _inline_error(title, "title")


def goal_id_error(goal_id: str | None) -> str | None:
    """Same check for a goal id written into the metadata tail. None is fine."""
    if goal_id is None:
        return None
    if not goal_id or goal_id != goal_id.strip():
        return "goal id cannot be blank or padded"
    return _inline_error(goal_id, "goal id")


def is_iso_date(value: str) -> bool:
    """YYYY-MM-DD only (date.fromisoformat alone also takes 20240115)."""
    if len(value) != 10 or value[4] != "-" or value[7] != "-":
        return False
    try:
        date.fromisoformat(value)
    except ValueError:
        return False
    return True


def parse_tasks_md(content: str) -> TaskDocument:
    """
    Parse TASKS.md text. Never fails: unrecognized lines are ignored and all
    canonical sections are present in the result.
    """
    doc = empty_document()
    current = TaskSection.NOT_STARTED

    # Only "\n" ends a line; str.splitlines would also split on \x0b, \u2028, ...
    for line in (content or "").split("\n"):
        line = line.removesuffix("\r")
        header = _HEADER_RE.match(line)
        if header:
            section = TaskSection.from_heading(header.group(1))
            if section is not None:
                current = section
            continue

        task = _TASK_RE.match(line)
        if not task:
            continue
        rest = task.group(2).strip()
        if not rest:
            continue
        box = "[x]" if task.group(1).lower() == "x" else "[ ]"
        doc[current].append(f"{box} {rest}")

    return doc


def serialize_tasks_md(doc: TaskDocument) -> str:
    lines = [DOCUMENT_TITLE, ""]
    for section in TASK_SECTIONS:
        lines.append(f"## {section.value}")
        lines.append("")
        for raw in doc.get(section, []):
            lines.append(f"- {raw}")
        lines.append("")
    return "\n".join(lines)
