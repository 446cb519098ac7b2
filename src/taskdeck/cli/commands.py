# src/taskdeck/cli/commands.py

from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import cast

from ..core.errors import InvalidKeyError, StorageError
from ..core.state import AppState, EntityRef
from ..events.event_models import events_by_date
from ..goals.goal_models import GoalStatus, goal_colors
from ..sync.results import ReconcileReport, SyncResult, SyncStatus
from ..tasks.codec import is_iso_date
from ..tasks.query import all_task_lines, decode_line, resolve_ref, tasks_for_goal
from ..tasks.task_models import TASK_SECTIONS, TaskLine, TaskRef, TaskSection

CommandEmitter = Callable[[str], None]
CommandHandler2 = Callable[[AppState, list[str]], str]
CommandHandler3 = Callable[[AppState, list[str], CommandEmitter | None], str]
CommandHandler = CommandHandler2 | CommandHandler3

logger = logging.getLogger(__name__)

SECTION_ALIASES = {
    "ns": TaskSection.NOT_STARTED,
    "todo": TaskSection.NOT_STARTED,
    "not-started": TaskSection.NOT_STARTED,
    "ip": TaskSection.IN_PROGRESS,
    "doing": TaskSection.IN_PROGRESS,
    "in-progress": TaskSection.IN_PROGRESS,
    "d": TaskSection.DONE,
    "done": TaskSection.DONE,
}

_SECTION_SHORT = {
    TaskSection.NOT_STARTED: "ns",
    TaskSection.IN_PROGRESS: "ip",
    TaskSection.DONE: "d",
}

GOAL_STATUS_ALIASES = {
    "planning": GoalStatus.PLANNING,
    "in-progress": GoalStatus.IN_PROGRESS,
    "ip": GoalStatus.IN_PROGRESS,
    "done": GoalStatus.DONE,
}


class CommandRegistry:
    """Simple slash-command registry used by the console (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            nparams = len(inspect.signature(handler).parameters)
        except (TypeError, ValueError):
            nparams = 3

        try:
            if nparams >= 3:
                h3 = cast(CommandHandler3, handler)
                return h3(state, args, emit)
            h2 = cast(CommandHandler2, handler)
            return h2(state, args)
        except (InvalidKeyError, StorageError) as e:
            # Only read paths get here; sync operations report through SyncResult.
            logger.error("/%s failed: %s", name, e)
            return f"Storage error: {e}"

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- argument helpers ----


def _split_options(args: list[str], *names: str) -> tuple[list[str], dict[str, str]]:
    """Pull "name:value" tokens out of args; the rest stay positional."""
    rest: list[str] = []
    opts: dict[str, str] = {}
    for token in args:
        key, sep, value = token.partition(":")
        if sep and key.lower() in names and value:
            opts[key.lower()] = value
        else:
            rest.append(token)
    return rest, opts


def _parse_ref_token(token: str) -> tuple[TaskSection, int] | None:
    alias, sep, num = token.partition(":")
    section = SECTION_ALIASES.get(alias.lower())
    if not sep or section is None or not num.isdigit():
        return None
    index = int(num) - 1
    if index < 0:
        return None
    return section, index


def _capture_ref(state: AppState, section: TaskSection, index: int) -> TaskRef | None:
    doc = state.sync.snapshot().tasks
    lines = doc.get(section, [])
    if index >= len(lines):
        return None
    return TaskRef.of(decode_line(section, index, lines[index]))


def _target_task(state: AppState, args: list[str]) -> tuple[TaskRef | None, list[str], str | None]:
    """
    Resolve the task a command acts on: an explicit "ns:1" style ref as first
    argument, otherwise the task selected with /edit.
    """
    if args:
        parsed = _parse_ref_token(args[0])
        if parsed is not None:
            ref = _capture_ref(state, *parsed)
            if ref is None:
                return None, args[1:], f"No task at {args[0]}."
            return ref, args[1:], None

    editing = state.currently_editing
    if editing is not None and editing.kind == "task" and editing.task is not None:
        return editing.task, args, None
    return None, args, "No task selected. Pass a ref like ns:1 or use /edit ns:1 first."


def _ref_label(line: TaskLine) -> str:
    return f"{_SECTION_SHORT[line.section]}:{line.index + 1}"


def _format_task(line: TaskLine, goal_names: dict[str, str]) -> str:
    box = "[x]" if line.done else "[ ]"
    extras = []
    if line.due:
        extras.append(f"due {line.due}")
    if line.goal_id:
        extras.append(f"goal {goal_names.get(line.goal_id, line.goal_id + ' (missing)')}")
    suffix = f" ({', '.join(extras)})" if extras else ""
    return f"  {_ref_label(line):<6} {box} {line.title}{suffix}"


def _after(state: AppState, result: SyncResult, *, keep_selection: bool = True) -> str:
    if not keep_selection or result.status == SyncStatus.NOT_FOUND:
        state.currently_editing = None
    return result.describe()


def _retitle_selection(state: AppState, ref: TaskRef, result: SyncResult, title: str) -> None:
    # Position+title refs go stale on rename; follow the new title.
    editing = state.currently_editing
    if result.ok and editing is not None and editing.task == ref:
        state.currently_editing = replace(editing, task=replace(ref, title=title))


def _ts_local(ms: float) -> str:
    if not ms:
        return "never"
    return datetime.fromtimestamp(ms / 1000).astimezone().strftime("%Y-%m-%d %H:%M:%S")


# ---- general ----


def cmd_help(state: AppState, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str]) -> str:
    s = state.settings
    snap = state.sync.snapshot()
    lines = [
        "Status:",
        f"  Storage: {s.storage_backend}"
        + (f" ({s.workspace_api_url})" if s.storage_backend == "http" else f" ({s.workspace_root})"),
        f"  Task ids on new tasks: {'ON' if s.assign_task_ids else 'OFF'}",
    ]
    for key, mtime in snap.last_modified.items():
        lines.append(f"  {key}: last modified {_ts_local(mtime)}")
    if state.currently_editing is not None:
        lines.append(f"  Editing: {state.currently_editing.label()}")
    return "\n".join(lines)


# ---- tasks ----


def cmd_tasks(state: AppState, args: list[str]) -> str:
    """
    /tasks              -> all tasks by section
    /tasks goal <id>    -> tasks linked to a goal
    /tasks nogoal       -> tasks without a goal
    """
    snap = state.sync.snapshot()
    goal_names = {g.id: g.name for g in snap.goals}

    if args and args[0].lower() == "nogoal":
        lines = tasks_for_goal(snap.tasks, None)
        header = "Tasks without a goal:"
    elif len(args) >= 2 and args[0].lower() == "goal":
        lines = tasks_for_goal(snap.tasks, args[1])
        header = f"Tasks for goal {goal_names.get(args[1], args[1])}:"
    else:
        out = []
        all_lines = all_task_lines(snap.tasks)
        for section in TASK_SECTIONS:
            out.append(section.value)
            section_lines = [t for t in all_lines if t.section == section]
            if not section_lines:
                out.append("  (empty)")
            out.extend(_format_task(t, goal_names) for t in section_lines)
        return "\n".join(out)

    if not lines:
        return f"{header}\n  (none)"
    return "\n".join([header, *(_format_task(t, goal_names) for t in lines)])


def cmd_add(state: AppState, args: list[str]) -> str:
    """/add <title> [due:YYYY-MM-DD] [goal:<id>]"""
    rest, opts = _split_options(args, "due", "goal")
    title = " ".join(rest).strip()
    if not title:
        return "Usage: /add <title> [due:YYYY-MM-DD] [goal:<goal-id>]"
    due = opts.get("due")
    if due and not is_iso_date(due):
        return f"Invalid due date: {due} (expected YYYY-MM-DD)."
    return state.sync.add_task(title, due=due, goal_id=opts.get("goal")).describe()


def cmd_edit(state: AppState, args: list[str]) -> str:
    """
    /edit ns:1   -> select a task for follow-up commands
    /edit        -> show the current selection
    /edit off    -> clear the selection
    """
    if not args:
        if state.currently_editing is None:
            return "Nothing selected."
        return f"Editing {state.currently_editing.label()}."
    if args[0].lower() == "off":
        state.currently_editing = None
        return "Selection cleared."

    parsed = _parse_ref_token(args[0])
    if parsed is None:
        return "Usage: /edit <ref> (e.g. ns:1, ip:2, d:3)"
    ref = _capture_ref(state, *parsed)
    if ref is None:
        return f"No task at {args[0]}."
    state.currently_editing = EntityRef(kind="task", task=ref)
    return f"Editing {state.currently_editing.label()}."


def cmd_done(state: AppState, args: list[str]) -> str:
    ref, _, err = _target_task(state, args)
    if ref is None:
        return err or "No task."
    return _after(state, state.sync.toggle_task(ref))


def cmd_rename(state: AppState, args: list[str]) -> str:
    ref, rest, err = _target_task(state, args)
    if ref is None:
        return err or "No task."
    title = " ".join(rest).strip()
    if not title:
        return "Usage: /rename [ref] <new title>"
    result = state.sync.rename_task(ref, title)
    _retitle_selection(state, ref, result, title)
    return _after(state, result)


def cmd_due(state: AppState, args: list[str]) -> str:
    ref, rest, err = _target_task(state, args)
    if ref is None:
        return err or "No task."
    if not rest or not is_iso_date(rest[0]):
        return "Usage: /due [ref] <YYYY-MM-DD>"
    return _after(state, state.sync.reschedule_task(ref, rest[0]))


def cmd_link(state: AppState, args: list[str]) -> str:
    """/link [ref] <goal-id|none>"""
    ref, rest, err = _target_task(state, args)
    if ref is None:
        return err or "No task."
    if not rest:
        return "Usage: /link [ref] <goal-id|none>"
    goal_id = None if rest[0].lower() == "none" else rest[0]
    return _after(state, state.sync.set_task_goal(ref, goal_id))


def cmd_mv(state: AppState, args: list[str]) -> str:
    """/mv [ref] <ns|ip|done>"""
    ref, rest, err = _target_task(state, args)
    if ref is None:
        return err or "No task."
    section = SECTION_ALIASES.get(rest[0].lower()) if rest else None
    if section is None:
        return "Usage: /mv [ref] <ns|ip|done>"
    # Without a stable id the old position means nothing after the move.
    return _after(state, state.sync.move_task(ref, section), keep_selection=bool(ref.task_id))


def cmd_rm(state: AppState, args: list[str]) -> str:
    ref, _, err = _target_task(state, args)
    if ref is None:
        return err or "No task."
    return _after(state, state.sync.delete_task(ref), keep_selection=False)


def cmd_retask(state: AppState, args: list[str]) -> str:
    """/retask [ref] <title> [due:YYYY-MM-DD|due:none] [goal:<id>|goal:none]"""
    ref, rest, err = _target_task(state, args)
    if ref is None:
        return err or "No task."
    rest, opts = _split_options(rest, "due", "goal")

    current = resolve_ref(state.sync.snapshot().tasks, ref)
    if current is None:
        state.currently_editing = None
        return "Task not found (stale reference?)."

    title = " ".join(rest).strip() or current.title
    due = opts.get("due", current.due)
    goal_id = opts.get("goal", current.goal_id)
    if due == "none":
        due = None
    if goal_id == "none":
        goal_id = None
    if due and not is_iso_date(due):
        return f"Invalid due date: {due} (expected YYYY-MM-DD)."
    result = state.sync.edit_task(ref, title=title, due=due, goal_id=goal_id)
    _retitle_selection(state, ref, result, title)
    return _after(state, result)


# ---- calendar ----


def cmd_events(state: AppState, args: list[str]) -> str:
    """/events [YYYY-MM] -> events grouped by date"""
    snap = state.sync.snapshot()
    prefix = args[0] if args else ""
    grouped = events_by_date([e for e in snap.events if e.date.startswith(prefix)])
    if not grouped:
        return "No events."
    goal_names = {g.id: g.name for g in snap.goals}
    out = []
    for day in sorted(grouped):
        out.append(day)
        for e in grouped[day]:
            goal = f" [goal {goal_names.get(e.goal_id, e.goal_id)}]" if e.goal_id else ""
            out.append(f"  {e.id}  {e.title}{goal}")
    return "\n".join(out)


def cmd_event(state: AppState, args: list[str]) -> str:
    """/event <title> date:YYYY-MM-DD [goal:<id>] [color:<name>]"""
    rest, opts = _split_options(args, "date", "goal", "color")
    title = " ".join(rest).strip()
    event_date = opts.get("date", "")
    if not title or not is_iso_date(event_date):
        return "Usage: /event <title> date:YYYY-MM-DD [goal:<goal-id>] [color:<name>]"
    return state.sync.add_event(
        title, event_date, color=opts.get("color"), goal_id=opts.get("goal")
    ).describe()


def cmd_move_event(state: AppState, args: list[str]) -> str:
    if len(args) < 2 or not is_iso_date(args[1]):
        return "Usage: /move-event <event-id> <YYYY-MM-DD>"
    return state.sync.move_event(args[0], args[1]).describe()


def cmd_unevent(state: AppState, args: list[str]) -> str:
    if not args:
        return "Usage: /unevent <event-id>"
    return state.sync.delete_event(args[0]).describe()


# ---- goals ----


def cmd_goals(state: AppState, args: list[str]) -> str:
    summaries = state.sync.goal_summaries()
    if not summaries:
        return "No goals."
    out = []
    for status in GoalStatus:
        group = [s for s in summaries if s.goal.status == status]
        if not group:
            continue
        out.append(status.value)
        for s in group:
            progress = f"{s.done}/{s.total} tasks" if s.has_progress else "no tasks"
            target = f", target {s.goal.target_date}" if s.goal.target_date else ""
            out.append(f"  {s.goal.id}  {s.goal.name} [{s.color}] {progress}{target}")
    return "\n".join(out)


def cmd_goal(state: AppState, args: list[str]) -> str:
    """/goal <name> [target:YYYY-MM-DD] [status:planning|in-progress|done]"""
    rest, opts = _split_options(args, "target", "status")
    name = " ".join(rest).strip()
    if not name:
        return "Usage: /goal <name> [target:YYYY-MM-DD] [status:planning|in-progress|done]"
    target = opts.get("target")
    if target and not is_iso_date(target):
        return f"Invalid target date: {target} (expected YYYY-MM-DD)."
    status = GOAL_STATUS_ALIASES.get(opts.get("status", "planning").lower(), GoalStatus.PLANNING)
    return state.sync.add_goal(name, status=status, target_date=target).describe()


def cmd_goal_status(state: AppState, args: list[str]) -> str:
    status = GOAL_STATUS_ALIASES.get(args[1].lower()) if len(args) >= 2 else None
    if status is None:
        return "Usage: /goal-status <goal-id> <planning|in-progress|done>"
    return state.sync.set_goal_status(args[0], status).describe()


def cmd_goal_task(state: AppState, args: list[str]) -> str:
    """/goal-task <goal-id> <title> [due:YYYY-MM-DD]"""
    if len(args) < 2:
        return "Usage: /goal-task <goal-id> <title> [due:YYYY-MM-DD]"
    rest, opts = _split_options(args[1:], "due")
    due = opts.get("due")
    if due and not is_iso_date(due):
        return f"Invalid due date: {due} (expected YYYY-MM-DD)."
    return state.sync.add_task_to_goal(args[0], " ".join(rest), due=due).describe()


def cmd_ungoal(
    state: AppState,
    args: list[str],
    emit: CommandEmitter | None = None,
) -> str:
    """
    /ungoal <goal-id>                 -> delete goal and its calendar events
    /ungoal <goal-id> --unlink-tasks  -> also clear the goal from task lines
    """
    if not args:
        return "Usage: /ungoal <goal-id> [--unlink-tasks]"
    goal_id = args[0]
    result = state.sync.delete_goal(goal_id)
    if not result.ok or "--unlink-tasks" not in args[1:]:
        return result.describe()

    if emit:
        with contextlib.suppress(Exception):
            emit(result.describe())
    unlinked = state.sync.unlink_goal_tasks(goal_id)
    if unlinked.ok:
        return f"Unlinked {unlinked.changed} task(s) from {goal_id}."
    return unlinked.describe()


# ---- repair ----


def cmd_reconcile(
    state: AppState,
    args: list[str],
    emit: CommandEmitter | None = None,
) -> str:
    dry_run = "--dry-run" in args
    if emit and not dry_run:
        with contextlib.suppress(Exception):
            emit("[SYNC] Reconciling tasks and calendar...")
    result = state.sync.reconcile(dry_run=dry_run)
    report = result.detail
    if not result.ok or not isinstance(report, ReconcileReport):
        return result.describe()
    if report.clean:
        return "Tasks and calendar agree."

    verb = "Would create" if dry_run else "Created"
    out = []
    for title, day, _ in report.missing_events:
        out.append(f"  {verb} event: {title} on {day}")
    for title, day, _ in report.missing_tasks:
        out.append(f"  {verb} task: {title} due {day}")
    return "\n".join(["Reconcile:", *out])


def cmd_colors(state: AppState, args: list[str]) -> str:
    goals = state.sync.snapshot().goals
    if not goals:
        return "No goals."
    return "\n".join(f"  {gid}: {color}" for gid, color in goal_colors(goals).items())


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage backend and last-modified times.")
registry.register("tasks", cmd_tasks, help_text="List tasks: /tasks | /tasks goal <id> | /tasks nogoal.")
registry.register("add", cmd_add, help_text="Add a task: /add <title> [due:YYYY-MM-DD] [goal:<id>].")
registry.register("edit", cmd_edit, help_text="Select a task for follow-up commands: /edit ns:1 | /edit off.")
registry.register("done", cmd_done, help_text="Toggle done: /done [ref].", aliases=["toggle"])
registry.register("rename", cmd_rename, help_text="Rename a task: /rename [ref] <title>.")
registry.register("due", cmd_due, help_text="Reschedule a task (moves its event): /due [ref] <date>.")
registry.register("link", cmd_link, help_text="Link a task to a goal: /link [ref] <goal-id|none>.")
registry.register("mv", cmd_mv, help_text="Move a task between sections: /mv [ref] <ns|ip|done>.")
registry.register("rm", cmd_rm, help_text="Delete a task and its calendar event: /rm [ref].")
registry.register("retask", cmd_retask, help_text="Edit title/due/goal at once: /retask [ref] <title> [due:] [goal:].")
registry.register("events", cmd_events, help_text="List events: /events [YYYY-MM].")
registry.register("event", cmd_event, help_text="Add an event (+ task): /event <title> date:YYYY-MM-DD.")
registry.register("move-event", cmd_move_event, help_text="Move an event (+ task due): /move-event <id> <date>.")
registry.register("unevent", cmd_unevent, help_text="Delete an event (+ its task): /unevent <id>.")
registry.register("goals", cmd_goals, help_text="Goals by status with task progress.")
registry.register("goal", cmd_goal, help_text="Add a goal: /goal <name> [target:YYYY-MM-DD] [status:...].")
registry.register("goal-status", cmd_goal_status, help_text="Set goal status: /goal-status <id> <status>.")
registry.register("goal-task", cmd_goal_task, help_text="Add a task to a goal: /goal-task <id> <title> [due:].")
registry.register("ungoal", cmd_ungoal, help_text="Delete a goal and its events: /ungoal <id> [--unlink-tasks].")
registry.register("colors", cmd_colors, help_text="Effective goal colors.")
registry.register("reconcile", cmd_reconcile, help_text="Repair task/calendar drift: /reconcile [--dry-run].")
