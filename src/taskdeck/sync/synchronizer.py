# src/taskdeck/sync/synchronizer.py

"""
Cross-store synchronizer.

Keeps the task document, the calendar store and the goal store roughly in
agreement. Each operation is:
- read whole store A, mutate in memory, write whole store A,
- then (optionally) read whole store B, mutate, write whole store B.

The two writes are independent. If the second one fails the first is NOT
rolled back and nothing is retried; the result is reported as PARTIAL and
reconcile() can repair the drift later.

Correlation between a task and an event:
- if both carry a stable task id, the ids must be equal,
- otherwise the natural key (trimmed title, date, goal-or-none) must match.

Every mutating method returns a SyncResult. Storage errors never escape.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from datetime import date

from ..core.errors import InvalidKeyError, StorageError, StorageNotFound
from ..core.ports import WorkspaceStorage
from ..events.event_models import CalendarEvent, dump_calendar_data, parse_calendar_data
from ..goals.goal_models import (
    Goal,
    GoalStatus,
    dump_goals_data,
    palette_color,
    parse_goals_data,
    with_status,
)
from ..storage.workspace import check_key
from ..tasks.codec import (
    build_task_line,
    empty_document,
    goal_id_error,
    is_iso_date,
    parse_tasks_md,
    serialize_tasks_md,
    title_error,
)
from ..tasks.query import NaturalKey, find_task, find_task_by_id, iter_task_lines, resolve_ref
from ..tasks.task_models import TaskDocument, TaskLine, TaskRef, TaskSection
from .results import ReconcileReport, SyncResult, SyncStatus
from .snapshot import GoalSummary, Snapshot, summarize_goals

logger = logging.getLogger(__name__)

DEFAULT_TASKS_KEY = "Dashboard/TASKS.md"
DEFAULT_CALENDAR_KEY = "Dashboard/calendar.json"
DEFAULT_GOALS_KEY = "Dashboard/goals.json"


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def event_matches(event: CalendarEvent, key: NaturalKey, task_id: str | None) -> bool:
    if task_id and event.task_id:
        return event.task_id == task_id
    return event.natural_key == key


class Synchronizer:
    def __init__(
        self,
        storage: WorkspaceStorage,
        *,
        tasks_key: str = DEFAULT_TASKS_KEY,
        calendar_key: str = DEFAULT_CALENDAR_KEY,
        goals_key: str = DEFAULT_GOALS_KEY,
        assign_task_ids: bool = True,
        id_factory: Callable[[str], str] = _new_id,
        today: Callable[[], date] = date.today,
    ) -> None:
        # Bad keys are a configuration error: fail at wiring time, not mid-sync.
        self.tasks_key = check_key(tasks_key)
        self.calendar_key = check_key(calendar_key)
        self.goals_key = check_key(goals_key)

        self._storage = storage
        self._assign_task_ids = assign_task_ids
        self._id = id_factory
        self._today = today

    # ---- low-level store access ----

    def _read(self, key: str) -> tuple[str | None, float]:
        try:
            stored = self._storage.read(key)
        except StorageNotFound:
            return None, 0.0
        return stored.content, stored.last_modified

    def _load_tasks(self) -> TaskDocument:
        content, _ = self._read(self.tasks_key)
        if content is None:
            return empty_document()
        return parse_tasks_md(content)

    def _save_tasks(self, doc: TaskDocument) -> None:
        self._storage.write(self.tasks_key, serialize_tasks_md(doc))

    def _load_events(self) -> list[CalendarEvent]:
        content, _ = self._read(self.calendar_key)
        return parse_calendar_data(content)

    def _save_events(self, events: list[CalendarEvent]) -> None:
        self._storage.write(self.calendar_key, dump_calendar_data(events))

    def _load_goals(self) -> list[Goal]:
        content, _ = self._read(self.goals_key)
        return parse_goals_data(content)

    def _save_goals(self, goals: list[Goal]) -> None:
        self._storage.write(self.goals_key, dump_goals_data(goals))

    def _fail(self, result: SyncResult, exc: Exception) -> SyncResult:
        if result.written:
            result.status = SyncStatus.PARTIAL
            logger.warning(
                "%s: first store written, second write failed; stores now diverge: %s",
                result.operation,
                exc,
            )
        elif isinstance(exc, InvalidKeyError):
            result.status = SyncStatus.REJECTED
            logger.warning("%s rejected: %s", result.operation, exc)
        else:
            result.status = SyncStatus.FAILED
            logger.error("%s failed: %s", result.operation, exc)
        result.error = str(exc)
        return result

    def _crash(self, result: SyncResult) -> SyncResult:
        logger.exception("%s crashed", result.operation)
        result.status = SyncStatus.PARTIAL if result.written else SyncStatus.FAILED
        result.error = "internal error"
        return result

    @staticmethod
    def _reject(result: SyncResult, message: str) -> SyncResult:
        result.status = SyncStatus.REJECTED
        result.error = message
        return result

    @staticmethod
    def _input_error(title: str | None = None, *dates: str | None, goal_id: str | None = None) -> str | None:
        """Reject input that would not survive a round trip through TASKS.md."""
        if title is not None:
            err = title_error(title)
            if err:
                return err
        err = goal_id_error(goal_id)
        if err:
            return err
        for value in dates:
            if value and not is_iso_date(value):
                return f"invalid date {value!r} (expected YYYY-MM-DD)"
        return None

    @staticmethod
    def _not_found(result: SyncResult, message: str) -> SyncResult:
        result.status = SyncStatus.NOT_FOUND
        result.error = message
        logger.info("%s: %s", result.operation, message)
        return result

    def _task_id(self) -> str | None:
        return self._id("t") if self._assign_task_ids else None

    # ---- read side ----

    def snapshot(self) -> Snapshot:
        """
        Read all three stores. Missing or malformed stores read as empty.

        Unlike the mutating operations this raises StorageError/InvalidKeyError:
        a listing that silently shows nothing on an I/O failure is misleading.
        """
        tasks_raw, tasks_mtime = self._read(self.tasks_key)
        events_raw, events_mtime = self._read(self.calendar_key)
        goals_raw, goals_mtime = self._read(self.goals_key)
        return Snapshot(
            tasks=parse_tasks_md(tasks_raw) if tasks_raw is not None else empty_document(),
            events=parse_calendar_data(events_raw),
            goals=parse_goals_data(goals_raw),
            last_modified={
                self.tasks_key: tasks_mtime,
                self.calendar_key: events_mtime,
                self.goals_key: goals_mtime,
            },
        )

    def goal_summaries(self) -> list[GoalSummary]:
        snap = self.snapshot()
        return summarize_goals(snap.goals, snap.tasks)

    # ---- tasks ----

    def add_task(self, title: str, *, due: str | None = None, goal_id: str | None = None) -> SyncResult:
        """
        Append an unchecked task to "Not Started"; if it has a due date, also
        append a matching calendar event.
        """
        result = SyncResult("add_task")
        title = (title or "").strip()
        due = (due or "").strip() or None
        goal_id = (goal_id or "").strip() or None
        err = self._input_error(title, due, goal_id=goal_id)
        if err:
            return self._reject(result, err)

        try:
            doc = self._load_tasks()
            task_id = self._task_id()
            doc[TaskSection.NOT_STARTED].append(build_task_line(False, title, due, goal_id, task_id))
            self._save_tasks(doc)
            result.written = True
            if task_id:
                result.created_ids["task"] = task_id

            if due:
                events = self._load_events()
                event = CalendarEvent(
                    id=self._id("e"), title=title, date=due, goal_id=goal_id, task_id=task_id
                )
                events.append(event)
                self._save_events(events)
                result.counterpart_written = True
                result.created_ids["event"] = event.id
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)

        logger.info("Task added title=%r due=%s goal=%s", title, due, goal_id)
        return result

    def add_task_to_goal(self, goal_id: str, title: str, *, due: str | None = None) -> SyncResult:
        result = self.add_task(title, due=due, goal_id=goal_id)
        result.operation = "add_task_to_goal"
        return result

    def _rewrite_task(
        self,
        operation: str,
        ref: TaskRef,
        rewrite: Callable[[TaskLine], str],
    ) -> SyncResult:
        """Single-store line rewrite (no calendar propagation)."""
        result = SyncResult(operation)
        try:
            doc = self._load_tasks()
            task = resolve_ref(doc, ref)
            if task is None:
                return self._not_found(result, "task not found (stale reference?)")
            doc[task.section][task.index] = rewrite(task)
            self._save_tasks(doc)
            result.written = True
            result.changed = 1
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)
        return result

    def toggle_task(self, ref: TaskRef) -> SyncResult:
        """Flip the done flag. Not propagated to the calendar."""
        return self._rewrite_task(
            "toggle_task",
            ref,
            lambda t: build_task_line(not t.done, t.title, t.due, t.goal_id, t.task_id),
        )

    def rename_task(self, ref: TaskRef, new_title: str) -> SyncResult:
        """Change the title only. Not propagated to the calendar."""
        new_title = (new_title or "").strip()
        err = self._input_error(new_title)
        if err:
            return self._reject(SyncResult("rename_task"), err)
        return self._rewrite_task(
            "rename_task",
            ref,
            lambda t: build_task_line(t.done, new_title, t.due, t.goal_id, t.task_id),
        )

    def set_task_goal(self, ref: TaskRef, goal_id: str | None) -> SyncResult:
        """Re-link a task to another goal (or none). Not propagated to the calendar."""
        goal_id = (goal_id or "").strip() or None
        err = self._input_error(goal_id=goal_id)
        if err:
            return self._reject(SyncResult("set_task_goal"), err)
        return self._rewrite_task(
            "set_task_goal",
            ref,
            lambda t: build_task_line(t.done, t.title, t.due, goal_id, t.task_id),
        )

    def move_task(self, ref: TaskRef, to_section: TaskSection) -> SyncResult:
        """Move a line to the end of another section, unchanged."""
        result = SyncResult("move_task")
        try:
            doc = self._load_tasks()
            task = resolve_ref(doc, ref)
            if task is None:
                return self._not_found(result, "task not found (stale reference?)")
            del doc[task.section][task.index]
            doc[to_section].append(task.raw)
            self._save_tasks(doc)
            result.written = True
            result.changed = 1
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)
        return result

    def reschedule_task(self, ref: TaskRef, new_due: str) -> SyncResult:
        """
        Change a task's due date, then move the correlated event (found with
        the OLD date) to the new date. A missing event is not an error.
        """
        result = SyncResult("reschedule_task")
        new_due = (new_due or "").strip()
        if not new_due:
            return self._reject(result, "new due date is required")
        err = self._input_error(None, new_due)
        if err:
            return self._reject(result, err)

        try:
            doc = self._load_tasks()
            task = resolve_ref(doc, ref)
            if task is None:
                return self._not_found(result, "task not found (stale reference?)")
            old_key = NaturalKey.of_task(task)
            doc[task.section][task.index] = build_task_line(
                task.done, task.title, new_due, task.goal_id, task.task_id
            )
            self._save_tasks(doc)
            result.written = True
            result.changed = 1

            if old_key.usable:

                def redate(event: CalendarEvent) -> None:
                    event.date = new_due

                self._update_event_for_task(result, old_key, task.task_id, redate)
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)
        return result

    def _update_event_for_task(
        self,
        result: SyncResult,
        old_key: NaturalKey,
        task_id: str | None,
        update: Callable[[CalendarEvent], None],
    ) -> CalendarEvent | None:
        """Apply update to the first event correlated with old_key; write only on change."""
        events = self._load_events()
        for event in events:
            if not event_matches(event, old_key, task_id):
                continue
            result.counterpart_found = True
            before = (event.title, event.date, event.goal_id)
            update(event)
            if (event.title, event.date, event.goal_id) != before:
                self._save_events(events)
                result.counterpart_written = True
            return event
        logger.info("%s: no calendar event for %r on %s", result.operation, old_key.title, old_key.date)
        return None

    def edit_task(
        self,
        ref: TaskRef,
        *,
        title: str,
        due: str | None,
        goal_id: str | None,
    ) -> SyncResult:
        """
        Rewrite title, due and goal in one go.

        When the edited task has a due date, the event found with the old key
        takes the new title, date and goal; if there is none, one is created.
        Clearing the due date leaves the calendar alone.
        """
        result = SyncResult("edit_task")
        title = (title or "").strip()
        due = (due or "").strip() or None
        goal_id = (goal_id or "").strip() or None
        err = self._input_error(title, due, goal_id=goal_id)
        if err:
            return self._reject(result, err)

        try:
            doc = self._load_tasks()
            task = resolve_ref(doc, ref)
            if task is None:
                return self._not_found(result, "task not found (stale reference?)")
            old_key = NaturalKey.of_task(task)
            task_id = task.task_id
            doc[task.section][task.index] = build_task_line(task.done, title, due, goal_id, task_id)
            self._save_tasks(doc)
            result.written = True
            result.changed = 1

            if due:

                def retarget(event: CalendarEvent) -> None:
                    event.title = title
                    event.date = due
                    event.goal_id = goal_id

                moved = None
                if old_key.usable:
                    moved = self._update_event_for_task(result, old_key, task_id, retarget)
                if moved is None:
                    events = self._load_events()
                    event = CalendarEvent(
                        id=self._id("e"), title=title, date=due, goal_id=goal_id, task_id=task_id
                    )
                    events.append(event)
                    self._save_events(events)
                    result.counterpart_written = True
                    result.created_ids["event"] = event.id
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)
        return result

    def delete_task(self, ref: TaskRef) -> SyncResult:
        """
        Remove the correlated calendar event(s), then the task line.

        The calendar is written first; if the task write then fails the event
        is already gone (PARTIAL).
        """
        result = SyncResult("delete_task")
        try:
            doc = self._load_tasks()
            task = resolve_ref(doc, ref)
            if task is None:
                return self._not_found(result, "task not found (stale reference?)")
            key = NaturalKey.of_task(task)

            if key.usable:
                events = self._load_events()
                kept = [e for e in events if not event_matches(e, key, task.task_id)]
                if len(kept) != len(events):
                    result.counterpart_found = True
                    self._save_events(kept)
                    result.counterpart_written = True
                    result.written = True
                else:
                    logger.info("delete_task: no calendar event for %r on %s", key.title, key.date)

            del doc[task.section][task.index]
            self._save_tasks(doc)
            result.written = True
            result.changed = 1
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)
        logger.info("Task deleted title=%r", task.title)
        return result

    # ---- calendar ----

    def add_event(
        self,
        title: str,
        event_date: str,
        *,
        type: str | None = "event",
        color: str | None = None,
        goal_id: str | None = None,
    ) -> SyncResult:
        """Append an event, then an unchecked "Not Started" task with the same title/date."""
        result = SyncResult("add_event")
        title = (title or "").strip()
        event_date = (event_date or "").strip()
        if not event_date:
            return self._reject(result, "date is required")
        goal_id = (goal_id or "").strip() or None
        err = self._input_error(title, event_date, goal_id=goal_id)
        if err:
            return self._reject(result, err)

        try:
            task_id = self._task_id()
            events = self._load_events()
            event = CalendarEvent(
                id=self._id("e"),
                title=title,
                date=event_date,
                type=type,
                color=color,
                goal_id=goal_id,
                task_id=task_id,
            )
            events.append(event)
            self._save_events(events)
            result.written = True
            result.created_ids["event"] = event.id

            doc = self._load_tasks()
            doc[TaskSection.NOT_STARTED].append(build_task_line(False, title, event_date, goal_id, task_id))
            self._save_tasks(doc)
            result.counterpart_written = True
            if task_id:
                result.created_ids["task"] = task_id
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)

        logger.info("Event added title=%r date=%s", title, event_date)
        return result

    def _find_task_for_event(self, doc: TaskDocument, event: CalendarEvent, key: NaturalKey) -> TaskLine | None:
        if not event.task_id:
            return find_task(doc, key)
        found = find_task_by_id(doc, event.task_id)
        if found is not None:
            return found
        # An id-carrying event may still pair with a legacy line that has none.
        for task in iter_task_lines(doc):
            if not task.task_id and NaturalKey.of_task(task) == key:
                return task
        return None

    def move_event(self, event_id: str, new_date: str) -> SyncResult:
        """
        Move an event to another date, then update the correlated task's due
        date (found with the OLD date), keeping its done flag and goal.
        """
        result = SyncResult("move_event")
        new_date = (new_date or "").strip()
        if not new_date:
            return self._reject(result, "new date is required")
        err = self._input_error(None, new_date)
        if err:
            return self._reject(result, err)

        try:
            events = self._load_events()
            event = next((e for e in events if e.id == event_id), None)
            if event is None:
                return self._not_found(result, f"event {event_id} not found")
            old_key = event.natural_key
            event.date = new_date
            self._save_events(events)
            result.written = True
            result.changed = 1

            if not old_key.usable:
                return result
            doc = self._load_tasks()
            task = self._find_task_for_event(doc, event, old_key)
            if task is None:
                logger.info("move_event: no task for %r on %s", old_key.title, old_key.date)
                return result
            result.counterpart_found = True
            doc[task.section][task.index] = build_task_line(
                task.done, task.title, new_date, task.goal_id, task.task_id
            )
            self._save_tasks(doc)
            result.counterpart_written = True
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)
        return result

    def delete_event(self, event_id: str) -> SyncResult:
        """
        Remove an event, then the first correlated task (canonical section
        order, then index order). Only one task line is removed.
        """
        result = SyncResult("delete_event")
        try:
            events = self._load_events()
            event = next((e for e in events if e.id == event_id), None)
            if event is None:
                return self._not_found(result, f"event {event_id} not found")
            self._save_events([e for e in events if e.id != event_id])
            result.written = True
            result.changed = 1

            key = event.natural_key
            if not key.usable:
                return result
            doc = self._load_tasks()
            task = self._find_task_for_event(doc, event, key)
            if task is None:
                logger.info("delete_event: no task for %r on %s", key.title, key.date)
                return result
            result.counterpart_found = True
            del doc[task.section][task.index]
            self._save_tasks(doc)
            result.counterpart_written = True
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)
        return result

    # ---- goals ----

    def add_goal(
        self,
        name: str,
        *,
        status: GoalStatus = GoalStatus.PLANNING,
        target_date: str | None = None,
        description: str | None = None,
    ) -> SyncResult:
        """Create a goal; its palette color is chosen now and persisted."""
        result = SyncResult("add_goal")
        name = (name or "").strip()
        if not name:
            return self._reject(result, "name is required")
        target_date = (target_date or "").strip() or None
        err = self._input_error(None, target_date)
        if err:
            return self._reject(result, err)

        try:
            goals = self._load_goals()
            goal = Goal(
                id=self._id("g"),
                name=name,
                created_at=self._today().isoformat(),
                description=(description or "").strip() or None,
                target_date=target_date,
                status=status,
                color=palette_color(len(goals)),
            )
            goals.append(goal)
            self._save_goals(goals)
            result.written = True
            result.created_ids["goal"] = goal.id
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)
        logger.info("Goal added id=%s name=%r color=%s", goal.id, name, goal.color)
        return result

    def _rewrite_goal(self, operation: str, goal_id: str, rewrite: Callable[[Goal], Goal]) -> SyncResult:
        result = SyncResult(operation)
        try:
            goals = self._load_goals()
            for i, goal in enumerate(goals):
                if goal.id == goal_id:
                    goals[i] = rewrite(goal)
                    break
            else:
                return self._not_found(result, f"goal {goal_id} not found")
            self._save_goals(goals)
            result.written = True
            result.changed = 1
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)
        return result

    def set_goal_status(self, goal_id: str, status: GoalStatus) -> SyncResult:
        return self._rewrite_goal("set_goal_status", goal_id, lambda g: with_status(g, status))

    def update_goal(
        self,
        goal_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        target_date: str | None = None,
        milestones: list[str] | None = None,
    ) -> SyncResult:
        """Edit goal fields; None leaves a field unchanged, "" clears an optional one."""
        if name is not None and not name.strip():
            return self._reject(SyncResult("update_goal"), "name cannot be empty")
        err = self._input_error(None, (target_date or "").strip())
        if err:
            return self._reject(SyncResult("update_goal"), err)

        def rewrite(goal: Goal) -> Goal:
            if name is not None:
                goal.name = name.strip()
            if description is not None:
                goal.description = description.strip() or None
            if target_date is not None:
                goal.target_date = target_date.strip() or None
            if milestones is not None:
                goal.milestones = [m.strip() for m in milestones if m.strip()]
            return goal

        return self._rewrite_goal("update_goal", goal_id, rewrite)

    def delete_goal(self, goal_id: str) -> SyncResult:
        """
        Remove every calendar event linked to the goal, then the goal itself.

        Task lines keep their goal id (see unlink_goal_tasks).
        """
        result = SyncResult("delete_goal")
        try:
            goals = self._load_goals()
            if not any(g.id == goal_id for g in goals):
                return self._not_found(result, f"goal {goal_id} not found")

            events = self._load_events()
            kept = [e for e in events if e.goal_id != goal_id]
            if len(kept) != len(events):
                result.counterpart_found = True
                self._save_events(kept)
                result.counterpart_written = True
                result.written = True

            self._save_goals([g for g in goals if g.id != goal_id])
            result.written = True
            result.changed = len(events) - len(kept)
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)
        logger.info("Goal deleted id=%s events_removed=%d", goal_id, result.changed)
        return result

    def unlink_goal_tasks(self, goal_id: str) -> SyncResult:
        """Clear goal_id from every task line linked to it. Never run implicitly."""
        result = SyncResult("unlink_goal_tasks")
        if not goal_id:
            return self._reject(result, "goal id is required")
        try:
            doc = self._load_tasks()
            for task in iter_task_lines(doc):
                if task.goal_id == goal_id:
                    doc[task.section][task.index] = build_task_line(
                        task.done, task.title, task.due, None, task.task_id
                    )
                    result.changed += 1
            if result.changed:
                self._save_tasks(doc)
                result.written = True
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)
        return result

    # ---- repair ----

    def reconcile(self, *, dry_run: bool = False) -> SyncResult:
        """
        Sweep both stores with the correlation rule and repair drift:
        - a dated task without an event gets a new event,
        - an event without a task gets a new "Not Started" task.

        Both lists are computed before any change. The calendar is written
        first, then the task document; each at most once.
        """
        result = SyncResult("reconcile")
        report = ReconcileReport(dry_run=dry_run)
        result.detail = report

        try:
            doc = self._load_tasks()
            events = self._load_events()

            orphan_tasks: list[TaskLine] = []
            for task in iter_task_lines(doc):
                key = NaturalKey.of_task(task)
                if not key.usable:
                    continue
                if not any(event_matches(e, key, task.task_id) for e in events):
                    orphan_tasks.append(task)

            orphan_events: list[CalendarEvent] = []
            for event in events:
                key = event.natural_key
                if not key.usable:
                    continue
                if self._find_task_for_event(doc, event, key) is None:
                    orphan_events.append(event)

            report.missing_events = [(t.title, t.due or "", t.goal_id) for t in orphan_tasks]
            report.missing_tasks = [(e.title.strip(), e.date, e.goal_id) for e in orphan_events]
            if dry_run or report.clean:
                return result

            for task in orphan_tasks:
                events.append(
                    CalendarEvent(
                        id=self._id("e"),
                        title=task.title,
                        date=task.due or "",
                        goal_id=task.goal_id,
                        task_id=task.task_id,
                    )
                )
            for event in orphan_events:
                if not event.task_id:
                    event.task_id = self._task_id()
                doc[TaskSection.NOT_STARTED].append(
                    build_task_line(False, event.title.strip(), event.date, event.goal_id, event.task_id)
                )

            self._save_events(events)
            result.written = True
            result.changed = len(orphan_tasks) + len(orphan_events)
            if orphan_events:
                self._save_tasks(doc)
                result.counterpart_written = True
        except (InvalidKeyError, StorageError) as e:
            return self._fail(result, e)
        except Exception:
            return self._crash(result)

        logger.info(
            "Reconciled: %d events created, %d tasks created",
            len(report.missing_events),
            len(report.missing_tasks),
        )
        return result
