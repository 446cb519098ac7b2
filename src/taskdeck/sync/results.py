# src/taskdeck/sync/results.py

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class SyncStatus(StrEnum):
    """
    Outcome of a synchronizer operation.

    PARTIAL means the first store was written and the second was not. There
    is no rollback; the stores stay divergent until the next reconcile.
    """

    OK = "ok"
    PARTIAL = "partial"
    FAILED = "failed"
    REJECTED = "rejected"
    NOT_FOUND = "not_found"


@dataclass(slots=True)
class SyncResult:
    operation: str
    status: SyncStatus = SyncStatus.OK

    # True once any store has been written by this operation.
    written: bool = False
    # Whether a correlated entity was located in the other store, and whether
    # the other store was then written.
    counterpart_found: bool = False
    counterpart_written: bool = False

    error: str | None = None
    created_ids: dict[str, str] = field(default_factory=dict)
    changed: int = 0
    detail: Any = None

    @property
    def ok(self) -> bool:
        return self.status == SyncStatus.OK

    def describe(self) -> str:
        if self.status == SyncStatus.OK:
            parts = [f"{self.operation}: ok"]
            if self.created_ids:
                parts.append(", ".join(f"{k}={v}" for k, v in self.created_ids.items()))
            if self.counterpart_written:
                parts.append("other store updated")
            return " | ".join(parts)
        return f"{self.operation}: {self.status.value} ({self.error or 'no details'})"


@dataclass(slots=True)
class ReconcileReport:
    # (title, date, goal_id) of tasks that had no event, and of events that
    # had no task, as found before any repair.
    missing_events: list[tuple[str, str, str | None]] = field(default_factory=list)
    missing_tasks: list[tuple[str, str, str | None]] = field(default_factory=list)
    dry_run: bool = False

    @property
    def clean(self) -> bool:
        return not self.missing_events and not self.missing_tasks
