"""In-memory task list for one client, grouped into phases.

The store never merges: after every successful mutation it re-fetches the
whole collection and rebuilds the groups.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from hasboard.errors import ValidationError
from hasboard.gateway import DashboardApiClient, Fallback, resolve
from hasboard.models import FREQUENCIES, Task

logger = logging.getLogger(__name__)

TABLE_COLUMNS = ["id", "goal", "need", "comments", "execute", "stage", "commentArea", "assigned_to"]


@dataclass
class PhaseGroup:
    name: str
    items: List[Task] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.items)


def group_by_phase(tasks: Iterable[Task], phase_names: Sequence[str]) -> List[PhaseGroup]:
    """Partition tasks by stage, one group per phase, in phase order.

    Tasks whose stage is not a known phase are left out and logged.
    """
    groups = {name: PhaseGroup(name) for name in phase_names}
    for t in tasks:
        group = groups.get(t.stage)
        if group is None:
            logger.warning("Task %s has unknown stage %r; not shown in any phase", t.id, t.stage)
            continue
        group.items.append(t)
    return [groups[name] for name in phase_names]


def validate_task(task: Task, phase_names: Sequence[str]) -> None:
    if not task.goal.strip():
        raise ValidationError("Please enter a goal")
    if task.stage not in phase_names:
        raise ValidationError(f"Unknown status '{task.stage}'. Expected one of: {', '.join(phase_names)}")
    if task.execute and task.execute not in FREQUENCIES:
        raise ValidationError(f"Unknown frequency '{task.execute}'")


def tasks_to_df(tasks: Sequence[Task]) -> pd.DataFrame:
    if not tasks:
        return pd.DataFrame(columns=TABLE_COLUMNS)
    df = pd.DataFrame([{"id": t.id, **t.to_payload()} for t in tasks])
    df["need"] = pd.to_datetime(df["need"], errors="coerce").dt.date
    return df[TABLE_COLUMNS]


class TaskStore:
    def __init__(
        self,
        api: DashboardApiClient,
        client_id: str,
        phase_names: Sequence[str],
        *,
        fallback: Optional[Fallback] = None,
        bucket_field: str = "stage",
    ) -> None:
        self.api = api
        self.client_id = client_id
        self.phase_names = list(phase_names)
        self.fallback = fallback
        self.bucket_field = bucket_field
        self.tasks: List[Task] = []
        self.groups: List[PhaseGroup] = group_by_phase([], self.phase_names)

    def refresh(self) -> List[Task]:
        resp = self.api.list_tasks(self.client_id)
        if resp.ok:
            remember = getattr(self.fallback, "remember", None)
            if remember is not None:
                remember(resp.data)
        raw = resolve(resp, self.fallback) or []
        self.tasks = [Task.from_api(r, self.bucket_field) for r in raw if isinstance(r, dict)]
        self.groups = group_by_phase(self.tasks, self.phase_names)
        return self.tasks

    def task_ids(self) -> List[str]:
        return [t.id for t in self.tasks if t.id]

    def get(self, task_id: str) -> Optional[Task]:
        for t in self.tasks:
            if t.id == task_id:
                return t
        return None

    def add_task(self, task: Task) -> Task:
        task = task.with_changes(clientId=self.client_id, assigned_to=task.assigned_to or "team")
        validate_task(task, self.phase_names)
        data = self.api.create_task(task.to_payload(self.bucket_field)).unwrap()
        logger.info("Created task %r for %s", task.goal, self.client_id)
        self.refresh()
        return Task.from_api(data, self.bucket_field) if isinstance(data, dict) else task

    def update_task(self, task_id: str, **changes: Any) -> Task:
        current = self.get(task_id)
        if current is None:
            raise ValidationError(f"Task {task_id} is no longer loaded; refresh and try again")
        updated = current.with_changes(**changes)
        validate_task(updated, self.phase_names)
        self.api.update_task(task_id, updated.to_payload(self.bucket_field)).unwrap()
        logger.info("Updated task %s (%s)", task_id, ", ".join(sorted(changes)))
        self.refresh()
        return updated

    def delete_task(self, task_id: str) -> None:
        self.api.delete_task(task_id).unwrap()
        logger.info("Deleted task %s", task_id)
        self.refresh()

    def save_edits(self, edits: Iterable[Tuple[str, Dict[str, Any]]]) -> int:
        """Apply ``(task_id, changes)`` pairs in order; stops at the first error."""
        saved = 0
        for task_id, changes in edits:
            self.update_task(task_id, **changes)
            saved += 1
        return saved

    def refreshing(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        """Run a bulk write, then reload even if it failed partway."""
        try:
            return fn(*args, **kwargs)
        finally:
            self.refresh()

    def clear_client_tasks(self) -> int:
        """Delete every loaded task of the client; returns how many went."""
        removed = 0
        for task_id in self.task_ids():
            resp = self.api.delete_task(task_id)
            if not resp.ok:
                logger.warning("Clearing %s stopped after %d task(s)", self.client_id, removed)
                self.refresh()
                raise resp.to_error(f"Removed {removed} task(s) before failing: {resp.error}")
            removed += 1
        logger.info("Cleared %d task(s) for %s", removed, self.client_id)
        self.refresh()
        return removed

    def counts(self) -> Dict[str, int]:
        return {g.name: len(g) for g in self.groups}
