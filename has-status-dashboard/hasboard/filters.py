"""Filtering and sorting of the task table.

Pure functions over lists of ``Task``; inputs are never modified.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence

import pandas as pd

from hasboard.models import Task
from hasboard.phases import PhaseGroup, group_by_phase

logger = logging.getLogger(__name__)


def parse_need(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value or "").strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        ts = pd.to_datetime(text, errors="coerce")
        if pd.isna(ts):
            return None
        return ts.date()


def apply_filters(
    tasks: Sequence[Task],
    filter_owners: Iterable[str] = (),
    filter_statuses: Iterable[str] = (),
    filter_due_date=None,
    sort_by_status: bool = False,
    *,
    today: Optional[date] = None,
) -> List[Task]:
    owners = set(filter_owners or ())
    statuses = set(filter_statuses or ())
    due_limit = parse_need(filter_due_date) if filter_due_date else None
    if filter_due_date and due_limit is None:
        # an active due filter never lets a task through without a comparable date
        logger.warning("Unreadable due-date filter %r; no task matches", filter_due_date)
        return []
    today = today or date.today()

    out: List[Task] = []
    for t in tasks:
        if owners and t.assigned_to not in owners:
            continue
        if statuses and t.stage not in statuses:
            continue
        if due_limit is not None:
            need = parse_need(t.need)
            if need is None or not (today <= need <= due_limit):
                continue
        out.append(t)

    if sort_by_status:
        # plain string order on purpose: "In Process" < "Outstanding" < "Resolved"
        out = sorted(out, key=lambda t: t.stage)
    return out


def visible_phases(tasks: Sequence[Task], phase_names: Sequence[str]) -> List[PhaseGroup]:
    return [g for g in group_by_phase(tasks, phase_names) if g.items]


@dataclass
class FilterState:
    owners: List[str] = field(default_factory=list)
    statuses: List[str] = field(default_factory=list)
    due_date: Optional[date] = None
    sort_by_status: bool = False

    def is_active(self) -> bool:
        return bool(self.owners or self.statuses or self.due_date or self.sort_by_status)

    def apply(self, tasks: Sequence[Task], *, today: Optional[date] = None) -> List[Task]:
        return apply_filters(
            tasks,
            self.owners,
            self.statuses,
            self.due_date,
            self.sort_by_status,
            today=today,
        )

    def clear(self) -> None:
        self.owners = []
        self.statuses = []
        self.due_date = None
        self.sort_by_status = False
