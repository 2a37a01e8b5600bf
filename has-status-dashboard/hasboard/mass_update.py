"""Batch edit of selected tasks.

States: IDLE -> SELECTING -> (IDLE | APPLYING). A failed apply drops back to
SELECTING with the selection untouched.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, Set

from hasboard.errors import ApiError, ValidationError
from hasboard.models import normalize_date
from hasboard.phases import TaskStore

logger = logging.getLogger(__name__)

PATCH_FIELDS = ("stage", "assigned_to", "need", "execute")


class MassUpdateState(str, Enum):
    IDLE = "idle"
    SELECTING = "selecting"
    APPLYING = "applying"


def build_patch(**fields: Any) -> Dict[str, Any]:
    """Keep only fields that carry a value; blank means "no change"."""
    patch: Dict[str, Any] = {}
    for name in PATCH_FIELDS:
        value = fields.get(name)
        if name == "need":
            value = normalize_date(value)
        elif isinstance(value, str):
            value = value.strip()
        if value:
            patch[name] = value
    unknown = set(fields) - set(PATCH_FIELDS)
    if unknown:
        raise ValidationError(f"Cannot mass update: {', '.join(sorted(unknown))}")
    return patch


class MassUpdateCoordinator:
    def __init__(self, store: TaskStore) -> None:
        self.store = store
        self.state = MassUpdateState.IDLE
        self.selection: Set[str] = set()

    @property
    def active(self) -> bool:
        return self.state != MassUpdateState.IDLE

    def enter_selection_mode(self) -> None:
        self.selection = set()
        self.state = MassUpdateState.SELECTING

    def exit_selection_mode(self) -> None:
        self.selection = set()
        self.state = MassUpdateState.IDLE

    def toggle_selection(self, task_id: str) -> bool:
        """Flip membership of ``task_id``; returns whether it is now selected."""
        if task_id in self.selection:
            self.selection.discard(task_id)
            return False
        self.selection.add(task_id)
        return True

    def select_all(self) -> None:
        # every loaded task, not just the filtered view
        self.selection = set(self.store.task_ids())

    def clear_selection(self) -> None:
        self.selection = set()

    def is_selected(self, task_id: str) -> bool:
        return task_id in self.selection

    def apply(self, patch: Dict[str, Any]) -> int:
        updates = build_patch(**(patch or {}))
        if not self.selection:
            raise ValidationError("Please select at least one task to update")
        if not updates:
            raise ValidationError("Please choose at least one field to update")
        stage = updates.get("stage")
        if stage and stage not in self.store.phase_names:
            raise ValidationError(f"Unknown status '{stage}'")

        if stage and self.store.bucket_field != "stage":
            updates[self.store.bucket_field] = updates.pop("stage")

        ids = sorted(self.selection)
        self.state = MassUpdateState.APPLYING
        try:
            resp = self.store.api.mass_update(ids, updates, self.store.client_id)
            resp.unwrap()
        except ApiError:
            self.state = MassUpdateState.SELECTING
            raise
        logger.info("Mass updated %d task(s) for %s: %s", len(ids), self.store.client_id, updates)

        try:
            self.store.refresh()
        finally:
            # the batch went through even if the re-fetch did not
            self.exit_selection_mode()
        return len(ids)
