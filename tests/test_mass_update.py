from datetime import date

import pytest

from hasboard.errors import ApiError, ValidationError
from hasboard.mass_update import MassUpdateCoordinator, MassUpdateState, build_patch
from hasboard.models import LEGACY_PHASES, STANDARD_PHASES
from hasboard.phases import TaskStore

from conftest import task_json

MASS_PATH = "/api/phases/unified-mass-update"


@pytest.fixture()
def coordinator(fake, api):
    rows = [task_json(str(i), "Outstanding") for i in range(1, 5)]

    def mass(params, body):
        for r in rows:
            if r["_id"] in body["ids"]:
                r.update(body["updates"])
        return 200, {"modified": len(body["ids"])}

    fake.route("GET", "/api/phases", lambda params, body: (200, rows))
    fake.route("PATCH", MASS_PATH, mass)
    store = TaskStore(api, "ABC", STANDARD_PHASES)
    store.refresh()
    return MassUpdateCoordinator(store)


def test_build_patch_keeps_only_filled_fields():
    assert build_patch(stage="Resolved", assigned_to="", need=None, execute="  ") == {"stage": "Resolved"}
    assert build_patch(need=date(2024, 7, 1)) == {"need": "2024-07-01"}
    with pytest.raises(ValidationError):
        build_patch(goal="nope")


def test_selection_mode(coordinator):
    assert not coordinator.active
    coordinator.enter_selection_mode()
    assert coordinator.state == MassUpdateState.SELECTING
    assert coordinator.toggle_selection("1") is True
    assert coordinator.toggle_selection("1") is False
    assert coordinator.selection == set()


def test_select_all_then_clear(coordinator):
    coordinator.enter_selection_mode()
    coordinator.select_all()
    assert coordinator.selection == {"1", "2", "3", "4"}
    coordinator.clear_selection()
    assert coordinator.selection == set()
    assert coordinator.active


def test_empty_patch_is_rejected_without_network(coordinator, fake):
    coordinator.enter_selection_mode()
    coordinator.toggle_selection("1")
    with pytest.raises(ValidationError):
        coordinator.apply({"stage": "", "assigned_to": ""})
    assert fake.calls_to("PATCH") == []
    assert coordinator.selection == {"1"}


def test_empty_selection_is_rejected(coordinator, fake):
    coordinator.enter_selection_mode()
    with pytest.raises(ValidationError):
        coordinator.apply({"stage": "Resolved"})
    assert fake.calls_to("PATCH") == []


def test_unknown_stage_is_rejected(coordinator, fake):
    coordinator.enter_selection_mode()
    coordinator.toggle_selection("1")
    with pytest.raises(ValidationError):
        coordinator.apply({"stage": "Design"})
    assert fake.calls_to("PATCH") == []


def test_apply_sends_one_batch_and_exits(coordinator, fake):
    coordinator.enter_selection_mode()
    coordinator.toggle_selection("3")
    coordinator.toggle_selection("1")
    assert coordinator.apply({"stage": "Resolved", "assigned_to": "bob"}) == 2

    calls = fake.calls_to("PATCH")
    assert len(calls) == 1
    assert calls[0]["json"] == {
        "ids": ["1", "3"],
        "updates": {"stage": "Resolved", "assigned_to": "bob"},
        "clientId": "ABC",
    }
    assert coordinator.state == MassUpdateState.IDLE
    assert coordinator.selection == set()
    assert coordinator.store.counts()["Resolved"] == 2


def test_failed_apply_keeps_selection(coordinator, fake):
    fake.route("PATCH", MASS_PATH, (500, {"error": "db locked"}))
    coordinator.enter_selection_mode()
    coordinator.toggle_selection("2")
    with pytest.raises(ApiError, match="db locked"):
        coordinator.apply({"execute": "Weekly"})
    assert coordinator.state == MassUpdateState.SELECTING
    assert coordinator.selection == {"2"}


def test_legacy_records_move_through_phase_field(fake, api):
    rows = [{"_id": "1", "goal": "G", "phase": "Design", "stage": "review"}]
    fake.route("GET", "/api/phases", lambda params, body: (200, rows))
    fake.route("PATCH", MASS_PATH, (200, {}))
    coord = MassUpdateCoordinator(TaskStore(api, "ABC", LEGACY_PHASES, bucket_field="phase"))
    coord.store.refresh()
    coord.enter_selection_mode()
    coord.select_all()
    coord.apply({"stage": "Development"})
    assert fake.calls_to("PATCH")[0]["json"]["updates"] == {"phase": "Development"}
