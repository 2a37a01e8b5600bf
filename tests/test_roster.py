import pytest

from hasboard.errors import ApiError, GuardViolation, ValidationError
from hasboard.roster import TeamRoster, validate_member_fields

from conftest import make_task


@pytest.fixture()
def team():
    return [
        {"_id": "m1", "username": "alice", "email": "alice@abc.org", "org": "ABC"},
        {"_id": "m2", "username": "bob", "email": "bob@abc.org", "org": "ABC"},
    ]


@pytest.fixture()
def tasks():
    return [make_task("1", assigned_to="alice"), make_task("2", assigned_to="alice"), make_task("3")]


@pytest.fixture()
def roster(fake, api, team, tasks):
    fake.route("GET", "/api/team", lambda params, body: (200, team))
    r = TeamRoster(api, "ABC", tasks_provider=lambda: tasks)
    r.refresh()
    return r


def test_validate_member_fields():
    validate_member_fields("carol", "carol@abc.org")
    validate_member_fields("carol", "carol", check_email=False)
    for username, email in (("", "c@abc.org"), ("carol", ""), ("carol", "carol"), ("carol", "c@abc")):
        with pytest.raises(ValidationError, match="valid username and email"):
            validate_member_fields(username, email)


def test_assigned_task_count(roster):
    assert roster.assigned_task_count(roster.get("m1")) == 2
    assert roster.assigned_task_count(roster.get("m2")) == 0


def test_delete_blocked_while_member_holds_tasks(roster, fake):
    with pytest.raises(GuardViolation, match="2 assigned task"):
        roster.delete_member("m1")
    assert fake.calls_to("DELETE") == []


def test_delete_member_without_tasks(roster, fake, team):
    def delete(params, body):
        team.pop(1)
        return 200, {}

    fake.route("DELETE", "/api/team/m2", delete)
    assert roster.delete_member("m2") is True
    assert len(fake.calls_to("DELETE", "/api/team/m2")) == 1
    assert [m.username for m in roster.members] == ["alice"]


def test_delete_declined(roster, fake):
    roster.confirm = lambda _msg: False
    assert roster.delete_member("m2") is False
    assert fake.calls_to("DELETE") == []


def test_add_member(roster, fake, team):
    def invite(params, body):
        team.append(dict(body, _id="m3"))
        return 201, {"_id": "m3"}

    fake.route("POST", "/api/invite", invite)
    member = roster.add_member(" carol ", "carol@abc.org", "ABC")
    assert member.id == "m3"
    assert fake.calls_to("POST")[0]["json"] == {
        "username": "carol",
        "email": "carol@abc.org",
        "org": "ABC",
        "clientId": "ABC",
    }


def test_add_member_invalid_email_makes_no_call(roster, fake):
    with pytest.raises(ValidationError):
        roster.add_member("carol", "carol-at-abc")
    assert fake.calls_to("POST") == []


def test_add_member_without_email_check(api, fake, team):
    fake.route("GET", "/api/team", lambda params, body: (200, team))
    fake.route("POST", "/api/invite", (201, {}))
    roster = TeamRoster(api, "ABC", validate_email=False)
    roster.add_member("carol", "carol")
    assert len(fake.calls_to("POST")) == 1


def test_add_member_server_error(roster, fake):
    fake.route("POST", "/api/invite", (409, {"error": "User already exists"}))
    with pytest.raises(ApiError, match="Failed to add user: User already exists"):
        roster.add_member("alice", "alice@abc.org")


def test_edit_member(roster, fake):
    fake.route("PUT", "/api/team/m2", (200, {}))
    roster.edit_member("m2", org="PHG")
    sent = fake.calls_to("PUT")[0]["json"]
    assert sent["org"] == "PHG"
    assert sent["username"] == "bob"
    with pytest.raises(ValidationError):
        roster.edit_member("m2", email="broken")


def test_mark_not_working_reassigns_to_sentinel(roster, fake, team):
    def update(params, body):
        team[0]["not_working"] = True
        return 200, {}

    fake.route("PUT", "/api/team/m1", update)
    assert roster.mark_not_working("m1") is True
    assert fake.calls_to("PUT")[0]["json"] == {
        "not_working": True,
        "reassignTasksTo": "PHG",
        "clientId": "ABC",
    }
    assert [m.username for m in roster.active_members()] == ["bob"]


def test_unknown_member(roster):
    with pytest.raises(ValidationError):
        roster.get("nope")
