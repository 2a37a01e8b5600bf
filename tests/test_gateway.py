import pytest

from hasboard.errors import ApiError
from hasboard.gateway import ApiResponse, resolve, use_default


def test_success_parses_json(fake, api):
    fake.route("GET", "/api/clients", (200, [{"facCode": "ABC"}]))
    resp = api.list_clients()
    assert resp.ok
    assert resp.status_code == 200
    assert resp.data == [{"facCode": "ABC"}]
    assert fake.calls[0]["params"] is None


def test_list_unwraps_items_envelope(fake, api):
    fake.route("GET", "/api/team", (200, {"items": [{"username": "a"}, "junk"]}))
    assert api.list_team("ABC").data == [{"username": "a"}]
    assert fake.calls[0]["params"] == {"clientId": "ABC"}


def test_non_2xx_carries_server_error(fake, api):
    fake.route("POST", "/api/invite", (409, {"error": "User already exists"}))
    resp = api.invite_member({"username": "a"})
    assert not resp.ok
    assert resp.status_code == 409
    assert resp.error == "User already exists"
    with pytest.raises(ApiError) as info:
        resp.unwrap()
    assert info.value.status_code == 409
    assert str(info.value) == "User already exists"


def test_plain_text_error_body(fake, api):
    fake.route("DELETE", "/api/phases/1", (500, "Internal Server Error"))
    resp = api.delete_task("1")
    assert resp.error == "Internal Server Error"


def test_transport_failure_is_status_zero(fake, api):
    fake.down = True
    resp = api.list_tasks("ABC")
    assert not resp.ok
    assert resp.status_code == 0
    assert "connection refused" in resp.error


def test_mass_update_body(fake, api):
    fake.route("PATCH", "/api/phases/unified-mass-update", (200, {"modified": 2}))
    api.mass_update(["1", "2"], {"stage": "Resolved"}, "ABC")
    call = fake.calls_to("PATCH")[0]
    assert call["json"] == {"ids": ["1", "2"], "updates": {"stage": "Resolved"}, "clientId": "ABC"}


def test_internal_member_name_is_quoted(fake, api):
    api.get_internal_member("a b/c")
    assert fake.calls[0]["path"] == "/api/internal-team/a%20b%2Fc"


def test_resolve_strategies():
    ok = ApiResponse(ok=True, status_code=200, url="u", method="GET", data=[1])
    bad = ApiResponse(ok=False, status_code=503, url="u", method="GET", error="down")
    assert resolve(ok) == [1]
    assert resolve(bad, use_default([])) == []
    with pytest.raises(ApiError, match="down"):
        resolve(bad)
