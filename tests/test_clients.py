import pytest

from hasboard.clients import ClientDirectory, admin_url, client_url, validate_fac_code
from hasboard.config import DEFAULT_CLIENTS
from hasboard.errors import ValidationError
from hasboard.models import Client


@pytest.fixture()
def clients():
    return [{"facCode": "abc", "name": "ABC Hospital", "color": "#059669"}]


@pytest.fixture()
def directory(fake, api, clients):
    fake.route("GET", "/api/clients", lambda params, body: (200, clients))
    d = ClientDirectory(api, DEFAULT_CLIENTS)
    d.refresh()
    return d


@pytest.mark.parametrize("code", ["ABC", "A1B", "abc", " dem "])
def test_valid_fac_codes(code):
    assert validate_fac_code(code) == code.strip().upper()


@pytest.mark.parametrize("code", ["AB", "ABCD", "ab!", "", None])
def test_invalid_fac_codes(code):
    with pytest.raises(ValidationError):
        validate_fac_code(code)


def test_links():
    assert client_url("http://dash.local/", "ABC") == "http://dash.local/?client=ABC"
    assert admin_url("http://dash.local") == "http://dash.local/?admin=true"


def test_refresh_upper_cases_codes(directory):
    assert [c.facCode for c in directory.clients] == ["ABC"]
    assert not directory.from_catalog


def test_catalog_used_when_offline(fake, api):
    fake.down = True
    d = ClientDirectory(api, DEFAULT_CLIENTS)
    d.refresh()
    assert d.from_catalog
    assert [c.facCode for c in d.clients] == ["DEM", "ABC", "STM", "MHS", "CCH"]
    assert d.get("stm").name == "St. Mary's Medical Center"


def test_create_rejects_duplicate_code(directory, fake):
    with pytest.raises(ValidationError, match="already in use"):
        directory.create(Client(facCode="abc", name="Another"))
    with pytest.raises(ValidationError):
        directory.create(Client(facCode="XYZ", name=" "))
    assert fake.calls_to("POST") == []


def test_create(directory, fake, clients):
    def create(params, body):
        clients.append(body)
        return 201, body

    fake.route("POST", "/api/clients", create)
    directory.create(Client(facCode="xyz", name="XYZ Medical", city="Austin"))
    sent = fake.calls_to("POST")[0]["json"]
    assert sent["facCode"] == "XYZ"
    assert "logo" not in sent
    assert directory.get("XYZ").city == "Austin"


def test_update_and_delete(directory, fake):
    fake.route("PUT", "/api/clients/ABC", (200, {}))
    fake.route("DELETE", "/api/clients/ABC", (200, {}))
    updated = directory.update("abc", city="Dallas")
    assert updated.city == "Dallas"
    assert fake.calls_to("PUT")[0]["json"]["city"] == "Dallas"
    directory.delete("abc")
    assert len(fake.calls_to("DELETE", "/api/clients/ABC")) == 1
    with pytest.raises(ValidationError):
        directory.update("QQQ", city="x")
