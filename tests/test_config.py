import json
import logging

import pytest

from hasboard import config as config_mod
from hasboard import logging_setup
from hasboard.config import DashboardConfig, get_config, init_config, reset_config
from hasboard.models import LEGACY_PHASES, STANDARD_PHASES

ENV_VARS = [
    "HASBOARD_API_BASE_URL",
    "HASBOARD_API_TIMEOUT_SECONDS",
    "HASBOARD_PHASE_SET",
    "HASBOARD_VALIDATE_EMAIL",
    "HASBOARD_SENTINEL_ORG",
    "HASBOARD_TEMPLATE_USER",
    "HASBOARD_TEMPLATE_EMAIL",
    "HASBOARD_OFFLINE_FALLBACK",
    "HASBOARD_CACHE_URL",
    "HASBOARD_TEST_USERS",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_config()
    yield
    reset_config()


def test_defaults():
    cfg = DashboardConfig.from_env()
    assert cfg.api_base_url == DashboardConfig.DEFAULT_API_BASE_URL
    assert cfg.api_timeout_seconds == 30
    assert cfg.phases == STANDARD_PHASES
    assert cfg.default_stage == "Outstanding"
    assert cfg.validate_email is True
    assert cfg.sentinel_org == "PHG"
    assert cfg.template_user == "PHGHAS"
    assert cfg.cache_url.startswith("sqlite:///")
    assert cfg.test_users == {}
    assert cfg.client("abc").name == "ABC Hospital"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("HASBOARD_API_BASE_URL", "http://localhost:5000/")
    monkeypatch.setenv("HASBOARD_API_TIMEOUT_SECONDS", "abc")
    monkeypatch.setenv("HASBOARD_PHASE_SET", "Legacy")
    monkeypatch.setenv("HASBOARD_VALIDATE_EMAIL", "off")
    monkeypatch.setenv("HASBOARD_CACHE_URL", "sqlite://")
    cfg = DashboardConfig.from_env()
    assert cfg.api_base_url == "http://localhost:5000"
    assert cfg.api_timeout_seconds == 30
    assert cfg.phases == LEGACY_PHASES
    assert cfg.default_stage == "Design"
    assert cfg.bucket_field == "phase"
    assert cfg.validate_email is False
    assert cfg.cache_url == "sqlite://"


def test_unknown_phase_set_falls_back(monkeypatch):
    monkeypatch.setenv("HASBOARD_PHASE_SET", "kanban")
    cfg = DashboardConfig.from_env()
    assert cfg.phase_set == "standard"
    assert cfg.bucket_field == "stage"


def test_test_users(monkeypatch):
    monkeypatch.setenv(
        "HASBOARD_TEST_USERS",
        json.dumps({"abc_user": {"password": "pw", "client": "abc"}, "ops": "pw2", "empty": {"password": ""}}),
    )
    users = DashboardConfig.from_env().test_users
    assert sorted(users) == ["abc_user", "ops"]
    assert users["abc_user"].client == "ABC"
    assert users["ops"].client is None


def test_bad_test_users_json(monkeypatch):
    monkeypatch.setenv("HASBOARD_TEST_USERS", "{not json")
    assert DashboardConfig.from_env().test_users == {}


def test_init_config_is_installed_once(monkeypatch):
    first = init_config()
    monkeypatch.setenv("HASBOARD_SENTINEL_ORG", "OTHER")
    assert init_config() is first
    assert get_config() is first
    assert get_config().sentinel_org == "PHG"


def test_to_dict_hides_passwords(monkeypatch):
    monkeypatch.setenv("HASBOARD_TEST_USERS", json.dumps({"u": "secret"}))
    data = DashboardConfig.from_env().to_dict()
    assert data["test_users"] == ["u"]
    assert "secret" not in json.dumps(data)


def test_setup_logging_is_idempotent(monkeypatch, tmp_path):
    monkeypatch.setattr(logging_setup, "_configured", False)
    root = logging.getLogger()
    before = list(root.handlers)
    try:
        logging_setup.setup_logging("debug", str(tmp_path / "logs" / "dash.log"))
        added = [h for h in root.handlers if h not in before]
        logging_setup.setup_logging("debug")
        assert len([h for h in root.handlers if h not in before]) == len(added) == 2
        assert (tmp_path / "logs" / "dash.log").exists()
    finally:
        for h in root.handlers[:]:
            if h not in before:
                root.removeHandler(h)
                h.close()


def test_default_cache_path_lives_under_project():
    assert config_mod.DEFAULT_CACHE_PATH.name == "offline_cache.db"


def test_blank_env_values_count_as_unset(monkeypatch):
    monkeypatch.setenv("HASBOARD_SENTINEL_ORG", "   ")
    monkeypatch.setenv("HASBOARD_API_TIMEOUT_SECONDS", "-5")
    monkeypatch.setenv("HASBOARD_CACHE_URL", "")
    cfg = DashboardConfig.from_env()
    assert cfg.sentinel_org == "PHG"
    assert cfg.api_timeout_seconds == 1
    assert cfg.cache_url.endswith("offline_cache.db")
