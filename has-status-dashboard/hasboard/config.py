from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import ClassVar, Dict, List, Optional, Tuple

from hasboard.config_utils import env_bool, env_choice, env_int, env_json, env_optional_str, env_str
from hasboard.models import BUCKET_FIELDS, PHASE_SETS, STANDARD_PHASES, Client

_REPO_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_CACHE_PATH = _REPO_ROOT / "data" / "offline_cache.db"

DEFAULT_CLIENTS: Tuple[Client, ...] = (
    Client(facCode="DEM", name="Demo Hospital", color="#2563eb", description="Demo environment for testing"),
    Client(facCode="ABC", name="ABC Hospital", color="#059669", description="ABC Hospital HAS implementation"),
    Client(facCode="STM", name="St. Mary's Medical Center", color="#dc2626", description="St. Mary's HAS implementation"),
    Client(facCode="MHS", name="Metro Health System", color="#059669", description="Metro Health HAS project"),
    Client(facCode="CCH", name="Community Care Hospital", color="#7c3aed", description="Community Care implementation"),
)


@dataclass(frozen=True)
class LoginUser:
    username: str
    password: str
    client: Optional[str] = None


@dataclass(frozen=True)
class DashboardConfig:
    """Runtime configuration for the dashboard.

    Loaded once at process start (``init_config``) and read-only afterwards.

    Env vars:
    - HASBOARD_API_BASE_URL (default: hosted status backend)
    - HASBOARD_API_TIMEOUT_SECONDS (default 30)
    - HASBOARD_PHASE_SET: standard|legacy (default standard)
    - HASBOARD_VALIDATE_EMAIL (default true)
    - HASBOARD_SENTINEL_ORG (default PHG): org that receives tasks of members
      marked not working
    - HASBOARD_TEMPLATE_USER / HASBOARD_TEMPLATE_EMAIL: member that owns
      template tasks
    - HASBOARD_OFFLINE_FALLBACK (default true), HASBOARD_CACHE_URL
    - HASBOARD_TEST_USERS: JSON, ``{"user": {"password": "...", "client": "ABC"}}``
    """

    api_base_url: str
    api_timeout_seconds: int
    phase_set: str
    validate_email: bool
    sentinel_org: str
    template_user: str
    template_email: str
    offline_fallback: bool
    cache_url: str
    test_users: Dict[str, LoginUser] = field(default_factory=dict)
    clients: Tuple[Client, ...] = DEFAULT_CLIENTS

    DEFAULT_API_BASE_URL: ClassVar[str] = "https://whiteboard-backend-1cdi.onrender.com"
    DEFAULT_TIMEOUT_SECONDS: ClassVar[int] = 30

    @property
    def phases(self) -> List[str]:
        return list(PHASE_SETS.get(self.phase_set, STANDARD_PHASES))

    @property
    def default_stage(self) -> str:
        return self.phases[0]

    @property
    def bucket_field(self) -> str:
        return BUCKET_FIELDS.get(self.phase_set, "stage")

    def client(self, fac_code: str) -> Optional[Client]:
        code = (fac_code or "").upper()
        for c in self.clients:
            if c.facCode == code:
                return c
        return None

    @classmethod
    def from_env(cls) -> "DashboardConfig":
        phase_set = env_choice("HASBOARD_PHASE_SET", PHASE_SETS, "standard")

        cache_url = env_optional_str("HASBOARD_CACHE_URL")
        if not cache_url:
            cache_url = f"sqlite:///{DEFAULT_CACHE_PATH.as_posix()}"

        return cls(
            api_base_url=env_str("HASBOARD_API_BASE_URL", cls.DEFAULT_API_BASE_URL).rstrip("/"),
            api_timeout_seconds=env_int("HASBOARD_API_TIMEOUT_SECONDS", cls.DEFAULT_TIMEOUT_SECONDS, minimum=1),
            phase_set=phase_set,
            validate_email=env_bool("HASBOARD_VALIDATE_EMAIL", True),
            sentinel_org=env_str("HASBOARD_SENTINEL_ORG", "PHG"),
            template_user=env_str("HASBOARD_TEMPLATE_USER", "PHGHAS"),
            template_email=env_str("HASBOARD_TEMPLATE_EMAIL", "has@partnershealthcaregroup.com"),
            offline_fallback=env_bool("HASBOARD_OFFLINE_FALLBACK", True),
            cache_url=cache_url,
            test_users=_parse_test_users(env_json("HASBOARD_TEST_USERS", {})),
        )

    def to_dict(self) -> dict:
        return {
            "api_base_url": self.api_base_url,
            "api_timeout_seconds": self.api_timeout_seconds,
            "phase_set": self.phase_set,
            "bucket_field": self.bucket_field,
            "validate_email": self.validate_email,
            "sentinel_org": self.sentinel_org,
            "template_user": self.template_user,
            "offline_fallback": self.offline_fallback,
            "cache_url": self.cache_url,
            "test_users": sorted(self.test_users),
            "clients": [c.facCode for c in self.clients],
        }


def _parse_test_users(raw) -> Dict[str, LoginUser]:
    users: Dict[str, LoginUser] = {}
    if not isinstance(raw, dict):
        return users
    for username, entry in raw.items():
        if isinstance(entry, dict):
            password = str(entry.get("password", ""))
            client = entry.get("client")
        else:
            password, client = str(entry), None
        if not password:
            continue
        users[str(username)] = LoginUser(
            username=str(username),
            password=password,
            client=str(client).upper() if client else None,
        )
    return users


_config: Optional[DashboardConfig] = None


def init_config(config: Optional[DashboardConfig] = None) -> DashboardConfig:
    """Install the process-wide config. Later calls return the installed one."""
    global _config
    if _config is None:
        _config = config or DashboardConfig.from_env()
    return _config


def get_config() -> DashboardConfig:
    if _config is None:
        return init_config()
    return _config


def reset_config() -> None:
    """Forget the installed config (tests only)."""
    global _config
    _config = None
