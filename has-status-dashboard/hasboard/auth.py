from __future__ import annotations

import hmac
from typing import Any, MutableMapping, Optional

from hasboard.config import DashboardConfig
from hasboard.errors import ValidationError
from hasboard.gateway import DashboardApiClient
from hasboard.models import TeamMember

ROLE_CLIENT = "client"
ROLE_INTERNAL = "internal"

# per-client objects cached in the Streamlit session
_SESSION_KEYS = (
    "task_store",
    "team_roster",
    "client_directory",
    "selected_client",
    "mass_update",
    "filters",
    "pending_confirm",
)


def check_credentials(username: str, password: str, config: DashboardConfig) -> Optional[str]:
    """Return the client code of a configured login user, else None."""
    user = config.test_users.get((username or "").strip())
    if user is None or not password:
        return None
    if not hmac.compare_digest(user.password, password):
        return None
    return user.client or ""


def login(username: str, password: str, config: DashboardConfig) -> bool:
    return check_credentials(username, password, config) is not None


def client_login(
    username: str, password: str, config: DashboardConfig, requested_client: Optional[str] = None
) -> str:
    """Client code the user may open. The ?client= parameter never widens access."""
    code = check_credentials(username, password, config)
    if code is None:
        raise ValidationError("Invalid username or password")
    if not code:
        raise ValidationError("This account is not linked to a client. Contact the internal team.")
    if requested_client and requested_client.upper() != code:
        raise ValidationError("This account does not have access to the requested client")
    return code


def lookup_internal_member(api: DashboardApiClient, username: str) -> Optional[TeamMember]:
    username = (username or "").strip()
    if not username:
        return None
    resp = api.get_internal_member(username)
    if not resp.ok or not isinstance(resp.data, dict):
        return None
    member = TeamMember.from_api(resp.data)
    return member if member.username else None


def is_logged_in(session_state: MutableMapping[str, Any]) -> bool:
    return bool(session_state.get("logged_in", False))


def set_login_state(
    session_state: MutableMapping[str, Any],
    state: bool,
    *,
    username: str = "",
    role: str = ROLE_CLIENT,
    client_id: Optional[str] = None,
) -> None:
    session_state["logged_in"] = state
    session_state["username"] = username if state else ""
    session_state["role"] = role if state else ""
    session_state["client_id"] = client_id if state else None


def logout(session_state: MutableMapping[str, Any]) -> None:
    set_login_state(session_state, False)
    for key in _SESSION_KEYS:
        session_state.pop(key, None)


def is_internal(session_state: MutableMapping[str, Any]) -> bool:
    return is_logged_in(session_state) and session_state.get("role") == ROLE_INTERNAL
