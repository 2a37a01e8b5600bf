"""Streamlit glue: one API client per process, one store per browser session."""
from __future__ import annotations

from typing import Optional

import streamlit as st

from hasboard import auth
from hasboard.clients import ClientDirectory
from hasboard.config import DashboardConfig, get_config, init_config
from hasboard.filters import FilterState
from hasboard.gateway import DashboardApiClient
from hasboard.logging_setup import setup_logging
from hasboard.mass_update import MassUpdateCoordinator
from hasboard.offline_store import OfflineSnapshotFallback, OfflineSnapshotStore
from hasboard.phases import TaskStore
from hasboard.roster import TeamRoster


def bootstrap() -> DashboardConfig:
    setup_logging()
    return init_config()


@st.cache_resource(show_spinner=False)
def _api_client(base_url: str, timeout_seconds: int) -> DashboardApiClient:
    return DashboardApiClient(base_url=base_url, timeout_seconds=timeout_seconds)


@st.cache_resource(show_spinner=False)
def _snapshot_store(cache_url: str) -> OfflineSnapshotStore:
    return OfflineSnapshotStore(cache_url)


def get_api() -> DashboardApiClient:
    cfg = get_config()
    return _api_client(cfg.api_base_url, cfg.api_timeout_seconds)


def fallback_for(key: str) -> Optional[OfflineSnapshotFallback]:
    cfg = get_config()
    if not cfg.offline_fallback:
        return None
    return OfflineSnapshotFallback(_snapshot_store(cfg.cache_url), key)


def query_param(key: str) -> Optional[str]:
    val = st.query_params.get(key)
    if val is None:
        return None
    if isinstance(val, list):
        return str(val[0]) if val else None
    return str(val)


def require_login(*, internal: bool = False) -> None:
    if not auth.is_logged_in(st.session_state):
        st.warning("Please sign in on the Home page first.")
        st.stop()
    if internal and not auth.is_internal(st.session_state):
        st.error("This page is only available to the internal team.")
        st.stop()


def active_client_id() -> Optional[str]:
    """Client users are pinned to their own code; internal users pick one."""
    if not auth.is_internal(st.session_state):
        return st.session_state.get("client_id")
    return st.session_state.get("selected_client") or query_param("client")


def get_store(client_id: str) -> TaskStore:
    store: Optional[TaskStore] = st.session_state.get("task_store")
    if store is None or store.client_id != client_id:
        cfg = get_config()
        store = TaskStore(
            get_api(),
            client_id,
            cfg.phases,
            fallback=fallback_for(f"phases:{client_id}"),
            bucket_field=cfg.bucket_field,
        )
        store.refresh()
        st.session_state.task_store = store
        st.session_state.pop("mass_update", None)
        st.session_state.pop("filters", None)
    return store


def get_roster(client_id: str, store: TaskStore) -> TeamRoster:
    roster: Optional[TeamRoster] = st.session_state.get("team_roster")
    if roster is None or roster.client_id != client_id:
        cfg = get_config()
        roster = TeamRoster(
            get_api(),
            client_id,
            validate_email=cfg.validate_email,
            sentinel_org=cfg.sentinel_org,
            fallback=fallback_for(f"team:{client_id}"),
        )
        roster.refresh()
        st.session_state.team_roster = roster
    # the store may have been swapped since the roster was built
    roster.tasks_provider = lambda: store.tasks
    return roster


def get_coordinator(store: TaskStore) -> MassUpdateCoordinator:
    coord: Optional[MassUpdateCoordinator] = st.session_state.get("mass_update")
    if coord is None or coord.store is not store:
        coord = MassUpdateCoordinator(store)
        st.session_state.mass_update = coord
    return coord


def get_filters() -> FilterState:
    if "filters" not in st.session_state:
        st.session_state.filters = FilterState()
    return st.session_state.filters


def get_directory() -> ClientDirectory:
    directory: Optional[ClientDirectory] = st.session_state.get("client_directory")
    if directory is None:
        cfg = get_config()
        directory = ClientDirectory(get_api(), cfg.clients, fallback=fallback_for("clients"))
        directory.refresh()
        st.session_state.client_directory = directory
    return directory


def confirm_button(label: str, key: str, message: str) -> bool:
    """Two-click confirmation; returns True on the confirming click."""
    pending = st.session_state.get("pending_confirm")
    if pending == key:
        st.warning(message)
        c1, c2 = st.columns(2)
        if c1.button("Yes, continue", key=f"{key}-yes", type="primary"):
            st.session_state.pop("pending_confirm", None)
            return True
        if c2.button("Cancel", key=f"{key}-no"):
            st.session_state.pop("pending_confirm", None)
            st.rerun()
        return False
    if st.button(label, key=key):
        st.session_state.pending_confirm = key
        st.rerun()
    return False
