import pandas as pd
import streamlit as st

from hasboard.errors import DashboardError
from hasboard.models import org_options
from hasboard.session import (
    active_client_id,
    bootstrap,
    confirm_button,
    get_api,
    get_roster,
    get_store,
    require_login,
)
from hasboard.theme import set_theme

cfg = bootstrap()
set_theme(page_title="Team", page_icon="👥")
require_login()

client_id = active_client_id()
if not client_id:
    st.error("Pick a client on the Status Report page first.")
    st.stop()

st.title(f"👥 Team · {client_id}")

try:
    store = get_store(client_id)
    roster = get_roster(client_id, store)
except DashboardError as exc:
    st.error(f"Could not load the team for {client_id}: {exc}")
    st.stop()


@st.cache_data(show_spinner=False, ttl=600)
def _org_choices(base_url: str):
    resp = get_api().org_options()
    return [o.value for o in org_options(resp.data if resp.ok and isinstance(resp.data, list) else [])]


def _run(fn, success_msg):
    try:
        done = fn()
    except DashboardError as exc:
        st.error(str(exc))
        return
    if done is False:
        return
    st.toast(success_msg, icon="✅")
    st.rerun()


orgs = _org_choices(cfg.api_base_url)

# ----- Roster table -----
rows = [
    {
        "Username": m.username,
        "Email": m.email,
        "Org": m.org,
        "Open tasks": roster.assigned_task_count(m),
        "Status": "Not working" if m.not_working else "Active",
    }
    for m in roster.members
]
if rows:
    st.dataframe(pd.DataFrame(rows), hide_index=True, use_container_width=True)
else:
    st.info("No team members yet.")

if st.button("↻ Refresh team"):
    _run(roster.refresh, "Team refreshed")

# ----- Add member -----
st.subheader("Add Team Member")
with st.form("add-member", clear_on_submit=True):
    c1, c2, c3 = st.columns(3)
    username = c1.text_input("Username")
    email = c2.text_input("Email")
    org = c3.selectbox("Org", [""] + orgs) if orgs else c3.text_input("Org")
    if st.form_submit_button("Add"):
        _run(lambda: roster.add_member(username, email, org), f"Invited {username}")

# ----- Edit / remove -----
if roster.members:
    st.subheader("Manage member")
    labels = {m.id: f"{m.username} ({m.email})" for m in roster.members if m.id}
    member_id = st.selectbox("Member", options=list(labels), format_func=lambda v: labels[v])
    member = roster.get(member_id)
    open_tasks = roster.assigned_task_count(member)

    with st.form(f"edit-{member_id}"):
        e1, e2, e3 = st.columns(3)
        new_username = e1.text_input("Username", value=member.username)
        new_email = e2.text_input("Email", value=member.email)
        new_org = e3.text_input("Org", value=member.org)
        if st.form_submit_button("Save"):
            _run(
                lambda: roster.edit_member(member_id, username=new_username, email=new_email, org=new_org),
                "Member updated",
            )

    d1, d2 = st.columns(2)
    with d1:
        if not member.not_working and confirm_button(
            "Mark not working",
            key=f"nw-{member_id}",
            message=(
                f"Mark {member.username} as not working? Their {open_tasks} task(s) "
                f"will be reassigned to {cfg.sentinel_org}."
            ),
        ):
            def _mark():
                roster.mark_not_working(member_id)
                store.refresh()

            _run(_mark, f"{member.username} marked not working")
    with d2:
        if open_tasks > 0:
            st.caption(f"{member.username} holds {open_tasks} task(s); reassign before deleting.")
            if st.button("Delete member", key=f"del-blocked-{member_id}"):
                _run(lambda: roster.delete_member(member_id), "Member deleted")
        elif confirm_button(
            "Delete member", key=f"del-{member_id}", message=f"Are you sure you want to delete {member.username}?"
        ):
            _run(lambda: roster.delete_member(member_id), "Member deleted")
