from datetime import date

import pandas as pd
import plotly.graph_objects as go
import streamlit as st

from hasboard import auth
from hasboard.errors import DashboardError
from hasboard.filters import visible_phases
from hasboard.mass_update import build_patch
from hasboard.models import FREQUENCIES, Task, member_options, phase_options
from hasboard.phases import tasks_to_df
from hasboard.session import (
    active_client_id,
    bootstrap,
    confirm_button,
    get_api,
    get_coordinator,
    get_directory,
    get_filters,
    get_roster,
    get_store,
    require_login,
)
from hasboard.templates import TemplateEngine, decode_upload, find_duplicates, parse_template_text
from hasboard.theme import client_banner, set_theme

cfg = bootstrap()
set_theme(page_title="Status Report", page_icon="📋")
require_login()

PHASE_COLORS = {
    "Outstanding": "#0984e3",
    "Review/Discussion": "#6c5ce7",
    "In Process": "#fdcb6e",
    "Resolved": "#00b894",
}

# ----- Client selection -----
if auth.is_internal(st.session_state):
    directory = get_directory()
    codes = [c.facCode for c in directory.clients]
    if not codes:
        st.info("No clients yet. Add one on the Admin page.")
        st.stop()
    current = st.session_state.get("selected_client")
    idx = codes.index(current) if current in codes else 0
    st.session_state.selected_client = st.sidebar.selectbox(
        "Client",
        options=codes,
        index=idx,
        format_func=lambda code: f"{code} · {directory.get(code).name}",
    )
    if directory.from_catalog:
        st.sidebar.caption("Client list served from the built-in catalog (API unavailable).")

client_id = active_client_id()
if not client_id:
    st.error("Your account is not linked to a client. Contact the internal team.")
    st.stop()

client = (get_directory().get(client_id) if auth.is_internal(st.session_state) else None) or cfg.client(client_id)
if client is not None:
    client_banner(client)
else:
    st.title(f"{client_id} Status Report")

try:
    store = get_store(client_id)
    roster = get_roster(client_id, store)
except DashboardError as exc:
    st.error(f"Could not load data for {client_id}: {exc}")
    st.stop()

snapshot_at = getattr(store.fallback, "used_snapshot_from", None)
if snapshot_at:
    st.warning(f"Status service unreachable; showing the offline copy saved {snapshot_at} UTC.")

coordinator = get_coordinator(store)
filters = get_filters()


def _rerun_after(fn, success_msg=None):
    try:
        result = fn()
    except DashboardError as exc:
        st.error(str(exc))
        return None
    if success_msg:
        st.toast(success_msg, icon="✅")
    st.rerun()
    return result


# ----- KPI row -----
counts = store.counts()
kpi_cols = st.columns(len(counts) + 1)
with kpi_cols[0]:
    st.markdown(
        f"<div class='hsd-kpi-box'><div class='hsd-kpi-label'>Total</div>"
        f"<div class='hsd-kpi-value'>{len(store.tasks)}</div></div>",
        unsafe_allow_html=True,
    )
for col, (phase, n) in zip(kpi_cols[1:], counts.items()):
    with col:
        st.markdown(
            f"<div class='hsd-kpi-box'><div class='hsd-kpi-label'>{phase}</div>"
            f"<div class='hsd-kpi-value'>{n}</div></div>",
            unsafe_allow_html=True,
        )

# ----- Filters -----
assignee_opts = member_options(roster.members)
assignee_labels = {o.value: o.label for o in assignee_opts}
# tasks may still point at members who left the roster
for t in store.tasks:
    assignee_labels.setdefault(t.assigned_to, t.assigned_to)

with st.container(border=True):
    fc1, fc2, fc3, fc4, fc5 = st.columns([2, 2, 1.4, 1, 0.6])
    with fc1:
        filters.owners = st.multiselect(
            "Assigned to",
            options=list(assignee_labels),
            default=[o for o in filters.owners if o in assignee_labels],
            format_func=lambda v: assignee_labels.get(v, v),
        )
    with fc2:
        filters.statuses = st.multiselect(
            "Status",
            options=[o.value for o in phase_options(store.phase_names)],
            default=[s for s in filters.statuses if s in store.phase_names],
        )
    with fc3:
        use_due = st.checkbox("Due by", value=filters.due_date is not None)
        filters.due_date = (
            st.date_input("ETC date up to", value=filters.due_date or date.today(), label_visibility="collapsed")
            if use_due
            else None
        )
    with fc4:
        filters.sort_by_status = st.toggle("Sort by status", value=filters.sort_by_status)
    with fc5:
        if st.button("↻", help="Refresh from the status service"):
            _rerun_after(store.refresh, "Tasks refreshed")

visible_tasks = filters.apply(store.tasks)
if filters.is_active():
    st.caption(f"Showing {len(visible_tasks)} of {len(store.tasks)} task(s)")

# ----- Phase chart -----
with st.expander("Phase overview", expanded=False):
    fig = go.Figure()
    fig.add_bar(
        x=list(counts),
        y=list(counts.values()),
        marker_color=[PHASE_COLORS.get(p, "#636e72") for p in counts],
    )
    fig.update_layout(template="plotly_white", height=280, margin=dict(l=6, r=6, t=20, b=10))
    st.plotly_chart(fig, use_container_width=True)

# ----- Add task -----
assign_values = [o.value for o in assignee_opts]
with st.expander("➕ Add task", expanded=False):
    with st.form("add-task", clear_on_submit=True):
        a1, a2, a3 = st.columns([2, 1, 1])
        goal = a1.text_input("Goal")
        need = a2.date_input("ETC date", value=None)
        execute = a3.selectbox("Frequency", FREQUENCIES, index=FREQUENCIES.index("One-Time"))
        b1, b2, b3 = st.columns([2, 1, 1])
        comments = b1.text_input("Comments")
        stage = b2.selectbox("Status", store.phase_names)
        assigned_to = b3.selectbox("Assigned to", assign_values, format_func=lambda v: assignee_labels.get(v, v))
        comment_area = st.text_area("Feedback", height=70)
        if st.form_submit_button("Add"):
            new_task = Task(
                goal=goal,
                need=need or "",
                comments=comments,
                execute=execute,
                stage=stage,
                commentArea=comment_area,
                assigned_to=assigned_to,
            )
            _rerun_after(lambda: store.add_task(new_task), "Task added")

# ----- Mass update -----
mu1, mu2 = st.columns([1, 4])
with mu1:
    if coordinator.active:
        if st.button("Exit mass update"):
            coordinator.exit_selection_mode()
            st.session_state.editor_version = st.session_state.get("editor_version", 0) + 1
            st.rerun()
    elif st.button("Mass update"):
        coordinator.enter_selection_mode()
        st.session_state.editor_version = st.session_state.get("editor_version", 0) + 1
        st.rerun()

if coordinator.active:
    st.markdown(
        f"<div class='hsd-selection-bar'>{len(coordinator.selection)} task(s) selected</div>",
        unsafe_allow_html=True,
    )
    s1, s2, _ = st.columns([1, 1, 4])
    if s1.button("Select all"):
        coordinator.select_all()
        st.session_state.editor_version = st.session_state.get("editor_version", 0) + 1
        st.rerun()
    if s2.button("Clear selection"):
        coordinator.clear_selection()
        st.session_state.editor_version = st.session_state.get("editor_version", 0) + 1
        st.rerun()
    with st.form("mass-update"):
        m1, m2, m3, m4 = st.columns(4)
        mu_stage = m1.selectbox("New status", [""] + store.phase_names)
        mu_assignee = m2.selectbox(
            "New owner", [""] + assign_values, format_func=lambda v: assignee_labels.get(v, v) if v else "—"
        )
        mu_need = m3.date_input("New ETC date", value=None)
        mu_execute = m4.selectbox("New frequency", [""] + FREQUENCIES)
        if st.form_submit_button("Apply to selected", type="primary"):
            try:
                patch = build_patch(stage=mu_stage, assigned_to=mu_assignee, need=mu_need or "", execute=mu_execute)
                updated = coordinator.apply(patch)
            except DashboardError as exc:
                st.error(str(exc))
            else:
                st.session_state.editor_version = st.session_state.get("editor_version", 0) + 1
                st.toast(f"Updated {updated} task(s)", icon="✅")
                st.rerun()

# ----- Phase tables -----
editor_version = st.session_state.get("editor_version", 0)
groups = visible_phases(visible_tasks, store.phase_names)
if not groups:
    st.info("No tasks match the current filters." if filters.is_active() else "No tasks yet for this client.")

for group in groups:
    css_name = group.name.replace("/", "-").replace(" ", "-")
    css_cls = f"hsd-phase-{css_name}" if group.name in PHASE_COLORS else "hsd-phase-default"
    st.markdown(f"<div class='hsd-phase-header {css_cls}'>{group.name} · {len(group)}</div>", unsafe_allow_html=True)

    df = tasks_to_df(group.items)
    if coordinator.active:
        df.insert(0, "select", [coordinator.is_selected(t.id) for t in group.items])

    edited = st.data_editor(
        df,
        key=f"editor-{group.name}-{editor_version}",
        hide_index=True,
        use_container_width=True,
        disabled=["id"] if not coordinator.active else [c for c in df.columns if c != "select"],
        column_config={
            "select": st.column_config.CheckboxColumn("✔", width="small"),
            "id": None,
            "goal": st.column_config.TextColumn("Goal", required=True),
            "need": st.column_config.DateColumn("ETC Date"),
            "comments": st.column_config.TextColumn("Comments"),
            "execute": st.column_config.SelectboxColumn("Execute", options=FREQUENCIES),
            "stage": st.column_config.SelectboxColumn("Status", options=store.phase_names, required=True),
            "commentArea": st.column_config.TextColumn("Feedback"),
            "assigned_to": st.column_config.SelectboxColumn(
                "Assigned To", options=sorted(assignee_labels), required=True
            ),
        },
    )

    if coordinator.active:
        changed = False
        for task_id, selected in zip(edited["id"], edited["select"]):
            if bool(selected) != coordinator.is_selected(task_id):
                coordinator.toggle_selection(task_id)
                changed = True
        if changed:
            st.rerun()
        continue

    originals = df.set_index("id")
    pending = []
    for row in edited.to_dict("records"):
        before = originals.loc[row["id"]].to_dict()
        changes = {
            k: ("" if pd.isna(v) else v)
            for k, v in row.items()
            if k != "id" and not (pd.isna(v) and pd.isna(before.get(k))) and v != before.get(k)
        }
        if changes:
            pending.append((row["id"], changes))

    c1, c2 = st.columns([1, 3])
    with c1:
        if pending and st.button(f"Save {len(pending)} change(s)", key=f"save-{group.name}", type="primary"):
            def _save(items=pending):
                saved = store.save_edits(items)
                # editors keep unsaved input until every row went through
                st.session_state.editor_version = editor_version + 1
                return saved

            _rerun_after(_save, "Changes saved")
    with c2:
        task_labels = {t.id: t.goal for t in group.items}
        to_delete = st.selectbox(
            "Delete task",
            options=[""] + list(task_labels),
            format_func=lambda v: task_labels.get(v, "—"),
            key=f"del-pick-{group.name}",
            label_visibility="collapsed",
        )
        if to_delete and confirm_button(
            "Delete task", key=f"del-{to_delete}", message=f"Are you sure you want to delete '{task_labels[to_delete]}'?"
        ):
            _rerun_after(lambda: store.delete_task(to_delete), "Task deleted")

# ----- Templates -----
engine = TemplateEngine(
    get_api(),
    template_user=cfg.template_user,
    template_email=cfg.template_email,
    template_org=cfg.sentinel_org,
    default_stage=cfg.default_stage,
    bucket_field=cfg.bucket_field,
)

with st.expander("📄 Templates", expanded=False):
    if auth.is_internal(st.session_state):
        st.markdown("**Standard template** adds the onboarding task list, owned by "
                    f"`{cfg.template_user}`.")
        if st.button("Apply standard template"):
            def _apply_standard():
                try:
                    return store.refreshing(engine.apply_standard_template, client_id)
                finally:
                    roster.refresh()

            _rerun_after(_apply_standard, "Standard template applied")

    uploaded = st.file_uploader("Upload template (.txt, 6 lines per task)", type=["txt"])
    if uploaded is not None:
        try:
            parsed = parse_template_text(decode_upload(uploaded.getvalue()))
        except DashboardError as exc:
            st.error(str(exc))
            parsed = []
        st.caption(f"{len(parsed)} task(s) found in {uploaded.name}")
        if parsed:
            st.dataframe(tasks_to_df(parsed).drop(columns=["id"]), hide_index=True, use_container_width=True)
            dupes = find_duplicates(parsed, store.tasks)

            def _upload():
                return store.refreshing(
                    engine.upload_template,
                    client_id,
                    uploaded.getvalue(),
                    confirm=lambda _msg: True,
                    existing=store.tasks,
                )

            if dupes:
                if confirm_button(
                    "Insert tasks",
                    key="upload-dupes",
                    message=f"{len(dupes)} task(s) already exist for this client. Insert anyway?",
                ):
                    _rerun_after(_upload, "Template uploaded")
            elif st.button("Insert tasks"):
                _rerun_after(_upload, "Template uploaded")

# ----- Danger zone (internal only) -----
if auth.is_internal(st.session_state):
    with st.expander("⚠️ Clear all tasks for this client", expanded=False):
        if confirm_button(
            "Clear all tasks",
            key="clear-all",
            message=f"Delete all {len(store.tasks)} task(s) of {client_id}? This cannot be undone.",
        ):
            _rerun_after(store.clear_client_tasks, "All tasks cleared")
