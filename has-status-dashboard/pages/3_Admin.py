import pandas as pd
import streamlit as st

from hasboard.clients import admin_url, client_url
from hasboard.errors import DashboardError
from hasboard.gateway import resolve, use_default
from hasboard.models import Client, TeamMember, client_options
from hasboard.roster import validate_member_fields
from hasboard.session import bootstrap, confirm_button, get_api, get_directory, require_login
from hasboard.theme import set_theme

cfg = bootstrap()
set_theme(page_title="Admin", page_icon="⚙️")
require_login(internal=True)

st.title("⚙️ Admin Panel")

directory = get_directory()
api = get_api()


def _run(fn, success_msg):
    try:
        fn()
    except DashboardError as exc:
        st.error(str(exc))
        return
    st.toast(success_msg, icon="✅")
    st.rerun()


tab_clients, tab_internal, tab_settings = st.tabs(["Clients", "Internal team", "Settings"])

with tab_clients:
    if directory.from_catalog:
        st.warning("Client service unreachable; showing the built-in catalog. Changes will fail until it is back.")
    elif getattr(directory.fallback, "used_snapshot_from", None):
        st.warning(
            "Client service unreachable; showing the offline copy saved "
            f"{directory.fallback.used_snapshot_from} UTC."
        )
    base = st.text_input("Dashboard public URL", value="http://localhost:8501", help="Used to build client links")
    st.dataframe(
        pd.DataFrame(
            [
                {
                    "Code": c.facCode,
                    "Name": c.name,
                    "City": c.city,
                    "State": c.state,
                    "Main contact": c.mainContact,
                    "Phone": c.phoneNumber,
                    "Link": client_url(base, c.facCode),
                }
                for c in directory.clients
            ]
        ),
        hide_index=True,
        use_container_width=True,
        column_config={"Link": st.column_config.LinkColumn("Link")},
    )
    st.caption(f"Admin link: {admin_url(base)}")
    if st.button("↻ Refresh clients"):
        _run(directory.refresh, "Clients refreshed")

    st.subheader("Add client")
    with st.form("add-client", clear_on_submit=True):
        c1, c2, c3 = st.columns([1, 2, 1])
        fac_code = c1.text_input("Code (3 chars)", max_chars=3)
        name = c2.text_input("Name")
        color = c3.color_picker("Color", value="#2563eb")
        d1, d2, d3, d4 = st.columns(4)
        city = d1.text_input("City")
        state = d2.text_input("State")
        contact = d3.text_input("Main contact")
        phone = d4.text_input("Phone")
        file_path = st.text_input("File path")
        if st.form_submit_button("Add client"):
            new_client = Client(
                facCode=fac_code,
                name=name,
                color=color,
                city=city,
                state=state,
                mainContact=contact,
                phoneNumber=phone,
                filePath=file_path,
            )
            _run(lambda: directory.create(new_client), f"Client {fac_code.upper()} added")

    if directory.clients:
        st.subheader("Edit client")
        opts = client_options(directory.clients)
        labels = {o.value: o.label for o in opts}
        code = st.selectbox("Client", options=list(labels), format_func=lambda v: labels[v])
        current = directory.get(code)
        with st.form(f"edit-client-{code}"):
            e1, e2 = st.columns([2, 1])
            e_name = e1.text_input("Name", value=current.name)
            e_color = e2.color_picker("Color", value=current.color or "#2563eb")
            f1, f2, f3, f4 = st.columns(4)
            e_city = f1.text_input("City", value=current.city)
            e_state = f2.text_input("State", value=current.state)
            e_contact = f3.text_input("Main contact", value=current.mainContact)
            e_phone = f4.text_input("Phone", value=current.phoneNumber)
            e_path = st.text_input("File path", value=current.filePath)
            if st.form_submit_button("Save"):
                _run(
                    lambda: directory.update(
                        code,
                        name=e_name,
                        color=e_color,
                        city=e_city,
                        state=e_state,
                        mainContact=e_contact,
                        phoneNumber=e_phone,
                        filePath=e_path,
                    ),
                    f"Client {code} updated",
                )
        if confirm_button("Delete client", key=f"del-client-{code}", message=f"Delete client {code}?"):
            _run(lambda: directory.delete(code), f"Client {code} deleted")

with tab_internal:
    raw = resolve(api.list_internal_team(), use_default([]))
    members = [TeamMember.from_api(r) for r in raw]
    if members:
        st.dataframe(
            pd.DataFrame([{"Username": m.username, "Email": m.email, "Org": m.org} for m in members]),
            hide_index=True,
            use_container_width=True,
        )
    else:
        st.info("No internal team members returned.")

    with st.form("add-internal", clear_on_submit=True):
        i1, i2 = st.columns(2)
        i_user = i1.text_input("Username")
        i_email = i2.text_input("Email")
        if st.form_submit_button("Add internal member"):
            def _add_internal():
                validate_member_fields(i_user, i_email, check_email=cfg.validate_email)
                api.add_internal_member(
                    {"username": i_user.strip(), "email": i_email.strip(), "org": cfg.sentinel_org}
                ).unwrap()

            _run(_add_internal, f"Added {i_user}")

with tab_settings:
    st.json(cfg.to_dict())
