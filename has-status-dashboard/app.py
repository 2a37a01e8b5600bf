import streamlit as st

from hasboard import auth
from hasboard.errors import DashboardError
from hasboard.session import bootstrap, get_api, query_param
from hasboard.theme import set_theme

cfg = bootstrap()
set_theme()

st.markdown(
    """
    <style>
    .main-hero {
        background: linear-gradient(120deg, #e0eafc 0%, #cfdef3 100%);
        border-radius: 18px;
        box-shadow: 0 8px 32px 0 rgba(31, 38, 135, 0.15);
        padding: 2rem 2rem 1.5rem 2rem;
        max-width: 760px;
        margin: 2rem auto 1.5rem auto;
        text-align: center;
    }
    .main-hero h1 { font-size: 2.3rem; font-weight: 800; color: #0b63d6; margin-bottom: .3rem; }
    .main-hero h2 { font-size: 1.15rem; color: #51658a; font-weight: 400; }
    </style>
    """,
    unsafe_allow_html=True
)

st.markdown(
    '<div class="main-hero"><h1>HAS Status Report</h1>'
    '<h2>Action items, phases and team rosters for every client site</h2></div>',
    unsafe_allow_html=True,
)

if auth.is_logged_in(st.session_state):
    who = st.session_state.get("username")
    if auth.is_internal(st.session_state):
        st.success(f"Signed in as {who} (internal team). Open **Status Report** or **Admin** in the sidebar.")
    else:
        client = cfg.client(st.session_state.get("client_id") or "")
        name = client.name if client else st.session_state.get("client_id")
        st.success(f"Signed in as {who} for {name}. Open **Status Report** in the sidebar.")
    if st.button("Sign out"):
        auth.logout(st.session_state)
        st.rerun()
    st.stop()

requested_client = (query_param("client") or "").upper()
internal_first = (query_param("admin") or "").lower() == "true"

tab_labels = ["Internal team", "Client login"] if internal_first else ["Client login", "Internal team"]
tabs = dict(zip(tab_labels, st.tabs(tab_labels)))

with tabs["Client login"]:
    with st.form("client-login"):
        username = st.text_input("Username")
        password = st.text_input("Password", type="password")
        submitted = st.form_submit_button("Sign in")
    if submitted:
        try:
            client_code = auth.client_login(username, password, cfg, requested_client)
        except DashboardError as exc:
            st.error(str(exc))
        else:
            auth.set_login_state(
                st.session_state,
                True,
                username=username.strip(),
                role=auth.ROLE_CLIENT,
                client_id=client_code,
            )
            st.rerun()

with tabs["Internal team"]:
    with st.form("internal-login"):
        internal_user = st.text_input("Internal username")
        submitted_internal = st.form_submit_button("Sign in")
    if submitted_internal:
        member = auth.lookup_internal_member(get_api(), internal_user)
        if member is None:
            st.error("Unknown internal team member (or the status service is unreachable)")
        else:
            auth.set_login_state(st.session_state, True, username=member.username, role=auth.ROLE_INTERNAL)
            if requested_client:
                st.session_state.selected_client = requested_client
            st.rerun()
