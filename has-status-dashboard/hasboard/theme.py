from pathlib import Path

import streamlit as st
from streamlit.errors import StreamlitAPIException

from hasboard.models import Client

CSS_FILE = Path(__file__).resolve().parents[1] / "assets" / "dashboard_theme.css"


def set_theme(
    page_title: str = "HAS Status Report",
    page_icon: str = "🏥",
    layout: str = "wide",
    initial_sidebar_state: str = "expanded",
):
    """Configure the Streamlit page and inject the dashboard stylesheet.

    Call it first on every page. A repeated ``set_page_config`` in the same
    run is ignored; the CSS goes in on every rerun.
    """
    try:
        st.set_page_config(
            page_title=page_title,
            page_icon=page_icon,
            layout=layout,
            initial_sidebar_state=initial_sidebar_state,
        )
    except StreamlitAPIException:
        pass

    if not CSS_FILE.is_file():
        st.error(f"Theme file not found at {CSS_FILE}.")
        return
    st.markdown(f"<style>{CSS_FILE.read_text(encoding='utf-8')}</style>", unsafe_allow_html=True)


def client_banner(client: Client) -> None:
    st.markdown(
        f"<div class='hsd-banner' style='border-left:6px solid {client.color};'>"
        f"<span class='hsd-banner-logo'>{client.logo}</span>"
        f"<div><div class='hsd-banner-title'>{client.name or client.facCode} Status Report</div>"
        f"<div class='hsd-banner-sub'>{client.description or client.facCode}</div></div>"
        f"</div>",
        unsafe_allow_html=True,
    )
