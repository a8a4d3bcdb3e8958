"""Streamlit host UI for Agent Dash.

Run with: streamlit run ui/app.py
"""

# Add project root to sys.path for imports to work when run via streamlit
import os
import sys
from collections.abc import Callable
from pathlib import Path
from typing import Any

_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

import httpx  # noqa: E402
import streamlit as st  # noqa: E402
import streamlit.components.v1 as components  # noqa: E402

from ui.helpers import (  # noqa: E402
    TARGETING_HINT,
    build_selection_message,
    choose_scope,
    create_conversation,
    delete_conversation,
    delete_dashboard,
    describe_error,
    export_dashboard,
    get_conversation,
    input_disabled,
    input_placeholder,
    is_missing_conversation,
    list_dashboards,
    load_dashboard,
    read_upload,
    save_dashboard,
    send_message,
    send_selection,
    step_number,
    upload_files,
)

# Configuration
BACKEND_URL = os.environ.get("AGENT_DASH_BACKEND_URL", "http://localhost:8000")

# Page config
st.set_page_config(page_title="Agent Dash", page_icon="📊", layout="wide")

# Initialize session state
if "snapshot" not in st.session_state:
    st.session_state.snapshot = None
if "error" not in st.session_state:
    st.session_state.error = None
if "notice" not in st.session_state:
    st.session_state.notice = None


def _report(error: httpx.HTTPError) -> None:
    """Show a failed call; a conversation the backend forgot is replaced on rerun."""
    if is_missing_conversation(error):
        st.session_state.snapshot = None
        st.session_state.notice = "Your previous conversation expired, so a new one was started."
    else:
        st.session_state.error = describe_error(error)


def _run(action: Callable[..., dict[str, Any]], *args: Any) -> None:
    """Call the backend and keep the returned snapshot (or the error)."""
    try:
        st.session_state.snapshot = action(BACKEND_URL, *args)
        st.session_state.error = None
    except httpx.HTTPError as e:
        _report(e)


if st.session_state.snapshot is None:
    _run(create_conversation)

snapshot = st.session_state.snapshot
if snapshot is None:
    st.error(f"❌ {st.session_state.error}")
    st.stop()

conversation_id = snapshot["id"]
step = snapshot["step"]

with st.sidebar:
    if st.button("🆕 New conversation", use_container_width=True):
        try:
            delete_conversation(BACKEND_URL, conversation_id)
            st.session_state.snapshot = None
            st.session_state.error = None
        except httpx.HTTPError as e:
            _report(e)
        st.rerun()

if st.session_state.notice:
    st.info(st.session_state.notice)
    st.session_state.notice = None

# Header
title_col, step_col = st.columns([4, 1])
with title_col:
    st.title("📊 Agent Dash")
with step_col:
    st.markdown(f"**{step_number(step)}**")
st.divider()

col_chat, col_preview = st.columns([1, 1.4])

# =============================================================================
# LEFT COLUMN - CONVERSATION
# =============================================================================
with col_chat:
    for message in snapshot["messages"]:
        role = "user" if message["role"] == "user" else "assistant"
        with st.chat_message(role):
            if message["role"] == "success":
                st.success(message["text"])
            else:
                st.markdown(message["text"])

    if st.session_state.error:
        st.error(f"❌ {st.session_state.error}")

    if step == "upload":
        uploaded = st.file_uploader(
            "Upload data files (CSV or JSON, max 3)",
            type=["csv", "json", "txt"],
            accept_multiple_files=True,
        )
        if uploaded and st.button("Analyze files", type="primary"):
            files = [read_upload(f.name, f.type, f.getvalue()) for f in uploaded]
            with st.spinner("Analyzing your data files..."):
                _run(upload_files, conversation_id, files)
            st.rerun()

    if step == "data-selection":
        all_col, insights_col = st.columns(2)
        if all_col.button("Use all data", use_container_width=True):
            _run(choose_scope, conversation_id, "all")
            _run(get_conversation, conversation_id)
            st.rerun()
        if insights_col.button("Key insights only", use_container_width=True):
            _run(choose_scope, conversation_id, "insights")
            _run(get_conversation, conversation_id)
            st.rerun()

    prompt = st.chat_input(
        input_placeholder(step), disabled=input_disabled(step, snapshot["busy"])
    )
    if prompt:
        with st.spinner("Working on it..."):
            _run(send_message, conversation_id, prompt)
        st.rerun()

# =============================================================================
# RIGHT COLUMN - PREVIEW, TARGETING, EXPORT, SAVED DASHBOARDS
# =============================================================================
with col_preview:
    document = snapshot.get("document")
    if document:
        st.subheader(snapshot["document_title"])
        st.caption(snapshot["document_description"])
        components.html(document, height=720, scrolling=True)

        selected = snapshot.get("selected_element")
        if selected:
            st.info(f"🎯 Editing `{selected['selector']}`: your next message changes only this element.")

        with st.expander("🎯 Target an element"):
            st.caption(TARGETING_HINT)
            selector = st.text_input("Selector (e.g. #kpi-records or div.card)")
            if st.button("Select element") and selector:
                _run(send_selection, conversation_id, build_selection_message(selector))
                st.rerun()

        try:
            exported = export_dashboard(BACKEND_URL, conversation_id)
            standalone = export_dashboard(BACKEND_URL, conversation_id, standalone=True)
        except httpx.HTTPError as e:
            exported = standalone = None
            st.warning(f"Download unavailable: {describe_error(e)}")

        if exported is not None and standalone is not None:
            download_col, standalone_col = st.columns(2)
            download_col.download_button(
                "⬇️ Download",
                data=exported,
                file_name="dashboard.html",
                mime="text/html",
                use_container_width=True,
            )
            standalone_col.download_button(
                "⬇️ Download (view only)",
                data=standalone,
                file_name="dashboard.html",
                mime="text/html",
                use_container_width=True,
            )

        with st.form("save_form"):
            title = st.text_input("Title", value=snapshot["document_title"])
            description = st.text_area("Description", value=snapshot["document_description"])
            if st.form_submit_button("💾 Save dashboard"):
                _run(save_dashboard, conversation_id, title, description)
                st.rerun()
    else:
        st.info("Your dashboard preview will appear here.")

    st.divider()
    st.subheader("📁 My Saved Dashboards")
    try:
        saved = list_dashboards(BACKEND_URL)
    except httpx.HTTPError as e:
        saved = []
        st.warning(f"Could not list dashboards: {e}")

    if not saved:
        st.caption("No saved dashboards yet.")
    for dashboard in saved:
        info_col, open_col, delete_col = st.columns([4, 1, 1])
        info_col.markdown(f"**{dashboard['title']}**  \n{dashboard['description']}")
        if open_col.button("Open", key=f"open-{dashboard['id']}"):
            _run(load_dashboard, conversation_id, dashboard["id"])
            st.rerun()
        if delete_col.button("🗑️", key=f"delete-{dashboard['id']}"):
            try:
                delete_dashboard(BACKEND_URL, dashboard["id"])
            except httpx.HTTPError as e:
                _report(e)
            st.rerun()
