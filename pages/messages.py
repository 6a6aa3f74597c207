"""pages.messages

Direct messages between players. Conversations are listed newest first; the
open one is remembered in session_state so a rerun keeps it selected.
"""

import streamlit as st

from utils import community, db
from utils.auth import current_user_id, require_login
from utils.constants import MESSAGE_MAX_LENGTH
from utils.formatting import format_datetime
from utils.layout import render_sidebar, run_action
from utils.validation import sanitize_html

st.set_page_config(page_title="Messages · ShuttleMatch", page_icon="✉️", layout="wide")
render_sidebar()
require_login()

user_id = current_user_id()

st.title("✉️ Messages")

profiles_by_id = {p["id"]: p for p in db.get_all_profiles() if p["id"] != user_id}
convos = community.conversations(db.get_direct_messages(user_id), user_id)


def _name(uid):
    return (profiles_by_id.get(uid) or {}).get("name") or "Unknown"


left, right = st.columns([1, 2])

with left:
    st.subheader("Conversations")
    new_partner = st.selectbox(
        "Start a new conversation",
        [None] + sorted(profiles_by_id, key=_name),
        format_func=lambda uid: "Choose a player..." if uid is None else _name(uid),
    )
    if new_partner:
        st.session_state["active_conversation"] = new_partner

    if not convos:
        st.caption("No messages yet.")
    for convo in convos:
        badge = f" 🔵 {convo['unread']}" if convo["unread"] else ""
        preview = (convo["last_message"] or "")[:40]
        if st.button(
            f"{_name(convo['partner_id'])}{badge}\n\n{preview}",
            key=f"convo_{convo['partner_id']}",
            use_container_width=True,
        ):
            st.session_state["active_conversation"] = convo["partner_id"]
            st.rerun()

with right:
    partner_id = st.session_state.get("active_conversation")
    if not partner_id:
        st.info("Select a conversation or start a new one.")
    else:
        st.subheader(_name(partner_id))
        thread = community.open_conversation(user_id, partner_id)
        with st.container(height=420):
            for message in thread:
                role = "user" if message.get("sender_id") == user_id else "assistant"
                with st.chat_message(role, avatar="🏸" if role == "user" else "👤"):
                    st.markdown(sanitize_html(message.get("message") or ""))
                    st.caption(format_datetime(message.get("created_at")))

        text = st.chat_input("Write a message", max_chars=MESSAGE_MAX_LENGTH)
        if text:
            if run_action(lambda: community.send_message(user_id, partner_id, text), "Sent"):
                st.rerun()
