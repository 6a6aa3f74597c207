"""
Shared page layout: the sidebar shown on every ShuttleMatch page and the
feedback wrapper pages use around service calls.

- User card with sign-out
- Notification bell, unread messages and cart count; refreshed by a polling
  fragment that also applies pending realtime invalidations
"""

import streamlit as st

from utils import community, db, realtime
from utils.auth import current_profile, current_user_id, handle_logout, is_admin, is_logged_in
from utils.constants import POLL_INTERVAL_SECONDS
from utils.formatting import format_datetime, format_level, render_avatar
from utils.shop import cart_count
from utils.validation import sanitize_html


def _create_user_info_card_html(name: str, email: str, level: str, xp: int) -> str:
    """HTML for the signed-in user card."""
    return f"""
    <div style="
        background: linear-gradient(135deg, #16a34a 0%, #0ea5e9 100%);
        padding: 16px;
        border-radius: 12px;
        margin-bottom: 12px;
        box-shadow: 0 4px 6px rgba(0,0,0,0.1);
    ">
        <div style="color: white; font-size: 16px; font-weight: 700; margin-bottom: 4px;">
            {sanitize_html(name)}
        </div>
        <div style="color: rgba(255,255,255,0.85); font-size: 13px; margin-bottom: 6px;">
            {sanitize_html(email)}
        </div>
        <div style="color: white; font-size: 13px;">
            {sanitize_html(format_level(level))} · {xp} XP
        </div>
    </div>
    """


@st.fragment(run_every=POLL_INTERVAL_SECONDS)
def _render_badges(user_id):
    realtime.apply_pending()

    unread_messages = db.get_unread_message_count(user_id)
    items = cart_count(db.get_cart(user_id))
    col1, col2 = st.columns(2)
    col1.page_link("pages/messages.py", label=f"Messages ({unread_messages})", icon="💬")
    col2.page_link("pages/cart.py", label=f"Cart ({items})", icon="🛒")

    unread = db.get_unread_notification_count(user_id)
    with st.expander(f"🔔 Notifications ({unread})", expanded=False):
        notifications = db.get_notifications(user_id)
        if not notifications:
            st.caption("Nothing new.")
        for note in notifications:
            marker = "🔵 " if not note.get("is_read") else ""
            st.markdown(f"{marker}**{sanitize_html(note.get('title') or '')}**")
            st.caption(f"{sanitize_html(note.get('message') or '')} · {format_datetime(note.get('created_at'))}")
            if not note.get("is_read") and st.button("Mark read", key=f"read_{note['id']}"):
                community.mark_read(note["id"])
                st.rerun(scope="fragment")
        if unread and st.button("Mark all read", key="read_all"):
            community.mark_all_read(user_id)
            st.rerun(scope="fragment")


def render_sidebar():
    """Render the sidebar. Call this once near the top of every page."""
    with st.sidebar:
        st.markdown("### 🏸 ShuttleMatch")
        if not is_logged_in():
            st.page_link("pages/account.py", label="Sign in / Register", icon="🔑")
            return

        user_id = current_user_id()
        realtime.start(user_id)
        profile = current_profile() or {}

        col1, col2 = st.columns([1, 3])
        with col1:
            st.markdown(render_avatar(profile.get("name"), profile.get("profile_photo"), size=44), unsafe_allow_html=True)
        with col2:
            st.markdown(
                _create_user_info_card_html(
                    profile.get("name") or "Player",
                    profile.get("email") or "",
                    profile.get("level"),
                    profile.get("experience_points") or 0,
                ),
                unsafe_allow_html=True,
            )

        _render_badges(user_id)

        if is_admin():
            st.page_link("pages/admin.py", label="Admin", icon="🛠️")

        if st.button("🚪 Logout", key="sidebar_logout", use_container_width=True, type="secondary"):
            handle_logout()


def run_action(action, success):
    """Call a service helper and report the outcome.

    Errors (validation ValueError or a Supabase error) are shown verbatim.
    Pass ``success=None`` when the caller words the outcome itself.

    Returns:
        The helper's result, True when it returned None, or None on failure.
    """
    try:
        result = action()
    except Exception as e:
        st.error(f"❌ {e}")
        return None
    if success:
        st.toast(success, icon="✅")
    return True if result is None else result
