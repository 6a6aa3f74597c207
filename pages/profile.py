"""pages.profile

The signed-in player's profile: level progress, statistics and recent
matches, plus editing personal details, the profile photo and the password.
"""

import streamlit as st

from utils import db, matches
from utils.auth import (
    account_restriction,
    change_password,
    current_profile,
    current_user,
    current_user_id,
    require_login,
    update_own_profile,
    upload_profile_photo,
)
from utils.formatting import format_date, format_datetime, format_level, format_status, render_avatar
from utils.layout import render_sidebar, run_action
from utils.xp import level_progress, player_position, win_rate, xp_to_next_level

st.set_page_config(page_title="My Profile · ShuttleMatch", page_icon="👤", layout="wide")
render_sidebar()
require_login()

user_id = current_user_id()
profile = current_profile()
if not profile:
    st.error("❌ Profile not found.")
    st.stop()

st.title("👤 My Profile")

restriction = account_restriction(profile)
if restriction:
    st.warning(f"⚠️ {restriction}")

tab_overview, tab_edit, tab_security = st.tabs(["📋 Overview", "✏️ Edit profile", "🔒 Password"])

# === TAB 1: OVERVIEW ===
with tab_overview:
    col1, col2 = st.columns([1, 4])
    with col1:
        st.markdown(render_avatar(profile.get("name"), profile.get("profile_photo"), size=96), unsafe_allow_html=True)
    with col2:
        st.subheader(profile.get("name") or "Player")
        st.caption(current_user().get("email") or "")
        st.markdown(f"{format_level(profile.get('level'))} · Membership {format_status(profile.get('membership_status'))}")
        if profile.get("monthly_fee_due"):
            st.caption(f"Next monthly fee due {format_date(profile['monthly_fee_due'])}")

    xp = profile.get("experience_points") or 0
    st.progress(level_progress(xp, profile.get("level")) / 100, text=f"{xp} XP")
    remaining = xp_to_next_level(xp, profile.get("level"))
    st.caption("Top level reached" if remaining is None else f"{remaining} XP to the next level")

    played = profile.get("total_matches_played") or 0
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Matches", played)
    c2.metric("Wins", profile.get("total_wins") or 0)
    c3.metric("Losses", profile.get("total_losses") or 0)
    c4.metric("Win rate", f"{win_rate(profile.get('total_wins'), played)}%")
    position = player_position(db.get_all_profiles(), user_id)
    c5.metric("Rank", f"#{position}" if position else "-")

    if profile.get("penalty_count"):
        st.caption(f"⚠️ Late cancellations: {profile['penalty_count']}")

    st.subheader("Recent matches")
    recent = matches.recent_matches(db.get_matches(user_id))
    if not recent:
        st.info("No confirmed matches yet.")
    else:
        opponents = db.get_profiles_by_ids([m["player1"] for m in recent] + [m["player2"] for m in recent])
        for entry in matches.match_history(recent, user_id, opponents):
            st.markdown(f"- {format_datetime(entry['created_at'])} · vs **{entry['opponent']}** · {entry['score']} · {entry['result']}")

# === TAB 2: EDIT ===
with tab_edit:
    with st.form("edit_profile"):
        name = st.text_input("Name *", value=profile.get("name") or "")
        phone = st.text_input("Phone", value=profile.get("phone") or "")
        submitted = st.form_submit_button("Save", type="primary")
    if submitted:
        if run_action(lambda: update_own_profile(name, phone), "Profile updated"):
            st.rerun()

    st.markdown("#### Profile photo")
    photo = st.file_uploader("Upload a new photo (max 5MB)", type=["png", "jpg", "jpeg", "webp"])
    if photo is not None and st.button("Upload photo", use_container_width=True):
        if run_action(lambda: upload_profile_photo(photo.name, photo.getvalue(), photo.type), "Photo updated"):
            st.rerun()

# === TAB 3: PASSWORD ===
with tab_security:
    with st.form("change_password", clear_on_submit=True):
        current = st.text_input("Current password", type="password")
        new = st.text_input("New password", type="password")
        confirm = st.text_input("Confirm new password", type="password")
        submitted = st.form_submit_button("Change password", type="primary")
    if submitted:
        run_action(lambda: change_password(current, new, confirm), "Password changed")
