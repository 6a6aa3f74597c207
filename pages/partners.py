"""pages.partners

Find partners: browse and filter open partner requests, post a new one and
manage the requests you created or joined (check-in, leave, cancel).
"""

from datetime import time

import streamlit as st

from utils import db, partners
from utils.auth import account_restriction, current_profile, current_user_id, require_login
from utils.constants import LEVELS, MATCH_MODES, PENALTY_PERCENT, REQUEST_STATUSES
from utils.formatting import format_date, format_level, format_mode, format_status, format_time
from utils.matches import cancel_with_penalty
from utils.layout import render_sidebar, run_action

st.set_page_config(page_title="Find Partners · ShuttleMatch", page_icon="🤝", layout="wide")
render_sidebar()
require_login()

user_id = current_user_id()
profile = current_profile() or {}
restriction = account_restriction(profile)

st.title("🤝 Find Partners")
st.caption("Join a match or post your own request")
if restriction:
    st.warning(f"⚠️ {restriction}")

courts = db.get_courts()
courts_by_id = {c["id"]: c for c in courts}
participants = db.get_participants()
requests = db.get_partner_requests()
profiles_by_id = {p["id"]: p for p in db.get_all_profiles()}
enriched = partners.enrich_requests(requests, participants, profiles_by_id, courts_by_id)


def _render_request(request, key_prefix):
    mine = request["created_by_user"] == user_id
    mine_joined = [p for p in request["participants"] if p["user_id"] == user_id]
    joined = bool(mine_joined)
    with st.container(border=True):
        col1, col2 = st.columns([3, 1])
        with col1:
            st.markdown(f"**{request['creator_name']}** · {format_level(request.get('creator_level'))}")
            st.markdown(
                f"📅 {format_date(request.get('date'))} · 🕐 {format_time(request.get('time'))} · 📍 {request['court_name']}"
            )
            st.caption(
                f"{format_mode(request.get('mode'))} · Wanted: {format_level(request.get('wanted_level'))}"
                f" · Players: {request['joined_count']}/{request.get('players_needed') or 1}"
            )
            if request["participants"]:
                st.caption("Joined: " + ", ".join(f"{p['name']} ({p['status']})" for p in request["participants"]))
            if (mine or joined) and request.get("phone"):
                st.caption(f"📞 {request['phone']}")
        with col2:
            st.markdown(format_status(request.get("status")))
            status = request.get("status")
            key = f"{key_prefix}_{request['id']}"

            if not mine and not joined and status == "open":
                if st.button("Join", key=f"join_{key}", type="primary", disabled=bool(restriction)):
                    if run_action(lambda: partners.join_request(request, user_id, profile), "Joined the match"):
                        st.rerun()
            if joined and status in ("open", "matched"):
                if st.button("Leave", key=f"leave_{key}"):
                    if run_action(lambda: partners.leave_request(request, user_id), "You left the match"):
                        st.rerun()
            if joined and status == "matched" and mine_joined[0].get("status") != "arrived":
                if st.button("📍 I'm here", key=f"arrive_{key}"):
                    if run_action(lambda: partners.mark_arrived(request, user_id), "Checked in"):
                        st.rerun()
            if mine and status == "matched":
                if partners.all_arrived(request, request["participants"]):
                    if st.button("Start session", key=f"arrive_{key}", type="primary"):
                        if run_action(lambda: partners.mark_arrived(request, user_id), "Session started"):
                            st.rerun()
                else:
                    st.button("Waiting for players...", key=f"waiting_{key}", disabled=True)
            if (mine or joined) and status in ("matched", "arrived"):
                with st.popover("Cancel"):
                    st.warning(f"Cancelling a matched game costs {PENALTY_PERCENT}% of your XP.")
                    if st.button("Cancel with penalty", key=f"penalty_{key}", type="primary"):
                        if run_action(lambda: cancel_with_penalty(request, user_id), "Match cancelled"):
                            st.rerun()
            if mine and status == "open":
                if st.button("Cancel", key=f"cancel_{key}"):
                    if run_action(lambda: partners.cancel_open_request(request, user_id), "Request cancelled"):
                        st.rerun()


tab_browse, tab_create, tab_mine = st.tabs(["🔎 Browse", "➕ Post request", "📋 My requests"])

# === TAB 1: BROWSE ===
with tab_browse:
    col1, col2, col3, col4 = st.columns([2, 1, 1, 1])
    with col1:
        search = st.text_input("Search", placeholder="Player or court name...")
    with col2:
        level = st.selectbox("Level", ["all"] + LEVELS, format_func=str.capitalize)
    with col3:
        mode = st.selectbox("Mode", ["all"] + MATCH_MODES, format_func=str.capitalize)
    with col4:
        status = st.selectbox("Status", REQUEST_STATUSES + ["all"], format_func=str.capitalize)

    today = partners.local_now().date().isoformat()
    upcoming = [r for r in enriched if str(r.get("date")) >= today or r.get("status") == "arrived"]
    visible = partners.filter_requests(upcoming, search, level, mode, status)
    st.caption(f"{len(visible)} requests")
    if not visible:
        st.info("No requests found. Why not post one?")
    for request in visible:
        _render_request(request, "browse")

# === TAB 2: CREATE ===
with tab_create:
    with st.form("create_request", clear_on_submit=True):
        col1, col2 = st.columns(2)
        with col1:
            court_id = st.selectbox(
                "Court",
                [None] + [c["id"] for c in courts],
                format_func=lambda cid: "Decide later" if cid is None else courts_by_id[cid]["court_name"],
            )
            match_date = st.date_input("Date *", min_value=partners.local_now().date())
            match_time = st.time_input("Time *", value=time(18, 0), step=1800)
        with col2:
            match_mode = st.selectbox("Mode", MATCH_MODES, format_func=str.capitalize)
            wanted_level = st.selectbox(
                "Wanted level", [None] + LEVELS, format_func=lambda lv: "Any level" if lv is None else lv.capitalize()
            )
            players_needed = st.number_input("Players needed", min_value=1, max_value=partners.MAX_PLAYERS_NEEDED, value=1)
        phone = st.text_input("Contact phone", value=profile.get("phone") or "")
        submitted = st.form_submit_button("Post request", type="primary", disabled=bool(restriction))

    if submitted:
        form = {
            "court_id": court_id,
            "date": match_date,
            "time": match_time,
            "mode": match_mode,
            "wanted_level": wanted_level,
            "phone": phone,
            "players_needed": players_needed,
        }
        if run_action(lambda: partners.create_request(user_id, profile, form, now=partners.local_now()), "Request posted"):
            st.rerun()

# === TAB 3: MY REQUESTS ===
with tab_mine:
    mine = [r for r in enriched if partners.is_involved(r, user_id, participants)]
    active = [r for r in mine if r.get("status") not in ("completed", "cancelled")]
    if not active:
        st.info("You have no active requests.")
    for request in active:
        _render_request(request, "mine")
    arrived = [r for r in active if r.get("status") == "arrived"]
    if arrived:
        st.page_link("pages/my_matches.py", label="Report a result", icon="🏸")
