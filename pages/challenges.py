"""pages.challenges

Challenge a specific player and answer challenges you received. An accepted
challenge becomes a matched tournament request on the partners page.
"""

from datetime import datetime, time, timezone

import streamlit as st

from utils import db, partners
from utils.auth import account_restriction, current_profile, current_user_id, require_login
from utils.formatting import format_date, format_datetime, format_level, format_status, format_time
from utils.layout import render_sidebar, run_action
from utils.validation import sanitize_html

st.set_page_config(page_title="Challenges · ShuttleMatch", page_icon="⚔️", layout="wide")
render_sidebar()
require_login()

user_id = current_user_id()
profile = current_profile() or {}
restriction = account_restriction(profile)
now = datetime.now(timezone.utc)

st.title("⚔️ Challenges")
if restriction:
    st.warning(f"⚠️ {restriction}")

players = [p for p in db.get_all_profiles() if p["id"] != user_id]
profiles_by_id = {p["id"]: p for p in players}
courts = db.get_courts()
courts_by_id = {c["id"]: c for c in courts}
challenges = db.get_challenges(user_id)
received = partners.pending_challenges(challenges, user_id, now)


def _describe(challenge, other_id):
    other = profiles_by_id.get(other_id) or {}
    court = courts_by_id.get(challenge.get("court_id")) or {}
    st.markdown(f"**{other.get('name', 'Unknown')}** · {format_level(other.get('level'))}")
    st.caption(
        f"📅 {format_date(challenge.get('proposed_date'))} · 🕐 {format_time(challenge.get('proposed_time'))}"
        f" · 📍 {court.get('court_name', 'Court to be decided')} · expires {format_datetime(challenge.get('expires_at'))}"
    )
    if challenge.get("message"):
        st.markdown(f"> {sanitize_html(challenge['message'])}")


tab_received, tab_sent, tab_new = st.tabs([f"📥 Received ({len(received)})", "📤 Sent", "➕ New challenge"])

# === TAB 1: RECEIVED ===
with tab_received:
    if not received:
        st.info("No pending challenges.")
    for challenge in received:
        with st.container(border=True):
            _describe(challenge, challenge["challenger_id"])
            col1, col2 = st.columns(2)
            with col1:
                if st.button("✅ Accept", key=f"accept_{challenge['id']}", type="primary", disabled=bool(restriction)):
                    if run_action(lambda: partners.accept_challenge(challenge, user_id, profile, now), "Challenge accepted"):
                        st.rerun()
            with col2:
                if st.button("❌ Decline", key=f"reject_{challenge['id']}"):
                    if run_action(lambda: partners.reject_challenge(challenge, user_id, profile, now), "Challenge declined"):
                        st.rerun()

# === TAB 2: SENT ===
with tab_sent:
    sent = partners.sent_challenges(challenges, user_id)
    if not sent:
        st.info("You have not challenged anyone yet.")
    for challenge in sent:
        with st.container(border=True):
            col1, col2 = st.columns([3, 1])
            with col1:
                _describe(challenge, challenge["challenged_id"])
            with col2:
                expired = challenge.get("status") == "pending" and partners.challenge_expired(challenge, now)
                st.markdown("⌛ Expired" if expired else format_status(challenge.get("status")))
                if challenge.get("status") == "pending" and st.button("Withdraw", key=f"cancel_{challenge['id']}"):
                    if run_action(lambda: partners.cancel_challenge(challenge, user_id), "Challenge withdrawn"):
                        st.rerun()

# === TAB 3: NEW ===
with tab_new:
    if not players:
        st.info("No other players yet.")
    else:
        with st.form("new_challenge", clear_on_submit=True):
            opponent = st.selectbox(
                "Opponent",
                [p["id"] for p in players],
                format_func=lambda pid: f"{profiles_by_id[pid].get('name', 'Unknown')} ({(profiles_by_id[pid].get('level') or 'beginner').capitalize()}, {profiles_by_id[pid].get('experience_points') or 0} XP)",
            )
            court_id = st.selectbox(
                "Court",
                [None] + [c["id"] for c in courts],
                format_func=lambda cid: "Decide later" if cid is None else courts_by_id[cid]["court_name"],
            )
            col1, col2 = st.columns(2)
            with col1:
                proposed_date = st.date_input("Date *", min_value=partners.local_now(now).date())
            with col2:
                proposed_time = st.time_input("Time *", value=time(18, 0), step=1800)
            message = st.text_area("Message", max_chars=500, placeholder="Ready for a rematch?")
            submitted = st.form_submit_button("Send challenge", type="primary", disabled=bool(restriction))
        if submitted:
            form = {
                "court_id": court_id,
                "proposed_date": proposed_date,
                "proposed_time": proposed_time,
                "message": message,
            }
            if run_action(lambda: partners.create_challenge(user_id, profile, opponent, form, now), "Challenge sent"):
                st.rerun()
