"""pages.my_matches

Report scores for matches you played, confirm or dispute results reported
against you, and browse your match history.
"""

import pandas as pd
import streamlit as st

from utils import db, matches
from utils.auth import current_user_id, require_login
from utils.formatting import format_date, format_datetime, format_mode, format_time
from utils.ical import matches_to_ical
from utils.layout import render_sidebar, run_action
from utils.partners import is_involved

st.set_page_config(page_title="My Matches · ShuttleMatch", page_icon="🏸", layout="wide")
render_sidebar()
require_login()

user_id = current_user_id()

st.title("🏸 My Matches")

all_matches = db.get_matches(user_id)
participants = db.get_participants()
my_requests = [r for r in db.get_partner_requests() if is_involved(r, user_id, participants)]
courts_by_id = {c["id"]: c for c in db.get_courts()}
profiles_by_id = {p["id"]: p for p in db.get_all_profiles()}


def _name(uid):
    return (profiles_by_id.get(uid) or {}).get("name") or "Unknown"


to_confirm = matches.pending_confirmations(all_matches, user_id)
to_report = [r for r in my_requests if r.get("status") == "arrived"]

tab_confirm, tab_report, tab_history = st.tabs([
    f"✅ Confirm ({len(to_confirm)})",
    f"📝 Report ({len(to_report)})",
    "📜 History",
])

# === TAB 1: CONFIRM ===
with tab_confirm:
    if not to_confirm:
        st.info("No results waiting for your confirmation.")
    for match in to_confirm:
        with st.container(border=True):
            st.markdown(
                f"**{_name(match['player1'])}** reported **{match['score_player1']} - {match['score_player2']}**"
                f" (their score first) · {format_mode(match.get('mode'))}"
            )
            winner = "You won" if match.get("winner") == user_id else f"{_name(match.get('winner'))} won"
            st.caption(f"{winner} · reported {format_datetime(match.get('created_at'))}")
            col1, col2 = st.columns(2)
            with col1:
                if st.button("✅ Confirm", key=f"confirm_{match['id']}", type="primary"):
                    applied = run_action(lambda: matches.confirm_result(match, user_id), None)
                    if applied is False:
                        st.info("This result had already been confirmed.")
                    elif applied:
                        st.toast("Result confirmed", icon="✅")
                        st.rerun()
            with col2:
                if st.button("⚠️ Dispute", key=f"dispute_{match['id']}"):
                    if run_action(lambda: matches.dispute_result(match, user_id), "Result disputed"):
                        st.rerun()

    waiting = matches.awaiting_opponent(all_matches, user_id)
    if waiting:
        st.subheader("Waiting for your opponent")
        for match in waiting:
            st.caption(f"vs {_name(match['player2'])} · {match['score_player1']} - {match['score_player2']}")

# === TAB 2: REPORT ===
with tab_report:
    if not to_report:
        st.info("Check in on the partners page when you arrive at the court, then report the score here.")
    for request in to_report:
        opponent_id = matches.opponent_for(request, user_id, participants)
        court = courts_by_id.get(request.get("court_id")) or {}
        with st.form(f"report_{request['id']}"):
            st.markdown(
                f"**vs {_name(opponent_id)}** · {format_date(request.get('date'))} {format_time(request.get('time'))}"
                f" · {court.get('court_name', 'Court')}"
            )
            col1, col2 = st.columns(2)
            with col1:
                my_score = st.number_input("Your score", min_value=0, max_value=99, step=1, key=f"mine_{request['id']}")
            with col2:
                their_score = st.number_input("Opponent score", min_value=0, max_value=99, step=1, key=f"theirs_{request['id']}")
            submitted = st.form_submit_button("Submit result", type="primary")
        if submitted:
            if run_action(lambda: matches.report_result(request, user_id, my_score, their_score), "Result sent for confirmation"):
                st.rerun()

# === TAB 3: HISTORY ===
with tab_history:
    history = matches.match_history(all_matches, user_id, profiles_by_id)
    if history:
        df = pd.DataFrame(history)
        df["Date"] = df["created_at"].map(format_datetime)
        df = df.rename(columns={"opponent": "Opponent", "mode": "Mode", "score": "Score", "result": "Result"})
        st.dataframe(df[["Date", "Opponent", "Mode", "Score", "Result"]], use_container_width=True, hide_index=True)
    else:
        st.info("No matches played yet.")

    st.download_button(
        "📅 Add upcoming matches to my calendar",
        data=matches_to_ical(my_requests, courts_by_id, profiles_by_id, user_id),
        file_name="shuttlematch.ics",
        mime="text/calendar",
    )
