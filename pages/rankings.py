"""pages.rankings

Top 10 players of each level by XP, plus the signed-in player's own position.
"""

import streamlit as st

from utils import db
from utils.auth import current_user_id, is_logged_in
from utils.constants import LEVELS, RANKING_TOP_N
from utils.formatting import format_level, rankings_dataframe
from utils.layout import render_sidebar
from utils.xp import group_rankings, player_position

st.set_page_config(page_title="Rankings · ShuttleMatch", page_icon="🏆", layout="wide")
render_sidebar()

st.title("🏆 Rankings")
st.caption(f"Top {RANKING_TOP_N} players of every level, ranked by experience points")

profiles = db.get_all_profiles()
rankings = group_rankings(profiles)
user_id = current_user_id() if is_logged_in() else None

if user_id:
    me = next((p for p in profiles if p["id"] == user_id), None)
    position = player_position(profiles, user_id)
    if me and position:
        st.info(f"You are **#{position}** among {format_level(me.get('level'))} players with {me.get('experience_points') or 0} XP.")

tabs = st.tabs([format_level(level) for level in LEVELS])
for tab, level in zip(tabs, LEVELS):
    with tab:
        players = rankings[level]
        if not players:
            st.info("No players at this level yet.")
            continue
        st.dataframe(rankings_dataframe(players, highlight_id=user_id), use_container_width=True, hide_index=True)
