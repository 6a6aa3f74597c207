"""
================================================================================
SHUTTLEMATCH STREAMLIT APPLICATION
================================================================================

Purpose: Home page and entry point of ShuttleMatch, the badminton community
for Mandalay: find partners, book courts, climb the rankings, shop gear.
Architecture: Browser → Streamlit → utils modules → Supabase

Run with:
    streamlit run streamlit_app.py

How it works:
1. Every page renders the shared sidebar (user card, notifications, badges)
2. Pages call service helpers in utils.*; only utils.db talks to Supabase
3. Reads are cached for 10-300 seconds and cleared after every write
4. Errors from Supabase are shown verbatim with st.error / st.toast
================================================================================
"""

# =============================================================================
# PART 1: IMPORTS & CONFIGURATION
# =============================================================================

import streamlit as st

from utils import db
from utils.auth import current_user_id, is_logged_in
from utils.constants import DEFAULT_COURT_RATING, LEVEL_XP_RANGES, LEVELS
from utils.formatting import format_date, format_level, format_time
from utils.matches import upcoming_reminder
from utils.layout import render_sidebar

# =============================================================================
# STREAMLIT PAGE CONFIGURATION
# =============================================================================
# IMPORTANT: This MUST be the first Streamlit command in the script

st.set_page_config(
    page_title="ShuttleMatch",
    page_icon="🏸",
    layout="wide",
    initial_sidebar_state="expanded"
)

render_sidebar()

# =============================================================================
# HERO
# =============================================================================

st.title("🏸 ShuttleMatch")
st.markdown(
    "#### Find badminton partners in Mandalay, play at the best courts and climb the rankings."
)

if not is_logged_in():
    col1, col2 = st.columns(2)
    with col1:
        st.page_link("pages/account.py", label="Join free: 3 month trial", icon="✨")
    with col2:
        st.page_link("pages/courts.py", label="Browse courts", icon="📍")

# =============================================================================
# UPCOMING MATCH REMINDER
# =============================================================================
# Banner for a matched request starting within the next 24 hours

if is_logged_in():
    reminder = upcoming_reminder(db.get_partner_requests(), db.get_participants(), current_user_id())
    if reminder:
        request = reminder["request"]
        court = next((c for c in db.get_courts() if c["id"] == request.get("court_id")), {})
        st.info(
            f"⏰ You have a match **{reminder['when']}** at {format_time(request.get('time'))}"
            f" · {court.get('court_name', 'court to be confirmed')} · {format_date(request.get('date'))}"
        )

st.divider()

# =============================================================================
# PLATFORM STATS
# =============================================================================

stats = db.get_platform_stats()
if stats:
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("👥 Players", stats["players"])
    col2.metric("📍 Courts", stats["courts"])
    col3.metric("🏸 Matches this month", stats["matches_this_month"])
    col4.metric("⭐ Avg. court rating", stats["average_rating"] or DEFAULT_COURT_RATING)
else:
    st.warning("⚠️ Statistics are currently unavailable.")

st.divider()

# =============================================================================
# HOW IT WORKS & LEVEL SYSTEM
# =============================================================================

left, right = st.columns(2)

with left:
    st.subheader("How it works")
    st.markdown(
        """
1. **Post or join a partner request** for a court, date and level.
2. **Check in** when you arrive at the court.
3. **Report the score**; your opponent confirms it.
4. **Earn XP**: win 15, lose 10, friendly 5 (admins may tune these).

Cancelling a confirmed match costs 3% of your XP. Five cancellations
suspend your account for 30 days.
        """
    )

with right:
    st.subheader("Level system")
    for level in LEVELS:
        low, high = LEVEL_XP_RANGES[level]
        upper = f"{high:,}" if level != LEVELS[-1] else f"{high:,}+"
        st.markdown(f"**{format_level(level)}**: {low:,} – {upper} XP")
    st.caption("Rankings are kept separately per level, so everyone competes with players of similar skill.")

st.divider()

# =============================================================================
# QUICK LINKS
# =============================================================================

cols = st.columns(4)
cols[0].page_link("pages/partners.py", label="Find partners", icon="🤝")
cols[1].page_link("pages/rankings.py", label="Rankings", icon="🏆")
cols[2].page_link("pages/shop.py", label="Shop", icon="🛍️")
cols[3].page_link("pages/community.py", label="Community", icon="💬")
