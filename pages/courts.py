"""pages.courts

Court directory: search, map and directions. Public, no sign-in needed.
"""

import streamlit as st

from utils import db
from utils.courts import court_directions, court_map_frame, filter_courts, parse_coordinates
from utils.layout import render_sidebar

st.set_page_config(page_title="Courts · ShuttleMatch", page_icon="📍", layout="wide")
render_sidebar()

st.title("📍 Badminton Courts")
st.caption("Courts across Mandalay with prices, opening hours and directions")

courts = db.get_courts()
search = st.text_input("🔎 Search", placeholder="Court name or address...")
visible = filter_courts(courts, search)

with st.expander("🗺️ Map", expanded=True):
    st.map(court_map_frame(visible), latitude="lat", longitude="lon", zoom=12)

st.caption(f"{len(visible)} of {len(courts)} courts")

if not visible:
    st.info("No courts match your search.")

for court in visible:
    with st.container(border=True):
        col1, col2 = st.columns([1, 2])
        with col1:
            images = court.get("images") or []
            if images:
                st.image(images[0], width="stretch")
            else:
                st.markdown("### 🏸")
        with col2:
            st.subheader(court.get("court_name", "Court"))
            st.markdown(f"📫 {court.get('address') or 'Address not available'}")
            details = []
            if court.get("opening_hours"):
                details.append(f"🕐 {court['opening_hours']}")
            if court.get("price_rate"):
                details.append(f"💰 {court['price_rate']}")
            if court.get("rating") is not None:
                details.append(f"⭐ {float(court['rating']):.1f}")
            if court.get("contact"):
                details.append(f"📞 {court['contact']}")
            if details:
                st.caption(" • ".join(details))

            link = court_directions(court)
            if link:
                label = "🧭 Directions" if parse_coordinates(court.get("google_map_url")) else "🗺️ Open in Google Maps"
                st.link_button(label, link)
