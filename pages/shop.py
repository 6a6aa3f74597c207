"""pages.shop

Badminton gear shop: browse, filter, favorite and add to cart.
"""

import streamlit as st

from utils import db, shop
from utils.auth import current_user_id, is_logged_in
from utils.constants import LEVELS
from utils.formatting import format_level, format_price
from utils.layout import render_sidebar, run_action

st.set_page_config(page_title="Shop · ShuttleMatch", page_icon="🛍️", layout="wide")
render_sidebar()

st.title("🛍️ Shop")
st.caption("Rackets, shuttlecocks, shoes and more, delivered in Mandalay")

user_id = current_user_id() if is_logged_in() else None
products = db.get_products()
categories = db.get_categories()
category_names = {c["id"]: c["name"] for c in categories}
favorites = db.get_favorites(user_id) if user_id else []

col1, col2, col3, col4 = st.columns([2, 1, 1, 1])
with col1:
    search = st.text_input("🔎 Search", placeholder="Yonex, shuttlecocks...")
with col2:
    category = st.selectbox("Category", ["all"] + list(category_names), format_func=lambda c: "All" if c == "all" else category_names[c])
with col3:
    level = st.selectbox("Level", ["all"] + LEVELS, format_func=str.capitalize)
with col4:
    favorites_only = st.toggle("❤️ Favorites only", disabled=not user_id)

visible = shop.filter_products(products, search, category, level, favorites_only, favorites)
st.caption(f"{len(visible)} products")

if not visible:
    st.info("No products match your filters.")

cols = st.columns(3)
for i, product in enumerate(visible):
    with cols[i % 3]:
        with st.container(border=True):
            images = product.get("images") or []
            if images:
                st.image(images[0], width="stretch")
            st.markdown(f"**{product['name']}**")
            st.markdown(format_price(product.get("price")))
            meta = [category_names.get(product.get("category_id"), "")]
            if product.get("level_recommendation"):
                meta.append(format_level(product["level_recommendation"]))
            st.caption(" · ".join(m for m in meta if m))
            if product.get("description"):
                with st.expander("Details"):
                    st.write(product["description"])

            stock = product.get("stock") or 0
            b1, b2 = st.columns([3, 1])
            with b1:
                if stock <= 0:
                    st.button("Out of stock", key=f"cart_{product['id']}", disabled=True)
                elif st.button("🛒 Add to cart", key=f"cart_{product['id']}", type="primary", disabled=not user_id):
                    if run_action(lambda: shop.add_to_cart(user_id, product), f"{product['name']} added to cart"):
                        st.rerun()
            with b2:
                heart = "❤️" if product["id"] in favorites else "🤍"
                if st.button(heart, key=f"fav_{product['id']}", disabled=not user_id):
                    if run_action(lambda: shop.toggle_favorite(user_id, product["id"]), "Favorites updated") is not None:
                        st.rerun()

if not user_id:
    st.page_link("pages/account.py", label="Sign in to shop", icon="🔑")
