"""pages.cart

Cart, checkout with payment screenshot upload and order history.
"""

import streamlit as st

from utils import db, shop
from utils.auth import current_profile, current_user_id, require_login
from utils.constants import MAX_UPLOAD_BYTES
from utils.formatting import format_datetime, format_price, format_status
from utils.layout import render_sidebar, run_action

st.set_page_config(page_title="Cart · ShuttleMatch", page_icon="🛒", layout="wide")
render_sidebar()
require_login()

user_id = current_user_id()
profile = current_profile() or {}

st.title("🛒 Cart & Checkout")

raw_lines = db.get_cart(user_id)
lines = shop.cart_with_products(raw_lines, db.get_products_by_ids([l["product_id"] for l in raw_lines]))

tab_cart, tab_orders = st.tabs(["🛒 Cart", "📦 My orders"])

# === TAB 1: CART & CHECKOUT ===
with tab_cart:
    if not lines:
        st.info("Your cart is empty.")
        st.page_link("pages/shop.py", label="Go to shop", icon="🛍️")
    else:
        for line in lines:
            product = line["product"]
            col1, col2, col3, col4 = st.columns([3, 2, 2, 1])
            col1.markdown(f"**{product['name']}**")
            col1.caption(format_price(product.get("price")))
            with col2:
                quantity = st.number_input(
                    "Quantity", min_value=0, max_value=max(int(product.get("stock") or 0), line["quantity"]),
                    value=int(line["quantity"]), key=f"qty_{line['id']}", label_visibility="collapsed",
                )
                if quantity != line["quantity"]:
                    if run_action(lambda: shop.update_quantity(line["id"], quantity), "Cart updated"):
                        st.rerun()
            col3.markdown(format_price(float(product.get("price") or 0) * line["quantity"]))
            with col4:
                if st.button("🗑️", key=f"remove_{line['id']}"):
                    if run_action(lambda: shop.remove_line(line["id"]), "Removed from cart"):
                        st.rerun()

        st.divider()
        st.subheader(f"Total: {format_price(shop.cart_total(lines))}")

        st.markdown("#### Payment")
        st.caption(
            "Transfer the total via KBZPay or bank transfer, then upload a screenshot of the payment "
            "with the transaction ID. Your order is shipped once an admin approves the payment."
        )
        with st.form("checkout"):
            transaction_id = st.text_input("Transaction ID *")
            receipt = st.file_uploader(
                f"Payment screenshot * (max {MAX_UPLOAD_BYTES // (1024 * 1024)}MB)",
                type=["png", "jpg", "jpeg", "webp", "pdf"],
            )
            st.markdown("#### Delivery")
            delivery_name = st.text_input("Name *", value=profile.get("name") or "")
            delivery_phone = st.text_input("Phone *", value=profile.get("phone") or "")
            delivery_address = st.text_area("Address *")
            submitted = st.form_submit_button("Place order", type="primary")

        if submitted:
            form = {
                "transaction_id": transaction_id,
                "delivery_name": delivery_name,
                "delivery_phone": delivery_phone,
                "delivery_address": delivery_address,
            }
            if receipt is None:
                st.error("❌ Please upload your payment screenshot")
            else:
                order = run_action(
                    lambda: shop.checkout(user_id, lines, form, receipt.name, receipt.getvalue(), receipt.type),
                    "Order placed",
                )
                if order:
                    st.success("🎉 Thank you! Your order is waiting for payment approval.")
                    st.balloons()

# === TAB 2: ORDERS ===
with tab_orders:
    orders = shop.order_history(user_id)
    if not orders:
        st.info("No orders yet.")
    for order in orders:
        with st.expander(
            f"{format_datetime(order.get('created_at'))} · {format_price(order.get('total_amount'))} · {format_status(order.get('payment_status'))}"
        ):
            for item in order["items"]:
                st.markdown(f"- {item['product_name']} × {item['quantity']} @ {format_price(item['price'])}")
            st.caption(f"Deliver to {order.get('delivery_name')}, {order.get('delivery_phone')}, {order.get('delivery_address')}")
            st.caption(f"Transaction ID: {order.get('transaction_id')}")
