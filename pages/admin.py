"""pages.admin

Back-office for ShuttleMatch admins: dashboard and charts, court and product
management, payment approval, users and roles, and the database export.
"""

from datetime import datetime, timezone

import streamlit as st

from utils import admin, db
from utils.analytics import render_admin_analytics
from utils.auth import current_user_id, require_admin
from utils.constants import LEVELS, MEMBERSHIP_STATUSES, ROLES
from utils.export import export_filename, export_sql, fetch_all
from utils.formatting import format_datetime, format_price, format_status, orders_dataframe
from utils.layout import render_sidebar, run_action

st.set_page_config(page_title="Admin · ShuttleMatch", page_icon="🛠️", layout="wide")
render_sidebar()
require_admin()

user_id = current_user_id()

st.title("🛠️ Admin")

tab_dash, tab_courts, tab_products, tab_payments, tab_users, tab_export = st.tabs([
    "📊 Dashboard",
    "🏟️ Courts",
    "🛍️ Products",
    "💳 Payments",
    "👥 Users",
    "💾 Export",
])

# === TAB 1: DASHBOARD ===
with tab_dash:
    stats = admin.overview_stats()
    c1, c2, c3, c4, c5 = st.columns(5)
    c1.metric("Users", stats["users"])
    c2.metric("Revenue", format_price(stats["revenue"]))
    c3.metric("Courts", stats["courts"])
    c4.metric("Products", stats["products"])
    c5.metric("Pending payments", stats["pending_payments"])
    render_admin_analytics(db.get_all_profiles(), db.get_orders(payment_status="approved"), db.get_partner_requests())


def _court_form(key, court=None):
    court = court or {}
    with st.form(key):
        form = {
            "court_name": st.text_input("Name *", value=court.get("court_name") or ""),
            "address": st.text_input("Address *", value=court.get("address") or ""),
            "contact": st.text_input("Contact", value=court.get("contact") or ""),
            "opening_hours": st.text_input("Opening hours", value=court.get("opening_hours") or ""),
            "price_rate": st.text_input("Price rate", value=court.get("price_rate") or ""),
            "google_map_url": st.text_input("Google Maps URL", value=court.get("google_map_url") or ""),
            "rating": st.text_input("Rating (0-5)", value="" if court.get("rating") is None else str(court["rating"])),
            "images": st.text_area("Image URLs (one per line)", value="\n".join(court.get("images") or [])),
        }
        submitted = st.form_submit_button("Save court", type="primary")
    return form if submitted else None


# === TAB 2: COURTS ===
with tab_courts:
    with st.expander("➕ Add court"):
        form = _court_form("new_court")
        if form and run_action(lambda: admin.save_court(form), "Court added"):
            st.rerun()
    for court in db.get_courts():
        with st.expander(f"{court['court_name']} · {court.get('address') or ''}"):
            form = _court_form(f"court_{court['id']}", court)
            if form and run_action(lambda: admin.save_court(form, court["id"]), "Court updated"):
                st.rerun()
            if st.button("🗑️ Delete court", key=f"del_court_{court['id']}"):
                if run_action(lambda: admin.delete_court(court["id"]), "Court deleted"):
                    st.rerun()

categories = db.get_categories()
category_names = {c["id"]: c["name"] for c in categories}


def _product_form(key, product=None):
    product = product or {}
    category_ids = [None] + list(category_names)
    level_options = [None] + LEVELS
    with st.form(key):
        form = {
            "name": st.text_input("Name *", value=product.get("name") or ""),
            "description": st.text_area("Description", value=product.get("description") or ""),
            "category_id": st.selectbox(
                "Category", category_ids,
                index=category_ids.index(product.get("category_id")) if product.get("category_id") in category_ids else 0,
                format_func=lambda cid: "None" if cid is None else category_names[cid],
            ),
            "price": st.text_input("Price (MMK) *", value=str(product.get("price") or "")),
            "stock": st.text_input("Stock", value=str(product.get("stock") or 0)),
            "level_recommendation": st.selectbox(
                "Recommended level", level_options,
                index=level_options.index(product.get("level_recommendation")) if product.get("level_recommendation") in level_options else 0,
                format_func=lambda level: "Any" if level is None else level.capitalize(),
            ),
            "images": st.text_area("Image URLs (one per line)", value="\n".join(product.get("images") or [])),
        }
        submitted = st.form_submit_button("Save product", type="primary")
    return form if submitted else None


# === TAB 3: PRODUCTS ===
with tab_products:
    with st.expander("➕ Add product"):
        form = _product_form("new_product")
        if form and run_action(lambda: admin.save_product(form), "Product added"):
            st.rerun()
    for product in db.get_products():
        with st.expander(f"{product['name']} · {format_price(product.get('price'))} · stock {product.get('stock') or 0}"):
            form = _product_form(f"product_{product['id']}", product)
            if form and run_action(lambda: admin.save_product(form, product["id"]), "Product updated"):
                st.rerun()
            if st.button("🗑️ Delete product", key=f"del_product_{product['id']}"):
                if run_action(lambda: admin.delete_product(product["id"]), "Product deleted"):
                    st.rerun()

# === TAB 4: PAYMENTS ===
with tab_payments:
    profiles_by_id = {p["id"]: p for p in db.get_all_profiles()}
    pending = db.get_orders(payment_status="pending")
    st.subheader(f"Pending ({len(pending)})")
    if not pending:
        st.info("No payments waiting for approval.")
    for order in pending:
        customer = (profiles_by_id.get(order.get("user_id")) or {}).get("name", "Unknown")
        with st.container(border=True):
            col1, col2, col3 = st.columns([2, 2, 1])
            with col1:
                st.markdown(f"**{customer}** · {format_price(order.get('total_amount'))}")
                st.caption(f"{format_datetime(order.get('created_at'))} · Transaction {order.get('transaction_id')}")
                st.caption(f"{order.get('delivery_name')}, {order.get('delivery_phone')}, {order.get('delivery_address')}")
            with col2:
                if order.get("uploaded_screenshot"):
                    st.image(order["uploaded_screenshot"], width=200)
            with col3:
                if st.button("✅ Approve", key=f"approve_{order['id']}", type="primary", use_container_width=True):
                    if run_action(lambda: admin.set_payment_status(order["id"], True), "Payment approved"):
                        st.rerun()
                if st.button("❌ Reject", key=f"reject_{order['id']}", use_container_width=True):
                    if run_action(lambda: admin.set_payment_status(order["id"], False), "Payment rejected"):
                        st.rerun()

    st.subheader("All orders")
    st.dataframe(orders_dataframe(db.get_orders(), profiles_by_id), use_container_width=True, hide_index=True)

# === TAB 5: USERS ===
with tab_users:
    term = st.text_input("🔎 Search by name or email")
    roles = admin.roles_by_user(db.get_all_roles())
    for profile in admin.search_users(db.get_all_profiles(), term):
        pid = profile["id"]
        user_roles = roles.get(pid, [])
        with st.expander(f"{profile.get('name') or 'Unknown'} · {profile.get('email') or ''} · {', '.join(user_roles) or 'user'}"):
            st.caption(
                f"{format_status(profile.get('membership_status'))} · {profile.get('experience_points') or 0} XP"
                f" · penalties {profile.get('penalty_count') or 0}"
            )
            col1, col2, col3 = st.columns(3)
            with col1:
                status = st.selectbox(
                    "Membership", MEMBERSHIP_STATUSES,
                    index=MEMBERSHIP_STATUSES.index(profile["membership_status"]) if profile.get("membership_status") in MEMBERSHIP_STATUSES else 0,
                    key=f"membership_{pid}",
                )
                if status != profile.get("membership_status") and st.button("Save membership", key=f"save_membership_{pid}"):
                    if run_action(lambda: admin.set_membership(pid, status), "Membership updated"):
                        st.rerun()
            with col2:
                role = st.selectbox("Role", ROLES, key=f"role_{pid}")
                if role in user_roles:
                    if st.button(f"Remove {role}", key=f"remove_role_{pid}"):
                        if run_action(lambda: admin.remove_role(pid, role, user_id), "Role removed"):
                            st.rerun()
                elif st.button(f"Grant {role}", key=f"add_role_{pid}"):
                    if run_action(lambda: admin.add_role(pid, role), "Role granted"):
                        st.rerun()
            with col3:
                confirm = st.checkbox("Confirm delete", key=f"confirm_delete_{pid}")
                if st.button("🗑️ Delete user", key=f"delete_{pid}", disabled=not confirm or pid == user_id):
                    if run_action(lambda: admin.delete_user(pid, user_id), "User deleted"):
                        st.rerun()

# === TAB 6: EXPORT ===
with tab_export:
    st.caption("Download every table as MySQL compatible INSERT statements.")
    if st.button("Prepare export", type="primary"):
        with st.spinner("Exporting..."):
            client = db.supaconn()
            st.session_state["admin_export"] = export_sql(
                lambda table: fetch_all(client, table), datetime.now(timezone.utc)
            )
    if st.session_state.get("admin_export"):
        st.download_button(
            "💾 Download SQL",
            data=st.session_state["admin_export"],
            file_name=export_filename(),
            mime="application/sql",
        )
