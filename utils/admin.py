"""
================================================================================
ADMIN BACK-OFFICE
================================================================================

Purpose: Operations behind pages/admin.py. Access is enforced twice: the page
calls require_admin() and the database only lets admins write these tables.
Invalid forms raise ValueError before anything is sent to Supabase.
================================================================================
"""

import logging

from utils import db
from utils.constants import MEMBERSHIP_STATUSES, ROLES
from utils.validation import validate_court, validate_product

logger = logging.getLogger(__name__)

# =============================================================================
# DASHBOARD
# =============================================================================


def overview_stats():
    """Headline numbers for the dashboard.

    Returns:
        dict: users, revenue (approved orders only), courts, products,
        pending_payments.
    """
    approved = db.get_orders(payment_status="approved")
    return {
        "users": db.count_rows("profiles"),
        "revenue": sum(float(o.get("total_amount") or 0) for o in approved),
        "courts": db.count_rows("courts"),
        "products": db.count_rows("products"),
        "pending_payments": db.count_rows("orders", payment_status="pending"),
    }

# =============================================================================
# COURTS
# =============================================================================


def _court_row(form):
    valid, error = validate_court(form)
    if not valid:
        raise ValueError(error)
    rating = form.get("rating")
    images = form.get("images") or []
    if isinstance(images, str):
        images = [url.strip() for url in images.splitlines() if url.strip()]
    return {
        "court_name": form["court_name"].strip(),
        "address": form["address"].strip(),
        "contact": (form.get("contact") or "").strip() or None,
        "opening_hours": (form.get("opening_hours") or "").strip() or None,
        "google_map_url": (form.get("google_map_url") or "").strip() or None,
        "price_rate": (form.get("price_rate") or "").strip() or None,
        "rating": float(rating) if rating not in (None, "") else None,
        "images": images,
    }


def save_court(form, court_id=None):
    """Create a court, or update it when ``court_id`` is given."""
    row = _court_row(form)
    if court_id:
        saved = db.update_court(court_id, row)
    else:
        saved = db.insert_court(row)
    logger.info(f"Court saved: {row['court_name']}")
    db.invalidate("get_courts", "get_platform_stats")
    return saved


def delete_court(court_id):
    db.delete_court(court_id)
    db.invalidate("get_courts", "get_platform_stats")

# =============================================================================
# PRODUCTS
# =============================================================================


def _product_row(form):
    valid, error = validate_product(form)
    if not valid:
        raise ValueError(error)
    images = form.get("images") or []
    if isinstance(images, str):
        images = [url.strip() for url in images.splitlines() if url.strip()]
    stock = form.get("stock")
    return {
        "name": form["name"].strip(),
        "description": (form.get("description") or "").strip() or None,
        "category_id": form.get("category_id") or None,
        "price": float(form["price"]),
        "stock": int(stock) if stock not in (None, "") else 0,
        "images": images,
        "level_recommendation": form.get("level_recommendation") or None,
    }


def save_product(form, product_id=None):
    row = _product_row(form)
    if product_id:
        saved = db.update_product(product_id, row)
    else:
        saved = db.insert_product(row)
    logger.info(f"Product saved: {row['name']}")
    db.invalidate("get_products")
    return saved


def delete_product(product_id):
    db.delete_product(product_id)
    db.invalidate("get_products")

# =============================================================================
# PAYMENTS
# =============================================================================


def set_payment_status(order_id, approved):
    """Approve or reject a pending payment screenshot."""
    status = "approved" if approved else "rejected"
    db.update_order_status(order_id, status)
    logger.info(f"Order {order_id} {status}")
    db.invalidate("get_orders")
    return status

# =============================================================================
# USERS & ROLES
# =============================================================================


def search_users(profiles, term=""):
    """Case-insensitive match on name or email."""
    term = (term or "").strip().lower()
    if not term:
        return list(profiles)
    return [
        p for p in profiles
        if term in (p.get("name") or "").lower() or term in (p.get("email") or "").lower()
    ]


def roles_by_user(role_rows):
    grouped = {}
    for row in role_rows:
        grouped.setdefault(row["user_id"], []).append(row["role"])
    return grouped


def add_role(user_id, role):
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    added = db.add_user_role(user_id, role)
    db.invalidate("get_user_roles")
    return added


def remove_role(user_id, role, acting_user_id=None):
    if role == "admin" and user_id == acting_user_id:
        raise ValueError("You cannot remove your own admin role")
    db.remove_user_role(user_id, role)
    db.invalidate("get_user_roles")


def set_membership(user_id, status):
    if status not in MEMBERSHIP_STATUSES:
        raise ValueError(f"Unknown membership status: {status}")
    db.update_profile(user_id, {"membership_status": status})
    db.invalidate("get_profile", "get_all_profiles")


def delete_user(user_id, acting_user_id=None):
    """Remove a player's profile row."""
    if user_id == acting_user_id:
        raise ValueError("You cannot delete your own account here")
    db.delete_profile(user_id)
    logger.warning(f"Profile {user_id} deleted by {acting_user_id}")
    db.invalidate("get_all_profiles", "get_profile", "get_platform_stats")
