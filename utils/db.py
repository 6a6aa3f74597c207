# Supabase data access layer for ShuttleMatch
# This module centralizes all database, storage and RPC calls
# Architecture: Streamlit UI → utils.* service helpers → utils.db → Supabase REST API
# Other modules should not import Supabase directly, they should use functions from this module
# Mutations let APIError propagate so the page can show the message verbatim;
# cached readers that feed passive widgets log and degrade to an empty value

import streamlit as st
from datetime import datetime, timezone
from st_supabase_connection import SupabaseConnection
from supabase import create_client
import logging

logger = logging.getLogger(__name__)

# CONNECTION

def credentials():
    creds = st.secrets["connections"]["supabase"]
    return creds["url"], creds["key"]

# Shared connection for anonymous reads (courts, products, rankings)
# @st.cache_resource makes it a singleton for the whole server process
@st.cache_resource
def public_conn():
    url, key = credentials()
    return st.connection("supabase", type=SupabaseConnection, url=url, key=key)

# Per-browser-session client
# Signing in stores the user's JWT on the client, so it must never be shared
# between sessions; st.session_state is scoped to one browser tab
def supaconn():
    if "supabase_client" not in st.session_state:
        url, key = credentials()
        st.session_state["supabase_client"] = create_client(url, key)
    return st.session_state["supabase_client"]

def _first(result):
    if result.data:
        return result.data[0]
    return None

# Clear cached readers by name after a mutation
# Equivalent of invalidating a query key: the next rerun fetches fresh rows
def invalidate(*names):
    for name in names:
        func = globals().get(name)
        if func is not None and hasattr(func, "clear"):
            func.clear()
        else:
            logger.warning(f"Unknown cache to invalidate: {name}")

# AUTH

def auth_client():
    return supaconn().auth

# PROFILES

# Single profile by id, used by nearly every page
@st.cache_data(ttl=30)
def get_profile(user_id):
    try:
        return _first(supaconn().table("profiles").select("*").eq("id", user_id).limit(1).execute())
    except Exception as e:
        logger.error(f"Error loading profile {user_id}: {e}")
        return None

# All profiles; rankings, challenge picker and admin user list read from here
@st.cache_data(ttl=60)
def get_all_profiles():
    try:
        result = public_conn().table("profiles").select("*").order("experience_points", desc=True).execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading profiles: {e}")
        st.error("⚠️ Could not load players.")
        return []

# Map of id → profile for a set of ids
def get_profiles_by_ids(user_ids):
    ids = sorted({uid for uid in user_ids if uid})
    if not ids:
        return {}
    result = supaconn().table("profiles").select("*").in_("id", ids).execute()
    return {row["id"]: row for row in (result.data or [])}

def update_profile(user_id, fields):
    result = supaconn().table("profiles").update(fields).eq("id", user_id).execute()
    return _first(result)

def delete_profile(user_id):
    supaconn().table("profiles").delete().eq("id", user_id).execute()

# ROLES

@st.cache_data(ttl=60)
def get_user_roles(user_id):
    try:
        result = supaconn().table("user_roles").select("role").eq("user_id", user_id).execute()
        return [row["role"] for row in (result.data or [])]
    except Exception as e:
        logger.error(f"Error loading roles for {user_id}: {e}")
        return []

def get_all_roles():
    result = supaconn().table("user_roles").select("*").execute()
    return result.data or []

def add_user_role(user_id, role):
    existing = supaconn().table("user_roles").select("id").eq("user_id", user_id).eq("role", role).execute()
    if existing.data:
        return False
    supaconn().table("user_roles").insert({"user_id": user_id, "role": role}).execute()
    return True

def remove_user_role(user_id, role):
    supaconn().table("user_roles").delete().eq("user_id", user_id).eq("role", role).execute()

# COURTS

# Court directory changes rarely, so it is cached for 5 minutes
@st.cache_data(ttl=300)
def get_courts():
    try:
        result = public_conn().table("courts").select("*").order("court_name").execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading courts: {e}")
        st.error("⚠️ Could not load courts.")
        return []

def insert_court(court):
    return _first(supaconn().table("courts").insert(court).execute())

def update_court(court_id, fields):
    return _first(supaconn().table("courts").update(fields).eq("id", court_id).execute())

def delete_court(court_id):
    supaconn().table("courts").delete().eq("id", court_id).execute()

# SHOP CATALOGUE

@st.cache_data(ttl=300)
def get_categories():
    try:
        result = public_conn().table("shop_categories").select("*").order("name").execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading categories: {e}")
        return []

@st.cache_data(ttl=60)
def get_products():
    try:
        result = public_conn().table("products").select("*").order("name").execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading products: {e}")
        st.error("⚠️ Could not load products.")
        return []

def get_product(product_id):
    return _first(supaconn().table("products").select("*").eq("id", product_id).limit(1).execute())

def get_products_by_ids(product_ids):
    ids = sorted({pid for pid in product_ids if pid})
    if not ids:
        return {}
    result = supaconn().table("products").select("*").in_("id", ids).execute()
    return {row["id"]: row for row in (result.data or [])}

def insert_product(product):
    return _first(supaconn().table("products").insert(product).execute())

def update_product(product_id, fields):
    return _first(supaconn().table("products").update(fields).eq("id", product_id).execute())

def delete_product(product_id):
    supaconn().table("products").delete().eq("id", product_id).execute()

# CART & FAVORITES

@st.cache_data(ttl=30)
def get_cart(user_id):
    try:
        result = supaconn().table("cart").select("*").eq("user_id", user_id).execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading cart for {user_id}: {e}")
        return []

def find_cart_line(user_id, product_id):
    result = supaconn().table("cart").select("*").eq("user_id", user_id).eq("product_id", product_id).limit(1).execute()
    return _first(result)

def insert_cart_line(user_id, product_id, quantity=1):
    row = {"user_id": user_id, "product_id": product_id, "quantity": quantity}
    return _first(supaconn().table("cart").insert(row).execute())

def update_cart_line(line_id, quantity):
    return _first(supaconn().table("cart").update({"quantity": quantity}).eq("id", line_id).execute())

def delete_cart_line(line_id):
    supaconn().table("cart").delete().eq("id", line_id).execute()

def clear_cart(user_id):
    supaconn().table("cart").delete().eq("user_id", user_id).execute()

@st.cache_data(ttl=60)
def get_favorites(user_id):
    try:
        result = supaconn().table("favorites").select("product_id").eq("user_id", user_id).execute()
        return [row["product_id"] for row in (result.data or [])]
    except Exception as e:
        logger.error(f"Error loading favorites for {user_id}: {e}")
        return []

def find_favorite(user_id, product_id):
    return _first(supaconn().table("favorites").select("id").eq("user_id", user_id).eq("product_id", product_id).limit(1).execute())

def insert_favorite(user_id, product_id):
    supaconn().table("favorites").insert({"user_id": user_id, "product_id": product_id}).execute()

def delete_favorite(favorite_id):
    supaconn().table("favorites").delete().eq("id", favorite_id).execute()

# ORDERS

def insert_order(order):
    return _first(supaconn().table("orders").insert(order).execute())

def insert_order_items(items):
    if items:
        supaconn().table("order_items").insert(items).execute()

# Orders for one user, or every order when user_id is None (admin)
@st.cache_data(ttl=30)
def get_orders(user_id=None, payment_status=None):
    try:
        query = supaconn().table("orders").select("*")
        if user_id:
            query = query.eq("user_id", user_id)
        if payment_status:
            query = query.eq("payment_status", payment_status)
        result = query.order("created_at", desc=True).execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading orders: {e}")
        st.error("⚠️ Could not load orders.")
        return []

def get_order_items(order_ids):
    ids = sorted(set(order_ids))
    if not ids:
        return []
    result = supaconn().table("order_items").select("*").in_("order_id", ids).execute()
    return result.data or []

def update_order_status(order_id, status):
    return _first(supaconn().table("orders").update({"payment_status": status}).eq("id", order_id).execute())

# PARTNER REQUESTS

@st.cache_data(ttl=30)
def get_partner_requests():
    try:
        result = supaconn().table("partner_requests").select("*").order("date").execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading partner requests: {e}")
        st.error("⚠️ Could not load partner requests.")
        return []

def get_partner_request(request_id):
    return _first(supaconn().table("partner_requests").select("*").eq("id", request_id).limit(1).execute())

def insert_partner_request(request):
    return _first(supaconn().table("partner_requests").insert(request).execute())

def update_partner_request(request_id, fields):
    return _first(supaconn().table("partner_requests").update(fields).eq("id", request_id).execute())

@st.cache_data(ttl=30)
def get_participants():
    try:
        result = supaconn().table("partner_request_participants").select("*").execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading participants: {e}")
        return []

def get_request_participants(request_id):
    result = supaconn().table("partner_request_participants").select("*").eq("request_id", request_id).execute()
    return result.data or []

def insert_participant(request_id, user_id, status="joined"):
    row = {"request_id": request_id, "user_id": user_id, "status": status}
    return _first(supaconn().table("partner_request_participants").insert(row).execute())

def update_participant(request_id, user_id, fields):
    supaconn().table("partner_request_participants").update(fields).eq("request_id", request_id).eq("user_id", user_id).execute()

def delete_participant(request_id, user_id):
    supaconn().table("partner_request_participants").delete().eq("request_id", request_id).eq("user_id", user_id).execute()

# CHALLENGES

# Challenges sent or received by a user
@st.cache_data(ttl=30)
def get_challenges(user_id):
    try:
        result = supaconn().table("challenges").select("*").or_(
            f"challenger_id.eq.{user_id},challenged_id.eq.{user_id}"
        ).order("created_at", desc=True).execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading challenges for {user_id}: {e}")
        return []

def get_challenge(challenge_id):
    return _first(supaconn().table("challenges").select("*").eq("id", challenge_id).limit(1).execute())

def insert_challenge(challenge):
    return _first(supaconn().table("challenges").insert(challenge).execute())

def update_challenge(challenge_id, fields):
    return _first(supaconn().table("challenges").update(fields).eq("id", challenge_id).execute())

def delete_challenge(challenge_id):
    supaconn().table("challenges").delete().eq("id", challenge_id).execute()

# MATCHES

@st.cache_data(ttl=30)
def get_matches(user_id):
    try:
        result = supaconn().table("matches").select("*").or_(
            f"player1.eq.{user_id},player2.eq.{user_id}"
        ).order("created_at", desc=True).execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading matches for {user_id}: {e}")
        return []

def get_match(match_id):
    return _first(supaconn().table("matches").select("*").eq("id", match_id).limit(1).execute())

def insert_match(match):
    return _first(supaconn().table("matches").insert(match).execute())

def update_match(match_id, fields):
    return _first(supaconn().table("matches").update(fields).eq("id", match_id).execute())

def delete_match(match_id):
    supaconn().table("matches").delete().eq("id", match_id).execute()

# Flip player2_confirmed only if it is still false
# Returns the updated row, or None when someone else confirmed first
def confirm_match_once(match_id, winner):
    result = supaconn().table("matches").update(
        {"player2_confirmed": True, "winner": winner}
    ).eq("id", match_id).eq("player2_confirmed", False).execute()
    return _first(result)

# Undo confirm_match_once when the stats were never applied
def release_match_confirmation(match_id):
    supaconn().table("matches").update(
        {"player2_confirmed": False}
    ).eq("id", match_id).eq("experience_awarded", False).execute()

# Remote procedure that updates wins, losses, XP and matches played
def call_update_match_stats(params):
    return supaconn().rpc("update_match_stats", params).execute()

def count_matches_since(since_iso):
    try:
        result = public_conn().table("matches").select("id", count="exact").gte("created_at", since_iso).execute()
        return result.count or 0
    except Exception as e:
        logger.error(f"Error counting matches: {e}")
        return 0

# EXPERIENCE RULES & PENALTIES

@st.cache_data(ttl=300)
def get_experience_rules(mode):
    try:
        return _first(supaconn().table("experience_rules").select("*").eq("mode", mode).limit(1).execute())
    except Exception as e:
        logger.error(f"Error loading experience rules for {mode}: {e}")
        return None

def insert_penalty_log(entry):
    return _first(supaconn().table("penalty_logs").insert(entry).execute())

# NOTIFICATIONS

@st.cache_data(ttl=10)
def get_notifications(user_id, limit=20):
    try:
        result = supaconn().table("notifications").select("*").eq("user_id", user_id).order("created_at", desc=True).limit(limit).execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading notifications for {user_id}: {e}")
        return []

@st.cache_data(ttl=10)
def get_unread_notification_count(user_id):
    try:
        result = supaconn().table("notifications").select("id", count="exact").eq("user_id", user_id).eq("is_read", False).execute()
        return result.count or 0
    except Exception as e:
        logger.error(f"Error counting notifications for {user_id}: {e}")
        return 0

def insert_notification(user_id, type_, title, message, related_id=None):
    row = {
        "user_id": user_id,
        "type": type_,
        "title": title,
        "message": message,
        "related_id": related_id,
        "is_read": False,
    }
    supaconn().table("notifications").insert(row).execute()

def mark_notification_read(notification_id):
    supaconn().table("notifications").update({"is_read": True}).eq("id", notification_id).execute()

def mark_all_notifications_read(user_id):
    supaconn().table("notifications").update({"is_read": True}).eq("user_id", user_id).eq("is_read", False).execute()

# DIRECT MESSAGES

@st.cache_data(ttl=10)
def get_direct_messages(user_id):
    try:
        result = supaconn().table("direct_messages").select("*").or_(
            f"sender_id.eq.{user_id},receiver_id.eq.{user_id}"
        ).order("created_at", desc=True).execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading messages for {user_id}: {e}")
        return []

def get_thread(user_id, partner_id):
    result = supaconn().table("direct_messages").select("*").or_(
        f"and(sender_id.eq.{user_id},receiver_id.eq.{partner_id}),and(sender_id.eq.{partner_id},receiver_id.eq.{user_id})"
    ).order("created_at").execute()
    return result.data or []

def insert_message(sender_id, receiver_id, message):
    row = {"sender_id": sender_id, "receiver_id": receiver_id, "message": message, "is_read": False}
    return _first(supaconn().table("direct_messages").insert(row).execute())

def mark_messages_read(receiver_id, sender_id):
    supaconn().table("direct_messages").update({"is_read": True}).eq("receiver_id", receiver_id).eq("sender_id", sender_id).eq("is_read", False).execute()

@st.cache_data(ttl=10)
def get_unread_message_count(user_id):
    try:
        result = supaconn().table("direct_messages").select("id", count="exact").eq("receiver_id", user_id).eq("is_read", False).execute()
        return result.count or 0
    except Exception as e:
        logger.error(f"Error counting messages for {user_id}: {e}")
        return 0

# COMMUNITY

@st.cache_data(ttl=30)
def get_posts(limit=50):
    try:
        result = public_conn().table("posts").select("*").order("created_at", desc=True).limit(limit).execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading posts: {e}")
        st.error("⚠️ Could not load posts.")
        return []

def get_post(post_id):
    return _first(supaconn().table("posts").select("*").eq("id", post_id).limit(1).execute())

def insert_post(user_id, content):
    return _first(supaconn().table("posts").insert({"user_id": user_id, "content": content, "likes_count": 0}).execute())

def delete_post(post_id):
    supaconn().table("posts").delete().eq("id", post_id).execute()

@st.cache_data(ttl=30)
def get_post_likes(post_ids):
    ids = sorted(set(post_ids))
    if not ids:
        return []
    try:
        result = supaconn().table("post_likes").select("*").in_("post_id", ids).execute()
        return result.data or []
    except Exception as e:
        logger.error(f"Error loading likes: {e}")
        return []

def find_like(post_id, user_id):
    return _first(supaconn().table("post_likes").select("id").eq("post_id", post_id).eq("user_id", user_id).limit(1).execute())

def insert_like(post_id, user_id):
    supaconn().table("post_likes").insert({"post_id": post_id, "user_id": user_id}).execute()

def delete_like(like_id):
    supaconn().table("post_likes").delete().eq("id", like_id).execute()

def count_likes(post_id):
    result = supaconn().table("post_likes").select("id", count="exact").eq("post_id", post_id).execute()
    return result.count or 0

def set_likes_count(post_id, count):
    supaconn().table("posts").update({"likes_count": count}).eq("id", post_id).execute()

# STORAGE

# Upload bytes to a storage bucket and return the public URL
def upload_file(bucket, path, data, content_type, upsert=False):
    storage = supaconn().storage.from_(bucket)
    storage.upload(
        path=path,
        file=data,
        file_options={"content-type": content_type, "upsert": "true" if upsert else "false"},
    )
    return storage.get_public_url(path)

# STATISTICS

# Exact row count of a table, used by the admin dashboard and home page
def count_rows(table, **filters):
    try:
        query = supaconn().table(table).select("id", count="exact")
        for column, value in filters.items():
            query = query.eq(column, value)
        return query.execute().count or 0
    except Exception as e:
        logger.error(f"Error counting {table}: {e}")
        return 0

# Players, courts, matches this month and average court rating for the home page
@st.cache_data(ttl=300)
def get_platform_stats():
    now = datetime.now(timezone.utc)
    month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    try:
        players = public_conn().table("profiles").select("id", count="exact").execute().count or 0
        courts = public_conn().table("courts").select("rating").execute().data or []
    except Exception as e:
        logger.error(f"Error loading platform stats: {e}")
        return None
    ratings = [float(c["rating"]) for c in courts if c.get("rating") is not None]
    return {
        "players": players,
        "courts": len(courts),
        "matches_this_month": count_matches_since(month_start.isoformat()),
        "average_rating": round(sum(ratings) / len(ratings), 1) if ratings else None,
    }
