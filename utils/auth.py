"""
================================================================================
AUTHENTICATION MODULE
================================================================================

Purpose: Email/password authentication against Supabase Auth for Streamlit.
The signed-in session lives on the per-session Supabase client (utils.db) and a
small user record is mirrored in st.session_state for the pages.
================================================================================
"""

import logging
from datetime import datetime, timezone

import streamlit as st

from utils import db, realtime
from utils.constants import GENDERS, LEVELS, PROFILE_PHOTOS_BUCKET
from utils.validation import validate_email, validate_password, validate_profile, validate_upload

logger = logging.getLogger(__name__)

SESSION_KEYS = ["user", "supabase_client", "active_conversation", "admin_export"]

# =============================================================================
# AUTHENTICATION STATUS
# =============================================================================
# PURPOSE: Check if user is currently logged in


def is_logged_in():
    """Check if a user is currently logged in.

    Returns:
        bool: True if a user record is present in the session.
    """
    return bool(st.session_state.get("user"))


def current_user():
    """The session user record ({id, email, expires_at}) or None."""
    return st.session_state.get("user")


def current_user_id():
    user = current_user()
    return user["id"] if user else None


def current_profile():
    """Profile row of the signed-in user, or None."""
    user_id = current_user_id()
    if not user_id:
        return None
    return db.get_profile(user_id)


def is_admin():
    """True when the signed-in user holds the admin role."""
    user_id = current_user_id()
    if not user_id:
        return False
    return "admin" in db.get_user_roles(user_id)

# =============================================================================
# SIGN IN / SIGN UP / SIGN OUT
# =============================================================================
# PURPOSE: Thin wrappers around Supabase Auth that keep session_state in sync


def _store_session(response):
    user = response.user
    session = response.session
    st.session_state["user"] = {
        "id": user.id,
        "email": user.email,
        "expires_at": getattr(session, "expires_at", None) if session else None,
    }
    return st.session_state["user"]


def sign_in(email, password):
    """Sign in with email and password.

    Returns:
        dict: The session user record.

    Raises:
        ValueError: When the form is incomplete.
        Exception: Auth errors from Supabase propagate with their message.
    """
    if not email or not password:
        raise ValueError("Please enter your email and password")
    response = db.auth_client().sign_in_with_password({"email": email.strip(), "password": password})
    logger.info(f"User signed in: {response.user.id}")
    return _store_session(response)


def sign_up(email, password, name, phone="", gender=None, date_of_birth=None, level="beginner"):
    """Register a new player.

    The profile row is created by a database trigger from the metadata passed
    here, which also starts the three month trial membership.

    Returns:
        bool: True when a session was opened straight away, False when the
        project requires email confirmation first.

    Raises:
        ValueError: For invalid input or an email that is already registered.
    """
    for valid, error in (
        validate_email(email),
        validate_password(password),
        validate_profile(name, phone),
    ):
        if not valid:
            raise ValueError(error)
    if level not in LEVELS:
        raise ValueError("Please choose a valid level")
    if gender and gender not in GENDERS:
        raise ValueError("Please choose a valid gender")

    metadata = {
        "name": name.strip(),
        "phone": phone or None,
        "gender": gender,
        "date_of_birth": date_of_birth.isoformat() if hasattr(date_of_birth, "isoformat") else date_of_birth,
        "level": level,
    }
    try:
        response = db.auth_client().sign_up(
            {"email": email.strip(), "password": password, "options": {"data": metadata}}
        )
    except Exception as e:
        if "already registered" in str(e).lower():
            raise ValueError("This email is already registered. Please sign in instead.") from e
        raise

    logger.info(f"New player registered: {email}")
    if response.session:
        _store_session(response)
        return True
    return False


def clear_user_session():
    """Remove the signed-in user and the per-session client from session_state.

    Note:
        Cached readers are keyed by user id, so the next user never sees these
        rows; only the session-scoped objects have to go.
    """
    for key in SESSION_KEYS:
        if key in st.session_state:
            del st.session_state[key]


def sign_out():
    """Sign out of Supabase and forget the session."""
    try:
        db.auth_client().sign_out()
    except Exception as e:
        # Local session is cleared regardless; the token simply expires server side
        logger.warning(f"Sign out request failed: {e}")
    realtime.stop()
    clear_user_session()


def handle_logout():
    sign_out()
    st.rerun()


def check_token_expiry():
    """Log the user out when the Supabase access token has expired."""
    user = current_user()
    if not user or not user.get("expires_at"):
        return
    if datetime.now(timezone.utc).timestamp() > float(user["expires_at"]):
        st.warning("Your session has expired. Please sign in again.")
        handle_logout()


def change_password(current_password, new_password, confirm_password):
    """Change the password after re-verifying the current one.

    Raises:
        ValueError: When the current password is wrong or the new one is invalid.
    """
    user = current_user()
    if not user:
        raise ValueError("Please sign in first")
    valid, error = validate_password(new_password, confirm_password)
    if not valid:
        raise ValueError(error)

    try:
        db.auth_client().sign_in_with_password({"email": user["email"], "password": current_password})
    except Exception as e:
        raise ValueError("Current password is incorrect") from e
    db.auth_client().update_user({"password": new_password})
    logger.info(f"Password changed for {user['id']}")


def update_own_profile(name, phone):
    """Save name and phone of the signed-in user."""
    valid, error = validate_profile(name, phone)
    if not valid:
        raise ValueError(error)
    user_id = current_user_id()
    db.update_profile(user_id, {"name": name.strip(), "phone": phone or None})
    db.invalidate("get_profile", "get_all_profiles")


def upload_profile_photo(filename, data, content_type, now=None):
    """Replace the signed-in user's avatar.

    The file is stored at ``{user_id}/avatar.{ext}`` and overwritten on every
    upload, so the saved URL carries a timestamp to defeat browser caches.

    Returns:
        str: Public URL stored in ``profiles.profile_photo``.
    """
    user_id = current_user_id()
    if not user_id:
        raise ValueError("Please sign in first")
    valid, error = validate_upload(len(data or b""), content_type, ["image/*"])
    if not valid:
        raise ValueError(error)
    ext = filename.rsplit(".", 1)[-1].lower() if "." in (filename or "") else "jpg"
    url = db.upload_file(PROFILE_PHOTOS_BUCKET, f"{user_id}/avatar.{ext}", data, content_type, upsert=True)
    stamp = int((now or datetime.now(timezone.utc)).timestamp())
    photo_url = f"{url}?t={stamp}"
    db.update_profile(user_id, {"profile_photo": photo_url})
    db.invalidate("get_profile", "get_all_profiles")
    return photo_url

# =============================================================================
# ACCESS CONTROL
# =============================================================================
# PURPOSE: Page gates and membership checks


def account_restriction(profile, now=None):
    """Why this account may not create or join matches, or None if it may.

    Args:
        profile (dict): Row from ``profiles``.
        now (datetime, optional): Reference time, defaults to now (UTC).

    Returns:
        str or None: Human-readable reason.
    """
    if not profile:
        return "Profile not found"
    now = now or datetime.now(timezone.utc)
    suspended_until = profile.get("account_suspension_until")
    if suspended_until:
        until = datetime.fromisoformat(str(suspended_until).replace("Z", "+00:00"))
        if until.tzinfo is None:
            until = until.replace(tzinfo=timezone.utc)
        if until > now:
            return f"Your account is suspended until {until.strftime('%d %b %Y')}"
    if profile.get("membership_status") == "inactive":
        return "Your membership is inactive. Please renew to continue playing."
    return None


def require_login():
    """Stop the page for anonymous visitors."""
    if not is_logged_in():
        st.error("❌ Please sign in to use this page.")
        st.page_link("pages/account.py", label="Sign in or register", icon="🔑")
        st.stop()
    check_token_expiry()


def require_admin():
    require_login()
    if not is_admin():
        st.error("❌ Admin access required.")
        st.stop()