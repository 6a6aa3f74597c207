"""
================================================================================
REALTIME CHANGE FEED
================================================================================

Purpose: Keep badges and lists fresh when another player acts (a new message,
a challenge, a confirmed match) without the user clicking anything.

How it works:
1. After sign-in a background thread opens one Supabase realtime channel for
   the user and subscribes to the tables below.
2. Each change event marks the cached readers fed by that table as dirty in an
   InvalidationRegistry kept in the user's session.
3. The sidebar fragment reruns every few seconds, drains the registry and
   clears those caches, so the next render fetches fresh rows.
4. A browser tab that is closed without signing out stops draining. Once the
   registry has not been drained for IDLE_TIMEOUT_SECONDS the listener closes
   its channel and the thread ends; the next sidebar run starts a new one.

Streamlit cannot push a rerun from another thread, hence the polling fragment
(it also keeps badges fresh when realtime is unavailable).

Profiles are not subscribed: every profile edit by any player would clear the
shared profile caches in every session. They refresh on their cache TTL.
================================================================================
"""

import asyncio
import logging
import threading
import time

import streamlit as st
from supabase import acreate_client

from utils import db

logger = logging.getLogger(__name__)

# Listener gives up after this long without a drain from the sidebar
IDLE_TIMEOUT_SECONDS = 120

# Cached readers in utils.db fed by each table
TABLE_CACHES = {
    "notifications": ["get_notifications", "get_unread_notification_count"],
    "direct_messages": ["get_direct_messages", "get_unread_message_count"],
    "challenges": ["get_challenges"],
    "matches": ["get_matches"],
    "partner_requests": ["get_partner_requests"],
    "partner_request_participants": ["get_participants"],
}


class InvalidationRegistry:
    """Thread-safe set of cache names waiting to be cleared.

    Also remembers when it was last drained, so the listener can tell whether
    anybody is still reading it.
    """

    def __init__(self, table_caches=None, clock=time.monotonic):
        self._table_caches = table_caches or TABLE_CACHES
        self._dirty = set()
        self._lock = threading.Lock()
        self._clock = clock
        self._last_drain = clock()

    def mark(self, table):
        names = self._table_caches.get(table, [])
        with self._lock:
            self._dirty.update(names)
        return names

    def drain(self):
        """Names marked since the last drain, sorted."""
        with self._lock:
            names = sorted(self._dirty)
            self._dirty.clear()
            self._last_drain = self._clock()
        return names

    def is_idle(self, timeout=IDLE_TIMEOUT_SECONDS):
        with self._lock:
            return self._clock() - self._last_drain > timeout


def subscriptions(user_id):
    """(table, row filter) pairs for one user; None means every row."""
    return [
        ("notifications", f"user_id=eq.{user_id}"),
        ("direct_messages", f"receiver_id=eq.{user_id}"),
        ("challenges", f"challenged_id=eq.{user_id}"),
        ("matches", f"player1=eq.{user_id}"),
        ("matches", f"player2=eq.{user_id}"),
        ("partner_requests", None),
        ("partner_request_participants", None),
    ]


async def keep_alive(registry, stop_event, idle_timeout=IDLE_TIMEOUT_SECONDS, interval=1.0):
    """Wait until sign out or until the session stops draining.

    Returns:
        str: "stopped" or "idle".
    """
    while not stop_event.is_set():
        if registry.is_idle(idle_timeout):
            return "idle"
        await asyncio.sleep(interval)
    return "stopped"


async def _listen(url, key, session_tokens, user_id, registry, stop_event):
    client = await acreate_client(url, key)
    if session_tokens:
        await client.auth.set_session(*session_tokens)
    channel = client.channel(f"shuttlematch-{user_id}")
    for table, row_filter in subscriptions(user_id):
        def on_change(payload, table=table):
            registry.mark(table)
        channel.on_postgres_changes("*", schema="public", table=table, filter=row_filter, callback=on_change)
    await channel.subscribe()
    logger.info(f"Realtime subscribed for {user_id}")
    try:
        reason = await keep_alive(registry, stop_event)
    finally:
        await client.remove_all_channels()
    logger.info(f"Realtime closed for {user_id} ({reason})")


def _run(url, key, session_tokens, user_id, registry, stop_event):
    try:
        asyncio.run(_listen(url, key, session_tokens, user_id, registry, stop_event))
    except Exception as e:
        # Polling keeps working without realtime
        logger.error(f"Realtime listener stopped: {e}")


def start(user_id):
    """Start the listener for the signed-in user, once per live session."""
    if not user_id:
        return
    state = st.session_state.get("realtime")
    if state and state["thread"].is_alive():
        return
    registry = InvalidationRegistry()
    stop_event = threading.Event()

    session = db.auth_client().get_session()
    tokens = (session.access_token, session.refresh_token) if session else None
    url, key = db.credentials()
    thread = threading.Thread(
        target=_run,
        args=(url, key, tokens, user_id, registry, stop_event),
        name=f"realtime-{user_id}",
        daemon=True,
    )
    st.session_state["realtime"] = {"registry": registry, "stop": stop_event, "thread": thread}
    thread.start()


def stop():
    state = st.session_state.get("realtime")
    if state:
        state["stop"].set()
        del st.session_state["realtime"]


def apply_pending():
    """Clear caches for every change received since the last call."""
    state = st.session_state.get("realtime")
    if not state:
        return []
    names = state["registry"].drain()
    if names:
        db.invalidate(*names)
    return names
