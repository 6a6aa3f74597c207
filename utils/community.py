"""
Community feed, direct messages and notifications.
"""

import logging

from utils import db
from utils.validation import validate_message, validate_post

logger = logging.getLogger(__name__)

# =============================================================================
# POSTS & LIKES
# =============================================================================


def create_post(user_id, content):
    valid, error = validate_post(content)
    if not valid:
        raise ValueError(error)
    post = db.insert_post(user_id, content.strip())
    db.invalidate("get_posts")
    return post


def delete_post(post, user_id):
    """Authors may delete their own posts."""
    if post.get("user_id") != user_id:
        raise ValueError("You can only delete your own posts")
    db.delete_post(post["id"])
    db.invalidate("get_posts", "get_post_likes")


def toggle_like(post_id, user_id):
    """Like or unlike a post.

    likes_count is recomputed from post_likes after every toggle so that two
    people liking at the same moment cannot drift the counter.

    Returns:
        tuple: (liked, likes_count)
    """
    existing = db.find_like(post_id, user_id)
    if existing:
        db.delete_like(existing["id"])
    else:
        db.insert_like(post_id, user_id)
    count = db.count_likes(post_id)
    db.set_likes_count(post_id, count)
    db.invalidate("get_posts", "get_post_likes")
    return existing is None, count


def likes_by_post(likes):
    grouped = {}
    for like in likes:
        grouped.setdefault(like["post_id"], []).append(like["user_id"])
    return grouped


def likers(post_id, likes, profiles_by_id):
    """Names of everyone who liked ``post_id``."""
    return [
        (profiles_by_id.get(user_id) or {}).get("name") or "Unknown"
        for user_id in likes_by_post(likes).get(post_id, [])
    ]

# =============================================================================
# DIRECT MESSAGES
# =============================================================================


def conversations(messages, user_id):
    """Group a user's messages into conversations.

    Args:
        messages (list[dict]): Every message sent or received by ``user_id``.

    Returns:
        list[dict]: partner_id, last_message, last_at and unread, most recent
        conversation first. ``unread`` only counts messages from the partner.
    """
    by_partner = {}
    for message in messages:
        outgoing = message.get("sender_id") == user_id
        partner_id = message.get("receiver_id") if outgoing else message.get("sender_id")
        convo = by_partner.setdefault(partner_id, {
            "partner_id": partner_id,
            "last_message": None,
            "last_at": "",
            "unread": 0,
        })
        created_at = message.get("created_at") or ""
        if convo["last_message"] is None or created_at > convo["last_at"]:
            convo["last_message"] = message.get("message")
            convo["last_at"] = created_at
        if not outgoing and not message.get("is_read"):
            convo["unread"] += 1
    return sorted(by_partner.values(), key=lambda c: c["last_at"], reverse=True)


def open_conversation(user_id, partner_id):
    """Mark the partner's messages as read and return the whole thread."""
    db.mark_messages_read(user_id, partner_id)
    db.invalidate("get_direct_messages", "get_unread_message_count")
    return db.get_thread(user_id, partner_id)


def send_message(sender_id, receiver_id, text):
    if not receiver_id or receiver_id == sender_id:
        raise ValueError("Please choose who to message")
    valid, error = validate_message(text)
    if not valid:
        raise ValueError(error)
    message = db.insert_message(sender_id, receiver_id, text.strip())
    db.invalidate("get_direct_messages")
    return message

# =============================================================================
# NOTIFICATIONS
# =============================================================================


def mark_read(notification_id):
    db.mark_notification_read(notification_id)
    db.invalidate("get_notifications", "get_unread_notification_count")


def mark_all_read(user_id):
    db.mark_all_notifications_read(user_id)
    db.invalidate("get_notifications", "get_unread_notification_count")
