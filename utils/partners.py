"""
================================================================================
PARTNER REQUESTS & CHALLENGES
================================================================================

Purpose: Matchmaking between players.

- A partner request is an open invitation ("Saturday 18:00 at Royal Court,
  need 1 intermediate player"). Others join until it is full (matched), the
  players check in on court (arrived), and a result is reported (completed).
- A challenge is a direct proposal to one player. Accepting it creates an
  already matched partner request between the two.

Status flow of a partner request:
    open → matched → arrived → completed
      └──────┴──────────┴──→ cancelled
================================================================================
"""

import logging
from datetime import date as date_cls, datetime, time as time_cls, timedelta, timezone

from utils import db
from utils.auth import account_restriction
from utils.constants import (
    CHALLENGE_EXPIRY_DAYS,
    LEVELS,
    LOCAL_TZ,
    MATCH_MODES,
    NOTIFY_CHALLENGE_ACCEPTED,
    NOTIFY_CHALLENGE_RECEIVED,
    NOTIFY_CHALLENGE_REJECTED,
    NOTIFY_PLAYER_JOINED,
)
from utils.formatting import parse_timestamp
from utils.validation import validate_phone, validate_text

logger = logging.getLogger(__name__)

MAX_PLAYERS_NEEDED = 3

# =============================================================================
# HELPERS
# =============================================================================


def _as_date_str(value):
    return value.isoformat() if isinstance(value, date_cls) else str(value)


def _as_time_str(value):
    return value.strftime("%H:%M") if isinstance(value, time_cls) else str(value)[:5]


def local_now(now=None):
    """Current Mandalay wall-clock time as a naive datetime.

    An aware ``now`` is converted; a naive one is taken as local already.
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now
    return now.astimezone(LOCAL_TZ).replace(tzinfo=None)


def request_datetime(request):
    """Local start datetime of a partner request, or None if unparseable."""
    try:
        day = date_cls.fromisoformat(str(request.get("date"))[:10])
        hour, minute = str(request.get("time") or "00:00").split(":")[:2]
        return datetime.combine(day, time_cls(int(hour), int(minute)))
    except (TypeError, ValueError):
        return None


def active_participants(participants, request_id=None):
    """Participants that have not cancelled, in join order."""
    return [
        p for p in participants
        if p.get("status") != "cancelled" and (request_id is None or p.get("request_id") == request_id)
    ]


def is_involved(request, user_id, participants):
    """True for the creator, the matched user, or an active participant."""
    if user_id in (request.get("created_by_user"), request.get("matched_user")):
        return True
    return any(p.get("user_id") == user_id for p in active_participants(participants, request.get("id")))


def all_arrived(request, participants):
    """True when the request is full and every active participant checked in."""
    joined = active_participants(participants, request.get("id"))
    return len(joined) >= int(request.get("players_needed") or 1) and all(
        p.get("status") == "arrived" for p in joined
    )


def _check_restriction(profile):
    reason = account_restriction(profile)
    if reason:
        raise ValueError(reason)


def _display_name(profile):
    return (profile or {}).get("name") or "A player"


def enrich_requests(requests, participants, profiles_by_id, courts_by_id):
    """Attach creator name, court name and participant list to each request."""
    enriched = []
    for request in requests:
        joined = active_participants(participants, request["id"])
        creator = profiles_by_id.get(request.get("created_by_user")) or {}
        court = courts_by_id.get(request.get("court_id")) or {}
        enriched.append(dict(
            request,
            creator_name=creator.get("name") or "Unknown",
            creator_level=creator.get("level"),
            court_name=court.get("court_name") or "Court not set",
            participants=[
                dict(p, name=(profiles_by_id.get(p["user_id"]) or {}).get("name") or "Unknown")
                for p in joined
            ],
            joined_count=len(joined),
        ))
    return enriched


def filter_requests(requests, search="", level=None, mode=None, status=None):
    """Filter enriched requests.

    Args:
        requests (list[dict]): Output of ``enrich_requests``.
        search (str): Case-insensitive match on creator or court name.
        level, mode, status (str or None): Exact match; None or "all" skips.
    """
    term = (search or "").strip().lower()
    result = []
    for request in requests:
        if term and term not in request.get("creator_name", "").lower() and term not in request.get("court_name", "").lower():
            continue
        if level not in (None, "all") and request.get("wanted_level") != level:
            continue
        if mode not in (None, "all") and request.get("mode") != mode:
            continue
        if status not in (None, "all") and request.get("status") != status:
            continue
        result.append(request)
    return result

# =============================================================================
# PARTNER REQUESTS
# =============================================================================


def create_request(user_id, profile, form, now=None):
    """Post a new partner request.

    Args:
        user_id (str): Creator.
        profile (dict): Creator's profile; its phone is the fallback contact.
        form (dict): court_id, date, time, mode, wanted_level, phone, players_needed.

    Returns:
        dict: Inserted row.
    """
    _check_restriction(profile)
    if not form.get("date") or not form.get("time"):
        raise ValueError("Please choose a date and time")
    mode = form.get("mode") or "friendly"
    if mode not in MATCH_MODES:
        raise ValueError("Please choose a valid match mode")
    wanted_level = form.get("wanted_level") or None
    if wanted_level is not None and wanted_level not in LEVELS:
        raise ValueError("Please choose a valid level")
    try:
        players_needed = int(form.get("players_needed") or 1)
    except (TypeError, ValueError):
        raise ValueError("Players needed must be a number") from None
    if not 1 <= players_needed <= MAX_PLAYERS_NEEDED:
        raise ValueError(f"Players needed must be between 1 and {MAX_PLAYERS_NEEDED}")

    row = {
        "created_by_user": user_id,
        "court_id": form.get("court_id") or None,
        "date": _as_date_str(form["date"]),
        "time": _as_time_str(form["time"]),
        "mode": mode,
        "wanted_level": wanted_level,
        "phone": (form.get("phone") or "").strip() or (profile or {}).get("phone"),
        "players_needed": players_needed,
        "status": "open",
    }
    starts = request_datetime(row)
    if starts is None:
        raise ValueError("Please choose a valid date and time")
    if starts < local_now(now):
        raise ValueError("The match time is in the past")
    valid, error = validate_phone(row["phone"])
    if not valid:
        raise ValueError(error)

    created = db.insert_partner_request(row)
    logger.info(f"Partner request created by {user_id} for {row['date']} {row['time']}")
    db.invalidate("get_partner_requests")
    return created


def join_request(request, user_id, profile):
    """Join someone else's open request.

    Returns:
        str: The request status after joining ("open" or "matched").
    """
    _check_restriction(profile)
    if request.get("created_by_user") == user_id:
        raise ValueError("You cannot join your own request")
    if request.get("status") != "open":
        raise ValueError("This request is no longer open")

    participants = db.get_request_participants(request["id"])
    mine = [p for p in participants if p.get("user_id") == user_id]
    if any(p.get("status") != "cancelled" for p in mine):
        raise ValueError("You have already joined this request")
    if mine:
        db.update_participant(request["id"], user_id, {"status": "joined"})
    else:
        db.insert_participant(request["id"], user_id)

    active = active_participants(participants) + [{"user_id": user_id}]
    db.insert_notification(
        request["created_by_user"],
        NOTIFY_PLAYER_JOINED,
        "New player joined",
        f"{_display_name(profile)} joined your match on {request.get('date')} at {str(request.get('time'))[:5]}",
        request["id"],
    )

    status = "open"
    if len(active) >= int(request.get("players_needed") or 1):
        status = "matched"
        db.update_partner_request(request["id"], {"status": "matched", "matched_user": active[0]["user_id"]})
    logger.info(f"User {user_id} joined request {request['id']} ({status})")
    db.invalidate("get_partner_requests", "get_participants")
    return status


def leave_request(request, user_id):
    """Withdraw from a request before play starts; a full request reopens."""
    if request.get("created_by_user") == user_id:
        raise ValueError("You created this request. Cancel it instead.")
    if request.get("status") not in ("open", "matched"):
        raise ValueError("You can no longer leave this match")

    db.delete_participant(request["id"], user_id)
    remaining = [p for p in active_participants(db.get_request_participants(request["id"])) if p.get("user_id") != user_id]
    if request.get("status") == "matched" and len(remaining) < int(request.get("players_needed") or 1):
        db.update_partner_request(request["id"], {"status": "open", "matched_user": None})
    db.invalidate("get_partner_requests", "get_participants")


def mark_arrived(request, user_id):
    """Check in on court.

    A participant marks their own participation. The creator then closes the
    request as "arrived", which is only possible once every active participant
    has checked in and the request is full.
    """
    if request.get("status") not in ("matched", "arrived"):
        raise ValueError("Only matched requests can be checked in")
    if request.get("created_by_user") == user_id:
        if not all_arrived(request, db.get_request_participants(request["id"])):
            raise ValueError("Wait until every player has checked in")
        db.update_partner_request(request["id"], {"status": "arrived"})
    else:
        participants = active_participants(db.get_request_participants(request["id"]))
        if not any(p.get("user_id") == user_id for p in participants):
            raise ValueError("You are not part of this match")
        db.update_participant(request["id"], user_id, {"status": "arrived"})
    db.invalidate("get_partner_requests", "get_participants")


def cancel_open_request(request, user_id):
    """Creator withdraws a request nobody has joined yet. No penalty."""
    if request.get("created_by_user") != user_id:
        raise ValueError("Only the creator can cancel this request")
    if request.get("status") != "open":
        raise ValueError("Matched requests are cancelled with a penalty")
    db.update_partner_request(request["id"], {"status": "cancelled"})
    db.invalidate("get_partner_requests")

# =============================================================================
# CHALLENGES
# =============================================================================


def challenge_expired(challenge, now=None):
    expires_at = parse_timestamp(challenge.get("expires_at"))
    return expires_at is not None and expires_at <= (now or datetime.now(timezone.utc))


def create_challenge(challenger_id, challenger_profile, challenged_id, form, now=None):
    """Challenge another player to a match. Expires after a week."""
    _check_restriction(challenger_profile)
    if not challenged_id:
        raise ValueError("Please choose an opponent")
    if challenger_id == challenged_id:
        raise ValueError("You cannot challenge yourself")
    if not form.get("proposed_date") or not form.get("proposed_time"):
        raise ValueError("Please choose a date and time")
    message = (form.get("message") or "").strip()
    if message:
        valid, error = validate_text(message, 500, "Message")
        if not valid:
            raise ValueError(error)

    now = now or datetime.now(timezone.utc)
    row = {
        "challenger_id": challenger_id,
        "challenged_id": challenged_id,
        "court_id": form.get("court_id") or None,
        "proposed_date": _as_date_str(form["proposed_date"]),
        "proposed_time": _as_time_str(form["proposed_time"]),
        "message": message or None,
        "status": "pending",
        "expires_at": (now + timedelta(days=CHALLENGE_EXPIRY_DAYS)).isoformat(),
    }
    created = db.insert_challenge(row)
    db.insert_notification(
        challenged_id,
        NOTIFY_CHALLENGE_RECEIVED,
        "New challenge",
        f"{_display_name(challenger_profile)} challenged you to a match on {row['proposed_date']}",
        (created or {}).get("id"),
    )
    db.invalidate("get_challenges")
    return created


def _pending_for_challenged(challenge, user_id, now):
    if challenge.get("challenged_id") != user_id:
        raise ValueError("This challenge was not sent to you")
    if challenge.get("status") != "pending":
        raise ValueError("This challenge has already been answered")
    if challenge_expired(challenge, now):
        raise ValueError("This challenge has expired")


def accept_challenge(challenge, user_id, profile, now=None):
    """Accept and turn the challenge into a matched tournament request.

    Returns:
        dict: The partner request created for the match.
    """
    _check_restriction(profile)
    _pending_for_challenged(challenge, user_id, now)

    db.update_challenge(challenge["id"], {"status": "accepted"})
    request = db.insert_partner_request({
        "created_by_user": user_id,
        "court_id": challenge.get("court_id"),
        "date": challenge["proposed_date"],
        "time": challenge["proposed_time"],
        "mode": "tournament",
        "wanted_level": None,
        "phone": (profile or {}).get("phone"),
        "players_needed": 1,
        "status": "matched",
        "matched_user": challenge["challenger_id"],
    })
    db.insert_participant(request["id"], challenge["challenger_id"])
    db.insert_notification(
        challenge["challenger_id"],
        NOTIFY_CHALLENGE_ACCEPTED,
        "Challenge accepted",
        f"{_display_name(profile)} accepted your challenge for {challenge['proposed_date']}",
        request["id"],
    )
    logger.info(f"Challenge {challenge['id']} accepted, request {request['id']} created")
    db.invalidate("get_challenges", "get_partner_requests", "get_participants")
    return request


def reject_challenge(challenge, user_id, profile, now=None):
    _pending_for_challenged(challenge, user_id, now)
    db.update_challenge(challenge["id"], {"status": "rejected"})
    db.insert_notification(
        challenge["challenger_id"],
        NOTIFY_CHALLENGE_REJECTED,
        "Challenge declined",
        f"{_display_name(profile)} declined your challenge",
        challenge["id"],
    )
    db.invalidate("get_challenges")


def cancel_challenge(challenge, user_id):
    """The challenger withdraws a challenge that is still pending."""
    if challenge.get("challenger_id") != user_id:
        raise ValueError("Only the challenger can cancel this challenge")
    if challenge.get("status") != "pending":
        raise ValueError("This challenge has already been answered")
    db.delete_challenge(challenge["id"])
    db.invalidate("get_challenges")


def pending_challenges(challenges, user_id, now=None):
    """Pending, unexpired challenges received by ``user_id``."""
    return [
        c for c in challenges
        if c.get("challenged_id") == user_id
        and c.get("status") == "pending"
        and not challenge_expired(c, now)
    ]


def sent_challenges(challenges, user_id):
    return [c for c in challenges if c.get("challenger_id") == user_id]
