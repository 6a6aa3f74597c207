"""
================================================================================
MATCH RESULTS
================================================================================

Purpose: The result handshake after a partner request has been played.

1. A player who was on court reports the score. The match row is stored with
   the reporter as player1 and already confirmed on their side.
2. The opponent (player2) confirms or disputes.
   - Confirm: player2_confirmed flips from false to true in a single
     conditional update; only the caller that wins that update applies stats
     through the update_match_stats procedure, so a double click or a second
     browser tab can never count the match twice. If the procedure fails the
     flag is flipped back, so the opponent can confirm again.
   - Dispute: the match row is removed and the request goes back to
     "arrived" so the score can be reported again.

No-shows are handled here too: cancelling a matched or arrived request costs
a share of XP and repeated offences suspend the account.
================================================================================
"""

import logging
from datetime import datetime, timedelta, timezone

from utils import db
from utils.constants import (
    NOTIFY_MATCH_CONFIRMATION,
    NOTIFY_MATCH_CONFIRMED,
    NOTIFY_MATCH_DISPUTED,
    NOTIFY_PENALTY,
    PENALTY_PERCENT,
    PENALTY_REASON,
    SUSPENSION_DAYS,
    SUSPENSION_THRESHOLD,
)
from utils.partners import active_participants, is_involved, local_now, request_datetime
from utils.validation import validate_score
from utils.xp import experience_for, penalized_xp, winner_from_scores

logger = logging.getLogger(__name__)

# =============================================================================
# REPORTING
# =============================================================================


def opponent_for(request, user_id, participants):
    """The player on the other side of a request from ``user_id``.

    For the creator that is the matched user (or the first active
    participant); for anyone else it is the creator.
    """
    creator = request.get("created_by_user")
    if user_id != creator:
        return creator
    if request.get("matched_user"):
        return request["matched_user"]
    joined = active_participants(participants, request.get("id"))
    return joined[0]["user_id"] if joined else None


def report_result(request, reporter_id, my_score, opponent_score):
    """Report the final score of an arrived request.

    Returns:
        dict: The inserted match row.

    Raises:
        ValueError: When the request is not on court, the reporter did not
            play, or the scores are invalid.
    """
    if request.get("status") != "arrived":
        raise ValueError("Results can only be reported after both players have arrived")
    for score in (my_score, opponent_score):
        valid, error = validate_score(score)
        if not valid:
            raise ValueError(error)
    my_score, opponent_score = int(my_score), int(opponent_score)
    if my_score == opponent_score:
        raise ValueError("A badminton match cannot end in a draw")

    participants = db.get_request_participants(request["id"])
    if not is_involved(request, reporter_id, participants):
        raise ValueError("Only players in this match can report the result")
    opponent_id = opponent_for(request, reporter_id, participants)
    if not opponent_id:
        raise ValueError("No opponent found for this match")

    match = db.insert_match({
        "request_id": request["id"],
        "player1": reporter_id,
        "player2": opponent_id,
        "mode": request.get("mode") or "friendly",
        "score_player1": my_score,
        "score_player2": opponent_score,
        "winner": reporter_id if my_score > opponent_score else opponent_id,
        "player1_confirmed": True,
        "player2_confirmed": False,
        "experience_awarded": False,
    })
    db.insert_notification(
        opponent_id,
        NOTIFY_MATCH_CONFIRMATION,
        "Confirm match result",
        f"Please confirm the result {opponent_score}-{my_score} of your match on {request.get('date')}",
        match["id"],
    )
    db.update_partner_request(request["id"], {"status": "completed"})
    logger.info(f"Match {match['id']} reported by {reporter_id}")
    db.invalidate("get_matches", "get_partner_requests")
    return match

# =============================================================================
# CONFIRM / DISPUTE
# =============================================================================


def confirm_result(match, confirmer_id):
    """Confirm a reported result as the opponent and apply stats once.

    Returns:
        bool: True if this call applied the stats, False if the match had
        already been confirmed.
    """
    if match.get("player2") != confirmer_id:
        raise ValueError("Only the opponent can confirm this result")
    if match.get("player2_confirmed"):
        return False

    player1, player2 = match["player1"], match["player2"]
    winner = match.get("winner") or winner_from_scores(
        player1, player2, match.get("score_player1"), match.get("score_player2")
    )
    if db.confirm_match_once(match["id"], winner) is None:
        logger.info(f"Match {match['id']} was already confirmed")
        return False

    mode = match.get("mode") or "friendly"
    rules = db.get_experience_rules(mode)
    p1_gain = experience_for(mode, winner == player1, rules)
    p2_gain = experience_for(mode, winner == player2, rules)
    try:
        db.call_update_match_stats({
            "p_match_id": match["id"],
            "p_player1": player1,
            "p_player2": player2,
            "p_winner": winner or player1,
            "p_mode": mode,
            "p_player1_exp_gain": p1_gain,
            "p_player2_exp_gain": p2_gain,
            "p_is_friendly": mode == "friendly",
        })
    except Exception as e:
        # Stats were not applied: reopen the confirmation so it can be retried
        logger.error(f"Stats update failed for match {match['id']}: {e}")
        db.release_match_confirmation(match["id"])
        db.invalidate("get_matches")
        raise
    db.update_match(match["id"], {"experience_awarded": True})
    db.insert_notification(
        player1,
        NOTIFY_MATCH_CONFIRMED,
        "Match confirmed",
        f"Your opponent confirmed the result. You earned {p1_gain} XP.",
        match["id"],
    )
    logger.info(f"Match {match['id']} confirmed, XP {p1_gain}/{p2_gain}")
    db.invalidate("get_matches", "get_profile", "get_all_profiles", "get_platform_stats")
    return True


def dispute_result(match, disputer_id):
    """Reject a reported result; the request can be reported again."""
    if match.get("player2") != disputer_id:
        raise ValueError("Only the opponent can dispute this result")
    if match.get("player2_confirmed"):
        raise ValueError("This result has already been confirmed")

    db.delete_match(match["id"])
    if match.get("request_id"):
        db.update_partner_request(match["request_id"], {"status": "arrived"})
    db.insert_notification(
        match["player1"],
        NOTIFY_MATCH_DISPUTED,
        "Result disputed",
        "Your opponent disputed the reported score. Please report the correct result.",
        match.get("request_id"),
    )
    logger.info(f"Match {match['id']} disputed by {disputer_id}")
    db.invalidate("get_matches", "get_partner_requests")

# =============================================================================
# PENALTIES
# =============================================================================


def cancel_with_penalty(request, user_id, now=None):
    """Cancel a matched or arrived request and penalise the canceller.

    Returns:
        dict: xp_lost, penalty_count and suspended_until (ISO or None).
    """
    if request.get("status") not in ("matched", "arrived"):
        raise ValueError("Only matched or arrived requests can be cancelled here")
    participants = db.get_request_participants(request["id"])
    if not is_involved(request, user_id, participants):
        raise ValueError("You are not part of this match")

    now = now or datetime.now(timezone.utc)
    db.update_partner_request(request["id"], {"status": "cancelled"})
    if request.get("created_by_user") != user_id:
        db.update_participant(request["id"], user_id, {"status": "cancelled"})
    db.insert_penalty_log({
        "user_id": user_id,
        "match_id": None,
        "reason": PENALTY_REASON,
        "exp_deducted_percent": PENALTY_PERCENT,
    })

    profile = db.get_profiles_by_ids([user_id]).get(user_id) or {}
    xp = int(profile.get("experience_points") or 0)
    new_xp = penalized_xp(xp)
    penalty_count = int(profile.get("penalty_count") or 0) + 1
    fields = {"experience_points": new_xp, "penalty_count": penalty_count}
    suspended_until = None
    if penalty_count >= SUSPENSION_THRESHOLD:
        suspended_until = (now + timedelta(days=SUSPENSION_DAYS)).isoformat()
        fields["account_suspension_until"] = suspended_until
    db.update_profile(user_id, fields)

    message = f"You lost {xp - new_xp} XP for cancelling a confirmed match."
    if suspended_until:
        message += f" Your account is suspended for {SUSPENSION_DAYS} days."
    db.insert_notification(user_id, NOTIFY_PENALTY, "Cancellation penalty", message, request["id"])
    logger.warning(f"Penalty applied to {user_id}: count={penalty_count}")
    db.invalidate("get_partner_requests", "get_participants", "get_profile", "get_all_profiles")
    return {"xp_lost": xp - new_xp, "penalty_count": penalty_count, "suspended_until": suspended_until}

# =============================================================================
# READ HELPERS
# =============================================================================


def pending_confirmations(matches, user_id):
    """Results reported against ``user_id`` that still need an answer."""
    return [m for m in matches if m.get("player2") == user_id and not m.get("player2_confirmed")]


def awaiting_opponent(matches, user_id):
    return [m for m in matches if m.get("player1") == user_id and not m.get("player2_confirmed")]


def recent_matches(matches, limit=5):
    """Most recent fully confirmed matches."""
    confirmed = [m for m in matches if m.get("player1_confirmed") and m.get("player2_confirmed")]
    confirmed.sort(key=lambda m: m.get("created_at") or "", reverse=True)
    return confirmed[:limit]


def match_history(matches, user_id, profiles_by_id):
    """Matches from ``user_id``'s point of view, ready for display."""
    history = []
    for match in matches:
        mine_first = match.get("player1") == user_id
        opponent_id = match.get("player2") if mine_first else match.get("player1")
        my_score = match.get("score_player1") if mine_first else match.get("score_player2")
        their_score = match.get("score_player2") if mine_first else match.get("score_player1")
        if not match.get("player2_confirmed"):
            result = "Pending"
        elif match.get("winner") is None:
            result = "Draw"
        else:
            result = "Won" if match.get("winner") == user_id else "Lost"
        history.append({
            "id": match.get("id"),
            "created_at": match.get("created_at"),
            "opponent": (profiles_by_id.get(opponent_id) or {}).get("name") or "Unknown",
            "mode": match.get("mode"),
            "score": f"{my_score}-{their_score}",
            "result": result,
        })
    return history


def upcoming_reminder(requests, participants, user_id, now=None):
    """The next matched/arrived request for ``user_id`` within 24 hours.

    Returns:
        dict or None: {"request": ..., "starts_at": datetime, "when": "today"|"tomorrow"}
    """
    now = local_now(now)
    upcoming = []
    for request in requests:
        if request.get("status") not in ("matched", "arrived"):
            continue
        if not is_involved(request, user_id, participants):
            continue
        starts_at = request_datetime(request)
        if starts_at and now <= starts_at <= now + timedelta(hours=24):
            upcoming.append((starts_at, request))
    if not upcoming:
        return None
    starts_at, request = min(upcoming, key=lambda item: item[0])
    return {
        "request": request,
        "starts_at": starts_at,
        "when": "today" if starts_at.date() == now.date() else "tomorrow",
    }
