"""
================================================================================
EXPERIENCE POINTS & LEVELS
================================================================================

Purpose: All XP arithmetic in one place. Match confirmation, penalties, the
rankings page and the profile progress bar read from here, so the numbers the
player sees always agree with what is written to the database.

Functions are pure (no Streamlit, no Supabase) and easy to test.
================================================================================
"""

import math
from collections import defaultdict

from utils.constants import (
    DEFAULT_FRIENDLY_POINTS,
    DEFAULT_LEVEL,
    DEFAULT_LOSE_POINTS,
    DEFAULT_WIN_POINTS,
    LEVEL_XP_RANGES,
    LEVELS,
    PENALTY_PERCENT,
    RANKING_TOP_N,
)

# =============================================================================
# MATCH REWARDS
# =============================================================================
# PURPOSE: Decide how many points each side of a confirmed match receives


def experience_for(mode, won, rules=None):
    """Return the XP a player earns for one confirmed match.

    Args:
        mode (str): Match mode (friendly, competitive, tournament).
        won (bool): Whether this player won.
        rules (dict, optional): Row from ``experience_rules`` for the mode.

    Returns:
        int: Points to add.

    Example:
        >>> experience_for('competitive', True)
        15
        >>> experience_for('friendly', False)
        5
    """
    rules = rules or {}
    if mode == "friendly":
        return int(rules.get("friendly_points") or DEFAULT_FRIENDLY_POINTS)
    if won:
        return int(rules.get("win_points") or DEFAULT_WIN_POINTS)
    return int(rules.get("lose_points") or DEFAULT_LOSE_POINTS)


def winner_from_scores(player1, player2, score1, score2):
    """Winner id from scores, or None on a draw."""
    if score1 is None or score2 is None or score1 == score2:
        return None
    return player1 if score1 > score2 else player2


def penalized_xp(xp, percent=PENALTY_PERCENT):
    """XP after a no-show penalty. Never negative.

    Example:
        >>> penalized_xp(1000)
        970
        >>> penalized_xp(20)
        20
    """
    xp = int(xp or 0)
    return max(0, xp - math.floor(xp * percent / 100))


# =============================================================================
# LEVEL PROGRESS
# =============================================================================
# PURPOSE: Translate a raw XP number into something a player understands


def level_for_xp(xp):
    """Return the level whose XP range contains ``xp``."""
    xp = int(xp or 0)
    for level in reversed(LEVELS):
        if xp >= LEVEL_XP_RANGES[level][0]:
            return level
    return DEFAULT_LEVEL


def level_progress(xp, level=None):
    """Percentage (0-100) of the way through the current level's XP range."""
    level = level if level in LEVEL_XP_RANGES else level_for_xp(xp)
    low, high = LEVEL_XP_RANGES[level]
    xp = int(xp or 0)
    if xp <= low:
        return 0
    if xp >= high:
        return 100
    return round((xp - low) / (high - low) * 100)


def xp_to_next_level(xp, level=None):
    """Points left until the top of the current range, or None at the top level."""
    level = level if level in LEVEL_XP_RANGES else level_for_xp(xp)
    if level == LEVELS[-1]:
        return None
    return max(0, LEVEL_XP_RANGES[level][1] + 1 - int(xp or 0))


def win_rate(wins, played):
    """Win percentage rounded to a whole number."""
    if not played:
        return 0
    return round((wins or 0) / played * 100)


# =============================================================================
# RANKINGS
# =============================================================================


def group_rankings(profiles, top=RANKING_TOP_N):
    """Group profiles by level and rank each group by XP.

    Args:
        profiles (list[dict]): Rows from ``profiles``.
        top (int): How many players to keep per level. ``None`` keeps all.

    Returns:
        dict: ``{level: [profile + {'position': n}, ...]}`` for every level,
        best first.
    """
    grouped = defaultdict(list)
    for profile in profiles:
        grouped[profile.get("level") or DEFAULT_LEVEL].append(profile)

    rankings = {}
    for level in LEVELS:
        players = sorted(
            grouped.get(level, []),
            key=lambda p: p.get("experience_points") or 0,
            reverse=True,
        )
        if top is not None:
            players = players[:top]
        rankings[level] = [dict(p, position=i) for i, p in enumerate(players, start=1)]
    return rankings


def player_position(profiles, user_id):
    """Position of ``user_id`` within their own level, or None."""
    for level_players in group_rankings(profiles, top=None).values():
        for player in level_players:
            if player.get("id") == user_id:
                return player["position"]
    return None
