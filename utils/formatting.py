"""
================================================================================
HTML AND FORMATTING UTILITIES
================================================================================

Purpose: Small helpers that turn database values into display strings,
HTML snippets for st.markdown(..., unsafe_allow_html=True) and DataFrames for
st.dataframe(). Any user-supplied text is escaped before it goes into HTML.
================================================================================
"""

from datetime import date, datetime, timezone

import pandas as pd

from utils.constants import CURRENCY
from utils.validation import sanitize_html


def parse_timestamp(value):
    """Parse an ISO timestamp from Supabase into an aware datetime.

    Returns:
        datetime or None: UTC-aware datetime, or None for empty/invalid input.

    Example:
        >>> parse_timestamp('2025-03-01T10:00:00Z').year
        2025
    """
    if not value:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def format_price(amount):
    """Format an amount in Myanmar kyat.

    Example:
        >>> format_price(25000)
        '25,000 MMK'
        >>> format_price(None)
        '0 MMK'
    """
    amount = float(amount or 0)
    if amount.is_integer():
        return f"{int(amount):,} {CURRENCY}"
    return f"{amount:,.2f} {CURRENCY}"


def get_initials(name):
    """Up to two initials for avatar placeholders.

    Example:
        >>> get_initials('Aung Min Htet')
        'AM'
    """
    if not name:
        return "?"
    return "".join(word[0].upper() for word in name.split()[:2])


def format_level(level):
    """Level with a coloured dot.

    Example:
        >>> format_level('advanced')
        '🔴 Advanced'
    """
    if not level:
        return "⚪ Any level"
    color_map = {"beginner": "🟢", "intermediate": "🟡", "advanced": "🔴"}
    return f"{color_map.get(level, '⚪')} {level.capitalize()}"


def format_mode(mode):
    icons = {"friendly": "🤝", "competitive": "⚔️", "tournament": "🏆"}
    return f"{icons.get(mode, '🏸')} {(mode or 'match').capitalize()}"


def format_status(status):
    """Status label with an emoji, for requests, orders and challenges."""
    icons = {
        "open": "🟢",
        "matched": "🤝",
        "arrived": "📍",
        "completed": "✅",
        "cancelled": "❌",
        "pending": "⏳",
        "approved": "✅",
        "rejected": "❌",
        "accepted": "✅",
        "joined": "🙋",
    }
    return f"{icons.get(status, '•')} {(status or 'unknown').capitalize()}"


def format_date(value):
    """'Sat, 12 Apr 2025' from a date, datetime or ISO string."""
    if not value:
        return "N/A"
    if isinstance(value, str):
        try:
            value = date.fromisoformat(value[:10])
        except ValueError:
            return value
    return value.strftime("%a, %d %b %Y")


def format_time(value):
    """'18:30' from a time string like '18:30:00'."""
    if not value:
        return ""
    return str(value)[:5]


def format_datetime(value):
    parsed = parse_timestamp(value)
    if not parsed:
        return "N/A"
    return parsed.strftime("%d %b %Y, %H:%M")


def render_avatar(name, photo_url=None, size=48):
    """HTML avatar: the profile photo when present, initials otherwise."""
    if photo_url:
        return (
            f'<img src="{sanitize_html(photo_url)}" style="width:{size}px;height:{size}px;'
            f'border-radius:50%;object-fit:cover;" />'
        )
    return f"""
    <div style="width: {size}px; height: {size}px; border-radius: 50%;
                background: linear-gradient(135deg, #16a34a 0%, #0ea5e9 100%);
                display: flex; align-items: center; justify-content: center;
                color: white; font-size: {size // 2.5:.0f}px; font-weight: bold;">
        {sanitize_html(get_initials(name))}
    </div>
    """


def rankings_dataframe(players, highlight_id=None):
    """Table rows for one level of the rankings page.

    Args:
        players (list[dict]): Ranked profiles (with ``position``).
        highlight_id (str, optional): Marks the current user's row.

    Returns:
        pd.DataFrame: Columns Rank, Player, XP, Wins, Losses, Win Rate.
    """
    from utils.xp import win_rate

    medals = {1: "🥇", 2: "🥈", 3: "🥉"}
    rows = []
    for player in players:
        name = player.get("name") or "Unknown"
        if highlight_id and player.get("id") == highlight_id:
            name = f"{name} (you)"
        rows.append({
            "Rank": medals.get(player["position"], str(player["position"])),
            "Player": name,
            "XP": player.get("experience_points") or 0,
            "Wins": player.get("total_wins") or 0,
            "Losses": player.get("total_losses") or 0,
            "Win Rate": f"{win_rate(player.get('total_wins'), player.get('total_matches_played'))}%",
        })
    return pd.DataFrame(rows, columns=["Rank", "Player", "XP", "Wins", "Losses", "Win Rate"])


def orders_dataframe(orders, profiles_by_id=None):
    """Orders for st.dataframe, newest first as loaded."""
    profiles_by_id = profiles_by_id or {}
    rows = []
    for order in orders:
        row = {
            "Date": format_datetime(order.get("created_at")),
            "Total": format_price(order.get("total_amount")),
            "Transaction": order.get("transaction_id") or "",
            "Status": format_status(order.get("payment_status")),
        }
        if profiles_by_id:
            row["Customer"] = (profiles_by_id.get(order.get("user_id")) or {}).get("name", "Unknown")
        rows.append(row)
    return pd.DataFrame(rows)
