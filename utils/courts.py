"""
Court directory helpers: search, map coordinates and directions links.
"""

import re

import pandas as pd

from utils.constants import MAP_CENTER

# Google Maps share links carry the pin as ...?q=21.97,96.08
_COORDS_RE = re.compile(r"[?&]q=(-?\d+(?:\.\d+)?),\s*(-?\d+(?:\.\d+)?)")


def filter_courts(courts, search=""):
    """Case-insensitive match on court name or address."""
    term = (search or "").strip().lower()
    if not term:
        return list(courts)
    return [
        c for c in courts
        if term in (c.get("court_name") or "").lower() or term in (c.get("address") or "").lower()
    ]


def parse_coordinates(google_map_url):
    """Latitude and longitude from a Google Maps URL.

    Example:
        >>> parse_coordinates('https://maps.google.com/?q=21.9588,96.0891')
        (21.9588, 96.0891)
        >>> parse_coordinates('https://maps.app.goo.gl/abc') is None
        True
    """
    if not google_map_url:
        return None
    match = _COORDS_RE.search(google_map_url)
    if not match:
        return None
    lat, lng = float(match.group(1)), float(match.group(2))
    if not (-90 <= lat <= 90 and -180 <= lng <= 180):
        return None
    return lat, lng


def directions_url(lat, lng):
    return f"https://www.google.com/maps/dir/?api=1&destination={lat},{lng}"


def court_directions(court):
    """Directions link for a court; falls back to its map link."""
    coords = parse_coordinates(court.get("google_map_url"))
    if coords:
        return directions_url(*coords)
    return court.get("google_map_url")


def court_map_frame(courts):
    """DataFrame of courts with coordinates, shaped for st.map.

    When no court has coordinates a single row at the city centre is returned
    so the map still opens on Mandalay.
    """
    rows = []
    for court in courts:
        coords = parse_coordinates(court.get("google_map_url"))
        if coords:
            rows.append({"lat": coords[0], "lon": coords[1], "name": court.get("court_name")})
    if not rows:
        rows.append({"lat": MAP_CENTER[0], "lon": MAP_CENTER[1], "name": "Mandalay"})
    return pd.DataFrame(rows, columns=["lat", "lon", "name"])
