"""RideWithGPS public route/trip JSON endpoints."""

from __future__ import annotations

import re

RIDEWITHGPS_BASE = "https://ridewithgps.com"

# /routes/123 or /trips/456, with or without scheme/host
_URL_PATTERNS = [
    re.compile(r"ridewithgps\.com/(routes)/(\d+)", re.IGNORECASE),
    re.compile(r"ridewithgps\.com/(trips)/(\d+)", re.IGNORECASE),
]


def parse_url(url: str) -> tuple[str, str] | None:
    """
    Parse a RideWithGPS URL into ``(kind, id)`` where kind is ``route`` or ``trip``.

    Returns None if the URL isn't a RideWithGPS route or trip link.
    """
    for pattern in _URL_PATTERNS:
        match = pattern.search(url)
        if match:
            kind = "trip" if match.group(1).lower() == "trips" else "route"
            return kind, match.group(2)
    return None


def is_ridewithgps_url(value: str) -> bool:
    return "ridewithgps.com" in value.lower()


def json_url(kind: str, route_id: str, base_url: str = RIDEWITHGPS_BASE) -> str:
    return f"{base_url.rstrip('/')}/{kind}s/{route_id}.json"
