"""
eBird API 2.0 client.

Low-level HTTP for the eBird observation endpoints: URL building, token
header, and mapping transport/HTTP failures onto the source error types.

API docs: https://documenter.getpostman.com/view/664302/S1ENwy59
Keys: https://ebird.org/api/keygen
"""

from __future__ import annotations

import re
from typing import Any

import requests

from birdride.errors import InvalidArgumentError, SourceError, SourceUnavailable
from birdride.services.http import session

# ---------------------------------------------------------------------------
# API configuration
# ---------------------------------------------------------------------------
API_BASE = "https://api.ebird.org/v2"
RECENT_ENDPOINT = "data/obs/geo/recent"
NOTABLE_ENDPOINT = "data/obs/geo/recent/notable"
TOKEN_HEADER = "X-eBirdApiToken"

MAX_DIST_KM = 50  # API ceiling for ``dist``
MAX_BACK_DAYS = 30  # API ceiling for ``back``

SPECIES_PAGE = "https://ebird.org/species/{code}"
_SPECIES_URL_RE = re.compile(r"ebird\.org/species/([a-zA-Z0-9]+)")
_SPECIES_CODE_RE = re.compile(r"^[a-zA-Z0-9]+$")


def geo_params(lat: float, lng: float, radius_km: float, lookback_days: int) -> dict[str, Any]:
    """Query parameters shared by the geo endpoints (coords rounded to 4 places)."""
    return {
        "lat": f"{lat:.4f}",
        "lng": f"{lng:.4f}",
        "dist": min(radius_km, MAX_DIST_KM),
        "back": min(lookback_days, MAX_BACK_DAYS),
    }


def get(
    endpoint: str,
    params: dict[str, Any],
    *,
    api_key: str | None,
    base_url: str = API_BASE,
    timeout: float | None = None,
    http: requests.Session | None = None,
) -> list[dict[str, Any]]:
    """
    GET an eBird endpoint that returns a JSON array.

    Uses *http* when given, otherwise the shared module session.

    Raises:
        SourceUnavailable: Connection failure or timeout.
        SourceError: Non-success status or a payload that isn't a JSON list.
    """
    url = f"{base_url.rstrip('/')}/{endpoint}"
    headers = {TOKEN_HEADER: api_key} if api_key else {}
    try:
        resp = (http or session).get(url, params=params, headers=headers, timeout=timeout)
    except (requests.ConnectionError, requests.Timeout) as e:
        raise SourceUnavailable(f"eBird unreachable: {e}") from e
    except requests.RequestException as e:
        raise SourceError(f"eBird request failed: {e}") from e

    if not resp.ok:
        raise SourceError(
            f"eBird returned HTTP {resp.status_code} for {endpoint}: {resp.text[:200]}"
        )

    try:
        data = resp.json()
    except ValueError as e:
        raise SourceError(f"eBird returned malformed JSON for {endpoint}") from e
    if not isinstance(data, list):
        raise SourceError(f"eBird returned {type(data).__name__}, expected a list")
    return data


# ---------------------------------------------------------------------------
# Species pages
# ---------------------------------------------------------------------------


def species_url(species_code: str) -> str:
    """eBird species page URL."""
    return SPECIES_PAGE.format(code=species_code)


def species_code_from(value: str) -> str:
    """
    Extract a species code from an eBird species URL, or validate a bare code.

    >>> species_code_from("https://ebird.org/species/eletro1")
    'eletro1'
    """
    if not value:
        raise InvalidArgumentError("Expected a species code or eBird species URL")
    if "ebird.org/species/" in value:
        match = _SPECIES_URL_RE.search(value)
        if match:
            return match.group(1)
        raise InvalidArgumentError(f"Could not extract species code from URL: {value}")
    if _SPECIES_CODE_RE.match(value):
        return value
    raise InvalidArgumentError(f"Invalid species code format: {value!r}")
