"""Recent and notable eBird observations near a point."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from birdride.datasources.ebird import client
from birdride.schemas import QueryMode, RawObservation
from birdride.services.http import abort_session, create_session

if TYPE_CHECKING:
    import requests

    from birdride.config import Settings
    from birdride.geometry import Coordinate

logger = logging.getLogger(__name__)

#: Per-query ceiling when the caller supplies none; matches the default deadline.
DEFAULT_QUERY_TIMEOUT = 30.0

ENDPOINTS: dict[QueryMode, str] = {
    QueryMode.RECENT: client.RECENT_ENDPOINT,
    QueryMode.NOTABLE: client.NOTABLE_ENDPOINT,
}

# =============================================================================
# Parsing
# =============================================================================


def parse_obs_datetime(value: Any) -> datetime | None:
    """Parse eBird ``obsDt`` ("2024-05-01 08:30" or "2024-05-01")."""
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


def parse_observation(
    record: dict[str, Any], mode: QueryMode = QueryMode.RECENT
) -> RawObservation | None:
    """Parse one eBird observation. Returns None if it can't be identified or placed."""
    species_code = record.get("speciesCode")
    report_token = record.get("subId")
    if not species_code or not report_token:
        return None

    try:
        return RawObservation(
            species_code=species_code,
            common_name=record.get("comName") or "",
            scientific_name=record.get("sciName") or "",
            lat=record["lat"],
            lng=record["lng"],
            observed_at=parse_obs_datetime(record.get("obsDt")),
            quantity=record.get("howMany") or 1,
            location_name=record.get("locName") or "",
            report_token=report_token,
            reviewed=bool(record.get("obsReviewed", False)),
            observer_count=record.get("numObservers") or 0,
            mode=mode,
        )
    except (KeyError, ValidationError):
        return None


def parse_observations(
    records: list[dict[str, Any]], mode: QueryMode = QueryMode.RECENT
) -> list[RawObservation]:
    observations: list[RawObservation] = []
    for record in records:
        parsed = parse_observation(record, mode) if isinstance(record, dict) else None
        if parsed is not None:
            observations.append(parsed)
    skipped = len(records) - len(observations)
    if skipped:
        logger.debug("Skipped %d malformed eBird %s records", skipped, mode)
    return observations


# =============================================================================
# API Fetching
# =============================================================================


def fetch_observations(
    lat: float,
    lng: float,
    *,
    mode: QueryMode = QueryMode.RECENT,
    radius_km: float = 2.5,
    lookback_days: int = 14,
    api_key: str | None = None,
    base_url: str = client.API_BASE,
    timeout: float | None = None,
    http: requests.Session | None = None,
) -> list[RawObservation]:
    """
    Fetch observations within *radius_km* of a point over the last *lookback_days*.

    Args:
        lat: Latitude of the query origin.
        lng: Longitude of the query origin.
        mode: ``RECENT`` for all species, ``NOTABLE`` for the rare-sighting feed.
        radius_km: Search radius (API max 50).
        lookback_days: Days to look back (API max 30).
        api_key: eBird API token.
        base_url: API root, overridable for testing.
        timeout: Per-request timeout in seconds.
        http: Session to send on (defaults to the shared one).

    Returns:
        Parsed observations; malformed records are dropped.
    """
    params = client.geo_params(lat, lng, radius_km, lookback_days)
    records = client.get(
        ENDPOINTS[mode],
        params,
        api_key=api_key,
        base_url=base_url,
        timeout=timeout,
        http=http,
    )
    observations = parse_observations(records, mode)
    logger.debug("eBird %s at (%.4f, %.4f): %d observations", mode, lat, lng, len(observations))
    return observations


class EBirdSource:
    """
    ``ObservationSource`` backed by the eBird geo endpoints.

    Each source owns its HTTP session so ``close()`` can abort the queries
    still in flight without touching other callers.  Every query's timeout is
    capped at *timeout*, including queries issued with no deadline.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = client.API_BASE,
        timeout: float = DEFAULT_QUERY_TIMEOUT,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url
        self.timeout = timeout
        self.session = create_session()

    @classmethod
    def from_settings(cls, settings: Settings) -> EBirdSource:
        return cls(settings.ebird_api_key, settings.ebird_api_base, settings.query_timeout_s)

    def query(
        self,
        coordinate: Coordinate,
        radius_km: float,
        lookback_days: int,
        mode: QueryMode,
        *,
        timeout: float | None = None,
    ) -> list[RawObservation]:
        return fetch_observations(
            coordinate.lat,
            coordinate.lng,
            mode=mode,
            radius_km=radius_km,
            lookback_days=lookback_days,
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout if timeout is None else min(timeout, self.timeout),
            http=self.session,
        )

    def close(self) -> None:
        """Abort in-flight queries and release connections."""
        abort_session(self.session)

    def __repr__(self) -> str:
        return f"EBirdSource(base_url={self.base_url!r})"
