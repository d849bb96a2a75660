"""Route loading and normalization."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

import requests

from birdride.datasources.ridewithgps import client
from birdride.errors import BirdRideError, InvalidArgumentError, RouteNotFoundError
from birdride.geometry import Coordinate, PathGeometry
from birdride.services.http import session

logger = logging.getLogger(__name__)

# =============================================================================
# Data Model
# =============================================================================


@dataclass
class Route:
    """A recorded or planned route, normalized from RideWithGPS JSON."""

    id: str
    name: str
    distance_m: float = 0.0
    elevation_gain_m: float = 0.0
    elevation_loss_m: float = 0.0
    start_location: str = "Route Start"
    description: str = ""
    track_points: list[tuple[float, float]] = field(default_factory=list)

    @property
    def path(self) -> PathGeometry:
        """Track points as a PathGeometry. Raises if the route has no points."""
        return PathGeometry.from_pairs(self.track_points)


# =============================================================================
# Parsing
# =============================================================================


def _track_points(raw: list[dict[str, Any]]) -> list[tuple[float, float]]:
    """RideWithGPS track points use ``y`` for latitude and ``x`` for longitude."""
    points: list[tuple[float, float]] = []
    for pt in raw:
        try:
            coord = Coordinate(float(pt["y"]), float(pt["x"]))
        except (KeyError, TypeError, ValueError):
            continue
        points.append(coord.as_pair())
    return points


def parse_route(data: dict[str, Any], route_id: str) -> Route:
    """Normalize a route/trip JSON body (the payload may be wrapped in ``route``/``trip``)."""
    body = data.get("route") or data.get("trip") or data
    if not isinstance(body, dict):
        raise BirdRideError(f"Unexpected RideWithGPS payload for route {route_id}")
    return Route(
        id=str(body.get("id") or route_id),
        name=body.get("name") or f"Route {route_id}",
        distance_m=float(body.get("distance") or 0),
        elevation_gain_m=float(body.get("elevation_gain") or 0),
        elevation_loss_m=float(body.get("elevation_loss") or 0),
        start_location=body.get("locality") or body.get("administrative_area") or "Route Start",
        description=body.get("description") or "",
        track_points=_track_points(body.get("track_points") or []),
    )


# =============================================================================
# API Fetching
# =============================================================================


def fetch_route(
    route: str,
    *,
    base_url: str = client.RIDEWITHGPS_BASE,
) -> Route:
    """
    Load a route by RideWithGPS URL or bare numeric route ID.

    Raises:
        InvalidArgumentError: *route* is neither a RideWithGPS URL nor an ID.
        RouteNotFoundError: The provider returned a non-success status.
        BirdRideError: The request failed or the body is not a route object.
    """
    if client.is_ridewithgps_url(route):
        parsed = client.parse_url(route)
        if parsed is None:
            raise InvalidArgumentError(f"Not a RideWithGPS route or trip URL: {route}")
        kind, route_id = parsed
    elif route.strip().isdigit():
        kind, route_id = "route", route.strip()
    else:
        raise InvalidArgumentError(f"Expected a RideWithGPS URL or route ID, got {route!r}")

    url = client.json_url(kind, route_id, base_url)
    logger.info("Fetching %s %s", kind, route_id)
    try:
        resp = session.get(url)
    except requests.RequestException as e:
        raise BirdRideError(f"Failed to fetch route data: {e}") from e
    if not resp.ok:
        raise RouteNotFoundError(route_id, resp.status_code)

    try:
        data = resp.json()
    except ValueError as e:
        raise BirdRideError(f"RideWithGPS returned malformed JSON for {kind} {route_id}") from e
    if not isinstance(data, dict):
        raise BirdRideError(
            f"RideWithGPS returned {type(data).__name__} for {kind} {route_id}, expected an object"
        )
    return parse_route(data, route_id)
