"""
Prefect flow: birds seen along a route.

Loads a route (RideWithGPS link/ID) or takes inline coordinates, runs the
aggregator against eBird, and prints a short summary.

Run locally:
    python -m birdride.flows.sightings https://ridewithgps.com/routes/12345

Run with Prefect dashboard:
    prefect server start &
    python -m birdride.flows.sightings 12345
"""

from __future__ import annotations

import sys
from typing import Any

from prefect import flow, task

from birdride.aggregation import Deadline, aggregate
from birdride.config import get_settings
from birdride.datasources.ebird import EBirdSource
from birdride.datasources.ridewithgps import Route, fetch_route
from birdride.errors import InvalidArgumentError
from birdride.geometry import METERS_PER_MILE, PathGeometry
from birdride.schemas import AggregationResult, SortOrder


@task(name="load-route", retries=2, retry_delay_seconds=5)
def load_route(route: str) -> Route:
    """Fetch and normalize a RideWithGPS route or trip."""
    settings = get_settings()
    return fetch_route(route, base_url=settings.ridewithgps_base)


@task(name="aggregate-sightings")
def aggregate_sightings(
    path: PathGeometry,
    lookback_days: int,
    radius_km: float,
    max_points: int,
    proximity_miles: float | None = None,
    order: SortOrder = SortOrder.RECENT,
    notable_only: bool = False,
) -> AggregationResult:
    """Run the aggregator against eBird with the configured deadline."""
    settings = get_settings()
    source = EBirdSource.from_settings(settings)
    deadline = Deadline.after(settings.query_timeout_s)
    deadline.add_closer(source.close)
    try:
        return aggregate(
            path,
            lookback_days,
            radius_km,
            max_points,
            proximity_miles,
            source=source,
            deadline=deadline,
            order=order,
            notable_only=notable_only,
            max_workers=settings.max_workers,
        )
    finally:
        source.close()


def summarize(result: AggregationResult) -> dict[str, Any]:
    """Counts for logging and flow output."""
    return {
        "species": len(result),
        "notable_species": result.notable_count,
        "sightings": sum(len(a.sightings) for a in result),
        "sample_points": result.sample_points,
        "queries": result.total_queries,
        "failed_queries": result.failed_queries,
        "incomplete": result.incomplete.reason if result.incomplete else None,
    }


@flow(name="route-sightings", log_prints=True)
def route_sightings(
    route: str | None = None,
    coords: list[tuple[float, float]] | None = None,
    lookback_days: int | None = None,
    radius_km: float | None = None,
    max_points: int | None = None,
    proximity_miles: float | None = None,
    order: SortOrder = SortOrder.RECENT,
    notable_only: bool = False,
) -> AggregationResult:
    """
    Find birds reported near a route.

    Exactly one of *route* (RideWithGPS URL or ID) or *coords* ((lat, lng)
    pairs) must be given.  Unset numeric options fall back to settings.
    """
    if (route is None) == (coords is None):
        raise InvalidArgumentError("Provide exactly one of route or coords")

    settings = get_settings()
    if route is not None:
        loaded = load_route(route)
        print(f"Loaded route '{loaded.name}' ({len(loaded.track_points)} track points)")
        path = loaded.path
    else:
        path = PathGeometry.from_pairs(coords or [])

    print(f"Searching eBird along {path.length_m / METERS_PER_MILE:.1f} mi of path...")
    result = aggregate_sightings(
        path,
        lookback_days if lookback_days is not None else settings.lookback_days,
        radius_km if radius_km is not None else settings.search_radius_km,
        max_points if max_points is not None else settings.max_sample_points,
        proximity_miles if proximity_miles is not None else settings.proximity_miles,
        order=order,
        notable_only=notable_only,
    )

    summary = summarize(result)
    if result.incomplete:
        print(f"No results: eBird was unreachable ({result.incomplete.reason}).")
    else:
        print(
            f"Found {summary['species']} species ({summary['notable_species']} notable) "
            f"from {summary['queries'] - summary['failed_queries']}/{summary['queries']} queries"
        )
    return result


if __name__ == "__main__":
    arg = sys.argv[1] if len(sys.argv) > 1 else None
    if arg is None:
        print("usage: python -m birdride.flows.sightings <route-url-or-id>", file=sys.stderr)
        sys.exit(2)
    flow_result = route_sightings(route=arg)
    print(f"Flow complete: {summarize(flow_result)}")
