"""Keep only aggregates whose primary sighting lies near the path."""

from __future__ import annotations

from collections.abc import Callable, Iterable

from birdride.errors import InvalidArgumentError
from birdride.geometry import PathGeometry, distance_to_path_miles
from birdride.schemas import SpeciesAggregate


def distance_from_path(aggregate: SpeciesAggregate, path: PathGeometry) -> float:
    """Miles from the aggregate's primary sighting to the nearest point of *path*."""
    return distance_to_path_miles(aggregate.coordinate, path)


def within_distance(
    path: PathGeometry, max_distance_miles: float
) -> Callable[[SpeciesAggregate], bool]:
    """Build a predicate that is True for aggregates within *max_distance_miles* of *path*."""
    if max_distance_miles < 0:
        raise InvalidArgumentError(f"max_distance_miles must be >= 0, got {max_distance_miles}")

    def predicate(aggregate: SpeciesAggregate) -> bool:
        return distance_from_path(aggregate, path) <= max_distance_miles

    return predicate


def filter_by_proximity(
    aggregates: Iterable[SpeciesAggregate],
    path: PathGeometry,
    max_distance_miles: float,
) -> list[SpeciesAggregate]:
    """Drop aggregates farther than *max_distance_miles* from *path*, preserving order."""
    keep = within_distance(path, max_distance_miles)
    return [a for a in aggregates if keep(a)]
