"""
Path geometry: coordinates, polylines and great-circle distance.

Distances are Haversine great-circle distances in miles.  Projection onto a
path segment is done in plain (lat, lng) space, which is accurate enough for
the short legs of a recorded route (tens to hundreds of meters); it is not a
geodesic projection.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass
from typing import overload

from birdride.errors import InvalidArgumentError

EARTH_RADIUS_MILES = 3958.8
METERS_PER_MILE = 1609.344


# =============================================================================
# Data Models
# =============================================================================


@dataclass(frozen=True)
class Coordinate:
    """WGS84 latitude/longitude in degrees."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not (math.isfinite(self.lat) and math.isfinite(self.lng)):
            raise InvalidArgumentError(f"Coordinate must be finite, got ({self.lat}, {self.lng})")
        if not -90 <= self.lat <= 90:
            raise InvalidArgumentError(f"Latitude out of range: {self.lat}")
        if not -180 <= self.lng <= 180:
            raise InvalidArgumentError(f"Longitude out of range: {self.lng}")

    def as_pair(self) -> tuple[float, float]:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class BoundingBox:
    """North/south/east/west extent of a path, for map fitting."""

    north: float
    south: float
    east: float
    west: float


@dataclass(frozen=True)
class PathGeometry:
    """An ordered travel path.  Must hold at least one coordinate."""

    coordinates: tuple[Coordinate, ...]

    def __post_init__(self) -> None:
        if not self.coordinates:
            raise InvalidArgumentError("Path must contain at least one coordinate")

    @classmethod
    def from_pairs(cls, pairs: Iterable[Sequence[float]]) -> PathGeometry:
        """Build a path from ``(lat, lng)`` pairs."""
        coords: list[Coordinate] = []
        for pair in pairs:
            if len(pair) != 2:
                raise InvalidArgumentError(f"Expected (lat, lng) pair, got {pair!r}")
            coords.append(Coordinate(float(pair[0]), float(pair[1])))
        return cls(tuple(coords))

    def __len__(self) -> int:
        return len(self.coordinates)

    def __iter__(self) -> Iterator[Coordinate]:
        return iter(self.coordinates)

    @overload
    def __getitem__(self, index: int) -> Coordinate: ...

    @overload
    def __getitem__(self, index: slice) -> tuple[Coordinate, ...]: ...

    def __getitem__(self, index: int | slice) -> Coordinate | tuple[Coordinate, ...]:
        return self.coordinates[index]

    @property
    def length_m(self) -> float:
        """Total path length in meters (sum of great-circle legs)."""
        miles = sum(
            haversine_miles(a, b) for a, b in zip(self.coordinates, self.coordinates[1:])
        )
        return miles * METERS_PER_MILE

    @property
    def bounds(self) -> BoundingBox:
        lats = [c.lat for c in self.coordinates]
        lngs = [c.lng for c in self.coordinates]
        return BoundingBox(north=max(lats), south=min(lats), east=max(lngs), west=min(lngs))


# =============================================================================
# Distance
# =============================================================================


def haversine_miles(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates, in miles."""
    lat1, lat2 = math.radians(a.lat), math.radians(b.lat)
    dlat = lat2 - lat1
    dlng = math.radians(b.lng - a.lng)
    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
    return 2 * EARTH_RADIUS_MILES * math.asin(min(1.0, math.sqrt(h)))


def point_to_segment_miles(point: Coordinate, start: Coordinate, end: Coordinate) -> float:
    """
    Distance from *point* to the segment *start* to *end*, in miles.

    The point is projected onto the segment's line in (lat, lng) space, the
    projection parameter is clamped to [0, 1], and the Haversine distance to
    the clamped point is returned.
    """
    dx = end.lng - start.lng
    dy = end.lat - start.lat
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return haversine_miles(point, start)

    t = ((point.lng - start.lng) * dx + (point.lat - start.lat) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    nearest = Coordinate(start.lat + t * dy, start.lng + t * dx)
    return haversine_miles(point, nearest)


def distance_to_path_miles(point: Coordinate, path: PathGeometry) -> float:
    """
    Minimum distance from *point* to *path* treated as a polyline, in miles.

    Takes the minimum over every segment and every vertex, so single-point
    paths and segment end points are covered.
    """
    coords = path.coordinates
    best = min(haversine_miles(point, c) for c in coords)
    for a, b in zip(coords, coords[1:]):
        best = min(best, point_to_segment_miles(point, a, b))
    return best


# =============================================================================
# Route position
# =============================================================================


def nearest_vertex_index(point: Coordinate, path: PathGeometry) -> int:
    """Index of the path vertex closest to *point* in (lat, lng) space."""
    best_index = 0
    best = math.inf
    for i, c in enumerate(path.coordinates):
        d = math.hypot(point.lat - c.lat, point.lng - c.lng)
        if d < best:
            best = d
            best_index = i
    return best_index


def location_description(point: Coordinate, path: PathGeometry) -> str:
    """
    Approximate mile-marker for *point* along *path*.

    Uses the nearest vertex's position in the point sequence as the fraction
    of total distance travelled.

    Returns:
        ``"Near start"`` within the first mile, else ``"Near mile N"``.
    """
    progress = nearest_vertex_index(point, path) / len(path)
    miles = (path.length_m / METERS_PER_MILE) * progress
    if miles < 1:
        return "Near start"
    return f"Near mile {math.floor(miles + 0.5)}"
