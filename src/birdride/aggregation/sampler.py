"""Reduce a dense path to a bounded set of query origins."""

from __future__ import annotations

from collections.abc import Sequence

from birdride.errors import InvalidArgumentError
from birdride.geometry import Coordinate, PathGeometry

#: Sample cap per path; bounds outbound fan-out to 2 queries per point.
DEFAULT_MAX_POINTS = 15


def sample(
    path: PathGeometry | Sequence[Coordinate],
    max_points: int = DEFAULT_MAX_POINTS,
) -> list[Coordinate]:
    """
    Pick at most *max_points* coordinates from *path* at a fixed stride.

    Paths with ``max_points`` or fewer coordinates are returned unchanged.
    Otherwise ``stride = len(path) // max_points`` and every stride-th point
    from index 0 is taken until ``max_points`` are collected.  The stride comes
    from point count, not distance, so densely recorded stretches get more
    samples.

    Raises:
        InvalidArgumentError: Empty path or ``max_points < 1``.
    """
    if max_points < 1:
        raise InvalidArgumentError(f"max_points must be >= 1, got {max_points}")
    coords = list(path)
    if not coords:
        raise InvalidArgumentError("Cannot sample an empty path")

    if len(coords) <= max_points:
        return coords

    stride = len(coords) // max_points
    return coords[::stride][:max_points]
