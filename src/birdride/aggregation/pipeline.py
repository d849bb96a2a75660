"""
The aggregation entry point.

    path -> sample -> fetch (notable + recent per point) -> merge
         -> [proximity filter] -> [notable-only filter] -> rank

Synchronous to the caller; the fetch stage fans out internally.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from birdride.aggregation.dedup import merge
from birdride.aggregation.fanout import fetch
from birdride.aggregation.proximity import within_distance
from birdride.aggregation.rarity import is_notable
from birdride.aggregation.ranking import rank
from birdride.aggregation.sampler import DEFAULT_MAX_POINTS, sample
from birdride.errors import InvalidArgumentError
from birdride.geometry import Coordinate, PathGeometry
from birdride.schemas import AggregationIncomplete, AggregationResult, SortOrder

if TYPE_CHECKING:
    from birdride.aggregation.deadline import Deadline
    from birdride.datasources.base import ObservationSource

logger = logging.getLogger(__name__)


def _validate(
    lookback_days: int,
    radius_km: float,
    max_points: int,
    proximity_miles: float | None,
) -> None:
    if lookback_days <= 0:
        raise InvalidArgumentError(f"lookback_days must be positive, got {lookback_days}")
    if radius_km <= 0:
        raise InvalidArgumentError(f"radius_km must be positive, got {radius_km}")
    if max_points < 1:
        raise InvalidArgumentError(f"max_points must be >= 1, got {max_points}")
    if proximity_miles is not None and proximity_miles < 0:
        raise InvalidArgumentError(f"proximity_miles must be >= 0, got {proximity_miles}")


def aggregate(
    path: PathGeometry | Sequence[Coordinate],
    lookback_days: int,
    radius_km: float,
    max_points: int = DEFAULT_MAX_POINTS,
    proximity_miles: float | None = None,
    *,
    source: ObservationSource,
    deadline: Deadline | None = None,
    order: SortOrder | str = SortOrder.RECENT,
    notable_only: bool = False,
    max_workers: int | None = None,
) -> AggregationResult:
    """
    Find the species observed near *path*.

    Args:
        path: Travel path (at least one coordinate).
        lookback_days: Observation window in days.
        radius_km: Query radius around each sample point.
        max_points: Sample-point cap; bounds the fan-out to ``2 * max_points`` queries.
        proximity_miles: If set, drop species whose primary sighting is farther
            than this from the path.
        source: Observation source to query.
        deadline: Optional cancellation token; settled results are kept when it fires.
        order: ``recent`` (newest first) or ``rarity`` (rare first).
        notable_only: Keep only rare/uncommon species.
        max_workers: Thread ceiling for the fan-out.

    Returns:
        AggregationResult: the ranked aggregates plus failure metadata.
        ``incomplete`` is set when every query failed and nothing was found.

    Raises:
        InvalidArgumentError: Empty path or a non-positive parameter.
    """
    _validate(lookback_days, radius_km, max_points, proximity_miles)
    if not isinstance(path, PathGeometry):
        path = PathGeometry(tuple(path))

    samples = sample(path, max_points)
    fetched = fetch(
        samples,
        lookback_days,
        radius_km,
        source=source,
        deadline=deadline,
        max_workers=max_workers,
    )

    aggregates = list(merge(fetched.observations, fetched.notable_codes).values())
    merged_count = len(aggregates)
    if proximity_miles is not None:
        near = within_distance(path, proximity_miles)
        aggregates = [a for a in aggregates if near(a)]
    if notable_only:
        aggregates = [a for a in aggregates if is_notable(a)]
    ranked = rank(aggregates, order)

    incomplete = None
    if fetched.all_failed and not ranked:
        cancelled = sum(1 for f in fetched.failures if f.cancelled)
        if cancelled == fetched.total_queries:
            reason = "all queries cancelled"
        else:
            reason = "all queries failed"
        incomplete = AggregationIncomplete(
            failed_queries=len(fetched.failures),
            total_queries=fetched.total_queries,
            reason=reason,
        )
        logger.warning("No results: %s (%d queries)", reason, fetched.total_queries)

    logger.info(
        "Aggregated %d species (%d after filters) from %d sample points, %d/%d queries ok",
        merged_count,
        len(ranked),
        len(samples),
        fetched.succeeded,
        fetched.total_queries,
    )
    return AggregationResult(
        aggregates=tuple(ranked),
        sample_points=len(samples),
        total_queries=fetched.total_queries,
        failures=tuple(fetched.failures),
        incomplete=incomplete,
        path=path,
    )
