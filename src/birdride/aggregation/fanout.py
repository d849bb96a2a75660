"""
Concurrent fan-out of source queries over sample points.

Every sample point gets one ``NOTABLE`` and one ``RECENT`` query; all of them
run at once on a request-scoped thread pool and are awaited jointly.  A failed
query contributes nothing and is recorded as a ``QueryFailure``; the call
itself only fails on invalid arguments.

Queries never share state.  Results are reassembled in a fixed order (all
notable results by sample index, then all recent results by sample index)
before being handed to the single-threaded merge.
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from itertools import product
from typing import TYPE_CHECKING

from birdride.errors import InvalidArgumentError, SourceError
from birdride.schemas import QueryFailure, QueryMode, RawObservation

if TYPE_CHECKING:
    from collections.abc import Sequence

    from birdride.aggregation.deadline import Deadline
    from birdride.datasources.base import ObservationSource
    from birdride.geometry import Coordinate

logger = logging.getLogger(__name__)

#: How often the collector re-checks an explicit ``Deadline.cancel()``.
POLL_INTERVAL_S = 0.1

#: How long running queries get to unwind once the deadline's closers fire.
ABORT_GRACE_S = 2.0

#: Notable queries are folded first so rare sightings seed each aggregate.
MODES: tuple[QueryMode, ...] = (QueryMode.NOTABLE, QueryMode.RECENT)


class QueryCancelledError(Exception):
    """Raised inside a worker when the deadline passed before the query started."""


@dataclass
class FetchResult:
    """Raw output of one fan-out: observations in fold order plus bookkeeping."""

    observations: list[RawObservation] = field(default_factory=list)
    notable_codes: set[str] = field(default_factory=set)
    failures: list[QueryFailure] = field(default_factory=list)
    total_queries: int = 0

    @property
    def succeeded(self) -> int:
        return self.total_queries - len(self.failures)

    @property
    def all_failed(self) -> bool:
        return self.total_queries > 0 and self.succeeded == 0


@dataclass(frozen=True)
class _Query:
    index: int
    point: Coordinate
    mode: QueryMode


def _run_query(
    source: ObservationSource,
    query: _Query,
    radius_km: float,
    lookback_days: int,
    deadline: Deadline | None,
) -> list[RawObservation]:
    timeout = None
    if deadline is not None:
        if deadline.cancelled:
            raise QueryCancelledError("deadline reached before query started")
        timeout = deadline.remaining()
        if timeout == 0:
            raise QueryCancelledError("deadline reached before query started")
    return source.query(query.point, radius_km, lookback_days, query.mode, timeout=timeout)


def _failure(query: _Query, exc: BaseException, *, cancelled: bool = False) -> QueryFailure:
    return QueryFailure(
        lat=query.point.lat,
        lng=query.point.lng,
        mode=query.mode,
        error_type=type(exc).__name__,
        message=str(exc),
        cancelled=cancelled,
    )


def fetch(
    samples: Sequence[Coordinate],
    window_days: int,
    radius_km: float,
    *,
    source: ObservationSource,
    deadline: Deadline | None = None,
    max_workers: int | None = None,
) -> FetchResult:
    """
    Query *source* in both modes at every sample point, concurrently.

    Args:
        samples: Query origins (already bounded by the sampler).
        window_days: Lookback window in days.
        radius_km: Search radius around each sample point.
        source: The observation source to query.
        deadline: Optional cancellation token.  When it fires, queries that
            haven't started are cancelled, running ones are aborted through
            the deadline's closers, and settled results are returned.
        max_workers: Thread ceiling (defaults to one thread per query).

    Returns:
        FetchResult with observations ordered notable-first, the set of
        species codes seen in any notable response, and per-query failures.
    """
    if not samples:
        raise InvalidArgumentError("No sample points to query")

    queries = [
        _Query(index=i, point=point, mode=mode)
        for i, (mode, point) in enumerate(product(MODES, samples))
    ]
    outcomes: dict[int, list[RawObservation]] = {}
    result = FetchResult(total_queries=len(queries))

    workers = min(len(queries), max_workers or len(queries))
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="birdride-query")
    futures: dict[Future[list[RawObservation]], _Query] = {
        executor.submit(_run_query, source, q, radius_km, window_days, deadline): q for q in queries
    }

    def collect(future: Future[list[RawObservation]]) -> None:
        query = futures[future]
        try:
            outcomes[query.index] = future.result()
        except QueryCancelledError as e:
            result.failures.append(_failure(query, e, cancelled=True))
        except SourceError as e:
            logger.warning(
                "%s query at (%.4f, %.4f) failed: %s",
                query.mode, query.point.lat, query.point.lng, e,
            )
            result.failures.append(_failure(query, e))
        except Exception as e:  # noqa: BLE001
            logger.warning(
                "%s query at (%.4f, %.4f) raised %s: %s",
                query.mode, query.point.lat, query.point.lng, type(e).__name__, e,
            )
            result.failures.append(_failure(query, e))

    pending: set[Future[list[RawObservation]]] = set(futures)
    abandoned = 0
    still_running: set[Future[list[RawObservation]]] = set()
    try:
        while pending:
            if deadline is not None and deadline.cancelled:
                break
            timeout = POLL_INTERVAL_S if deadline is not None else None
            done, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)
            for future in done:
                collect(future)
    finally:
        running: set[Future[list[RawObservation]]] = set()
        for future in pending:
            # Settled between the last poll and cancellation: keep it.
            if future.done() and not future.cancelled():
                collect(future)
                continue
            if not future.cancel():
                running.add(future)
            abandoned += 1
            result.failures.append(
                _failure(futures[future], QueryCancelledError("deadline reached"), cancelled=True)
            )
        if running and deadline is not None:
            # Fires the closers, which abort the connections those queries block on.
            deadline.cancel()
            _, still_running = wait(running, timeout=ABORT_GRACE_S)
        else:
            still_running = running
        executor.shutdown(wait=not still_running, cancel_futures=True)

    if abandoned:
        logger.warning(
            "Deadline reached with %d of %d queries outstanding", abandoned, len(queries)
        )
    if still_running:
        logger.warning("%d aborted queries had not returned on exit", len(still_running))

    # Reassemble in query order: notable results (and their codes) first.
    for query in queries:
        observations = outcomes.get(query.index)
        if not observations:
            continue
        for obs in observations:
            if obs.mode != query.mode:
                obs = obs.model_copy(update={"mode": query.mode})  # noqa: PLW2901
            if query.mode is QueryMode.NOTABLE and obs.species_code:
                result.notable_codes.add(obs.species_code)
            result.observations.append(obs)

    result.failures.sort(key=lambda f: (f.mode != QueryMode.NOTABLE, f.lat, f.lng))
    logger.debug(
        "Fetched %d observations (%d notable species) from %d/%d queries",
        len(result.observations),
        len(result.notable_codes),
        result.succeeded,
        result.total_queries,
    )
    return result
