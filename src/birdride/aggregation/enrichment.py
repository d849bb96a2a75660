"""
Optional per-species post-processing (photo lookups, descriptions, ...).

Runs a caller-supplied function once per aggregate, concurrently.  Each call
is independent: a slow or failing lookup yields ``None`` for that species and
never blocks or fails the others.  Calls still outstanding when the deadline
fires are cancelled.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from typing import TypeVar

from birdride.aggregation.deadline import Deadline
from birdride.aggregation.fanout import POLL_INTERVAL_S
from birdride.schemas import SpeciesAggregate

logger = logging.getLogger(__name__)

T = TypeVar("T")


def enrich(
    aggregates: Iterable[SpeciesAggregate],
    fn: Callable[[SpeciesAggregate], T],
    *,
    deadline: Deadline | None = None,
    max_workers: int = 8,
) -> dict[str, T | None]:
    """
    Apply *fn* to every aggregate.

    Returns:
        Mapping of species code to *fn*'s result, or None where the call
        failed or was cancelled.
    """
    items = list(aggregates)
    results: dict[str, T | None] = {a.species_code: None for a in items}
    if not items:
        return results

    executor = ThreadPoolExecutor(
        max_workers=min(max_workers, len(items)), thread_name_prefix="birdride-enrich"
    )
    futures: dict[Future[T], str] = {executor.submit(fn, a): a.species_code for a in items}
    pending: set[Future[T]] = set(futures)
    try:
        while pending:
            if deadline is not None and deadline.cancelled:
                break
            timeout = POLL_INTERVAL_S if deadline is not None else None
            done, pending = wait(pending, timeout=timeout, return_when=FIRST_COMPLETED)
            for future in done:
                code = futures[future]
                try:
                    results[code] = future.result()
                except Exception as e:  # noqa: BLE001
                    logger.warning("Enrichment failed for %s: %s", code, e)
    finally:
        for future in pending:
            future.cancel()
        executor.shutdown(wait=False, cancel_futures=True)

    if pending:
        logger.info("Enrichment cancelled for %d species", len(pending))
    return results
