"""Ordering policies for the final collection.  One policy per call, never combined."""

from __future__ import annotations

from typing import TYPE_CHECKING

from birdride.aggregation.dedup import timestamp_key
from birdride.schemas import RARITY_RANK, SortOrder

if TYPE_CHECKING:
    from collections.abc import Iterable

    from birdride.schemas import SpeciesAggregate


def by_recency(aggregates: Iterable[SpeciesAggregate]) -> list[SpeciesAggregate]:
    """Newest primary sighting first; missing timestamps last."""
    return sorted(aggregates, key=lambda a: timestamp_key(a.observed_at), reverse=True)


def by_rarity(aggregates: Iterable[SpeciesAggregate]) -> list[SpeciesAggregate]:
    """Rare, then uncommon, then common; stable within a tier."""
    return sorted(aggregates, key=lambda a: RARITY_RANK[a.rarity])


def rank(
    aggregates: Iterable[SpeciesAggregate],
    order: SortOrder | str = SortOrder.RECENT,
) -> list[SpeciesAggregate]:
    if SortOrder(order) is SortOrder.RARITY:
        return by_rarity(aggregates)
    return by_recency(aggregates)
