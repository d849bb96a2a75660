"""Rarity classification.

A species is ``rare`` if it appeared in any notable-feed response for the
route, or if any individual report of it was flagged as reviewed by the
source.  Everything else is ``common``.  ``uncommon`` is never assigned here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from birdride.schemas import Rarity

if TYPE_CHECKING:
    from collections.abc import Iterable

    from birdride.schemas import SpeciesAggregate


def classify_rarity(
    species_code: str,
    reviewed: bool,
    notable_codes: set[str] | frozenset[str],
) -> Rarity:
    if species_code in notable_codes or reviewed:
        return Rarity.RARE
    return Rarity.COMMON


def is_notable(aggregate: SpeciesAggregate) -> bool:
    """Rarity predicate: rare and uncommon species."""
    return aggregate.is_notable


def notable_only(aggregates: Iterable[SpeciesAggregate]) -> list[SpeciesAggregate]:
    return [a for a in aggregates if is_notable(a)]
