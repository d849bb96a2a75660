"""
Fold raw observations into one aggregate per species.

Sample-point radii overlap, so the same checklist report often comes back
from several queries.  ``(species_code, report_token)`` identifies a report;
repeats are dropped.  Every distinct report is kept as a ``SightingRecord``
on its species, and the most recent one is surfaced as the primary sighting.

The fold is single-threaded and runs after all queries settle.  Its state
lives in one ``SpeciesMerger`` created per call.  The final aggregates do not
depend on arrival order (ties on timestamp aside):

- the set of sightings per species is the set of distinct report keys,
- rarity is ``rare`` if any input made it so (it never downgrades),
- the primary sighting carries the maximum timestamp,
- sightings are sorted newest first, ties in arrival order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING

from birdride.aggregation.rarity import classify_rarity
from birdride.schemas import Rarity, SightingRecord, SpeciesAggregate

if TYPE_CHECKING:
    from collections.abc import Iterable

    from birdride.schemas import RawObservation

logger = logging.getLogger(__name__)


def timestamp_key(ts: datetime | None) -> tuple[bool, datetime | None]:
    """Sort key treating a missing timestamp as the earliest possible.

    A missing timestamp is never compared against a present one, so the key is
    safe whatever tzinfo the present ones carry.
    """
    return (ts is not None, ts)


@dataclass
class _SpeciesState:
    """Mutable per-species accumulator, private to one merge."""

    species_code: str
    common_name: str
    scientific_name: str
    rarity: Rarity
    primary: SightingRecord
    sightings: list[SightingRecord]

    def freeze(self) -> SpeciesAggregate:
        ordered = sorted(self.sightings, key=lambda s: timestamp_key(s.observed_at), reverse=True)
        return SpeciesAggregate(
            species_code=self.species_code,
            common_name=self.common_name,
            scientific_name=self.scientific_name,
            rarity=self.rarity,
            primary=self.primary,
            sightings=tuple(ordered),
        )


class SpeciesMerger:
    """Accumulates observations for one aggregation call."""

    def __init__(self, notable_codes: Iterable[str] = ()) -> None:
        self.notable_codes = frozenset(notable_codes)
        self._seen: set[tuple[str, str]] = set()
        self._species: dict[str, _SpeciesState] = {}
        self.duplicates = 0
        self.dropped = 0

    def __len__(self) -> int:
        return len(self._species)

    def add(self, obs: RawObservation) -> bool:
        """Fold one observation in.  Returns False if it was a duplicate or malformed."""
        if not obs.species_code or not obs.report_token:
            self.dropped += 1
            return False

        key = obs.sighting_key
        if key in self._seen:
            self.duplicates += 1
            return False
        self._seen.add(key)

        sighting = obs.to_sighting()
        state = self._species.get(obs.species_code)
        if state is None:
            self._species[obs.species_code] = _SpeciesState(
                species_code=obs.species_code,
                common_name=obs.common_name,
                scientific_name=obs.scientific_name,
                rarity=classify_rarity(obs.species_code, obs.reviewed, self.notable_codes),
                primary=sighting,
                sightings=[sighting],
            )
            return True

        state.sightings.append(sighting)
        if classify_rarity(obs.species_code, obs.reviewed, self.notable_codes) is Rarity.RARE:
            state.rarity = Rarity.RARE
        state.common_name = state.common_name or obs.common_name
        state.scientific_name = state.scientific_name or obs.scientific_name
        if timestamp_key(sighting.observed_at) > timestamp_key(state.primary.observed_at):
            state.primary = sighting
        return True

    def results(self) -> dict[str, SpeciesAggregate]:
        """Freeze the accumulated state into aggregates keyed by species code."""
        return {code: state.freeze() for code, state in self._species.items()}


def merge(
    observations: Iterable[RawObservation],
    notable_codes: Iterable[str] = (),
) -> dict[str, SpeciesAggregate]:
    """
    Deduplicate and group observations by species.

    Args:
        observations: Raw observations in arrival order.
        notable_codes: Species codes seen in any notable-feed response; these
            are always classified ``rare``.

    Returns:
        Mapping of species code to its aggregate.
    """
    merger = SpeciesMerger(notable_codes)
    for obs in observations:
        merger.add(obs)

    if merger.duplicates or merger.dropped:
        logger.debug(
            "Merge skipped %d duplicate and %d malformed observations",
            merger.duplicates,
            merger.dropped,
        )
    return merger.results()
