"""Tests for per-species enrichment."""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING

from birdride.aggregation.deadline import Deadline
from birdride.aggregation.dedup import merge
from birdride.aggregation.enrichment import enrich

if TYPE_CHECKING:
    from collections.abc import Callable

    from birdride.schemas import RawObservation, SpeciesAggregate


def _aggregates(make_obs: Callable[..., RawObservation]) -> list[SpeciesAggregate]:
    merged = merge(
        [
            make_obs(species_code="amerob", report_token="1"),
            make_obs(species_code="sonspa", report_token="2"),
            make_obs(species_code="baleag", report_token="3"),
        ]
    )
    return list(merged.values())


class TestEnrich:
    """Tests for enrich()."""

    def test_applies_to_every_species(self, make_obs: Callable[..., RawObservation]) -> None:
        result = enrich(_aggregates(make_obs), lambda a: a.species_code.upper())
        assert result == {"amerob": "AMEROB", "sonspa": "SONSPA", "baleag": "BALEAG"}

    def test_failure_isolated(self, make_obs: Callable[..., RawObservation]) -> None:
        def lookup(agg: SpeciesAggregate) -> str:
            if agg.species_code == "sonspa":
                raise RuntimeError("no photo")
            return f"https://example.org/{agg.species_code}.jpg"

        result = enrich(_aggregates(make_obs), lookup)
        assert result["sonspa"] is None
        assert result["amerob"] == "https://example.org/amerob.jpg"

    def test_deadline_cancels_slow_calls(self, make_obs: Callable[..., RawObservation]) -> None:
        release = threading.Event()

        def lookup(agg: SpeciesAggregate) -> str:
            if agg.species_code == "baleag":
                release.wait(5)
            return agg.species_code

        try:
            result = enrich(_aggregates(make_obs), lookup, deadline=Deadline(0.3))
        finally:
            release.set()
        assert result["baleag"] is None
        assert result["amerob"] == "amerob"

    def test_empty(self) -> None:
        assert enrich([], lambda a: a) == {}
