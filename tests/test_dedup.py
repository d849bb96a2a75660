"""Tests for deduplication and per-species merging."""

from __future__ import annotations

import itertools
from datetime import UTC, datetime, timedelta, timezone
from typing import TYPE_CHECKING

from birdride.aggregation.dedup import SpeciesMerger, merge, timestamp_key
from birdride.schemas import Rarity

if TYPE_CHECKING:
    from collections.abc import Callable

    from birdride.schemas import RawObservation

MAY_1 = datetime(2024, 5, 1, 8, 0)
MAY_3 = datetime(2024, 5, 3, 7, 30)


class TestMerge:
    """Tests for merge()."""

    def test_two_reports_one_species(self, make_obs: Callable[..., RawObservation]) -> None:
        """Two checklists reporting American Robin become one aggregate with two sightings."""
        a = make_obs(report_token="A", observed_at=MAY_1)
        b = make_obs(report_token="B", observed_at=MAY_3)
        result = merge([a, b])

        assert list(result) == ["amerob"]
        agg = result["amerob"]
        assert len(agg.sightings) == 2
        assert agg.primary.report_token == "B"
        assert agg.observed_at == MAY_3
        assert agg.rarity is Rarity.COMMON

    def test_same_report_twice(self, make_obs: Callable[..., RawObservation]) -> None:
        """Overlapping sample radii return the same report; it is kept once."""
        a = make_obs(report_token="A")
        result = merge([a, make_obs(report_token="A")])
        assert len(result["amerob"].sightings) == 1

    def test_same_report_different_species(
        self, make_obs: Callable[..., RawObservation]
    ) -> None:
        result = merge(
            [make_obs(report_token="A"), make_obs(species_code="sonspa", report_token="A")]
        )
        assert set(result) == {"amerob", "sonspa"}

    def test_notable_code_is_rare(self, make_obs: Callable[..., RawObservation]) -> None:
        result = merge([make_obs()], notable_codes={"amerob"})
        assert result["amerob"].rarity is Rarity.RARE

    def test_reviewed_is_rare(self, make_obs: Callable[..., RawObservation]) -> None:
        result = merge([make_obs(reviewed=True)])
        assert result["amerob"].rarity is Rarity.RARE

    def test_rarity_never_downgrades(self, make_obs: Callable[..., RawObservation]) -> None:
        """A later unreviewed report doesn't undo an earlier reviewed one, and vice versa."""
        reviewed = make_obs(report_token="A", reviewed=True)
        plain = make_obs(report_token="B")
        assert merge([reviewed, plain])["amerob"].rarity is Rarity.RARE
        assert merge([plain, reviewed])["amerob"].rarity is Rarity.RARE

    def test_primary_is_most_recent(self, make_obs: Callable[..., RawObservation]) -> None:
        old = make_obs(report_token="A", observed_at=MAY_1)
        new = make_obs(report_token="B", observed_at=MAY_3)
        undated = make_obs(report_token="C", observed_at=None)
        for order in itertools.permutations([old, new, undated]):
            agg = merge(order)["amerob"]
            assert agg.primary.report_token == "B"

    def test_sightings_newest_first(self, make_obs: Callable[..., RawObservation]) -> None:
        obs = [
            make_obs(report_token="A", observed_at=MAY_1),
            make_obs(report_token="C", observed_at=None),
            make_obs(report_token="B", observed_at=MAY_3),
        ]
        agg = merge(obs)["amerob"]
        assert [s.report_token for s in agg.sightings] == ["B", "A", "C"]

    def test_primary_tie_keeps_first_arrival(
        self, make_obs: Callable[..., RawObservation]
    ) -> None:
        a = make_obs(report_token="A", observed_at=MAY_1)
        b = make_obs(report_token="B", observed_at=MAY_1)
        assert merge([a, b])["amerob"].primary.report_token == "A"

    def test_names_filled_from_later_reports(
        self, make_obs: Callable[..., RawObservation]
    ) -> None:
        a = make_obs(report_token="A", common_name="", scientific_name="")
        b = make_obs(report_token="B")
        agg = merge([a, b])["amerob"]
        assert agg.common_name == "American Robin"
        assert agg.scientific_name == "Turdus migratorius"

    def test_order_independent(self, make_obs: Callable[..., RawObservation]) -> None:
        """Every permutation yields the same sighting set, rarity and primary."""
        obs = [
            make_obs(report_token="A", observed_at=MAY_1),
            make_obs(report_token="B", observed_at=MAY_3, reviewed=True),
            make_obs(report_token="A", observed_at=MAY_1),
            make_obs(species_code="sonspa", report_token="A", observed_at=MAY_3),
        ]
        baseline = merge(obs)
        for order in itertools.permutations(obs):
            result = merge(order)
            assert set(result) == set(baseline)
            for code, agg in result.items():
                expected = baseline[code]
                assert {s.report_token for s in agg.sightings} == {
                    s.report_token for s in expected.sightings
                }
                assert agg.rarity is expected.rarity
                assert agg.primary == expected.primary

    def test_offset_and_missing_timestamps(
        self, make_obs: Callable[..., RawObservation]
    ) -> None:
        """Offset-aware reports merge alongside undated ones."""
        aware = make_obs(report_token="A", observed_at=datetime(2024, 5, 1, 8, tzinfo=UTC))
        undated = make_obs(report_token="B", observed_at=None)
        for order in ([aware, undated], [undated, aware]):
            agg = merge(order)["amerob"]
            assert agg.primary.report_token == "A"
            assert [s.report_token for s in agg.sightings] == ["A", "B"]

    def test_offsets_normalized_to_utc(self, make_obs: Callable[..., RawObservation]) -> None:
        """Aware timestamps compare with naive ones once stored as naive UTC."""
        pacific = timezone(timedelta(hours=-7))
        late = make_obs(report_token="A", observed_at=datetime(2024, 5, 1, 8, tzinfo=pacific))
        early = make_obs(report_token="B", observed_at=datetime(2024, 5, 1, 14, 0))
        agg = merge([early, late])["amerob"]
        assert late.observed_at == datetime(2024, 5, 1, 15, 0)
        assert agg.primary.report_token == "A"

    def test_empty(self) -> None:
        assert merge([]) == {}


class TestSpeciesMerger:
    """Tests for the SpeciesMerger accumulator."""

    def test_counts(self, make_obs: Callable[..., RawObservation]) -> None:
        merger = SpeciesMerger()
        assert merger.add(make_obs(report_token="A"))
        assert not merger.add(make_obs(report_token="A"))
        assert not merger.add(make_obs(species_code=""))
        assert len(merger) == 1
        assert merger.duplicates == 1
        assert merger.dropped == 1


class TestTimestampKey:
    """Tests for timestamp_key()."""

    def test_missing_sorts_first(self) -> None:
        assert timestamp_key(None) < timestamp_key(MAY_1)

    def test_missing_sorts_before_aware(self) -> None:
        assert timestamp_key(None) < timestamp_key(MAY_1.replace(tzinfo=UTC))
