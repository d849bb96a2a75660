"""
Domain models for BirdRide.

Pydantic models for observation data flowing through the aggregator.
These define the canonical schema - data sources normalize API responses to
these, applying defaults once at ingestion.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, Field, field_validator

from birdride.geometry import Coordinate, PathGeometry, location_description

if TYPE_CHECKING:
    from collections.abc import Iterator

# =============================================================================
# Enums
# =============================================================================


class Rarity(StrEnum):
    """Rarity tier of a species aggregate."""

    RARE = "rare"
    UNCOMMON = "uncommon"  # reserved for richer sources; never assigned by the merger
    COMMON = "common"


#: Sort rank for rarity ordering (lower sorts first).
RARITY_RANK: dict[Rarity, int] = {Rarity.RARE: 0, Rarity.UNCOMMON: 1, Rarity.COMMON: 2}


class QueryMode(StrEnum):
    """Observation feed queried at each sample point."""

    RECENT = "recent"
    NOTABLE = "notable"


class SortOrder(StrEnum):
    """Ranking policy for the final collection."""

    RECENT = "recent"
    RARITY = "rarity"


# =============================================================================
# Observations
# =============================================================================


def naive_utc(value: datetime | None) -> datetime | None:
    """Convert an offset-aware timestamp to naive UTC; naive values pass through.

    eBird reports local wall-clock times without an offset.  Other sources may
    send offsets; normalizing at ingestion keeps every stored timestamp
    comparable with every other.
    """
    if value is not None and value.tzinfo is not None:
        return value.astimezone(UTC).replace(tzinfo=None)
    return value


class SightingRecord(BaseModel):
    """One individual report retained inside a species aggregate."""

    model_config = {"frozen": True}

    observed_at: datetime | None = None
    quantity: int = 1
    location_name: str = ""
    report_token: str
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    @field_validator("observed_at")
    @classmethod
    def _naive_observed_at(cls, v: datetime | None) -> datetime | None:
        return naive_utc(v)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)


class RawObservation(BaseModel):
    """A single sighting report as returned by a source query."""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    species_code: str = Field(..., description="Source species code, e.g. 'amerob'")
    common_name: str = ""
    scientific_name: str = ""
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    observed_at: datetime | None = None
    quantity: int = Field(default=1, ge=0)
    location_name: str = ""
    report_token: str = Field(..., description="Checklist/submission ID")
    reviewed: bool = False
    observer_count: int = Field(default=0, ge=0)
    mode: QueryMode = QueryMode.RECENT

    @field_validator("observed_at")
    @classmethod
    def _naive_observed_at(cls, v: datetime | None) -> datetime | None:
        return naive_utc(v)

    @property
    def coordinate(self) -> Coordinate:
        return Coordinate(self.lat, self.lng)

    @property
    def sighting_key(self) -> tuple[str, str]:
        """Deduplication key: the same report of the same species."""
        return (self.species_code, self.report_token)

    def to_sighting(self) -> SightingRecord:
        return SightingRecord(
            observed_at=self.observed_at,
            quantity=self.quantity,
            location_name=self.location_name,
            report_token=self.report_token,
            lat=self.lat,
            lng=self.lng,
        )


class SpeciesAggregate(BaseModel):
    """Every distinct sighting of one species near a path, merged into one record."""

    model_config = {"frozen": True}

    species_code: str
    common_name: str = ""
    scientific_name: str = ""
    rarity: Rarity = Rarity.COMMON
    primary: SightingRecord
    sightings: tuple[SightingRecord, ...] = Field(..., min_length=1)

    @property
    def coordinate(self) -> Coordinate:
        """Location of the primary (most recent) sighting."""
        return self.primary.coordinate

    @property
    def observed_at(self) -> datetime | None:
        return self.primary.observed_at

    @property
    def is_notable(self) -> bool:
        return self.rarity in (Rarity.RARE, Rarity.UNCOMMON)

    @property
    def display_name(self) -> str:
        """Human-friendly name: common name if available, else scientific, else code."""
        if self.common_name and self.scientific_name:
            return f"{self.common_name} ({self.scientific_name})"
        return self.common_name or self.scientific_name or self.species_code


# =============================================================================
# Aggregation outcome
# =============================================================================


class QueryFailure(BaseModel):
    """A single sample-point query that contributed no observations."""

    model_config = {"frozen": True}

    lat: float
    lng: float
    mode: QueryMode
    error_type: str
    message: str
    cancelled: bool = False


class AggregationIncomplete(BaseModel):
    """Attached to an empty result when no sub-query succeeded.

    Lets callers tell "no birds near this route" apart from "the source was
    entirely unreachable".
    """

    model_config = {"frozen": True}

    failed_queries: int
    total_queries: int
    reason: str


@dataclass(frozen=True)
class AggregationResult:
    """Species aggregates for one path, plus query failure metadata.

    Behaves as a read-only sequence of ``SpeciesAggregate``.
    """

    aggregates: tuple[SpeciesAggregate, ...]
    sample_points: int
    total_queries: int
    failures: tuple[QueryFailure, ...] = ()
    incomplete: AggregationIncomplete | None = None
    path: PathGeometry | None = None
    generated_at: datetime = field(default_factory=datetime.now)

    def __len__(self) -> int:
        return len(self.aggregates)

    def __iter__(self) -> Iterator[SpeciesAggregate]:
        return iter(self.aggregates)

    def __getitem__(self, index: int) -> SpeciesAggregate:
        return self.aggregates[index]

    @property
    def failed_queries(self) -> int:
        return len(self.failures)

    @property
    def notable_count(self) -> int:
        return sum(1 for a in self.aggregates if a.is_notable)

    def location_of(self, aggregate: SpeciesAggregate) -> str | None:
        """Mile-marker description of an aggregate's primary sighting along the path."""
        if self.path is None:
            return None
        return location_description(aggregate.coordinate, self.path)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready representation."""
        return {
            "generated_at": self.generated_at.isoformat(),
            "sample_points": self.sample_points,
            "total_queries": self.total_queries,
            "failed_queries": self.failed_queries,
            "incomplete": self.incomplete.model_dump(mode="json") if self.incomplete else None,
            "species": [
                {**a.model_dump(mode="json"), "location": self.location_of(a)}
                for a in self.aggregates
            ],
        }
