"""The observation-source interface consumed by the aggregator."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from birdride.geometry import Coordinate
    from birdride.schemas import QueryMode, RawObservation


@runtime_checkable
class ObservationSource(Protocol):
    """Anything that can answer "what was seen near here lately?".

    Implementations raise ``SourceUnavailable`` when the source can't be
    reached and ``SourceError`` for bad status codes or payloads.  They must
    honour *timeout* (seconds) as an upper bound on the whole call so the
    orchestrator can enforce its deadline.
    """

    def query(
        self,
        coordinate: Coordinate,
        radius_km: float,
        lookback_days: int,
        mode: QueryMode,
        *,
        timeout: float | None = None,
    ) -> list[RawObservation]: ...
