"""Shared fixtures: observation factory and an in-memory observation source."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import datetime
from typing import Any

import pytest

from birdride.geometry import Coordinate
from birdride.schemas import QueryMode, RawObservation

Handler = Callable[[Coordinate, QueryMode], list[RawObservation]]


def _make_obs(
    species_code: str = "amerob",
    report_token: str = "S1",
    observed_at: datetime | None = datetime(2024, 5, 1, 8, 0),
    lat: float = 45.5,
    lng: float = -122.6,
    **kwargs: Any,
) -> RawObservation:
    kwargs.setdefault("common_name", "American Robin")
    kwargs.setdefault("scientific_name", "Turdus migratorius")
    return RawObservation(
        species_code=species_code,
        report_token=report_token,
        observed_at=observed_at,
        lat=lat,
        lng=lng,
        **kwargs,
    )


class FakeSource:
    """ObservationSource double: answers every query through *handler*."""

    def __init__(self, handler: Handler | None = None) -> None:
        self.handler = handler or (lambda _point, _mode: [])
        self.calls: list[tuple[Coordinate, QueryMode, float | None]] = []
        self._lock = threading.Lock()

    def query(
        self,
        coordinate: Coordinate,
        radius_km: float,
        lookback_days: int,
        mode: QueryMode,
        *,
        timeout: float | None = None,
    ) -> list[RawObservation]:
        with self._lock:
            self.calls.append((coordinate, mode, timeout))
        return self.handler(coordinate, mode)


@pytest.fixture
def make_obs() -> Callable[..., RawObservation]:
    """Factory for RawObservation with sensible defaults."""
    return _make_obs


@pytest.fixture
def fake_source() -> Callable[..., FakeSource]:
    """Factory for FakeSource, e.g. ``fake_source(lambda point, mode: [...])``."""
    return FakeSource
