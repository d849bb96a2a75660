"""BirdRide - recent bird sightings along a travel route.

Architecture::

    geometry.py    Coordinates, paths, Haversine and point-to-path distance
    schemas.py     Pydantic models (RawObservation, SpeciesAggregate, ...)
    datasources/   External APIs (eBird observations, RideWithGPS routes)
    aggregation/   Sample -> concurrent fetch -> dedup/merge -> filter -> rank
    flows/         Prefect orchestration (route -> sightings)
    services/      Shared utilities (HTTP client with retry)

Data flow: route -> PathGeometry -> aggregation (queries datasources) -> CLI/flow output

Extension points - see each package's docstring:
  - New observation source:  datasources/__init__.py
  - New aggregation stage:   aggregation/__init__.py
"""

__version__ = "0.1.0"

from birdride.aggregation import aggregate
from birdride.config import Settings
from birdride.geometry import Coordinate, PathGeometry
from birdride.schemas import AggregationResult, Rarity, SpeciesAggregate

__all__ = [
    "AggregationResult",
    "Coordinate",
    "PathGeometry",
    "Rarity",
    "Settings",
    "SpeciesAggregate",
    "__version__",
    "aggregate",
]
