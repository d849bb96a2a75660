"""Route-proximity observation aggregation.

Stages, leaf-first:
  - sampler:   path -> bounded list of query origins
  - fanout:    concurrent notable + recent queries per origin, failures recorded
  - dedup:     dedup by (species, report) and group into SpeciesAggregate
  - rarity:    rare if notable anywhere or reviewed, else common
  - proximity: distance from each aggregate to the path polyline
  - ranking:   recency or rarity order
  - pipeline:  ``aggregate()`` wiring the stages together
  - enrichment: optional per-species post-processing, cancellable

Dependency rule: stages receive an ``ObservationSource``; they never import a
concrete data source.  No Prefect decorators here (see ``flows/``).
"""

from birdride.aggregation.deadline import Deadline
from birdride.aggregation.dedup import SpeciesMerger, merge
from birdride.aggregation.enrichment import enrich
from birdride.aggregation.fanout import FetchResult, fetch
from birdride.aggregation.pipeline import aggregate
from birdride.aggregation.proximity import (
    distance_from_path,
    filter_by_proximity,
    within_distance,
)
from birdride.aggregation.ranking import by_rarity, by_recency, rank
from birdride.aggregation.rarity import classify_rarity, is_notable, notable_only
from birdride.aggregation.sampler import DEFAULT_MAX_POINTS, sample

__all__ = [
    "DEFAULT_MAX_POINTS",
    "Deadline",
    "FetchResult",
    "SpeciesMerger",
    "aggregate",
    "by_rarity",
    "by_recency",
    "classify_rarity",
    "distance_from_path",
    "enrich",
    "fetch",
    "filter_by_proximity",
    "is_notable",
    "merge",
    "notable_only",
    "rank",
    "sample",
    "within_distance",
]
