"""eBird observation data source.

Public API:
  - client: URLs, token header, low-level GET, species page helpers
  - observations: parse_observation, fetch_observations, EBirdSource
"""

from birdride.datasources.ebird.client import API_BASE, species_code_from, species_url
from birdride.datasources.ebird.observations import (
    EBirdSource,
    fetch_observations,
    parse_observation,
    parse_observations,
)

__all__ = [
    "API_BASE",
    "EBirdSource",
    "fetch_observations",
    "parse_observation",
    "parse_observations",
    "species_code_from",
    "species_url",
]
