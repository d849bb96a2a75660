"""RideWithGPS route source.

Turns a route or trip link into a PathGeometry for the aggregator.

Public API:
  - client: URL parsing, endpoint URLs
  - routes: Route, parse_route, fetch_route
"""

from birdride.datasources.ridewithgps.client import is_ridewithgps_url, parse_url
from birdride.datasources.ridewithgps.routes import Route, fetch_route, parse_route

__all__ = [
    "Route",
    "fetch_route",
    "is_ridewithgps_url",
    "parse_route",
    "parse_url",
]
