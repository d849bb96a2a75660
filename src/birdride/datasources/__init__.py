"""External data source integrations.

Each subdirectory is one data source with a consistent structure:

    datasources/{name}/
    ├── __init__.py       # Public API re-exports
    ├── client.py         # API URLs, constants, low-level GET
    └── {feature}.py      # Fetch + parse functions (one per endpoint/concept)

Sources:
  - ebird:       recent + notable observations near a point (ObservationSource)
  - ridewithgps: route track points -> PathGeometry

Adding a new observation source
-------------------------------
1. Create ``datasources/{name}/`` with the files above.

2. Parse API records into ``RawObservation`` (apply defaults there, once), and
   expose a class with a ``query()`` method matching
   ``datasources.base.ObservationSource``::

       class MySource:
           def query(self, coordinate, radius_km, lookback_days, mode, *, timeout=None):
               resp = session.get(API_URL, params={...}, timeout=timeout)
               ...
               return [obs for obs in map(parse_record, resp.json()) if obs]

3. Map transport errors to ``SourceUnavailable`` and bad status/payloads to
   ``SourceError``; the aggregator records those as failed queries.

4. Re-export public API in ``__init__.py`` with ``__all__`` and add tests in
   ``tests/test_{name}.py``.
"""

from birdride.datasources.base import ObservationSource

__all__ = ["ObservationSource"]
