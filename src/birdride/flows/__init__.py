"""
Prefect flows.

Flows:
- sightings: route (or coordinates) -> eBird species aggregates near the path

Usage (local):
    python -m birdride.flows.sightings https://ridewithgps.com/routes/12345

Usage (Prefect):
    prefect server start  # Optional, for dashboard
    prefect deployment run 'route-sightings/default'
"""
