"""
Exception hierarchy.

Only ``InvalidArgumentError`` escapes ``aggregate()``. Source errors are raised
by ``ObservationSource`` implementations and absorbed by the fetch
orchestrator, which records them as ``QueryFailure`` entries instead.
"""

from __future__ import annotations


class BirdRideError(Exception):
    """Base class for all project errors."""


class InvalidArgumentError(BirdRideError, ValueError):
    """A caller-supplied argument violates a precondition (empty path, bad radius, ...)."""


class SourceError(BirdRideError):
    """An observation source answered, but with a non-success status or bad payload."""


class SourceUnavailable(SourceError):  # noqa: N818
    """An observation source could not be reached (connection error, timeout)."""


class RouteNotFoundError(BirdRideError):
    """A route could not be loaded from the route provider."""

    def __init__(self, route_id: str, status: int | None = None) -> None:
        self.route_id = route_id
        self.status = status
        detail = f" (HTTP {status})" if status is not None else ""
        super().__init__(f"Route not found: {route_id}{detail}")
