"""API clients for external services."""

from .mapbox_directions import MapboxDirectionsClient
from .mapbox_search import MapboxSearchClient, new_session_token, rank_suggestions
from .osrm import OSRMDirectionsClient

__all__ = [
    "MapboxDirectionsClient",
    "MapboxSearchClient",
    "OSRMDirectionsClient",
    "new_session_token",
    "rank_suggestions",
]
