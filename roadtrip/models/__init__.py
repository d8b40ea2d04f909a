"""Pydantic models for the trip planning pipeline."""

from .travel import (
    NameStatus,
    Waypoint,
    LineString,
    RouteData,
    CostSettings,
    CostEstimate,
    new_waypoint_id,
)
from .requests import (
    Coordinates,
    DirectionsRequest,
    CostRequest,
    WaypointInput,
    RouteCreateRequest,
    RouteUpdateRequest,
    WaypointAddRequest,
    WaypointPatchRequest,
    SettingsRequest,
    SaveSessionRequest,
)
from .search import SearchSuggestion, SearchResult

__all__ = [
    # Domain models
    "NameStatus",
    "Waypoint",
    "LineString",
    "RouteData",
    "CostSettings",
    "CostEstimate",
    "new_waypoint_id",
    # Search models
    "SearchSuggestion",
    "SearchResult",
    # Request models
    "Coordinates",
    "DirectionsRequest",
    "CostRequest",
    "WaypointInput",
    "RouteCreateRequest",
    "RouteUpdateRequest",
    "WaypointAddRequest",
    "WaypointPatchRequest",
    "SettingsRequest",
    "SaveSessionRequest",
]
