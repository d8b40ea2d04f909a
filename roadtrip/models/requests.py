"""API request models."""

from typing import Optional
from pydantic import BaseModel, Field


class Coordinates(BaseModel):
    """Longitude/latitude coordinate pair."""
    longitude: float = Field(description="Longitude in decimal degrees", ge=-180, le=180)
    latitude: float = Field(description="Latitude in decimal degrees", ge=-90, le=90)


class DirectionsRequest(BaseModel):
    """Request body for resolving a route through ordered stops."""
    waypoints: list[Coordinates] = Field(
        default_factory=list,
        description="Ordered stops; fewer than two yields no route"
    )


class CostRequest(BaseModel):
    """Request body for a fuel cost estimate."""
    distance_m: float = Field(description="Route distance in meters", ge=0)
    duration_s: float = Field(default=0, description="Route duration in seconds", ge=0)
    mpg: float = Field(description="Miles per gallon", gt=0)
    price_per_gallon: float = Field(description="Currency per gallon", gt=0)


class WaypointInput(BaseModel):
    """A stop supplied when saving a route."""
    longitude: float = Field(description="Longitude in decimal degrees", ge=-180, le=180)
    latitude: float = Field(description="Latitude in decimal degrees", ge=-90, le=90)
    name: Optional[str] = Field(default=None, description="Display label")


class RouteCreateRequest(BaseModel):
    """Request body for saving a new route."""
    name: str = Field(min_length=1, description="Route name")
    description: Optional[str] = None
    waypoints: list[WaypointInput] = Field(default_factory=list)


class RouteUpdateRequest(BaseModel):
    """Request body for editing a saved route. Waypoints replace the whole set."""
    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    waypoints: Optional[list[WaypointInput]] = None


class WaypointAddRequest(WaypointInput):
    """Request body for appending a stop to a saved route or a session."""
    pass


class WaypointPatchRequest(BaseModel):
    """Request body for moving or renaming a session waypoint."""
    longitude: Optional[float] = Field(default=None, ge=-180, le=180)
    latitude: Optional[float] = Field(default=None, ge=-90, le=90)
    name: Optional[str] = Field(default=None, min_length=1)


class SettingsRequest(BaseModel):
    """Request body for changing cost settings."""
    mpg: Optional[float] = Field(default=None, gt=0)
    price_per_gallon: Optional[float] = Field(default=None, gt=0)


class SaveSessionRequest(BaseModel):
    """Request body for persisting a session's waypoints as a route."""
    name: str = Field(min_length=1)
    description: Optional[str] = None
    route_id: Optional[str] = Field(
        default=None,
        description="Existing route to overwrite instead of creating a new one"
    )
