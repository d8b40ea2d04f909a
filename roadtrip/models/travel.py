"""Waypoint, route and cost models shared by the planning pipeline."""

import uuid
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field


class NameStatus(str, Enum):
    """Where a waypoint's display name came from."""
    PENDING = "pending"
    RESOLVED = "resolved"
    FALLBACK = "fallback"
    MANUAL = "manual"


def new_waypoint_id() -> str:
    """Client-side id for a waypoint that has not been saved yet."""
    return uuid.uuid4().hex


class Waypoint(BaseModel):
    """A single user-designated stop. Immutable; edits produce a copy."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_waypoint_id, description="Opaque waypoint identifier")
    longitude: float = Field(description="Longitude in decimal degrees", ge=-180, le=180)
    latitude: float = Field(description="Latitude in decimal degrees", ge=-90, le=90)
    name: Optional[str] = Field(default=None, description="Display label")
    name_status: NameStatus = NameStatus.PENDING

    @property
    def coordinates(self) -> tuple[float, float]:
        """(lon, lat) pair in provider order."""
        return (self.longitude, self.latitude)


class LineString(BaseModel):
    """GeoJSON LineString geometry."""
    type: str = "LineString"
    coordinates: list[list[float]] = Field(default_factory=list)


class RouteData(BaseModel):
    """Resolved route for a waypoint sequence. Derived, never persisted."""
    distance: float = Field(description="Total distance in meters", ge=0)
    duration: float = Field(description="Total duration in seconds", ge=0)
    geometry: LineString


class CostSettings(BaseModel):
    """Per-session fuel cost preferences."""
    model_config = ConfigDict(frozen=True)

    mpg: float = Field(description="Miles per gallon", gt=0)
    price_per_gallon: float = Field(description="Currency per gallon", gt=0)


class CostEstimate(BaseModel):
    """Fuel and time figures derived from a route and cost settings."""
    distance_miles: float
    gallons_needed: float
    fuel_cost: float
    duration_hours: int
    duration_minutes: int
    duration_text: str
