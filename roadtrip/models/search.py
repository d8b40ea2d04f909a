"""Place search models."""

from typing import Optional
from pydantic import BaseModel, Field


class SearchSuggestion(BaseModel):
    """An autocomplete candidate; coordinates come from a later retrieve."""
    name: str
    mapbox_id: str
    place_formatted: str = ""
    feature_type: Optional[str] = None


class SearchResult(BaseModel):
    """A retrieved place with resolved coordinates."""
    name: str
    mapbox_id: str
    feature_type: str = "unknown"
    address: Optional[str] = None
    place_formatted: str = ""
    longitude: float = Field(ge=-180, le=180)
    latitude: float = Field(ge=-90, le=90)
