"""
Mapbox Search Box API client.
Autocomplete suggestions, place retrieval and reverse geocoding.

Suggest and retrieve calls share a session token so the provider bills
one interactive search as a single session.
"""

import logging
import sys
import uuid
from typing import Iterable, Optional

import httpx

from ..models.search import SearchResult, SearchSuggestion
from ..utils.geo_validator import fallback_waypoint_label, unnamed_location_label

logger = logging.getLogger(__name__)

DEFAULT_TYPE_PRIORITY = ("place", "region", "postcode", "address")
DEFAULT_SUGGEST_TYPES = ("place", "region", "postcode", "address")


def new_session_token() -> str:
    """Generate a token grouping one interactive search."""
    return str(uuid.uuid4())


def rank_suggestions(
    suggestions: list[SearchSuggestion],
    type_priority: Iterable[str] = DEFAULT_TYPE_PRIORITY,
) -> list[SearchSuggestion]:
    """
    Re-rank suggestions by feature type.

    Types earlier in type_priority come first; unknown types go last.
    Suggestions of the same type keep the provider's order.
    """
    priority = {feature_type: rank for rank, feature_type in enumerate(type_priority)}
    # sorted() is stable, so equal ranks keep provider order
    return sorted(
        suggestions,
        key=lambda s: priority.get(s.feature_type or "", sys.maxsize),
    )


class MapboxSearchClient:
    """
    Client for the Mapbox Search Box v1 API.

    All methods degrade instead of raising: empty lists, None, or a
    coordinate label.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = "https://api.mapbox.com/search/searchbox/v1",
        timeout: float = 10.0,
        type_priority: Iterable[str] = DEFAULT_TYPE_PRIORITY,
        suggest_types: Iterable[str] = DEFAULT_SUGGEST_TYPES,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if not access_token:
            raise ValueError("Mapbox access token is required")
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.type_priority = tuple(type_priority)
        self.suggest_types = tuple(suggest_types)
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def test_connection(self) -> bool:
        """Test API connectivity with a reverse lookup."""
        try:
            response = await self._client.get(
                f"{self.base_url}/reverse",
                params={
                    "access_token": self.access_token,
                    "longitude": "-122.4194",
                    "latitude": "37.7749",
                    "limit": "1",
                },
            )
            return response.status_code == 200
        except Exception:
            return False

    async def suggest(
        self,
        query: str,
        session_token: str,
        limit: int = 5,
        proximity: Optional[tuple[float, float]] = None,
        countries: Optional[list[str]] = None,
    ) -> list[SearchSuggestion]:
        """
        Get autocomplete suggestions for a search query.

        Args:
            query: Partial place text
            session_token: Token from new_session_token()
            limit: Maximum suggestions requested
            proximity: Optional (lon, lat) bias point
            countries: Optional ISO country codes

        Returns:
            Re-ranked suggestions, empty on any failure
        """
        params = {
            "q": query,
            "access_token": self.access_token,
            "session_token": session_token,
            "limit": str(limit),
            "types": ",".join(self.suggest_types),
        }
        if proximity:
            params["proximity"] = f"{proximity[0]},{proximity[1]}"
        if countries:
            params["country"] = ",".join(countries)

        try:
            response = await self._client.get(f"{self.base_url}/suggest", params=params)
            response.raise_for_status()
            data = response.json()
            suggestions = [
                SearchSuggestion(
                    name=s.get("name", ""),
                    mapbox_id=s["mapbox_id"],
                    place_formatted=s.get("place_formatted") or "",
                    feature_type=s.get("feature_type"),
                )
                for s in data.get("suggestions", [])
                if s.get("mapbox_id")
            ]
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Search suggestions failed: {e}")
            return []

        return rank_suggestions(suggestions, self.type_priority)

    async def retrieve(self, mapbox_id: str, session_token: str) -> Optional[SearchResult]:
        """
        Retrieve coordinates and details for a selected suggestion.

        Returns:
            SearchResult, or None when the lookup fails or has no usable point
        """
        params = {
            "access_token": self.access_token,
            "session_token": session_token,
        }

        try:
            response = await self._client.get(
                f"{self.base_url}/retrieve/{mapbox_id}", params=params
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Retrieve search result failed: {e}")
            return None

        features = data.get("features") or []
        if not features:
            logger.warning(f"No features found for {mapbox_id}")
            return None

        feature = features[0]
        coords = (feature.get("geometry") or {}).get("coordinates")
        if not isinstance(coords, list) or len(coords) < 2:
            logger.warning(f"Invalid coordinates from search provider: {coords}")
            return None

        props = feature.get("properties") or {}
        try:
            return SearchResult(
                name=props.get("name") or feature.get("place_name") or "Unknown Location",
                mapbox_id=feature.get("id") or mapbox_id,
                feature_type=props.get("feature_type") or "unknown",
                address=props.get("address"),
                place_formatted=props.get("place_formatted") or feature.get("place_name") or "",
                longitude=float(coords[0]),
                latitude=float(coords[1]),
            )
        except ValueError as e:
            # pydantic ValidationError subclasses ValueError (covers NaN / out of range)
            logger.warning(f"Unusable coordinates from search provider {coords}: {e}")
            return None

    async def reverse_geocode(self, longitude: float, latitude: float) -> str:
        """
        Best-effort label for a coordinate.

        Prefers the city name, then the feature name. Never returns an empty string.
        """
        params = {
            "access_token": self.access_token,
            "longitude": str(longitude),
            "latitude": str(latitude),
            "limit": "1",
        }

        try:
            response = await self._client.get(f"{self.base_url}/reverse", params=params)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Reverse geocoding failed for ({latitude}, {longitude}): {e}")
            return fallback_waypoint_label(longitude, latitude)

        features = data.get("features") or []
        if features:
            props = features[0].get("properties") or {}
            city = ((props.get("context") or {}).get("place") or {}).get("name")
            if city:
                return city
            if props.get("name"):
                return props["name"]

        return unnamed_location_label(longitude, latitude)
