"""
Mapbox Directions API client.
Provides driving distance, duration and geometry through ordered stops.
"""

import logging
from typing import Optional

import httpx

from ..models.travel import LineString, RouteData

logger = logging.getLogger(__name__)


class MapboxDirectionsClient:
    """
    Client for the Mapbox Directions v5 API.

    Accepts up to 25 coordinates per request on the driving profile.
    """

    MAX_COORDINATES = 25

    def __init__(
        self,
        access_token: str,
        base_url: str = "https://api.mapbox.com/directions/v5/mapbox",
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        if not access_token:
            raise ValueError("Mapbox access token is required")
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def test_connection(self) -> bool:
        """Test API connectivity with a short two-stop route."""
        try:
            result = await self.get_route(
                [(-122.4194, 37.7749), (-122.4089, 37.7849)]
            )
            return result is not None
        except Exception:
            return False

    async def get_route(
        self,
        coordinates: list[tuple[float, float]],
        profile: str = "driving",
    ) -> Optional[RouteData]:
        """
        Get the best route visiting the points in the given order.

        Args:
            coordinates: List of (lon, lat) tuples, in visiting order
            profile: Mapbox routing profile (driving, walking, cycling)

        Returns:
            RouteData for the first candidate route, or None when the
            provider returns an error code or zero routes.
            Transport errors propagate as httpx exceptions; a malformed
            route payload raises pydantic.ValidationError.
        """
        if len(coordinates) > self.MAX_COORDINATES:
            raise ValueError(f"Maximum {self.MAX_COORDINATES} coordinates per request")

        # Mapbox wants "lng,lat;lng,lat;..."
        coords_str = ";".join([f"{lon},{lat}" for lon, lat in coordinates])

        url = f"{self.base_url}/{profile}/{coords_str}"
        params = {
            "geometries": "geojson",
            "overview": "full",
            "access_token": self.access_token,
        }

        response = await self._client.get(url, params=params)
        data = response.json()
        if not isinstance(data, dict):
            logger.warning(f"Unexpected Mapbox response body: {type(data).__name__}")
            return None

        if data.get("routes"):
            route = data["routes"][0]
            # Raises pydantic.ValidationError for a missing or non-GeoJSON geometry
            return RouteData(
                distance=route.get("distance", 0),
                duration=route.get("duration", 0),
                geometry=LineString.model_validate(route.get("geometry")),
            )

        logger.warning(
            f"Mapbox returned no route: {data.get('code', response.status_code)} "
            f"{data.get('message', '')}".strip()
        )
        return None
