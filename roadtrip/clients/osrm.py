"""
OSRM (Open Source Routing Machine) directions client.
100% free, no API key required.
"""

import logging
from typing import Optional

import httpx

from ..models.travel import LineString, RouteData

logger = logging.getLogger(__name__)


class OSRMDirectionsClient:
    """
    Fixed-order multi-stop routing via OSRM's route service.

    FREE: the public demo server needs no key; point base_url at a
    self-hosted instance for production traffic.
    """

    def __init__(
        self,
        base_url: str = "https://router.project-osrm.org",
        timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def test_connection(self) -> bool:
        """Test API connectivity."""
        try:
            # Simple route request to test
            result = await self.get_route(
                [(-122.4194, 37.7749), (-122.4089, 37.7849)]  # San Francisco
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
        Get the road route visiting the points in the given order.

        Args:
            coordinates: List of (lon, lat) tuples - NOTE: lon first for OSRM!
            profile: OSRM profile (driving, cycling, walking)

        Returns:
            RouteData for the first route, or None when OSRM finds none.
            Transport errors propagate as httpx exceptions; a malformed
            route payload raises pydantic.ValidationError.
        """
        coords_str = ";".join([f"{lon},{lat}" for lon, lat in coordinates])

        url = f"{self.base_url}/route/v1/{profile}/{coords_str}"
        params = {
            "geometries": "geojson",
            "overview": "full",
        }

        response = await self._client.get(url, params=params)
        data = response.json()
        if not isinstance(data, dict):
            logger.warning(f"Unexpected OSRM response body: {type(data).__name__}")
            return None

        if data.get("code") == "Ok" and data.get("routes"):
            route = data["routes"][0]
            return RouteData(
                distance=route.get("distance", 0),
                duration=route.get("duration", 0),
                geometry=LineString.model_validate(route.get("geometry")),
            )

        logger.warning(
            f"OSRM returned no route: {data.get('code', 'Unknown')} {data.get('message', '')}".strip()
        )
        return None
