"""
Route resolution through an external directions provider.

RouteResolver turns an ordered coordinate list into RouteData (or None).
RouteResolution holds the displayed result for one session and discards
results from invocations that a newer one has superseded.
"""

import logging
from typing import Optional, Protocol, Sequence

import httpx

from ..config import get_yaml_setting
from ..models.travel import RouteData
from ..utils.geo_validator import CoordinateValidator

logger = logging.getLogger(__name__)


class DirectionsProvider(Protocol):
    """Anything that can route through ordered (lon, lat) stops."""

    async def get_route(
        self, coordinates: list[tuple[float, float]], profile: str = "driving"
    ) -> Optional[RouteData]:
        ...

    async def close(self):
        ...

    async def test_connection(self) -> bool:
        ...


class RouteResolver:
    """
    Fixed-order multi-stop route lookup.

    Issues exactly one provider request per call when there are at least
    two stops, and never raises for provider or network failures.
    """

    def __init__(self, provider: DirectionsProvider, profile: Optional[str] = None):
        self.provider = provider
        self.profile = profile or get_yaml_setting("directions", "profile", default="driving")

    async def resolve(self, coordinates: Sequence[tuple[float, float]]) -> Optional[RouteData]:
        """
        Route through the coordinates in order.

        Args:
            coordinates: Ordered (lon, lat) pairs

        Returns:
            RouteData, or None when there is nothing to connect or the
            provider could not produce a route
        """
        points = [(float(lon), float(lat)) for lon, lat in coordinates]
        if len(points) < 2:
            return None

        is_valid, msg = CoordinateValidator.validate_sequence(points)
        if not is_valid:
            logger.warning(f"Skipping route resolution: {msg}")
            return None

        try:
            route = await self.provider.get_route(points, profile=self.profile)
        except httpx.TimeoutException:
            logger.warning(f"Directions request timed out for {len(points)} waypoints")
            return None
        except httpx.HTTPError as e:
            logger.warning(f"Unable to calculate route for {len(points)} waypoints: {e}")
            return None
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            # Undecodable JSON, a route payload of the wrong shape, or too many stops
            logger.warning(f"Directions lookup failed for {len(points)} waypoints: {e!r}")
            return None

        if route is None:
            logger.info(f"No route found for {len(points)} waypoints")
        return route


class RouteResolution:
    """
    Displayed route state for one session (a cache of one result).

    Each refresh captures a generation number; a result is applied only
    if no newer refresh started while it was in flight.
    """

    def __init__(self):
        self.generation = 0
        self.loading = False
        self.route: Optional[RouteData] = None
        # Coordinates that produced `route`; None when nothing is displayed
        self.input: Optional[tuple[tuple[float, float], ...]] = None

    def is_current_for(self, coordinates: Sequence[tuple[float, float]]) -> bool:
        return self.input is not None and self.input == tuple(coordinates)

    def reset(self):
        """Drop the displayed route and supersede anything in flight."""
        self.generation += 1
        self.loading = False
        self.route = None
        self.input = None

    async def refresh(
        self,
        resolver: RouteResolver,
        coordinates: Sequence[tuple[float, float]],
    ) -> bool:
        """
        Resolve coordinates and display the result unless superseded.

        Returns:
            True if the result was applied, False if it was discarded as stale
        """
        key = tuple(coordinates)
        if len(key) < 2:
            self.reset()
            return True

        self.generation += 1
        generation = self.generation
        self.loading = True

        try:
            route = await resolver.resolve(key)
        except BaseException:
            if generation == self.generation:
                self.loading = False
            raise

        if generation != self.generation:
            logger.debug(
                f"Discarding stale route result (generation {generation}, current {self.generation})"
            )
            return False

        self.route = route
        # Failures are not cached so the next mutation retries
        self.input = key if route is not None else None
        self.loading = False
        return True
