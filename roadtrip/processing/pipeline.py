"""
Trip planning service container.

Wires together:
- Directions provider (Mapbox or OSRM)
- Mapbox Search Box (suggestions, retrieval, reverse geocoding)
- Planner sessions
- Saved route storage
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ..config import Config, get_yaml_setting
from ..clients.mapbox_directions import MapboxDirectionsClient
from ..clients.mapbox_search import MapboxSearchClient
from ..clients.osrm import OSRMDirectionsClient
from ..storage.database import create_engine, create_session_factory, init_db
from .route_resolver import DirectionsProvider, RouteResolver
from .session import SessionRegistry

logger = logging.getLogger(__name__)


def build_directions_provider(config: Config) -> DirectionsProvider:
    """Directions client selected by DIRECTIONS_PROVIDER."""
    timeout = get_yaml_setting("directions", "timeout_seconds", default=10)
    if config.directions_provider == "osrm":
        base_url = config.osrm_base_url or get_yaml_setting(
            "directions", "osrm_base_url", default="https://router.project-osrm.org"
        )
        return OSRMDirectionsClient(base_url=base_url, timeout=timeout)
    return MapboxDirectionsClient(
        config.mapbox_access_token,
        base_url=get_yaml_setting(
            "directions", "mapbox_base_url",
            default="https://api.mapbox.com/directions/v5/mapbox",
        ),
        timeout=timeout,
    )


def build_search_client(config: Config) -> MapboxSearchClient:
    return MapboxSearchClient(
        config.mapbox_access_token,
        base_url=get_yaml_setting(
            "search", "base_url", default="https://api.mapbox.com/search/searchbox/v1"
        ),
        timeout=get_yaml_setting("search", "timeout_seconds", default=10),
        type_priority=get_yaml_setting(
            "search", "type_priority", default=["place", "region", "postcode", "address"]
        ),
        suggest_types=get_yaml_setting(
            "search", "suggest_types", default=["place", "region", "postcode", "address"]
        ),
    )


class TripPlanner:
    """
    Long-lived services shared by all requests.
    """

    def __init__(
        self,
        config: Config,
        directions: Optional[DirectionsProvider] = None,
        search: Optional[MapboxSearchClient] = None,
        engine: Optional[AsyncEngine] = None,
    ):
        self.config = config

        self.directions = directions or build_directions_provider(config)
        self.search = search or build_search_client(config)
        self.resolver = RouteResolver(self.directions)

        self.sessions = SessionRegistry(
            self.resolver,
            geocoder=self.search,
            max_sessions=get_yaml_setting("sessions", "max_sessions", default=500),
        )

        self.engine = engine or create_engine(config.database_url)
        self.session_factory: async_sessionmaker[AsyncSession] = create_session_factory(self.engine)

    async def start(self):
        """Create tables; called once from the app lifespan."""
        await init_db(self.engine)

    async def close(self):
        """Close all HTTP clients, sessions and the database engine."""
        await self.sessions.close()
        await self.directions.close()
        await self.search.close()
        await self.engine.dispose()

    async def test_all_apis(self) -> dict[str, bool]:
        """Test connectivity to all APIs."""
        results = {
            "directions": await self.directions.test_connection(),
            "search": await self.search.test_connection(),
        }

        for api, ok in results.items():
            status = "OK" if ok else "FAILED"
            logger.info(f"  {api}: {status}")

        return results
