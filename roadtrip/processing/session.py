"""
Planner session: the per-client context of waypoints, displayed route and
cost settings.

Mutations call recompute() explicitly; new waypoints get their names
filled in by background reverse-geocoding tasks.
"""

import asyncio
import logging
import uuid
from collections import OrderedDict
from typing import Optional, Protocol

from ..models.travel import CostEstimate, CostSettings, NameStatus, Waypoint
from ..utils.geo_validator import fallback_waypoint_label
from .cost_estimator import default_cost_settings, estimate
from .route_resolver import RouteResolution, RouteResolver
from .waypoint_store import WaypointStore

logger = logging.getLogger(__name__)


class ReverseGeocoder(Protocol):
    async def reverse_geocode(self, longitude: float, latitude: float) -> str:
        ...


class PlannerSession:
    """
    Session-scoped planning context.

    Owns the waypoint store, the resolver result and the cost settings.
    """

    def __init__(
        self,
        resolver: RouteResolver,
        geocoder: Optional[ReverseGeocoder] = None,
        settings: Optional[CostSettings] = None,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or uuid.uuid4().hex
        self.resolver = resolver
        self.geocoder = geocoder
        self.store = WaypointStore()
        self.resolution = RouteResolution()
        self.settings = settings or default_cost_settings()
        # Saved route this session was loaded from or last saved to
        self.route_id: Optional[str] = None
        self._name_tasks: set[asyncio.Task] = set()

    # -- Waypoints ---------------------------------------------------------

    async def add_waypoint(
        self, longitude: float, latitude: float, name: Optional[str] = None
    ) -> Waypoint:
        """Append a waypoint, start its name lookup, and re-resolve the route."""
        waypoint = self.store.add(longitude, latitude, name=name)
        if waypoint.name_status == NameStatus.PENDING:
            self._start_name_lookup(waypoint)
        await self.recompute()
        return self.store.get(waypoint.id) or waypoint

    async def remove_waypoint(self, waypoint_id: str) -> bool:
        removed = self.store.remove(waypoint_id)
        if removed:
            await self.recompute()
        return removed

    async def update_waypoint(self, waypoint_id: str, **fields) -> Optional[Waypoint]:
        """
        Move or rename a waypoint.

        A non-blank name marks it MANUAL; a blank one is ignored. Moving a
        waypoint whose name is still pending restarts its lookup.
        """
        if "name" in fields:
            name = (fields.pop("name") or "").strip()
            if name:
                fields["name"] = name
                fields["name_status"] = NameStatus.MANUAL
        moved = "longitude" in fields or "latitude" in fields

        updated = self.store.update(waypoint_id, **fields)
        if updated is None:
            return None
        if moved and updated.name_status == NameStatus.PENDING:
            self._start_name_lookup(updated)
        await self.recompute()
        return self.store.get(waypoint_id) or updated

    async def clear_waypoints(self):
        self.store.clear()
        await self.recompute()

    async def load_waypoints(self, waypoints: list[Waypoint], route_id: Optional[str] = None):
        """Replace the sequence, e.g. with a saved route's stops."""
        self.store.replace(waypoints)
        self.route_id = route_id
        await self.recompute()

    # -- Settings ----------------------------------------------------------

    def update_settings(
        self, mpg: Optional[float] = None, price_per_gallon: Optional[float] = None
    ) -> CostSettings:
        """Change cost settings. Raises pydantic.ValidationError for values <= 0."""
        self.settings = CostSettings(
            mpg=self.settings.mpg if mpg is None else mpg,
            price_per_gallon=(
                self.settings.price_per_gallon if price_per_gallon is None else price_per_gallon
            ),
        )
        return self.settings

    # -- Derived state -----------------------------------------------------

    async def recompute(self):
        """Re-resolve the route if the coordinate sequence changed."""
        coordinates = self.store.coordinates()
        if len(coordinates) < 2:
            self.resolution.reset()
            return
        if self.resolution.is_current_for(coordinates) and not self.resolution.loading:
            return
        await self.resolution.refresh(self.resolver, coordinates)

    def cost(self) -> Optional[CostEstimate]:
        """Cost figures for the displayed route, or None without one."""
        if self.resolution.route is None:
            return None
        return estimate(self.resolution.route, self.settings)

    def snapshot(self) -> dict:
        """Everything the presentation layer renders."""
        route = self.resolution.route
        cost = self.cost()
        return {
            "session_id": self.id,
            "route_id": self.route_id,
            "waypoints": [w.model_dump(mode="json") for w in self.store.waypoints],
            "route": route.model_dump(mode="json") if route else None,
            "loading": self.resolution.loading,
            "settings": self.settings.model_dump(),
            "cost": cost.model_dump() if cost else None,
        }

    # -- Name backfill -----------------------------------------------------

    def _start_name_lookup(self, waypoint: Waypoint):
        if self.geocoder is None:
            self.store.update(
                waypoint.id,
                name=fallback_waypoint_label(waypoint.longitude, waypoint.latitude),
                name_status=NameStatus.FALLBACK,
            )
            return
        task = asyncio.create_task(self._resolve_name(waypoint))
        self._name_tasks.add(task)
        task.add_done_callback(self._name_tasks.discard)

    async def _resolve_name(self, waypoint: Waypoint):
        try:
            label = await self.geocoder.reverse_geocode(waypoint.longitude, waypoint.latitude)
            status = NameStatus.RESOLVED
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(f"Name lookup failed for waypoint {waypoint.id}")
            label, status = None, NameStatus.FALLBACK
        if not label:
            label = fallback_waypoint_label(waypoint.longitude, waypoint.latitude)
            status = NameStatus.FALLBACK

        current = self.store.get(waypoint.id)
        # A user-entered name wins over a late lookup
        if current is None or current.name_status != NameStatus.PENDING:
            return
        # Moved since this lookup started; the newer lookup names it
        if current.coordinates != waypoint.coordinates:
            return
        self.store.update(waypoint.id, name=label, name_status=status)

    async def wait_for_names(self):
        """Wait until every pending name lookup has finished."""
        if self._name_tasks:
            await asyncio.gather(*list(self._name_tasks))

    def cancel_name_lookups(self):
        for task in list(self._name_tasks):
            task.cancel()

    async def close(self):
        """Cancel outstanding name lookups."""
        self.cancel_name_lookups()
        if self._name_tasks:
            await asyncio.gather(*list(self._name_tasks), return_exceptions=True)


class SessionRegistry:
    """
    In-memory planner sessions keyed by session id.

    Oldest sessions are dropped once max_sessions is exceeded.
    """

    def __init__(self, resolver: RouteResolver, geocoder: Optional[ReverseGeocoder] = None,
                 max_sessions: int = 500):
        self.resolver = resolver
        self.geocoder = geocoder
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, PlannerSession] = OrderedDict()

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, settings: Optional[CostSettings] = None) -> PlannerSession:
        session = PlannerSession(self.resolver, geocoder=self.geocoder, settings=settings)
        self._sessions[session.id] = session
        while len(self._sessions) > self.max_sessions:
            _, evicted = self._sessions.popitem(last=False)
            logger.info(f"Evicting planner session {evicted.id}")
            evicted.cancel_name_lookups()
        return session

    def get(self, session_id: str) -> Optional[PlannerSession]:
        session = self._sessions.get(session_id)
        if session is not None:
            self._sessions.move_to_end(session_id)
        return session

    async def drop(self, session_id: str) -> bool:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return False
        await session.close()
        return True

    async def close(self):
        for session_id in list(self._sessions):
            await self.drop(session_id)
